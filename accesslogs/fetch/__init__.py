"""Rate-limited, retrying request layer for the upstream API.

This module provides:
- A sliding-window rate limiter keeping the process under the provider quota
- A request executor classifying each exchange as success, transient or fatal
- Exponential backoff with jitter, honouring server Retry-After hints
- Header redaction for logging
- Metrics collection for observability
"""

from accesslogs.fetch.client import RequestExecutor, parse_retry_after
from accesslogs.fetch.config import FetchConfig, RateLimiterConfig
from accesslogs.fetch.errors import (
    ClientRequestError,
    FetchErrorClass,
    MalformedResponseError,
    RateLimitedError,
    RequestFailedError,
    TransportError,
    UpstreamUnavailableError,
)
from accesslogs.fetch.metrics import FetchMetrics
from accesslogs.fetch.models import (
    FatalFailure,
    FetchError,
    RequestOutcome,
    RequestSpec,
    RetryPolicy,
    Success,
    TransientFailure,
)
from accesslogs.fetch.rate_limiter import RateLimiterState, SlidingWindowRateLimiter


__all__ = [
    # Executor
    "RequestExecutor",
    "parse_retry_after",
    # Rate limiting
    "SlidingWindowRateLimiter",
    "RateLimiterState",
    # Config
    "FetchConfig",
    "RateLimiterConfig",
    "RetryPolicy",
    # Outcomes
    "RequestSpec",
    "RequestOutcome",
    "Success",
    "TransientFailure",
    "FatalFailure",
    "FetchError",
    "FetchErrorClass",
    # Errors
    "RequestFailedError",
    "TransportError",
    "RateLimitedError",
    "UpstreamUnavailableError",
    "ClientRequestError",
    "MalformedResponseError",
    # Metrics
    "FetchMetrics",
]

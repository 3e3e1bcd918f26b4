"""Configuration models for the fetch layer."""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from accesslogs.fetch.constants import (
    DEFAULT_RATE_LIMIT,
    DEFAULT_RATE_WINDOW_SECONDS,
    DEFAULT_SAFETY_MARGIN,
    DEFAULT_TIMEOUT_SECONDS,
)
from accesslogs.fetch.models import RetryPolicy


DEFAULT_BASE_URL = "https://api.planethoster.net/v3/"


class RateLimiterConfig(BaseModel):
    """Provider quota for the sliding-window rate limiter.

    The effective limit keeps `safety_margin` requests free from the
    provider's quota, and never drops below one request per window.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    rate_limit: Annotated[int, Field(ge=1, description="Requests allowed per window")] = (
        DEFAULT_RATE_LIMIT
    )
    rate_window_seconds: Annotated[float, Field(gt=0, description="Window length")] = (
        DEFAULT_RATE_WINDOW_SECONDS
    )
    safety_margin: Annotated[int, Field(description="Requests reserved as headroom")] = (
        DEFAULT_SAFETY_MARGIN
    )

    @property
    def effective_limit(self) -> int:
        """Requests that may be granted within one window."""
        return max(1, self.rate_limit - max(0, self.safety_margin))


class FetchConfig(BaseModel):
    """Configuration for the request executor.

    Central configuration for all upstream calls including base URL,
    timeout, retry policy, and the provider quota.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_url: Annotated[str, Field(min_length=1)] = DEFAULT_BASE_URL
    user_agent: Annotated[str, Field(min_length=1, max_length=500)] = (
        "ph-access-logs/1.0"
    )
    timeout_seconds: Annotated[float, Field(ge=1.0, le=300.0)] = (
        DEFAULT_TIMEOUT_SECONDS
    )
    retry_policy: RetryPolicy = Field(default_factory=RetryPolicy)
    rate_limiter: RateLimiterConfig = Field(default_factory=RateLimiterConfig)

    @field_validator("base_url")
    @classmethod
    def ensure_trailing_slash(cls, v: str) -> str:
        """Normalize the base URL so paths can be appended directly."""
        return v if v.endswith("/") else f"{v}/"

    def url_for(self, path: str) -> str:
        """Build the full URL for an API path.

        Args:
            path: Path below the base URL, with or without a leading slash.

        Returns:
            Absolute URL.
        """
        return self.base_url + path.lstrip("/")

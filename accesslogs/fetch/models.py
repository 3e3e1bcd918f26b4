"""Data models for the fetch layer."""

import random
from collections.abc import Callable
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from accesslogs.fetch.constants import RETRY_AFTER_SLACK_SECONDS
from accesslogs.fetch.errors import (
    TRANSIENT_ERROR_CLASSES,
    FetchErrorClass,
    RequestFailedError,
    error_type_for,
)


class FetchError(BaseModel):
    """Typed error from a single request attempt.

    Provides structured information about what went wrong during a request,
    enabling proper retry decisions and error reporting.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    error_class: FetchErrorClass = Field(description="Classification of the error")
    message: Annotated[str, Field(min_length=1, description="Human-readable message")]
    status_code: int | None = Field(
        default=None, description="HTTP status code if available"
    )
    retry_after: int | None = Field(
        default=None, description="Retry-After seconds (for 429 and 5xx)"
    )

    @property
    def is_transient(self) -> bool:
        """Check if this error is expected to resolve on retry."""
        return self.error_class in TRANSIENT_ERROR_CLASSES

    def to_exception(
        self, url: str | None = None, attempts: int | None = None
    ) -> RequestFailedError:
        """Build the exception that surfaces this error to callers.

        Args:
            url: URL of the failed request.
            attempts: Number of physical attempts made.

        Returns:
            RequestFailedError subclass matching the error class.
        """
        error_type = error_type_for(self.error_class)
        return error_type(
            self.message,
            error_class=self.error_class,
            status_code=self.status_code,
            url=url,
            retry_after=self.retry_after,
            attempts=attempts,
        )


class RetryPolicy(BaseModel):
    """Configuration for retry behavior.

    Controls how many times to retry and the backoff strategy.
    Uses exponential backoff:
    delay = min(max_delay_ms, base_delay_ms * (exponential_base ^ attempt))
    plus a uniform jitter in [0, max_jitter_ms].
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_retries: Annotated[int, Field(ge=0, le=10)] = 3
    base_delay_ms: Annotated[int, Field(ge=0, le=60000)] = 1000
    max_delay_ms: Annotated[int, Field(ge=0, le=300000)] = 10000
    exponential_base: Annotated[float, Field(ge=1.0, le=5.0)] = 2.0
    max_jitter_ms: Annotated[int, Field(ge=0, le=10000)] = 100

    @property
    def max_attempts(self) -> int:
        """Total physical attempts allowed, including the first one."""
        return self.max_retries + 1

    def should_retry(self, error: FetchError, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            error: The error that occurred.
            attempt: Current attempt number (0-indexed).

        Returns:
            True if the request should be retried.
        """
        if attempt >= self.max_retries:
            return False

        return error.is_transient

    def get_delay_ms(
        self,
        attempt: int,
        rng: Callable[[float, float], float] = random.uniform,
    ) -> int:
        """Calculate exponential backoff before the next retry attempt.

        Args:
            attempt: Current attempt number (0-indexed).
            rng: Source of jitter, called as rng(low, high).

        Returns:
            Delay in milliseconds.
        """
        delay = self.base_delay_ms * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay_ms)

        jitter = rng(0, self.max_jitter_ms)
        return int(delay + jitter)

    @staticmethod
    def get_retry_after_delay_ms(retry_after: int) -> int:
        """Calculate the delay honouring a server supplied Retry-After.

        Args:
            retry_after: Seconds requested by the server.

        Returns:
            Delay in milliseconds, including a small slack.
        """
        return int((retry_after + RETRY_AFTER_SLACK_SECONDS) * 1000)


class RequestSpec(BaseModel):
    """One logical request against the upstream API.

    GET requests carry their parameters as a JSON body, which the
    upstream requires.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Annotated[str, Field(min_length=1, description="Path below the base URL")]
    params: dict[str, Any] | None = Field(
        default=None, description="Parameters sent as a JSON body"
    )


class Success(BaseModel):
    """A request that produced a decoded JSON body."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    body: dict[str, Any] | list[Any]
    status_code: int = Field(ge=100, le=399)
    attempts: int = Field(default=1, ge=1)

    @property
    def is_success(self) -> bool:
        """Always True for a success outcome."""
        return True

    def unwrap(self) -> dict[str, Any] | list[Any]:
        """Return the decoded body."""
        return self.body


class _Failure(BaseModel):
    """Common shape of the failure outcomes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    error: FetchError
    url: str = ""
    attempts: int = Field(default=1, ge=1)

    @property
    def is_success(self) -> bool:
        """Always False for a failure outcome."""
        return False

    @property
    def retry_after(self) -> int | None:
        """Server supplied Retry-After hint, in seconds."""
        return self.error.retry_after

    def unwrap(self) -> dict[str, Any] | list[Any]:
        """Raise the exception matching this failure.

        Raises:
            RequestFailedError: Always.
        """
        raise self.error.to_exception(url=self.url or None, attempts=self.attempts)


class TransientFailure(_Failure):
    """A failure expected to resolve on retry (throttling, outage, transport)."""


class FatalFailure(_Failure):
    """A failure caused by the request itself; never retried."""


RequestOutcome = Success | TransientFailure | FatalFailure

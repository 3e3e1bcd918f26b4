"""Rate-limited HTTP request executor with retries."""

import json
import random
import time
from collections.abc import Callable
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx
import structlog

from accesslogs.fetch.config import FetchConfig
from accesslogs.fetch.constants import (
    HEADER_API_KEY,
    HEADER_API_USER,
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_SERVER_ERROR_MAX,
    HTTP_STATUS_SERVER_ERROR_MIN,
    HTTP_STATUS_TOO_MANY_REQUESTS,
)
from accesslogs.fetch.errors import FetchErrorClass
from accesslogs.fetch.metrics import FetchMetrics
from accesslogs.fetch.models import (
    FatalFailure,
    FetchError,
    RequestOutcome,
    RequestSpec,
    Success,
    TransientFailure,
)
from accesslogs.fetch.rate_limiter import SlidingWindowRateLimiter
from accesslogs.fetch.redact import redact_headers


logger = structlog.get_logger()


class RequestExecutor:
    """Issues logical requests against the upstream API.

    Every physical attempt, retries included, first reserves a slot from
    the rate limiter. Each exchange is classified into a RequestOutcome:
    transport failures, 429 and 5xx are transient and retried with
    backoff; other 4xx and undecodable bodies are fatal.
    """

    def __init__(  # noqa: PLR0913
        self,
        config: FetchConfig,
        api_key: str,
        api_user: str,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[float, float], float] = random.uniform,
    ) -> None:
        """Initialize the executor.

        Args:
            config: Fetch configuration.
            api_key: Value of the X-API-KEY header.
            api_user: Value of the X-API-USER header.
            rate_limiter: Limiter shared by every call of this process.
            transport: Optional httpx transport (tests inject a mock).
            sleep: Blocking sleep used between retries.
            rng: Jitter source, called as rng(low, high).
        """
        self._config = config
        self._api_key = api_key
        self._api_user = api_user
        self._rate_limiter = rate_limiter or SlidingWindowRateLimiter(
            config=config.rate_limiter
        )
        self._transport = transport
        self._sleep = sleep
        self._rng = rng
        self._metrics = FetchMetrics.get_instance()
        self._log = logger.bind(component="fetch")

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter:
        """Get the rate limiter gating this executor."""
        return self._rate_limiter

    @property
    def config(self) -> FetchConfig:
        """Get the fetch configuration."""
        return self._config

    def execute(self, spec: RequestSpec) -> RequestOutcome:
        """Execute one logical request, retrying transient failures.

        Args:
            spec: The request to issue.

        Returns:
            Success, or the terminal failure with the last classified reason.
        """
        url = self._config.url_for(spec.path)
        headers = self._build_headers(with_body=spec.params is not None)
        content = json.dumps(spec.params) if spec.params is not None else None
        policy = self._config.retry_policy

        log = self._log.bind(path=spec.path)
        start_time_ns = time.perf_counter_ns()

        attempt = 0
        while True:
            self._rate_limiter.reserve_slot()
            outcome = self._execute_single(
                url=url,
                headers=headers,
                content=content,
                attempts=attempt + 1,
                log=log,
            )

            if isinstance(outcome, Success):
                break

            if isinstance(outcome, FatalFailure) or not policy.should_retry(
                outcome.error, attempt
            ):
                break

            delay_ms = self._get_retry_delay_ms(outcome, attempt)
            self._metrics.record_retry()
            log.info(
                "retry_scheduled",
                attempt=attempt + 1,
                max_attempts=policy.max_attempts,
                error_class=outcome.error.error_class.value,
                status_code=outcome.error.status_code,
                retry_after=outcome.error.retry_after,
                delay_ms=delay_ms,
            )
            self._sleep(delay_ms / 1000.0)
            attempt += 1

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_duration(duration_ms)

        if isinstance(outcome, Success):
            log.debug(
                "request_complete",
                status_code=outcome.status_code,
                attempts=outcome.attempts,
                duration_ms=round(duration_ms, 2),
            )
        else:
            self._metrics.record_failure(outcome.error.error_class)
            log.warning(
                "request_failed",
                error_class=outcome.error.error_class.value,
                status_code=outcome.error.status_code,
                message=outcome.error.message,
                attempts=outcome.attempts,
                duration_ms=round(duration_ms, 2),
            )

        return outcome

    def _get_retry_delay_ms(
        self, outcome: TransientFailure, attempt: int
    ) -> int:
        """Pick the delay before the next attempt.

        Args:
            outcome: The transient failure just observed.
            attempt: Current attempt number (0-indexed).

        Returns:
            Delay in milliseconds.
        """
        policy = self._config.retry_policy
        retry_after = outcome.error.retry_after
        if retry_after is not None and retry_after > 0:
            return policy.get_retry_after_delay_ms(retry_after)
        return policy.get_delay_ms(attempt, rng=self._rng)

    def _build_headers(self, with_body: bool) -> dict[str, str]:
        """Build request headers.

        Args:
            with_body: Whether the request carries a JSON body.

        Returns:
            Complete headers dictionary.
        """
        headers: dict[str, str] = {
            "User-Agent": self._config.user_agent,
            "Accept": "application/json",
            HEADER_API_KEY: self._api_key,
            HEADER_API_USER: self._api_user,
        }
        if with_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _execute_single(
        self,
        url: str,
        headers: dict[str, str],
        content: str | None,
        attempts: int,
        log: structlog.stdlib.BoundLogger,
    ) -> RequestOutcome:
        """Perform one physical attempt and classify it.

        Args:
            url: Absolute request URL.
            headers: Request headers.
            content: JSON body, if any.
            attempts: Attempt number (1-indexed).
            log: Bound logger.

        Returns:
            Classified outcome of this attempt.
        """
        log = log.bind(attempt=attempts)
        log.debug("request_attempt", url=url, headers=redact_headers(headers))

        try:
            with httpx.Client(
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = client.request("GET", url, headers=headers, content=content)
        except httpx.TimeoutException as e:
            return TransientFailure(
                error=FetchError(
                    error_class=FetchErrorClass.NETWORK_TIMEOUT,
                    message=f"Request to {url} timed out: {e}",
                ),
                url=url,
                attempts=attempts,
            )
        except httpx.RequestError as e:
            return TransientFailure(
                error=FetchError(
                    error_class=FetchErrorClass.CONNECTION_ERROR,
                    message=f"Unable to fetch data from {url}: {e}",
                ),
                url=url,
                attempts=attempts,
            )

        self._metrics.record_request(response.status_code, len(response.content))
        return self._classify_response(response, url, attempts)

    def _classify_response(
        self,
        response: httpx.Response,
        url: str,
        attempts: int,
    ) -> RequestOutcome:
        """Classify an HTTP response into an outcome.

        Args:
            response: HTTP response.
            url: Request URL, for error context.
            attempts: Attempt number (1-indexed).

        Returns:
            Success, TransientFailure or FatalFailure.
        """
        status_code = response.status_code

        if status_code >= HTTP_STATUS_BAD_REQUEST:
            error = self._classify_http_error(status_code, response.headers, url)
            if error.is_transient:
                return TransientFailure(error=error, url=url, attempts=attempts)
            return FatalFailure(error=error, url=url, attempts=attempts)

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, (dict, list)):
            return FatalFailure(
                error=FetchError(
                    error_class=FetchErrorClass.MALFORMED_RESPONSE,
                    message=f"Invalid JSON response from API for endpoint: {url}",
                    status_code=status_code,
                ),
                url=url,
                attempts=attempts,
            )

        return Success(body=body, status_code=status_code, attempts=attempts)

    def _classify_http_error(
        self,
        status_code: int,
        headers: httpx.Headers,
        url: str,
    ) -> FetchError:
        """Classify an HTTP error status.

        Args:
            status_code: HTTP status code (>= 400).
            headers: Response headers.
            url: Request URL, for error context.

        Returns:
            FetchError describing the status.
        """
        if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
            return FetchError(
                error_class=FetchErrorClass.RATE_LIMITED,
                message=f"HTTP 429 returned from API endpoint: {url}",
                status_code=status_code,
                retry_after=parse_retry_after(headers.get("retry-after")),
            )

        if HTTP_STATUS_SERVER_ERROR_MIN <= status_code < HTTP_STATUS_SERVER_ERROR_MAX:
            return FetchError(
                error_class=FetchErrorClass.HTTP_5XX,
                message=f"HTTP {status_code} returned from API endpoint: {url}",
                status_code=status_code,
                retry_after=parse_retry_after(headers.get("retry-after")),
            )

        return FetchError(
            error_class=FetchErrorClass.HTTP_4XX,
            message=f"HTTP {status_code} returned from API endpoint: {url}",
            status_code=status_code,
        )


def parse_retry_after(value: str | None) -> int | None:
    """Parse Retry-After header value.

    Args:
        value: Header value (seconds or HTTP date).

    Returns:
        Seconds to wait, or None if not parseable.
    """
    if not value:
        return None

    # Try parsing as integer seconds
    try:
        return int(value.strip())
    except ValueError:
        pass

    # Try parsing as HTTP date
    try:
        dt = parsedate_to_datetime(value)
    except (ValueError, TypeError):
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    delta = dt - datetime.now(UTC)
    return max(0, int(delta.total_seconds()))

"""Error types for the fetch layer."""

from enum import Enum


class FetchErrorClass(str, Enum):
    """Classification of fetch errors for metrics and retry decisions.

    - NETWORK_TIMEOUT: Request timed out before a response arrived
    - CONNECTION_ERROR: No response obtained (connect, read, protocol errors)
    - RATE_LIMITED: 429 Too Many Requests
    - HTTP_5XX: Retryable 5xx server error
    - HTTP_4XX: Non-retryable 4xx client error (except 429)
    - MALFORMED_RESPONSE: Body is not a decodable JSON document
    """

    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    HTTP_5XX = "HTTP_5XX"
    HTTP_4XX = "HTTP_4XX"
    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"


TRANSIENT_ERROR_CLASSES = frozenset(
    {
        FetchErrorClass.NETWORK_TIMEOUT,
        FetchErrorClass.CONNECTION_ERROR,
        FetchErrorClass.RATE_LIMITED,
        FetchErrorClass.HTTP_5XX,
    }
)


class RequestFailedError(Exception):
    """Base exception for a request whose terminal outcome is a failure.

    Raised once the executor has exhausted its retry budget or hit a
    fatal classification. Carries the last classified reason.
    """

    default_error_class = FetchErrorClass.CONNECTION_ERROR

    def __init__(  # noqa: PLR0913
        self,
        message: str,
        error_class: FetchErrorClass | None = None,
        status_code: int | None = None,
        url: str | None = None,
        retry_after: int | None = None,
        attempts: int | None = None,
    ) -> None:
        """Initialize the request error.

        Args:
            message: Human-readable error message.
            error_class: Classification of the failure.
            status_code: Last observed HTTP status code, if any.
            url: URL of the failed request.
            retry_after: Last server supplied Retry-After, in seconds.
            attempts: Number of physical attempts made.
        """
        super().__init__(message)
        self.message = message
        self.error_class = error_class or self.default_error_class
        self.status_code = status_code
        self.url = url
        self.retry_after = retry_after
        self.attempts = attempts

    @property
    def is_transient(self) -> bool:
        """Check if the underlying failure class is retryable."""
        return self.error_class in TRANSIENT_ERROR_CLASSES

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "status_code": self.status_code,
            "url": self.url,
            "attempts": self.attempts,
        }


class TransportError(RequestFailedError):
    """No response was obtained from the upstream."""

    default_error_class = FetchErrorClass.CONNECTION_ERROR


class RateLimitedError(RequestFailedError):
    """The upstream kept answering 429 Too Many Requests."""

    default_error_class = FetchErrorClass.RATE_LIMITED


class UpstreamUnavailableError(RequestFailedError):
    """The upstream kept answering with a 5xx status."""

    default_error_class = FetchErrorClass.HTTP_5XX


class ClientRequestError(RequestFailedError):
    """The upstream rejected the request with a non-429 4xx status."""

    default_error_class = FetchErrorClass.HTTP_4XX


class MalformedResponseError(RequestFailedError):
    """The response body is not the expected structured document."""

    default_error_class = FetchErrorClass.MALFORMED_RESPONSE


_ERROR_TYPES: dict[FetchErrorClass, type[RequestFailedError]] = {
    FetchErrorClass.NETWORK_TIMEOUT: TransportError,
    FetchErrorClass.CONNECTION_ERROR: TransportError,
    FetchErrorClass.RATE_LIMITED: RateLimitedError,
    FetchErrorClass.HTTP_5XX: UpstreamUnavailableError,
    FetchErrorClass.HTTP_4XX: ClientRequestError,
    FetchErrorClass.MALFORMED_RESPONSE: MalformedResponseError,
}


def error_type_for(error_class: FetchErrorClass) -> type[RequestFailedError]:
    """Get the exception type raised for an error class.

    Args:
        error_class: Classification of the failure.

    Returns:
        RequestFailedError subclass for the classification.
    """
    return _ERROR_TYPES[error_class]

"""Credential redaction for request logging."""

from accesslogs.fetch.constants import HEADER_API_KEY, HEADER_API_USER


# Header names compared case-insensitively
CREDENTIAL_HEADERS = frozenset(
    {
        HEADER_API_KEY.lower(),
        HEADER_API_USER.lower(),
        "authorization",
        "proxy-authorization",
    }
)

REDACTED_VALUE = "[REDACTED]"


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    """Return a copy of `headers` safe to pass to the logger.

    The API key and API user headers identify the account and are
    replaced with a fixed marker.
    """
    return {
        name: REDACTED_VALUE if name.lower() in CREDENTIAL_HEADERS else value
        for name, value in headers.items()
    }

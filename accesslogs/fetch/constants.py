"""HTTP constants for the fetch layer.

Centralizes all HTTP-related constants to avoid duplication across modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_BAD_REQUEST = 400
HTTP_STATUS_TOO_MANY_REQUESTS = 429
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Static authentication headers
HEADER_API_KEY = "X-API-KEY"
HEADER_API_USER = "X-API-USER"

# Provider quota defaults (requests per window)
DEFAULT_RATE_LIMIT = 10
DEFAULT_RATE_WINDOW_SECONDS = 60
DEFAULT_SAFETY_MARGIN = 1

# Slack added when waiting for the oldest timestamp to leave the window
RATE_LIMIT_SLACK_SECONDS = 0.05

# Poll interval when the computed wait is not positive
RATE_LIMIT_IDLE_POLL_SECONDS = 0.1

# Slack added on top of a server supplied Retry-After
RETRY_AFTER_SLACK_SECONDS = 0.1

# Default transport timeout (seconds)
DEFAULT_TIMEOUT_SECONDS = 30.0

"""Apache combined log transcoding of JSON access-log records."""

from accesslogs.transcoder.converter import (
    CombinedLogConverter,
    build_user_agent,
    escape_quoted_field,
    format_apache_time,
    normalize_bytes_field,
    normalize_quoted_field,
    to_status_code,
)
from accesslogs.transcoder.errors import RecordValidationError


__all__ = [
    "CombinedLogConverter",
    "RecordValidationError",
    "build_user_agent",
    "escape_quoted_field",
    "format_apache_time",
    "normalize_bytes_field",
    "normalize_quoted_field",
    "to_status_code",
]

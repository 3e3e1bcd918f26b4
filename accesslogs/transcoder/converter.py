"""JSON access-log record to Apache combined log line conversion.

Input records have the shape returned by the access-log endpoint:

    {
        "@timestamp": "2025-10-23T12:20:06.000Z",
        "access": {
            "clientip": ..., "ident": ..., "auth": ..., "verb": ...,
            "request": ..., "httpversion": ..., "response": ...,
            "bytes": ..., "referrer": ..., "user_agent": {...}
        }
    }

Output follows the combined layout
`%h %l %u %t "%r" %>s %b "%{Referer}i" "%{User-Agent}i"`, e.g.

    127.0.0.1 - frank [10/Oct/2000:13:55:36 +0000] "GET /a.gif HTTP/1.0" 200 2326 "-" "-"
"""

import math
import re
from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from accesslogs.transcoder.errors import RecordValidationError


FIELD_TIMESTAMP = "@timestamp"
FIELD_ACCESS = "access"

REQUIRED_ACCESS_FIELDS = (
    "clientip",
    "ident",
    "auth",
    "verb",
    "request",
    "httpversion",
    "response",
)

EMPTY_FIELD = "-"

# Month abbreviations are fixed, independent of the process locale
_MONTHS = "Jan Feb Mar Apr May Jun Jul Aug Sep Oct Nov Dec".split()

_NUMERIC_PATTERN = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")

# Both characters are escaped in one pass over the original text
_QUOTED_FIELD_ESCAPES = str.maketrans({"\\": "\\\\", '"': '\\"'})

_UA_VERSION_PARTS = ("major", "minor", "patch")


def _is_present(value: Any) -> bool:
    """Check a value is neither missing nor an empty string."""
    return value is not None and value != ""


def _as_text(value: Any) -> str:
    """Render a scalar field as text."""
    if value is None:
        return ""
    return str(value)


def format_apache_time(value: Any, field: str = FIELD_TIMESTAMP) -> str:
    """Convert an ISO-8601 instant to Apache time, e.g. 23/Oct/2025:12:20:06 +0000.

    Naive timestamps are taken as UTC; an explicit offset is kept.

    Raises:
        RecordValidationError: If the value is not a parseable instant.
    """
    if not isinstance(value, str) or not value.strip():
        msg = f"Invalid '{field}': {value!r}"
        raise RecordValidationError(msg, field=field)

    try:
        dt = datetime.fromisoformat(value.strip())
    except ValueError as e:
        msg = f"Invalid '{field}': {value}"
        raise RecordValidationError(msg, field=field) from e

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return (
        f"{dt.day:02d}/{_MONTHS[dt.month - 1]}/{dt.year:04d}:"
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} {dt.strftime('%z')}"
    )


def to_status_code(value: Any, field: str = "access.response") -> int:
    """Convert a status value to int.

    Accepts integers, floats (truncated toward zero) and numeric strings.

    Raises:
        RecordValidationError: If the value is not numeric.
    """
    if isinstance(value, bool):
        pass
    elif isinstance(value, int):
        return value
    elif isinstance(value, float) and math.isfinite(value):
        return int(value)
    elif isinstance(value, str) and _NUMERIC_PATTERN.match(value):
        number = _numeric_string_to_int(value)
        if number is not None:
            return number

    msg = f"Field '{field}' must be numeric"
    raise RecordValidationError(msg, field=field)


def _numeric_string_to_int(value: str) -> int | None:
    """Truncate a string already matched by _NUMERIC_PATTERN.

    Returns None when the value overflows to infinity, e.g. "1e400".
    """
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        number = float(text)
    return int(number) if math.isfinite(number) else None


def normalize_bytes_field(value: Any) -> str:
    """Render the bytes field for %b.

    Numbers become an integer string; '-', missing, empty or non-numeric
    values become '-'.
    """
    if value is None or isinstance(value, bool):
        return EMPTY_FIELD
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if math.isfinite(value) else EMPTY_FIELD
    if isinstance(value, str) and _NUMERIC_PATTERN.match(value):
        number = _numeric_string_to_int(value)
        return EMPTY_FIELD if number is None else str(number)
    return EMPTY_FIELD


def normalize_quoted_field(value: Any, default: str = EMPTY_FIELD) -> str:
    """Normalize a value that may already carry surrounding quotes.

    One outer pair of double quotes is stripped. Missing or empty values
    (before or after stripping) become `default`.
    """
    if value is None or value == "" or isinstance(value, (Mapping, list)):
        return default

    text = str(value)
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':  # noqa: PLR2004
        text = text[1:-1]

    return text or default


def build_user_agent(value: Any) -> str:
    """Build a User-Agent string from a plain or structured value.

    Resolution order:
    1. a non-empty string, as-is
    2. name/version
    3. name/major.minor.patch with the components present, or name alone
    4. os_full, then os_name
    5. '-'
    """
    if isinstance(value, str):
        text = value.strip()
        return text or EMPTY_FIELD
    if not isinstance(value, Mapping):
        return EMPTY_FIELD

    name = value.get("name")
    version = value.get("version")

    if _is_present(name):
        if _is_present(version):
            return f"{name}/{version}"
        parts = [
            _as_text(value[key])
            for key in _UA_VERSION_PARTS
            if _is_present(value.get(key))
        ]
        if parts:
            return f"{name}/{'.'.join(parts)}"
        return _as_text(name)

    for key in ("os_full", "os_name"):
        if _is_present(value.get(key)):
            return _as_text(value[key])

    return EMPTY_FIELD


def escape_quoted_field(value: str) -> str:
    r"""Escape backslashes and double quotes for a quoted log field.

    `\` becomes `\\` and `"` becomes `\"`.
    """
    return value.translate(_QUOTED_FIELD_ESCAPES)


class CombinedLogConverter:
    """Converts JSON access-log records to Apache combined log lines.

    A record either yields one complete line or raises
    RecordValidationError; batch conversion stops at the first invalid
    record.
    """

    def convert(self, records: Iterable[Mapping[str, Any]]) -> list[str]:
        """Convert a batch of records.

        Args:
            records: Decoded JSON records.

        Returns:
            One line per record, in input order.

        Raises:
            RecordValidationError: On the first invalid record.
        """
        return [self.convert_one(record, index) for index, record in enumerate(records)]

    def convert_to_string(
        self,
        records: Iterable[Mapping[str, Any]],
        separator: str = "\n",
    ) -> str:
        """Convert a batch and join the lines.

        Args:
            records: Decoded JSON records.
            separator: Line separator.

        Returns:
            The joined lines, without a trailing separator.
        """
        return separator.join(self.convert(records))

    def convert_one(self, record: Mapping[str, Any], index: int | None = None) -> str:
        """Convert a single record to an Apache combined log line.

        Args:
            record: Decoded JSON record.
            index: Position in the batch, used only for error context.

        Returns:
            The combined log line.

        Raises:
            RecordValidationError: If a required field is missing or invalid.
        """
        ctx = f" at index {index}" if index is not None else ""

        if not isinstance(record, Mapping):
            msg = f"Record{ctx} is not an object"
            raise RecordValidationError(msg, index=index)

        if record.get(FIELD_TIMESTAMP) is None:
            msg = f"Missing '{FIELD_TIMESTAMP}' in record{ctx}"
            raise RecordValidationError(msg, field=FIELD_TIMESTAMP, index=index)

        access = record.get(FIELD_ACCESS)
        if not isinstance(access, Mapping):
            msg = f"Missing or invalid '{FIELD_ACCESS}' object in record{ctx}"
            raise RecordValidationError(msg, field=FIELD_ACCESS, index=index)

        for key in REQUIRED_ACCESS_FIELDS:
            if key not in access:
                msg = f"Missing required field '{FIELD_ACCESS}.{key}' in record{ctx}"
                raise RecordValidationError(
                    msg, field=f"{FIELD_ACCESS}.{key}", index=index
                )

        try:
            status_code = to_status_code(access["response"])
            apache_time = format_apache_time(record[FIELD_TIMESTAMP])
        except RecordValidationError as e:
            raise RecordValidationError(
                f"{e.message} in record{ctx}", field=e.field, index=index
            ) from e

        request_line = (
            f"{_as_text(access['verb'])} {_as_text(access['request'])} "
            f"HTTP/{_as_text(access['httpversion'])}"
        )
        bytes_sent = normalize_bytes_field(access.get("bytes"))
        referrer = normalize_quoted_field(access.get("referrer"))
        user_agent = build_user_agent(access.get("user_agent"))

        return (
            f"{_as_text(access['clientip'])} {_as_text(access['ident'])} "
            f"{_as_text(access['auth'])} [{apache_time}] "
            f'"{request_line}" {status_code} {bytes_sent} '
            f'"{escape_quoted_field(referrer)}" "{escape_quoted_field(user_agent)}"'
        )

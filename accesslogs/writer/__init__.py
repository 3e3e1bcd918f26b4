"""Local staging of converted access-log files."""

from accesslogs.writer.log_writer import (
    LOG_FILE_SUFFIX,
    LogWriter,
    log_filename,
    sanitize_domain,
)


__all__ = [
    "LOG_FILE_SUFFIX",
    "LogWriter",
    "log_filename",
    "sanitize_domain",
]

"""Local staging of converted access logs.

Each (domain, day) pair is written to one file named
`{domain}_{YYYYMMDD}_access_logs.log` in the staging directory. Files are
written to a temporary name first and then renamed, so readers never see
a partial file.
"""

import re
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

import structlog

from accesslogs.collectors.window import FetchWindow
from accesslogs.transcoder.converter import CombinedLogConverter


logger = structlog.get_logger()

LOG_FILE_SUFFIX = "_access_logs.log"

_UNSAFE_DOMAIN_CHARS = re.compile(r"[^a-zA-Z0-9_\-.]")


def sanitize_domain(domain: str) -> str:
    """Replace characters that are unsafe in file names and object keys."""
    return _UNSAFE_DOMAIN_CHARS.sub("_", domain)


def log_filename(domain: str, day_stamp: str) -> str:
    """Build the staging file name for a domain and YYYYMMDD day."""
    return f"{sanitize_domain(domain)}_{day_stamp}{LOG_FILE_SUFFIX}"


class LogWriter:
    """Writes converted access logs into a staging directory."""

    def __init__(
        self,
        tmp_dir: Path,
        converter: CombinedLogConverter | None = None,
        run_id: str | None = None,
    ) -> None:
        """Initialize the writer.

        Args:
            tmp_dir: Staging directory; created on first write.
            converter: Record converter.
            run_id: Optional run ID for logging context.
        """
        self._tmp_dir = tmp_dir
        self._converter = converter or CombinedLogConverter()
        self._log = logger.bind(component="log_writer")
        if run_id:
            self._log = self._log.bind(run_id=run_id)

    @property
    def tmp_dir(self) -> Path:
        """Get the staging directory."""
        return self._tmp_dir

    def write(
        self,
        records: Iterable[Mapping[str, Any]],
        domain: str,
        window: FetchWindow,
    ) -> Path:
        """Convert records and write them to the domain's file for the window.

        Conversion happens before anything touches the disk, so an invalid
        record leaves no file behind.

        Args:
            records: Decoded JSON access-log records.
            domain: Domain the records belong to.
            window: Fetch window; its start day names the file.

        Returns:
            Path of the written file.

        Raises:
            RecordValidationError: If a record cannot be converted.
            OSError: If the directory or file cannot be written.
        """
        content = self._converter.convert_to_string(records)

        self._tmp_dir.mkdir(parents=True, exist_ok=True)
        path = self._tmp_dir / log_filename(domain, window.day_stamp)

        temp_path = path.with_suffix(path.suffix + ".tmp")
        temp_path.write_text(content, encoding="utf-8")
        temp_path.replace(path)

        self._log.info(
            "log_file_written",
            domain=domain,
            path=str(path),
            bytes=len(content.encode("utf-8")),
        )
        return path

    def clear(self) -> int:
        """Delete every file in the staging directory.

        Returns:
            Number of files removed.
        """
        if not self._tmp_dir.is_dir():
            return 0

        removed = 0
        for path in self._tmp_dir.iterdir():
            if path.is_file():
                path.unlink()
                removed += 1

        self._log.debug("tmp_dir_cleared", path=str(self._tmp_dir), removed=removed)
        return removed

    def list_files(self) -> list[Path]:
        """List staged files, sorted by name."""
        if not self._tmp_dir.is_dir():
            return []
        return sorted(p for p in self._tmp_dir.iterdir() if p.is_file())

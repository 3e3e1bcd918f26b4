"""Unit tests for the staging log writer."""

from pathlib import Path
from typing import Any

import pytest

from accesslogs.collectors.window import FetchWindow
from accesslogs.transcoder.errors import RecordValidationError
from accesslogs.writer.log_writer import LogWriter, log_filename, sanitize_domain
from tests.helpers.time import FIXED_NOW


WINDOW = FetchWindow.previous_utc_day(FIXED_NOW)


def _record(ip: str) -> dict[str, Any]:
    return {
        "@timestamp": "2025-10-23T00:00:01Z",
        "access": {
            "clientip": ip,
            "ident": "-",
            "auth": "-",
            "verb": "GET",
            "request": "/",
            "httpversion": "1.1",
            "response": 204,
        },
    }


class TestFileNaming:
    """Tests for staging file names."""

    def test_filename_layout(self) -> None:
        """Domain, day stamp and suffix form the file name."""
        assert log_filename("example.com", "20251023") == "example.com_20251023_access_logs.log"

    def test_unsafe_characters_replaced(self) -> None:
        """Path separators and spaces cannot leak into file names."""
        assert sanitize_domain("a/b c:d.com") == "a_b_c_d.com"
        assert sanitize_domain("xn--bcher-kva.example") == "xn--bcher-kva.example"


class TestLogWriter:
    """Tests for LogWriter."""

    def test_write_creates_file(self, tmp_path: Path) -> None:
        """Records are converted and written under the staging directory."""
        writer = LogWriter(tmp_path / "tmp")

        path = writer.write([_record("1.1.1.1"), _record("2.2.2.2")], "a.com", WINDOW)

        assert path == tmp_path / "tmp" / "a.com_20251023_access_logs.log"
        lines = path.read_text(encoding="utf-8").split("\n")
        assert len(lines) == 2
        assert lines[0].startswith("1.1.1.1 - - [23/Oct/2025:00:00:01 +0000]")

    def test_write_replaces_existing(self, tmp_path: Path) -> None:
        """Writing the same domain and day twice keeps only the latest."""
        writer = LogWriter(tmp_path)

        writer.write([_record("1.1.1.1")], "a.com", WINDOW)
        path = writer.write([_record("9.9.9.9")], "a.com", WINDOW)

        assert path.read_text(encoding="utf-8").startswith("9.9.9.9 ")
        assert [p.name for p in writer.list_files()] == [path.name]

    def test_invalid_record_writes_nothing(self, tmp_path: Path) -> None:
        """Conversion failures leave no file behind."""
        writer = LogWriter(tmp_path / "tmp")
        bad = _record("1.1.1.1")
        bad["access"]["response"] = "n/a"

        with pytest.raises(RecordValidationError):
            writer.write([_record("2.2.2.2"), bad], "a.com", WINDOW)

        assert writer.list_files() == []

    def test_clear(self, tmp_path: Path) -> None:
        """Clearing removes files and reports the count."""
        writer = LogWriter(tmp_path)
        writer.write([_record("1.1.1.1")], "a.com", WINDOW)
        writer.write([_record("1.1.1.1")], "b.com", WINDOW)

        assert writer.clear() == 2
        assert writer.list_files() == []

    def test_clear_missing_directory(self, tmp_path: Path) -> None:
        """A staging directory that does not exist is already clear."""
        writer = LogWriter(tmp_path / "absent")

        assert writer.clear() == 0
        assert writer.list_files() == []

"""Unit tests for offset pagination."""

from unittest.mock import MagicMock

import pytest

from accesslogs.api.client import PlanetHosterApi
from accesslogs.collectors.paginator import AccessLogQuery, PageCursor, PaginatedFetcher
from accesslogs.collectors.window import FetchWindow
from accesslogs.fetch.errors import UpstreamUnavailableError
from tests.helpers.time import FIXED_NOW


def _pages(*sizes: int) -> tuple[MagicMock, list[PageCursor]]:
    """Page fetcher returning pages of the given sizes, recording cursors."""
    cursors: list[PageCursor] = []
    pages = [[{"n": i} for i in range(size)] for size in sizes]

    def fetch(cursor: PageCursor) -> list[dict[str, int]]:
        cursors.append(cursor)
        return pages[len(cursors) - 1]

    return MagicMock(side_effect=fetch), cursors


class TestPageCursor:
    """Tests for cursor arithmetic."""

    def test_advance_by_received(self) -> None:
        """The next offset grows by the records actually received."""
        cursor = PageCursor(offset=100, page_size=100)

        assert cursor.advance(37).offset == 137
        assert cursor.advance(37).page_size == 100

    def test_rejects_negative_offset(self) -> None:
        """Offsets start at zero."""
        with pytest.raises(ValueError):
            PageCursor(offset=-1)


class TestPaginatedFetcher:
    """Tests for the accumulate-until-empty loop."""

    def test_accumulates_until_empty_page(self) -> None:
        """Pages of 100, 100, 37 then 0 yield 237 records in four calls."""
        fetch, cursors = _pages(100, 100, 37, 0)

        records = PaginatedFetcher(fetch).fetch_all(page_size=100)

        assert len(records) == 237
        assert fetch.call_count == 4
        assert [c.offset for c in cursors] == [0, 100, 200, 237]

    def test_short_page_does_not_stop(self) -> None:
        """A page below the page size is followed by another request."""
        fetch, cursors = _pages(10, 0)

        records = PaginatedFetcher(fetch).fetch_all(page_size=100)

        assert len(records) == 10
        assert len(cursors) == 2

    def test_first_page_empty(self) -> None:
        """An empty first page yields no records after one call."""
        fetch, _ = _pages(0)

        assert PaginatedFetcher(fetch).fetch_all() == []
        assert fetch.call_count == 1

    def test_order_preserved(self) -> None:
        """Records keep the order in which pages returned them."""
        pages = [[{"id": 1}, {"id": 2}], [{"id": 3}], []]
        fetch = MagicMock(side_effect=pages)

        records = PaginatedFetcher(fetch).fetch_all(page_size=2)

        assert [r["id"] for r in records] == [1, 2, 3]

    def test_failure_propagates_without_partial_result(self) -> None:
        """A failed page aborts the whole fetch."""
        fetch = MagicMock(
            side_effect=[[{"n": 1}], UpstreamUnavailableError("HTTP 503")]
        )

        with pytest.raises(UpstreamUnavailableError):
            PaginatedFetcher(fetch).fetch_all()


class TestAccessLogQuery:
    """Tests for binding the access-log endpoint."""

    def test_forwards_window_and_cursor(self) -> None:
        """Each page call carries the window bounds and cursor position."""
        api = MagicMock(spec=PlanetHosterApi)
        api.get_access_logs_page.side_effect = [[{"n": 1}], []]
        window = FetchWindow.previous_utc_day(FIXED_NOW)

        records = AccessLogQuery(api, 7, "a.com", window).fetch_all(page_size=50)

        assert records == [{"n": 1}]
        first_call = api.get_access_logs_page.call_args_list[0]
        assert first_call.kwargs == {
            "hosting_id": 7,
            "domain": "a.com",
            "after": "2025-10-23T00:00:00.000Z",
            "before": "2025-10-24T00:00:00.000Z",
            "size": 50,
            "offset": 0,
        }
        assert api.get_access_logs_page.call_args_list[1].kwargs["offset"] == 1

"""Offset pagination over the access-log endpoint."""

from collections.abc import Callable
from typing import Annotated, Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from accesslogs.api.client import PlanetHosterApi
from accesslogs.api.constants import DEFAULT_PAGE_SIZE
from accesslogs.collectors.window import FetchWindow


logger = structlog.get_logger()

AccessLogRecord = dict[str, Any]
PageFetcher = Callable[["PageCursor"], list[AccessLogRecord]]


class PageCursor(BaseModel):
    """Position of the next page to request."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    offset: Annotated[int, Field(ge=0)] = 0
    page_size: Annotated[int, Field(ge=1)] = DEFAULT_PAGE_SIZE

    def advance(self, received: int) -> "PageCursor":
        """Cursor for the page following one that yielded `received` records."""
        return self.model_copy(update={"offset": self.offset + received})


class PaginatedFetcher:
    """Accumulates every record of a paginated query.

    Only an explicitly empty page ends the loop. A page shorter than the
    page size is not treated as the last one: the next offset is requested
    anyway.
    """

    def __init__(self, fetch_page: PageFetcher, label: str = "") -> None:
        """Initialize the fetcher.

        Args:
            fetch_page: Returns the records at a cursor; raises on failure.
            label: Name of the paginated target, for logging.
        """
        self._fetch_page = fetch_page
        self._log = logger.bind(component="paginator", target=label)

    def fetch_all(self, page_size: int = DEFAULT_PAGE_SIZE) -> list[AccessLogRecord]:
        """Fetch pages until an empty one is returned.

        Failures raised by the page fetcher propagate; no partial result is
        returned.

        Args:
            page_size: Records requested per page.

        Returns:
            All records, in the order received.
        """
        cursor = PageCursor(offset=0, page_size=page_size)
        records: list[AccessLogRecord] = []
        pages = 0

        while True:
            page = self._fetch_page(cursor)
            pages += 1
            if not page:
                break

            records.extend(page)
            self._log.debug(
                "page_fetched",
                offset=cursor.offset,
                received=len(page),
                total=len(records),
            )
            cursor = cursor.advance(len(page))

        self._log.info("pagination_complete", pages=pages, records=len(records))
        return records


class AccessLogQuery:
    """Binds the access-log endpoint of one domain to a page fetcher."""

    def __init__(
        self,
        api: PlanetHosterApi,
        hosting_id: int,
        domain: str,
        window: FetchWindow,
    ) -> None:
        """Initialize the query.

        Args:
            api: API client.
            hosting_id: Hosting account identifier.
            domain: Domain name.
            window: Time window of the records.
        """
        self._api = api
        self._hosting_id = hosting_id
        self._domain = domain
        self._window = window

    def __call__(self, cursor: PageCursor) -> list[AccessLogRecord]:
        """Fetch the page at `cursor`."""
        return self._api.get_access_logs_page(
            hosting_id=self._hosting_id,
            domain=self._domain,
            after=self._window.after_iso,
            before=self._window.before_iso,
            size=cursor.page_size,
            offset=cursor.offset,
        )

    def fetch_all(self, page_size: int = DEFAULT_PAGE_SIZE) -> list[AccessLogRecord]:
        """Fetch every record of the domain within the window."""
        return PaginatedFetcher(self, label=self._domain).fetch_all(page_size)

"""Access-log collection: fetch windows, pagination and per-domain state.

The export runner lives in `accesslogs.collectors.runner`.
"""

from accesslogs.collectors.paginator import AccessLogQuery, PageCursor, PaginatedFetcher
from accesslogs.collectors.state_machine import (
    DomainState,
    DomainStateMachine,
    DomainStateTransitionError,
)
from accesslogs.collectors.window import FetchWindow


__all__ = [
    "AccessLogQuery",
    "DomainState",
    "DomainStateMachine",
    "DomainStateTransitionError",
    "FetchWindow",
    "PageCursor",
    "PaginatedFetcher",
]

"""PlanetHoster API client.

Thin typed wrapper over the request executor. Each method is one logical
request; retries, quota and classification are handled by the executor.
Terminal failures surface as RequestFailedError subclasses.
"""

from typing import Any

import structlog
from pydantic import ValidationError

from accesslogs.api.constants import (
    DEFAULT_PAGE_SIZE,
    FIELD_DATA,
    FIELD_HOSTING_ACCOUNTS,
    PATH_ACCESS_LOGS,
    PATH_HELLO,
    PATH_HOSTING_DOMAINS,
    PATH_HOSTING_STORAGE,
    PATH_HOSTINGS,
)
from accesslogs.api.models import Domain, HostingAccount, StorageCredentials
from accesslogs.fetch.client import RequestExecutor
from accesslogs.fetch.errors import MalformedResponseError
from accesslogs.fetch.models import RequestSpec
from accesslogs.fetch.rate_limiter import RateLimiterState


logger = structlog.get_logger()


class PlanetHosterApi:
    """Client for the hosting, domain, storage and access-log endpoints."""

    def __init__(self, executor: RequestExecutor) -> None:
        """Initialize the API client.

        Args:
            executor: Rate-limited request executor.
        """
        self._executor = executor
        self._log = logger.bind(component="api")

    def _call(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Execute a request and return its decoded body.

        Raises:
            RequestFailedError: If the terminal outcome is a failure.
        """
        outcome = self._executor.execute(RequestSpec(path=path, params=params))
        return outcome.unwrap()

    def _data_field(self, body: Any, path: str) -> Any:
        """Extract the `data` member of a response envelope."""
        if not isinstance(body, dict) or FIELD_DATA not in body:
            msg = f"Invalid response from {path}: missing '{FIELD_DATA}'"
            raise MalformedResponseError(msg, url=self._executor.config.url_for(path))
        return body[FIELD_DATA]

    def test_connection(self) -> dict[str, Any]:
        """Check connectivity and credentials.

        Returns:
            The decoded greeting payload.
        """
        body = self._call(PATH_HELLO)
        self._log.info("connection_ok")
        return body if isinstance(body, dict) else {FIELD_DATA: body}

    def get_hostings(self) -> list[HostingAccount]:
        """List hosting accounts of the API user.

        Raises:
            MalformedResponseError: If `hosting_accounts` is missing.
        """
        body = self._call(PATH_HOSTINGS)
        accounts = body.get(FIELD_HOSTING_ACCOUNTS) if isinstance(body, dict) else None
        if not isinstance(accounts, list):
            msg = f"Invalid hostings response: missing {FIELD_HOSTING_ACCOUNTS}"
            raise MalformedResponseError(
                msg, url=self._executor.config.url_for(PATH_HOSTINGS)
            )

        hostings = []
        for raw in accounts:
            try:
                hostings.append(HostingAccount.model_validate(raw))
            except ValidationError:
                self._log.warning("hosting_account_skipped", reason="invalid_shape")
        return hostings

    def find_hosting_by_username(self, username: str) -> HostingAccount | None:
        """Find a hosting account by username.

        Args:
            username: The username to search for.

        Returns:
            The hosting account, or None if not found.
        """
        for hosting in self.get_hostings():
            if hosting.username == username:
                return hosting
        return None

    def get_domains_for_hosting(self, hosting_id: int) -> list[Domain]:
        """List the domains of a hosting account.

        Args:
            hosting_id: Hosting account identifier.
        """
        body = self._call(PATH_HOSTING_DOMAINS, {"id": hosting_id})
        data = self._data_field(body, PATH_HOSTING_DOMAINS)
        try:
            return [Domain.model_validate(item) for item in data or []]
        except (ValidationError, TypeError) as e:
            msg = f"Invalid domains response for hosting {hosting_id}: {e}"
            raise MalformedResponseError(
                msg, url=self._executor.config.url_for(PATH_HOSTING_DOMAINS)
            ) from e

    def get_storage_credentials(self, hosting_id: int) -> StorageCredentials:
        """Look up object-storage credentials for a hosting account.

        Args:
            hosting_id: Hosting account identifier.
        """
        body = self._call(PATH_HOSTING_STORAGE, {"id": hosting_id})
        data = self._data_field(body, PATH_HOSTING_STORAGE)
        try:
            return StorageCredentials.model_validate(data)
        except ValidationError as e:
            msg = f"Invalid storage credentials for hosting {hosting_id}"
            raise MalformedResponseError(
                msg, url=self._executor.config.url_for(PATH_HOSTING_STORAGE)
            ) from e

    def get_access_logs_page(  # noqa: PLR0913
        self,
        hosting_id: int,
        domain: str,
        after: str,
        before: str,
        size: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Fetch one page of access-log records.

        Args:
            hosting_id: Hosting account identifier.
            domain: Domain name.
            after: ISO-8601 instant opening the window.
            before: ISO-8601 instant closing the window.
            size: Page size.
            offset: Index of the first record of the page.

        Returns:
            Records of the page; empty when the window is exhausted.

        Raises:
            MalformedResponseError: If the body has no `data` list.
        """
        params = {
            "id": hosting_id,
            "domain": domain,
            "size": size,
            "from": offset,
            "after": after,
            "before": before,
        }
        body = self._call(PATH_ACCESS_LOGS, params)
        data = self._data_field(body, PATH_ACCESS_LOGS)
        if data is None:
            return []
        if not isinstance(data, list):
            msg = f"Invalid access-log page for {domain}: '{FIELD_DATA}' is not a list"
            raise MalformedResponseError(
                msg, url=self._executor.config.url_for(PATH_ACCESS_LOGS)
            )
        return data

    def get_rate_limit_state(self) -> RateLimiterState:
        """Get the rate limiter snapshot of the underlying executor."""
        return self._executor.rate_limiter.get_state()

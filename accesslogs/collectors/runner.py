"""Export runner with per-domain failure isolation."""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import structlog

from accesslogs.api.client import PlanetHosterApi
from accesslogs.api.constants import DEFAULT_PAGE_SIZE
from accesslogs.api.models import HostingAccount, StorageCredentials
from accesslogs.collectors.paginator import AccessLogQuery
from accesslogs.collectors.state_machine import DomainState, DomainStateMachine
from accesslogs.collectors.window import FetchWindow
from accesslogs.fetch.errors import RequestFailedError
from accesslogs.settings.app import ConfigurationError
from accesslogs.storage.s3 import S3Uploader, StorageError
from accesslogs.transcoder.errors import RecordValidationError
from accesslogs.writer.log_writer import LogWriter


logger = structlog.get_logger()

UploaderFactory = Callable[[StorageCredentials], S3Uploader]

DEFAULT_DOMAIN_PAUSE_SECONDS = 5.0


@dataclass
class DomainRunResult:
    """Result of exporting a single domain."""

    domain: str
    state: DomainState
    records: int = 0
    path: Path | None = None
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        """Check if the domain finished without error."""
        return self.state in (DomainState.DOMAIN_DONE, DomainState.DOMAIN_EMPTY)


@dataclass
class RunnerResult:
    """Result of a complete export run."""

    run_id: str
    window: FetchWindow
    started_at: datetime
    finished_at: datetime
    hosting: HostingAccount
    domain_results: dict[str, DomainRunResult]
    uploaded_keys: list[str] = field(default_factory=list)
    upload_errors: list[str] = field(default_factory=list)

    @property
    def domains_succeeded(self) -> int:
        """Count domains that finished without error."""
        return sum(1 for r in self.domain_results.values() if r.success)

    @property
    def domains_failed(self) -> int:
        """Count domains that failed."""
        return sum(1 for r in self.domain_results.values() if not r.success)

    @property
    def files_written(self) -> list[Path]:
        """Paths of every log file written during the run."""
        return [r.path for r in self.domain_results.values() if r.path is not None]

    @property
    def success(self) -> bool:
        """Check that no domain and no upload failed."""
        return self.domains_failed == 0 and not self.upload_errors

    @property
    def duration_ms(self) -> float:
        """Get total duration in milliseconds."""
        return (self.finished_at - self.started_at).total_seconds() * 1000


class ExportRunner:
    """Exports one day of access logs for every domain of a hosting account.

    Domains are processed sequentially so they share the request quota.
    A failing domain is recorded and skipped; the run goes on with the next
    one. Written files are uploaded once every domain has been processed.
    """

    def __init__(  # noqa: PLR0913
        self,
        api: PlanetHosterApi,
        writer: LogWriter,
        hosting_username: str,
        run_id: str,
        page_size: int = DEFAULT_PAGE_SIZE,
        domain_pause_seconds: float = DEFAULT_DOMAIN_PAUSE_SECONDS,
        uploader_factory: UploaderFactory | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the export runner.

        Args:
            api: PlanetHoster API client.
            writer: Staging log writer.
            hosting_username: Username of the hosting account to export.
            run_id: Unique run identifier.
            page_size: Records requested per access-log page.
            domain_pause_seconds: Pause between two domains.
            uploader_factory: Builds an uploader from storage credentials;
                None disables the upload step.
            sleep: Sleep function.
        """
        self._api = api
        self._writer = writer
        self._hosting_username = hosting_username
        self._run_id = run_id
        self._page_size = page_size
        self._domain_pause_seconds = domain_pause_seconds
        self._uploader_factory = uploader_factory
        self._sleep = sleep
        self._log = logger.bind(component="runner", run_id=run_id)

    def run(self, window: FetchWindow) -> RunnerResult:
        """Run the export for one fetch window.

        Args:
            window: Time window to export.

        Returns:
            RunnerResult with per-domain outcomes and uploaded keys.

        Raises:
            RequestFailedError: If connectivity, hosting or domain listing fails.
            ConfigurationError: If the hosting account does not exist.
        """
        started_at = datetime.now(UTC)
        self._log.info(
            "runner_started",
            after=window.after_iso,
            before=window.before_iso,
        )

        self._api.test_connection()

        hosting = self._api.find_hosting_by_username(self._hosting_username)
        if hosting is None:
            msg = f"Hosting account not found for username: {self._hosting_username}"
            raise ConfigurationError(msg)

        domains = self._api.get_domains_for_hosting(hosting.id)
        self._log.info("domains_listed", hosting_id=hosting.id, count=len(domains))

        self._writer.clear()

        domain_results: dict[str, DomainRunResult] = {}
        for position, domain in enumerate(domains):
            if position > 0 and self._domain_pause_seconds > 0:
                self._sleep(self._domain_pause_seconds)
            domain_results[domain.domain] = self._run_single_domain(
                hosting, domain.domain, window
            )

        result = RunnerResult(
            run_id=self._run_id,
            window=window,
            started_at=started_at,
            finished_at=started_at,
            hosting=hosting,
            domain_results=domain_results,
        )

        if self._uploader_factory is not None and result.files_written:
            self._upload(hosting, result, self._uploader_factory)

        result.finished_at = datetime.now(UTC)
        self._log.info(
            "runner_complete",
            duration_ms=round(result.duration_ms, 2),
            domains_succeeded=result.domains_succeeded,
            domains_failed=result.domains_failed,
            files_written=len(result.files_written),
            files_uploaded=len(result.uploaded_keys),
        )
        return result

    def _run_single_domain(
        self,
        hosting: HostingAccount,
        domain: str,
        window: FetchWindow,
    ) -> DomainRunResult:
        """Fetch, convert and write the logs of one domain."""
        start_time_ns = time.perf_counter_ns()
        machine = DomainStateMachine(domain, self._run_id)
        log = self._log.bind(domain=domain)
        log.info("domain_started")

        records_count = 0
        try:
            machine.to_fetching()
            query = AccessLogQuery(self._api, hosting.id, domain, window)
            records = query.fetch_all(self._page_size)
            records_count = len(records)

            if not records:
                machine.to_empty()
                log.info("domain_empty")
                return DomainRunResult(
                    domain=domain,
                    state=machine.state,
                    duration_ms=_elapsed_ms(start_time_ns),
                )

            machine.to_converting()
            path = self._writer.write(records, domain, window)
        except (RequestFailedError, RecordValidationError, OSError) as e:
            machine.to_failed()
            details = (
                e.to_dict()
                if isinstance(e, (RequestFailedError, RecordValidationError))
                else {"message": str(e)}
            )
            log.warning("domain_failed", error_type=type(e).__name__, **details)
            return DomainRunResult(
                domain=domain,
                state=machine.state,
                records=records_count,
                error=str(e),
                duration_ms=_elapsed_ms(start_time_ns),
            )

        machine.to_done()
        duration_ms = _elapsed_ms(start_time_ns)
        log.info(
            "domain_complete",
            records=records_count,
            path=str(path),
            duration_ms=round(duration_ms, 2),
        )
        return DomainRunResult(
            domain=domain,
            state=machine.state,
            records=records_count,
            path=path,
            duration_ms=duration_ms,
        )

    def _upload(
        self,
        hosting: HostingAccount,
        result: RunnerResult,
        uploader_factory: UploaderFactory,
    ) -> None:
        """Upload written files, recording failures on the result."""
        try:
            credentials = self._api.get_storage_credentials(hosting.id)
        except RequestFailedError as e:
            self._log.error("storage_credentials_failed", **e.to_dict())
            result.upload_errors.append(str(e))
            return

        uploader = uploader_factory(credentials)
        try:
            uploader.test_connection()
        except StorageError as e:
            self._log.error("storage_unreachable", error=str(e))
            result.upload_errors.append(str(e))
            return

        for path in result.files_written:
            try:
                result.uploaded_keys.append(uploader.upload_file(path))
            except (StorageError, OSError) as e:
                self._log.error("upload_failed", path=str(path), error=str(e))
                result.upload_errors.append(str(e))


def _elapsed_ms(start_time_ns: int) -> float:
    return (time.perf_counter_ns() - start_time_ns) / 1_000_000

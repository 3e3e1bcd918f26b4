"""CLI commands for the access-log exporter."""

import json
import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, NoReturn

import click
import structlog

from accesslogs import __version__
from accesslogs.api.client import PlanetHosterApi
from accesslogs.api.models import StorageCredentials
from accesslogs.collectors.runner import ExportRunner, RunnerResult, UploaderFactory
from accesslogs.collectors.window import FetchWindow
from accesslogs.fetch.client import RequestExecutor
from accesslogs.fetch.errors import RequestFailedError
from accesslogs.fetch.metrics import FetchMetrics
from accesslogs.observability.logging import (
    bind_run_context,
    clear_run_context,
    configure_logging,
)
from accesslogs.settings.app import AppSettings, ConfigurationError, get_settings
from accesslogs.storage.s3 import S3Uploader
from accesslogs.transcoder.converter import CombinedLogConverter
from accesslogs.transcoder.errors import RecordValidationError
from accesslogs.writer.log_writer import LogWriter


logger = structlog.get_logger()

COMPONENT_CLI = "cli"


def _setup_logging(json_logs: bool, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    configure_logging(level=log_level, json_format=json_logs)


def _fail(message: str) -> NoReturn:
    """Report an error and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _build_api(settings: AppSettings) -> PlanetHosterApi:
    """Wire the executor and API client from settings."""
    executor = RequestExecutor(
        config=settings.fetch_config(),
        api_key=settings.api_key,
        api_user=settings.api_user,
    )
    return PlanetHosterApi(executor)


def _uploader_factory(settings: AppSettings) -> UploaderFactory:
    def build(credentials: StorageCredentials) -> S3Uploader:
        return S3Uploader.from_credentials(
            access_key=credentials.access_key,
            secret_key=credentials.secret_key,
            bucket=credentials.bucket,
            endpoint=settings.s3_endpoint,
            region=settings.s3_region,
            verify_ssl=settings.s3_verify_ssl,
            base_path=settings.s3_base_path,
        )

    return build


def _resolve_window(day: datetime | None) -> FetchWindow:
    if day is None:
        return FetchWindow.previous_utc_day()
    return FetchWindow.for_day(day.date())


def _echo_summary(result: RunnerResult) -> None:
    click.echo(f"Run {result.run_id} for {result.window.day_stamp}")
    for domain_result in result.domain_results.values():
        line = (
            f"  {domain_result.domain}: {domain_result.state.value} "
            f"({domain_result.records} records)"
        )
        if domain_result.error:
            line += f" - {domain_result.error}"
        click.echo(line)
    click.echo(
        f"Domains: {result.domains_succeeded} ok, {result.domains_failed} failed; "
        f"files uploaded: {len(result.uploaded_keys)}"
    )
    for error in result.upload_errors:
        click.echo(f"  upload error: {error}", err=True)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """PlanetHoster access-log exporter CLI."""


@cli.command()
@click.option(
    "--date",
    "day",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="UTC day to export, YYYY-MM-DD (default: yesterday).",
)
@click.option(
    "--no-upload",
    is_flag=True,
    default=False,
    help="Write log files locally without uploading them.",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=True,
    help="Use JSON format for logs (default: true).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
def run(day: datetime | None, no_upload: bool, json_logs: bool, verbose: bool) -> None:
    """Export one day of access logs for every domain of the hosting account.

    Domains that fail are reported and skipped. The command exits with
    status 1 only when configuration is missing or the account-level
    requests (connectivity, hosting lookup, domain listing) fail.
    """
    _setup_logging(json_logs, verbose)
    run_id = uuid.uuid4().hex[:12]
    bind_run_context(run_id)
    log = logger.bind(component=COMPONENT_CLI, command="run", run_id=run_id)

    settings = get_settings()
    try:
        settings.require_run_settings()
    except ConfigurationError as e:
        log.error("configuration_invalid", error=str(e))
        _fail(str(e))

    window = _resolve_window(day)
    FetchMetrics.reset()

    runner = ExportRunner(
        api=_build_api(settings),
        writer=LogWriter(settings.tmp_dir, run_id=run_id),
        hosting_username=settings.hosting_username,
        run_id=run_id,
        page_size=settings.page_size,
        domain_pause_seconds=settings.domain_pause_seconds,
        uploader_factory=None if no_upload else _uploader_factory(settings),
    )

    try:
        result = runner.run(window)
    except (ConfigurationError, RequestFailedError) as e:
        log.error("run_failed", error_type=type(e).__name__, error=str(e))
        _fail(str(e))
    finally:
        log.info("fetch_metrics", **FetchMetrics.get_instance().to_dict())
        clear_run_context()

    _echo_summary(result)


@cli.command()
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Use JSON format for logs (default: false).",
)
def check(json_logs: bool) -> None:
    """Check API connectivity and credentials."""
    _setup_logging(json_logs, verbose=False)
    settings = get_settings()

    missing = [
        name
        for name in settings.missing_run_settings()
        if name in ("PH_API_KEY", "PH_API_USER")
    ]
    if missing:
        _fail(f"Missing required environment variables: {', '.join(missing)}")

    api = _build_api(settings)
    try:
        api.test_connection()
    except RequestFailedError as e:
        _fail(f"Connection failed: {e}")

    state = api.get_rate_limit_state()
    click.echo("Connection OK")
    click.echo(
        f"  Rate limit: {state.effective_limit}/{state.rate_window_seconds:g}s "
        f"({state.available_slots} slots available)"
    )


def _load_records(path: Path) -> list[Any]:
    """Read records from a JSON array or a `{"data": [...]}` envelope."""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict) and "data" in payload:
        payload = payload["data"]
    if not isinstance(payload, list):
        msg = "Input must be a JSON array of records or an object with a 'data' array"
        raise ValueError(msg)
    return payload


@cli.command()
@click.argument(
    "input_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--out",
    "output_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: stdout).",
)
def convert(input_path: Path, output_path: Path | None) -> None:
    """Convert a JSON access-log dump to Apache combined log lines."""
    try:
        records = _load_records(input_path)
        content = CombinedLogConverter().convert_to_string(records)
    except RecordValidationError as e:
        _fail(f"Invalid record: {e}")
    except ValueError as e:
        _fail(f"Invalid input: {e}")

    if output_path is None:
        if content:
            click.echo(content)
        return

    output_path.write_text(content, encoding="utf-8")
    click.echo(f"Wrote {len(records)} lines to {output_path}")


if __name__ == "__main__":
    cli()

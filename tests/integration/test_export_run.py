"""Integration tests for a full export run against a local HTTP server."""

import json
import threading
from collections.abc import Generator
from http.server import BaseHTTPRequestHandler, HTTPServer
from pathlib import Path
from typing import Any, ClassVar
from unittest.mock import MagicMock

import pytest

from accesslogs.api.client import PlanetHosterApi
from accesslogs.collectors.runner import ExportRunner
from accesslogs.collectors.state_machine import DomainState
from accesslogs.collectors.window import FetchWindow
from accesslogs.fetch.client import RequestExecutor
from accesslogs.fetch.config import FetchConfig, RateLimiterConfig
from accesslogs.fetch.errors import ClientRequestError
from accesslogs.fetch.metrics import FetchMetrics
from accesslogs.fetch.models import RetryPolicy
from accesslogs.storage.s3 import S3Uploader
from accesslogs.writer.log_writer import LogWriter
from tests.helpers.time import FIXED_NOW, FakeClock


def _log_record(index: int) -> dict[str, Any]:
    return {
        "@timestamp": f"2025-10-23T10:00:{index % 60:02d}.000Z",
        "access": {
            "clientip": f"10.0.0.{index % 250}",
            "ident": "-",
            "auth": "-",
            "verb": "GET",
            "request": f"/page/{index}",
            "httpversion": "1.1",
            "response": 200,
            "bytes": 100 + index,
            "referrer": '"https://ref.example/"',
            "user_agent": {"name": "Chrome", "major": "120", "minor": "0"},
        },
    }


class PlanetHosterHandler(BaseHTTPRequestHandler):
    """Minimal stand-in for the provider API.

    The first access-log request for `shop.example` is throttled once.
    `down.example` always fails with 503.
    """

    logs: ClassVar[dict[str, list[dict[str, Any]]]] = {}
    requests: ClassVar[list[tuple[str, dict[str, Any] | None]]] = []
    throttled: ClassVar[set[str]] = set()

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        """Suppress log messages during tests."""

    def _send_json(
        self, status: int, payload: Any, headers: dict[str, str] | None = None
    ) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self) -> None:  # noqa: N802
        """Serve the provider endpoints; parameters arrive as a JSON body."""
        length = int(self.headers.get("Content-Length") or 0)
        params = json.loads(self.rfile.read(length)) if length else None
        path = self.path.removeprefix("/v3/")
        self.requests.append((path, params))

        credentials = (self.headers.get("X-API-KEY"), self.headers.get("X-API-USER"))
        if credentials != ("key", "user"):
            self._send_json(401, {"error": "unauthorized"})
            return

        if path == "hello":
            self._send_json(200, {"message": "Hello World"})
        elif path == "hostings":
            self._send_json(
                200, {"hosting_accounts": [{"id": 7, "username": "acct"}]}
            )
        elif path == "hosting/domains":
            domains = [{"domain": d} for d in self.logs]
            self._send_json(200, {"data": domains})
        elif path == "hosting/n0c-storage":
            self._send_json(
                200, {"data": {"accessKey": "AK", "secretKey": "SK", "name": "bucket"}}
            )
        elif path == "hosting/domain/access-logs":
            self._serve_logs(params or {})
        else:
            self._send_json(404, {"error": "not found"})

    def _serve_logs(self, params: dict[str, Any]) -> None:
        domain = params["domain"]
        if domain == "down.example":
            self._send_json(503, {"error": "unavailable"})
            return
        if domain == "shop.example" and domain not in self.throttled:
            self.throttled.add(domain)
            self._send_json(429, {"error": "slow down"}, {"Retry-After": "1"})
            return

        start, size = params["from"], params["size"]
        self._send_json(200, {"data": self.logs[domain][start : start + size]})


@pytest.fixture
def provider() -> Generator[HTTPServer, None, None]:
    """Start the stand-in provider on an ephemeral port."""
    PlanetHosterHandler.logs = {
        "shop.example": [_log_record(i) for i in range(23)],
        "quiet.example": [],
        "down.example": [],
    }
    PlanetHosterHandler.requests = []
    PlanetHosterHandler.throttled = set()

    server = HTTPServer(("127.0.0.1", 0), PlanetHosterHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Start every test with fresh metrics."""
    FetchMetrics.reset()


def _api(server: HTTPServer, sleep: FakeClock) -> PlanetHosterApi:
    host, port = server.server_address[0], server.server_address[1]
    executor = RequestExecutor(
        config=FetchConfig(
            base_url=f"http://{host!s}:{port}/v3/",
            retry_policy=RetryPolicy(max_retries=2),
            rate_limiter=RateLimiterConfig(rate_limit=1000),
        ),
        api_key="key",
        api_user="user",
        sleep=sleep.sleep,
    )
    return PlanetHosterApi(executor)


class TestExportRun:
    """End-to-end export of one day."""

    def test_full_run(self, provider: HTTPServer, tmp_path: Path) -> None:
        """Paginated fetch, throttling, isolation and upload work together."""
        clock = FakeClock()
        uploader = MagicMock(spec=S3Uploader)
        uploader.upload_file.side_effect = lambda path: f"key/{path.name}"
        factory = MagicMock(return_value=uploader)

        runner = ExportRunner(
            api=_api(provider, clock),
            writer=LogWriter(tmp_path / "tmp"),
            hosting_username="acct",
            run_id="it-1",
            page_size=10,
            domain_pause_seconds=0.5,
            uploader_factory=factory,
            sleep=clock.sleep,
        )

        result = runner.run(FetchWindow.previous_utc_day(FIXED_NOW))

        shop = result.domain_results["shop.example"]
        assert shop.state == DomainState.DOMAIN_DONE
        assert shop.records == 23
        lines = shop.path.read_text(encoding="utf-8").split("\n")
        assert len(lines) == 23
        assert lines[0] == (
            '10.0.0.0 - - [23/Oct/2025:10:00:00 +0000] "GET /page/0 HTTP/1.1" '
            '200 100 "https://ref.example/" "Chrome/120.0"'
        )

        assert result.domain_results["quiet.example"].state == DomainState.DOMAIN_EMPTY
        assert result.domain_results["down.example"].state == DomainState.DOMAIN_FAILED

        # 429 with Retry-After: 1 is honoured with slack
        assert any(s == pytest.approx(1.1) for s in clock.sleeps)

        log_requests = [
            params
            for path, params in PlanetHosterHandler.requests
            if path == "hosting/domain/access-logs" and params["domain"] == "shop.example"
        ]
        # One throttled attempt, then offsets 0, 10, 20, 23
        assert [p["from"] for p in log_requests] == [0, 0, 10, 20, 23]
        assert log_requests[0]["after"] == "2025-10-23T00:00:00.000Z"
        assert log_requests[0]["before"] == "2025-10-24T00:00:00.000Z"

        down_attempts = [
            path
            for path, params in PlanetHosterHandler.requests
            if params and params.get("domain") == "down.example"
        ]
        assert len(down_attempts) == 3

        factory.assert_called_once()
        credentials = factory.call_args.args[0]
        assert credentials.bucket == "bucket"
        assert result.uploaded_keys == ["key/shop.example_20251023_access_logs.log"]

    def test_bad_credentials_abort(self, provider: HTTPServer, tmp_path: Path) -> None:
        """Rejected credentials stop the run at the connectivity check."""
        clock = FakeClock()
        host, port = provider.server_address[0], provider.server_address[1]
        executor = RequestExecutor(
            config=FetchConfig(base_url=f"http://{host!s}:{port}/v3/"),
            api_key="wrong",
            api_user="user",
            sleep=clock.sleep,
        )
        runner = ExportRunner(
            api=PlanetHosterApi(executor),
            writer=LogWriter(tmp_path / "tmp"),
            hosting_username="acct",
            run_id="it-2",
            sleep=clock.sleep,
        )

        with pytest.raises(ClientRequestError):
            runner.run(FetchWindow.previous_utc_day(FIXED_NOW))

        assert [path for path, _ in PlanetHosterHandler.requests] == ["hello"]

"""Unit tests for fetch metrics."""

from accesslogs.fetch.errors import FetchErrorClass
from accesslogs.fetch.metrics import FetchMetrics


class TestFetchMetrics:
    """Tests for FetchMetrics."""

    def setup_method(self) -> None:
        """Reset the singleton before each test."""
        FetchMetrics.reset()

    def test_singleton(self) -> None:
        """The same instance is returned until reset."""
        first = FetchMetrics.get_instance()

        assert FetchMetrics.get_instance() is first
        FetchMetrics.reset()
        assert FetchMetrics.get_instance() is not first

    def test_records_requests_and_failures(self) -> None:
        """Counters accumulate per status and error class."""
        metrics = FetchMetrics.get_instance()

        metrics.record_request(200, 120)
        metrics.record_request(429, 10)
        metrics.record_request(200, 30)
        metrics.record_retry()
        metrics.record_failure(FetchErrorClass.HTTP_4XX)
        metrics.record_duration(40.0)
        metrics.record_duration(20.0)

        data = metrics.to_dict()
        assert data["http_requests_total"] == {200: 2, 429: 1}
        assert data["http_bytes_total"] == 160
        assert data["http_retry_total"] == 1
        assert data["http_failures_total"] == {"HTTP_4XX": 1}
        assert metrics.avg_duration_ms == 20.0

    def test_rate_limit_waits(self) -> None:
        """Limiter waits are counted and summed."""
        metrics = FetchMetrics.get_instance()

        metrics.record_rate_limit_wait(1.25)
        metrics.record_rate_limit_wait(0.75)

        data = metrics.to_dict()
        assert data["rate_limit_waits_total"] == 2
        assert data["rate_limit_wait_seconds_total"] == 2.0

    def test_avg_duration_without_requests(self) -> None:
        """No requests yields a zero average."""
        assert FetchMetrics.get_instance().avg_duration_ms == 0.0

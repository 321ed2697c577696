"""Unit tests for request and file operation metrics."""

import pytest

from memory_bank_server.core.metrics import PerformanceMetrics, RequestOutcome


class TestPerformanceMetrics:
    """Test outcome counters and timing aggregation."""

    def setup_method(self):
        """Set up test fixtures."""
        self.metrics = PerformanceMetrics(window=2)

    def test_empty_report(self):
        report = self.metrics.report()

        assert report.requests.total == 0
        assert report.requests.error_rate == 0.0
        assert report.requests.average_response_ms == 0.0
        assert report.file_operations == {}

    def test_outcomes_are_counted(self):
        self.metrics.record_request("tools/list", 0.01, RequestOutcome.SUCCESS)
        self.metrics.record_request("tools/call", 0.02, RequestOutcome.ERROR, "VALIDATION_ERROR")
        self.metrics.record_request("tools/call", 0.05, RequestOutcome.TIMEOUT, "TIMEOUT")

        requests = self.metrics.report().requests

        assert requests.total == 3
        assert requests.successful == 1
        assert requests.failed == 2
        assert requests.timed_out == 1
        assert requests.error_rate == pytest.approx(0.6667)
        assert requests.errors_by_code == {"VALIDATION_ERROR": 1, "TIMEOUT": 1}

    def test_average_covers_recent_window_only(self):
        self.metrics.record_request("tools/list", 1.0, RequestOutcome.SUCCESS)
        self.metrics.record_request("tools/list", 0.010, RequestOutcome.SUCCESS)
        self.metrics.record_request("tools/list", 0.030, RequestOutcome.SUCCESS)

        requests = self.metrics.report().requests

        assert requests.total == 3
        assert requests.average_response_ms == pytest.approx(20.0)

    def test_file_operations(self):
        self.metrics.record_file_operation("write", 0.004)
        self.metrics.record_file_operation("write", 0.002)
        self.metrics.record_file_operation("read", 0.001)

        operations = self.metrics.report().file_operations

        assert list(operations) == ["read", "write"]
        assert operations["write"].count == 2
        assert operations["write"].average_ms == pytest.approx(3.0)
        assert operations["write"].last_ms == pytest.approx(2.0)
        assert operations["write"].max_ms == pytest.approx(4.0)

    def test_report_serializes_with_aliases(self):
        self.metrics.record_request("tools/list", 0.01, RequestOutcome.SUCCESS)
        data = self.metrics.report().model_dump(by_alias=True)

        assert set(data) == {"requests", "fileOperations"}
        assert "averageResponseMs" in data["requests"]

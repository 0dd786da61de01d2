"""Pushgateway メトリクス送信と例外のテスト"""

from unittest.mock import Mock, patch

import pytest
import requests

import metrics
from dumper import DumpStats
from exceptions import PrometheusError, QueryError, RowReadError
from metrics import MetricsClient, configure_metrics, push_dump_metric, push_failure_metric


class TestMetricsClient:
    """MetricsClient のテスト"""

    def test_disabled_without_url(self):
        client = MetricsClient()
        assert not client.enabled
        with patch('metrics.requests.post') as mock_post:
            assert client.increment_counter("x_total", {"instance": "host1"}, "x") is True
        mock_post.assert_not_called()

    @patch('metrics.requests.post')
    def test_push_counter(self, mock_post):
        mock_post.return_value = Mock(status_code=200)
        client = MetricsClient("http://gateway:9091/", job_name="nightly")

        client.increment_counter("sqlite_dump_fail_total", labels={"type": "QueryError", "instance": "host1"},
                                 help_text="failures")

        url = mock_post.call_args[0][0]
        data = mock_post.call_args[1]['data']
        assert url == "http://gateway:9091/metrics/job/nightly/instance/host1"
        assert "# HELP sqlite_dump_fail_total failures" in data
        assert "# TYPE sqlite_dump_fail_total counter" in data
        assert 'sqlite_dump_fail_total{type="QueryError",instance="host1"} 1.0' in data

    @patch('metrics.requests.post')
    def test_push_failure_raises(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")
        client = MetricsClient("http://gateway:9091")

        with pytest.raises(PrometheusError) as exc_info:
            client.set_gauge("sqlite_dump_rows", 5, {"instance": "host1"}, "rows")
        assert exc_info.value.metric_name == "sqlite_dump_rows"

    @patch('metrics.requests.post')
    def test_push_dump_metric(self, mock_post):
        mock_post.return_value = Mock(status_code=200)
        configure_metrics("http://gateway:9091", "sqlite_dump")

        push_dump_metric(DumpStats(tables=2, rows=5, sequences=2, duration_seconds=0.5))

        pushed = [call[1]['data'] for call in mock_post.call_args_list]
        assert len(pushed) == 4
        assert any("sqlite_dump_rows" in data and "} 5" in data for data in pushed)
        assert any("sqlite_dump_duration_seconds" in data for data in pushed)
        assert all("/instance/" in call[0][0] for call in mock_post.call_args_list)

    @patch('metrics.requests.post')
    def test_push_failure_metric(self, mock_post):
        mock_post.return_value = Mock(status_code=200)
        configure_metrics("http://gateway:9091", "sqlite_dump")

        push_failure_metric("RowReadError", "boom")

        data = mock_post.call_args[1]['data']
        assert 'type="RowReadError"' in data
        assert 'error_hash=' in data


class TestExceptions:
    """例外の文脈情報とメトリクス"""

    def test_query_error_message(self):
        error = QueryError("失敗", table="users", operation="rows")
        assert str(error) == "失敗 (table: users)"
        assert error.operation == "rows"

    def test_row_read_error_message(self):
        error = RowReadError("失敗", table="tasks", row_offset=3)
        assert str(error) == "失敗 (table: tasks, row: 3)"
        assert isinstance(error, QueryError)

    @patch('metrics.requests.post')
    def test_exception_counter_pushed(self, mock_post):
        mock_post.return_value = Mock(status_code=200)
        configure_metrics("http://gateway:9091", "sqlite_dump")

        QueryError("失敗", table="users")

        data = mock_post.call_args[1]['data']
        assert "sqlite_dump_exceptions_total" in data
        assert 'exception_type="query_error"' in data

    @patch('metrics.requests.post')
    def test_exception_counter_failure_is_ignored(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("refused")
        configure_metrics("http://gateway:9091", "sqlite_dump")

        error = RowReadError("失敗", table="users", row_offset=0)
        assert error.row_offset == 0
        # PrometheusError 自体はカウントしない（再帰しない）
        assert mock_post.call_count == 1

    def test_global_client_reset(self):
        assert metrics._metrics_client is None
        assert not metrics.get_metrics_client().enabled

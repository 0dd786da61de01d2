"""Prometheus Pushgateway へのダンプメトリクス送信"""

import os
import logging
import requests
from typing import Dict, Optional

from exceptions import PrometheusError


logger = logging.getLogger(__name__)

# DumpStats の属性 → (ゲージ名, 説明)
_DUMP_GAUGES = (
    ("tables", "sqlite_dump_tables", "Number of tables written by the last dump"),
    ("rows", "sqlite_dump_rows", "Number of INSERT rows written by the last dump"),
    ("sequences", "sqlite_dump_sequences", "Number of sqlite_sequence records written by the last dump"),
    ("duration_seconds", "sqlite_dump_duration_seconds", "Duration of the last dump in seconds"),
)


def _instance() -> str:
    return os.getenv('HOSTNAME', 'localhost')


class MetricsClient:
    """Pushgateway 送信クライアント。URL 未設定なら何も送らない"""

    def __init__(self, pushgateway_url: Optional[str] = None, job_name: str = "sqlite_dump"):
        self.pushgateway_url = pushgateway_url or os.getenv('PROM_PUSHGATEWAY_URL')
        self.job_name = job_name
        self.enabled = bool(self.pushgateway_url)

        if self.enabled:
            logger.info(f"Prometheus client initialized: {self.pushgateway_url}")
        else:
            logger.debug("Prometheus Pushgateway URL not configured, metrics disabled")

    def _push(self, name: str, value: float, metric_type: str,
              labels: Dict[str, str], help_text: str) -> bool:
        if not self.enabled:
            logger.debug(f"Metrics disabled, skipping: {name}")
            return True

        label_str = ','.join(f'{k}="{v}"' for k, v in labels.items())
        metric_data = (
            f"# HELP {name} {help_text}\n"
            f"# TYPE {name} {metric_type}\n"
            f"{name}{{{label_str}}} {value}\n"
        )
        url = f"{self.pushgateway_url.rstrip('/')}/metrics/job/{self.job_name}/instance/{labels['instance']}"

        try:
            response = requests.post(
                url,
                data=metric_data,
                headers={'Content-Type': 'text/plain; charset=utf-8'},
                timeout=10
            )
            response.raise_for_status()
        except requests.RequestException as e:
            error_msg = f"Failed to push metric {name}: {e}"
            logger.error(error_msg)
            raise PrometheusError(error_msg, metric_name=name)

        logger.debug(f"Metric pushed successfully: {name}={value}")
        return True

    def increment_counter(self, name: str, labels: Dict[str, str], help_text: str) -> bool:
        """カウンターを1増加（labels には instance が必須）"""
        return self._push(name, 1.0, "counter", labels, help_text)

    def set_gauge(self, name: str, value: float, labels: Dict[str, str], help_text: str) -> bool:
        """ゲージを設定（labels には instance が必須）"""
        return self._push(name, value, "gauge", labels, help_text)


# グローバルインスタンス
_metrics_client = None


def get_metrics_client() -> MetricsClient:
    """グローバル MetricsClient インスタンスを取得"""
    global _metrics_client
    if _metrics_client is None:
        _metrics_client = MetricsClient()
    return _metrics_client


def configure_metrics(pushgateway_url: Optional[str], job_name: str) -> MetricsClient:
    """設定ファイルの内容でグローバルクライアントを作り直す"""
    global _metrics_client
    _metrics_client = MetricsClient(pushgateway_url, job_name)
    return _metrics_client


def push_failure_metric(failure_type: str, error_message: str) -> bool:
    """ダンプ失敗メトリクスを送信"""
    labels = {
        "type": failure_type,
        "instance": _instance(),
        "error_hash": str(hash(error_message))[:8],
    }
    return get_metrics_client().increment_counter(
        "sqlite_dump_fail_total", labels, "Total number of failed dumps by error type"
    )


def push_dump_metric(stats) -> bool:
    """ダンプ完了メトリクス（dumper.DumpStats の各値）をゲージとして送信"""
    client = get_metrics_client()
    labels = {"instance": _instance()}
    for attribute, name, help_text in _DUMP_GAUGES:
        client.set_gauge(name, getattr(stats, attribute), labels, help_text)
    return True

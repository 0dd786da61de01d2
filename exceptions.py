"""SQLiteダンプツール用カスタム例外"""

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)


def _increment_exception_counter(exception_type: str, details: str = ""):
    """例外発生時のPrometheusカウンターを増加（オプション機能）"""
    try:
        # 循環インポートを回避するため、関数内でインポート
        from metrics import get_metrics_client

        client = get_metrics_client()
        if not client.enabled:
            return

        labels = {
            "exception_type": exception_type,
            "instance": os.getenv('HOSTNAME', 'localhost')
        }
        if details:
            # 詳細情報のハッシュを追加（テーブル名などを直接送らない）
            labels["detail_hash"] = str(hash(details))[:8]

        client.increment_counter(
            name="sqlite_dump_exceptions_total",
            labels=labels,
            help_text="Total number of exceptions raised by type"
        )
        logger.debug(f"Exception counter incremented: {exception_type}")

    except Exception as e:
        # メトリクス送信の失敗は元の例外処理を阻害しない
        logger.debug(f"Failed to increment exception counter: {e}")


class SQLiteDumpError(Exception):
    """ダンプツールの基底例外クラス"""

    metric_type = "base_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        if self.metric_type:
            _increment_exception_counter(self.metric_type, message)


class QueryError(SQLiteDumpError):
    """クエリの準備・実行・読み出しに失敗した際の例外"""

    metric_type = "query_error"

    def __init__(self, message: str = "", table: Optional[str] = None, operation: str = ""):
        self.table = table
        self.operation = operation
        super().__init__(message)

    def __str__(self):
        base_msg = super().__str__()
        if self.table is not None:
            return f"{base_msg} (table: {self.table})"
        return base_msg


class RowReadError(QueryError):
    """行の値取得に失敗した際の例外（行はスキップしない）"""

    metric_type = "row_read_error"

    def __init__(self, message: str = "", table: Optional[str] = None, row_offset: Optional[int] = None):
        self.row_offset = row_offset
        super().__init__(message, table=table, operation="rows")

    def __str__(self):
        base_msg = Exception.__str__(self)
        context = []
        if self.table is not None:
            context.append(f"table: {self.table}")
        if self.row_offset is not None:
            context.append(f"row: {self.row_offset}")
        if context:
            return f"{base_msg} ({', '.join(context)})"
        return base_msg


class DumpIOError(SQLiteDumpError):
    """出力先への書き込みエラー"""

    metric_type = "io_error"

    def __init__(self, message: str = "", path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class UnsupportedValueError(SQLiteDumpError):
    """SQLリテラルに変換できない値"""

    metric_type = "unsupported_value"

    def __init__(self, message: str = "", type_name: Optional[str] = None):
        self.type_name = type_name
        super().__init__(message)


class ConfigurationError(SQLiteDumpError):
    """設定ファイルの読み込みエラー"""

    metric_type = "config_error"

    def __init__(self, message: str = "", config_path: str = ""):
        self.config_path = config_path
        super().__init__(message)


class PrometheusError(SQLiteDumpError):
    """Prometheus メトリクス送信エラー"""

    # 送信失敗をさらに送信しようとすると再帰するためカウントしない
    metric_type = None

    def __init__(self, message: str, metric_name: str = None):
        self.metric_name = metric_name
        super().__init__(message)

#!/usr/bin/env python3
"""SQLiteデータベースのダンプ作成CLI"""

import argparse
import logging
import sqlite3
import sys
from pathlib import Path
from typing import List, Optional

from config_loader import ConfigLoader
from dumper import DatabaseDumper, DumpStats
from exceptions import PrometheusError, QueryError, SQLiteDumpError
from metrics import configure_metrics, push_dump_metric, push_failure_metric

logger = logging.getLogger(__name__)


def open_readonly(db_path: str) -> sqlite3.Connection:
    """データベースを読み取り専用で開く"""
    path = Path(db_path)
    if not path.is_file():
        raise QueryError(f"データベースファイルが見つかりません: {db_path}", operation="connect")
    try:
        return sqlite3.connect(f"{path.resolve().as_uri()}?mode=ro", uri=True)
    except sqlite3.Error as e:
        raise QueryError(f"データベースを開けません: {e}", operation="connect") from e


def dump_sqlite_database(db_path: str, output_path: Optional[str] = None) -> DumpStats:
    """SQLiteデータベースをSQLダンプとして出力

    output_path が None または '-' の場合は標準出力に書き出す。
    """
    conn = open_readonly(db_path)
    try:
        dumper = DatabaseDumper(conn)
        if output_path in (None, '-'):
            stats = dumper.dump(getattr(sys.stdout, 'buffer', sys.stdout))
            sys.stdout.flush()
        else:
            stats = dumper.dump_to_path(output_path)
    finally:
        conn.close()
    return stats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='SQLiteデータベースをSQLスクリプトとしてダンプ')
    parser.add_argument('database', nargs='?', help='ダンプ元のSQLiteデータベースファイル')
    parser.add_argument('-o', '--output', help="出力ファイルパス（省略または '-' で標準出力）")
    parser.add_argument('--config', default='dump_config.json', help='設定ファイルパス')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='デバッグログを出力')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='警告以上のみ出力')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """メイン関数"""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ConfigLoader(args.config)
    try:
        log_level = config.log_level
    except SQLiteDumpError as e:
        logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
        logger.error(f"Configuration error: {e}")
        return 1

    if args.verbose:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.WARNING
    # ダンプ本体は標準出力を使うためログは標準エラーへ
    logging.basicConfig(level=log_level, format='%(asctime)s - %(levelname)s - %(message)s',
                        stream=sys.stderr)

    configure_metrics(config.pushgateway_url, config.job_name)

    db_path = args.database or config.database_path
    if not db_path:
        parser.error("ダンプ元のデータベースを指定してください（引数または設定ファイルの 'database'）")
    output_path = args.output or config.output_path

    try:
        stats = dump_sqlite_database(db_path, output_path)
    except SQLiteDumpError as e:
        logger.error(f"Dump failed: {e}")
        try:
            push_failure_metric(type(e).__name__, str(e))
        except PrometheusError as prom_err:
            logger.error(f"Failed to push failure metric: {prom_err}")
        return 1
    except KeyboardInterrupt:
        logger.info("Dump interrupted by user")
        return 1

    try:
        push_dump_metric(stats)
    except PrometheusError as e:
        logger.error(f"Failed to push dump metrics: {e}")

    return 0


if __name__ == '__main__':
    sys.exit(main())

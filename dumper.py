"""SQLiteデータベース全体をSQLスクリプトとして出力する"""

import io
import logging
import os
import sqlite3
import tempfile
import time
from dataclasses import dataclass
from typing import Callable, Iterator

from catalog import (
    SEQUENCE_TABLE,
    get_columns,
    get_text_codec,
    has_sequence_table,
    iter_sequences,
    iter_tables,
)
from exceptions import DumpIOError, QueryError
from literals import quote_identifier, quote_text
from rows import RowSerializer

logger = logging.getLogger(__name__)


@dataclass
class DumpStats:
    """1回のダンプの集計"""
    tables: int = 0
    rows: int = 0
    sequences: int = 0
    duration_seconds: float = 0.0


class DatabaseDumper:
    """接続済みのSQLiteデータベースをダンプするクラス

    出力順:
        PRAGMA foreign_keys=OFF; → BEGIN TRANSACTION; → テーブルごとに
        CREATE文とINSERT文 → sqlite_sequence の復元 → COMMIT;

    読み出しはすべて1つの読み取りトランザクション内で行い、途中で他の接続が
    書き込んでも同じスナップショットを出力する。
    """

    def __init__(self, connection: sqlite3.Connection):
        self.connection = connection
        self.stats = DumpStats()

    def _begin_snapshot(self) -> bool:
        """読み取りトランザクションを開始（既に開始済みなら何もしない）"""
        try:
            if self.connection.in_transaction:
                logger.debug("Connection already in a transaction, reusing its snapshot")
                return False
            self.connection.execute("BEGIN")
        except sqlite3.Error as e:
            raise QueryError(f"読み取りトランザクションの開始に失敗: {e}", operation="begin") from e
        return True

    def _end_snapshot(self) -> None:
        # 書き込みはしていないので破棄で終了する
        try:
            if self.connection.in_transaction:
                self.connection.execute("ROLLBACK")
        except sqlite3.Error as e:
            logger.warning(f"Failed to end read transaction: {e}")

    def iterdump(self) -> Iterator[str]:
        """ダンプの各行（改行なし）を順に返す"""
        self.stats = DumpStats()
        started_at = time.time()
        owns_snapshot = self._begin_snapshot()

        try:
            yield "PRAGMA foreign_keys=OFF;"
            yield "BEGIN TRANSACTION;"

            codec = get_text_codec(self.connection)

            for table in iter_tables(self.connection):
                logger.debug(f"Dumping table {table.name}")
                yield f"{table.create_statement};"

                columns = get_columns(self.connection, table.name)
                serializer = RowSerializer(self.connection, table.name, columns, encoding=codec)
                table_ident = quote_identifier(table.name)
                table_rows = 0
                for literals in serializer.iter_literals():
                    yield f"INSERT INTO {table_ident} VALUES({literals});"
                    table_rows += 1

                self.stats.tables += 1
                self.stats.rows += table_rows
                logger.debug(f"Table {table.name}: {table_rows} rows")

            if has_sequence_table(self.connection):
                yield f"DELETE FROM {SEQUENCE_TABLE};"
                for record in iter_sequences(self.connection):
                    yield (
                        f"INSERT INTO {SEQUENCE_TABLE} "
                        f"VALUES({quote_text(record.table_name)},{record.last_row_id});"
                    )
                    self.stats.sequences += 1

            yield "COMMIT;"
        finally:
            if owns_snapshot:
                self._end_snapshot()
            self.stats.duration_seconds = time.time() - started_at

    def dump(self, sink) -> DumpStats:
        """sink にダンプを書き出す

        Args:
            sink: write() を持つ出力先。テキスト・バイナリどちらも可
                  （バイナリの場合はUTF-8で書き込む）
        """
        write = _make_writer(sink)

        lines = self.iterdump()
        try:
            for line in lines:
                try:
                    write(line + "\n")
                except (OSError, ValueError) as e:
                    raise DumpIOError(f"出力先への書き込みに失敗: {e}") from e
        finally:
            lines.close()

        logger.info(
            f"Dump completed: {self.stats.tables} tables, {self.stats.rows} rows, "
            f"{self.stats.sequences} sequences in {self.stats.duration_seconds:.2f}s"
        )
        return self.stats

    def dump_to_path(self, path: str) -> DumpStats:
        """ファイルにダンプを書き出す

        同じディレクトリの一時ファイルに書き、COMMIT; まで書き終えてから
        rename する。失敗時は一時ファイルを削除し、既存の path は変更しない。
        """
        directory = os.path.dirname(os.path.abspath(path))
        try:
            fd, temp_path = tempfile.mkstemp(
                prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory
            )
        except OSError as e:
            raise DumpIOError(f"一時ファイルの作成に失敗: {e}", path=path) from e

        try:
            with os.fdopen(fd, 'w', encoding='utf-8', newline='\n') as f:
                stats = self.dump(f)
                try:
                    f.flush()
                    os.fsync(f.fileno())
                except OSError as e:
                    raise DumpIOError(f"ダンプファイルの書き込みに失敗: {e}", path=path) from e
            os.replace(temp_path, path)
        except OSError as e:
            _remove_quietly(temp_path)
            raise DumpIOError(f"ダンプファイルの保存に失敗: {e}", path=path) from e
        except Exception:
            _remove_quietly(temp_path)
            raise

        logger.info(f"Dump written to {path}")
        return stats


def _make_writer(sink) -> Callable[[str], object]:
    if isinstance(sink, (io.RawIOBase, io.BufferedIOBase)) or 'b' in str(getattr(sink, 'mode', '')):
        return lambda text: sink.write(text.encode('utf-8'))
    return sink.write


def _remove_quietly(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Failed to remove temporary file {path}: {e}")


def iterdump(connection: sqlite3.Connection) -> Iterator[str]:
    """ダンプの各行を返す（sqlite3.Connection.iterdump と同じ使い方）"""
    return DatabaseDumper(connection).iterdump()


def dump(connection: sqlite3.Connection, sink) -> DumpStats:
    """connection の内容を sink に書き出す"""
    return DatabaseDumper(connection).dump(sink)


def dump_to_path(connection: sqlite3.Connection, path: str) -> DumpStats:
    """connection の内容をファイルに書き出す（原子的に置き換え）"""
    return DatabaseDumper(connection).dump_to_path(path)

"""スキーマカタログ・カラム定義・sqlite_sequence の読み出し"""

import logging
import sqlite3
from typing import Iterator, List

from exceptions import QueryError, UnsupportedValueError
from literals import quote_identifier
from models import Column, SequenceRecord, Table

logger = logging.getLogger(__name__)

SEQUENCE_TABLE = "sqlite_sequence"

# PRAGMA encoding の値 → Python のコーデック名
_TEXT_CODECS = {
    'utf-8': 'utf-8',
    'utf-16le': 'utf-16-le',
    'utf-16be': 'utf-16-be',
}

_TABLES_QUERY = """
    SELECT name, sql
    FROM {catalog}
    WHERE sql NOT NULL
        AND type == 'table'
        AND name NOT LIKE 'sqlite_%'
"""


def _text(value) -> str:
    """text_factory に関係なく名前・SQL文を str で扱う"""
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return value


def _catalog_name() -> str:
    """スキーマカタログ名（3.33未満は sqlite_master のみ）"""
    if sqlite3.sqlite_version_info >= (3, 33, 0):
        return "sqlite_schema"
    return "sqlite_master"


def iter_tables(connection: sqlite3.Connection) -> Iterator[Table]:
    """ユーザーテーブルをカタログ順に列挙

    内部テーブル (sqlite_%) と sql が NULL のエントリは除外する。
    """
    query = _TABLES_QUERY.format(catalog=_catalog_name())
    try:
        rows = connection.execute(query).fetchall()
    except sqlite3.Error as e:
        raise QueryError(f"スキーマカタログの取得に失敗: {e}", operation="schema") from e

    logger.debug(f"Found {len(rows)} user tables")
    for name, create_statement in rows:
        yield Table(name=_text(name), create_statement=_text(create_statement))


def get_columns(connection: sqlite3.Connection, table_name: str) -> List[Column]:
    """テーブルのカラムを定義順で取得"""
    query = f"PRAGMA table_info({quote_identifier(table_name)})"
    try:
        rows = connection.execute(query).fetchall()
    except sqlite3.Error as e:
        raise QueryError(f"カラム定義の取得に失敗: {e}", table=table_name, operation="columns") from e

    if not rows:
        raise QueryError("カラム定義が見つかりません", table=table_name, operation="columns")

    columns = [Column(name=_text(row[1]), ordinal_position=row[0]) for row in rows]
    return sorted(columns, key=lambda column: column.ordinal_position)


def get_text_codec(connection: sqlite3.Connection) -> str:
    """データベースの文字コード（TEXT の保存形式）を Python のコーデック名で返す"""
    try:
        row = connection.execute("PRAGMA encoding").fetchone()
    except sqlite3.Error as e:
        raise QueryError(f"文字コードの取得に失敗: {e}", operation="encoding") from e

    name = _text(row[0])
    try:
        return _TEXT_CODECS[name.lower()]
    except KeyError:
        raise UnsupportedValueError(f"未対応の文字コードです: {name}", type_name="text")


def has_sequence_table(connection: sqlite3.Connection) -> bool:
    """sqlite_sequence が存在するか（AUTOINCREMENT を一度でも使ったか）"""
    query = f"SELECT 1 FROM {_catalog_name()} WHERE type == 'table' AND name == ?"
    try:
        return connection.execute(query, (SEQUENCE_TABLE,)).fetchone() is not None
    except sqlite3.Error as e:
        raise QueryError(f"sqlite_sequence の確認に失敗: {e}", operation="sequence") from e


def iter_sequences(connection: sqlite3.Connection) -> Iterator[SequenceRecord]:
    """sqlite_sequence の全レコードを列挙（テーブルが無ければ空）"""
    if not has_sequence_table(connection):
        logger.debug("sqlite_sequence does not exist, no sequences to export")
        return

    try:
        rows = connection.execute(f"SELECT name, seq FROM {SEQUENCE_TABLE}").fetchall()
    except sqlite3.Error as e:
        raise QueryError(f"sqlite_sequence の取得に失敗: {e}", operation="sequence") from e

    for name, seq in rows:
        yield SequenceRecord(table_name=_text(name), last_row_id=int(seq))

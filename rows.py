"""テーブルの全行を読み出してSQLリテラル列に変換する"""

import logging
import sqlite3
from typing import Iterator, List, Optional

from catalog import get_text_codec
from exceptions import QueryError, RowReadError
from literals import quote_identifier, row_to_literals
from models import Column, Row, Value, ValueKind

logger = logging.getLogger(__name__)


class RowSerializer:
    """1テーブル分の行を1行ずつ読み出すシリアライザ

    encoding はデータベースの文字コード（Python のコーデック名）。省略時は
    iter_rows() の開始時に PRAGMA encoding から取得する。
    カーソルは iter_rows() の呼び出しごとに開き直す。途中で値の取得に失敗した
    場合は行を読み飛ばさず RowReadError を送出する。
    """

    def __init__(self, connection: sqlite3.Connection, table_name: str, columns: List[Column],
                 encoding: Optional[str] = None):
        self.connection = connection
        self.table_name = table_name
        self.columns = list(columns)
        self.encoding = encoding

    def build_query(self) -> str:
        """カラムごとに typeof() と保存値を取り出すSELECT文を組み立てる

        TEXT は CAST(.. AS BLOB) で取り出し、text_factory の影響を受けない
        生のバイト列（データベースの文字コードのまま）を得る。
        """
        selects = []
        for column in self.columns:
            name = quote_identifier(column.name)
            selects.append(f"typeof({name})")
            selects.append(
                f"CASE WHEN typeof({name}) == 'text' THEN CAST({name} AS BLOB) ELSE {name} END"
            )
        return f"SELECT {', '.join(selects)} FROM {quote_identifier(self.table_name)}"

    def _convert(self, raw: tuple, row_offset: int, codec: str) -> Row:
        expected = len(self.columns) * 2
        if len(raw) != expected:
            raise RowReadError(
                f"カラム数が一致しません: expected {len(self.columns)}, got {len(raw) // 2}",
                table=self.table_name, row_offset=row_offset
            )
        values = tuple(
            Value.from_typed(raw[i], raw[i + 1]) for i in range(0, expected, 2)
        )
        if codec == 'utf-8':
            return values
        # UTF-16 のデータベースは UTF-8 のバイト列に揃える
        return tuple(
            Value(ValueKind.TEXT, value.payload.decode(codec, errors='replace').encode('utf-8'))
            if value.kind is ValueKind.TEXT else value
            for value in values
        )

    def iter_rows(self) -> Iterator[Row]:
        """全行を Value のタプルとして順に返す"""
        codec = self.encoding or get_text_codec(self.connection)
        query = self.build_query()
        logger.debug(f"Scanning table {self.table_name}: {query}")
        try:
            cursor = self.connection.execute(query)
        except sqlite3.Error as e:
            raise QueryError(f"行の取得クエリに失敗: {e}", table=self.table_name, operation="rows") from e

        try:
            row_offset = 0
            while True:
                try:
                    raw = cursor.fetchone()
                except sqlite3.Error as e:
                    raise RowReadError(
                        f"行の読み出しに失敗: {e}", table=self.table_name, row_offset=row_offset
                    ) from e
                if raw is None:
                    break
                yield self._convert(raw, row_offset, codec)
                row_offset += 1
        finally:
            cursor.close()

    def iter_literals(self) -> Iterator[str]:
        """各行をカンマ区切りのリテラル列として返す"""
        for row in self.iter_rows():
            yield row_to_literals(row)

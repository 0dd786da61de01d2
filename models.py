"""ダンプ処理で扱うデータモデル"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from exceptions import UnsupportedValueError


@dataclass(frozen=True)
class Table:
    """スキーマカタログから取得したユーザーテーブル"""
    name: str              # テーブル名
    create_statement: str  # 作成時のCREATE文（そのまま出力する）


@dataclass(frozen=True)
class Column:
    """テーブルのカラム定義"""
    name: str
    ordinal_position: int  # PRAGMA table_info の cid


@dataclass(frozen=True)
class SequenceRecord:
    """sqlite_sequence の1レコード"""
    table_name: str
    last_row_id: int


class ValueKind(Enum):
    """SQLiteのストレージクラス（typeof() の戻り値）"""
    NULL = "null"
    INTEGER = "integer"
    REAL = "real"
    TEXT = "text"
    BLOB = "blob"

    @classmethod
    def from_type_name(cls, type_name) -> 'ValueKind':
        if isinstance(type_name, bytes):
            # text_factory=bytes の接続では typeof() もバイト列になる
            type_name = type_name.decode('ascii', errors='replace')
        try:
            return cls(type_name.lower())
        except (ValueError, AttributeError):
            raise UnsupportedValueError(
                f"未対応のストレージクラスです: {type_name!r}", type_name=str(type_name)
            )


@dataclass(frozen=True)
class Value:
    """1セル分の値

    SQLiteは値ごとに型を持つため、同じカラムでも行によって kind が異なる。
    TEXT は保存されているバイト列をそのまま保持し、デコードはリテラル変換時に行う。
    """
    kind: ValueKind
    payload: Union[None, int, float, bytes] = None

    @classmethod
    def from_typed(cls, type_name: str, raw) -> 'Value':
        """typeof() の結果と取得値から Value を作成"""
        kind = ValueKind.from_type_name(type_name)

        if kind is ValueKind.NULL:
            return cls(kind)
        if kind is ValueKind.INTEGER:
            return cls(kind, int(raw))
        if kind is ValueKind.REAL:
            return cls(kind, float(raw))
        if isinstance(raw, str):
            # text_factory 次第で str が返ってくる場合がある
            raw = raw.encode('utf-8')
        if not isinstance(raw, (bytes, bytearray, memoryview)):
            raise UnsupportedValueError(
                f"{kind.value} の値がバイト列ではありません: {type(raw).__name__}",
                type_name=kind.value
            )
        return cls(kind, bytes(raw))


Row = Tuple[Value, ...]

"""値・識別子をSQLiteのSQLリテラルに変換する"""

import math
import re

from exceptions import UnsupportedValueError
from models import Value, ValueKind

# https://www.sqlite.org/lang_keywords.html
SQLITE_KEYWORDS = frozenset("""
    ABORT ACTION ADD AFTER ALL ALTER ALWAYS ANALYZE AND AS ASC ATTACH
    AUTOINCREMENT BEFORE BEGIN BETWEEN BY CASCADE CASE CAST CHECK COLLATE
    COLUMN COMMIT CONFLICT CONSTRAINT CREATE CROSS CURRENT CURRENT_DATE
    CURRENT_TIME CURRENT_TIMESTAMP DATABASE DEFAULT DEFERRABLE DEFERRED DELETE
    DESC DETACH DISTINCT DO DROP EACH ELSE END ESCAPE EXCEPT EXCLUDE EXCLUSIVE
    EXISTS EXPLAIN FAIL FILTER FIRST FOLLOWING FOR FOREIGN FROM FULL GENERATED
    GLOB GROUP GROUPS HAVING IF IGNORE IMMEDIATE IN INDEX INDEXED INITIALLY
    INNER INSERT INSTEAD INTERSECT INTO IS ISNULL JOIN KEY LAST LEFT LIKE LIMIT
    MATCH MATERIALIZED NATURAL NO NOT NOTHING NOTNULL NULL NULLS OF OFFSET ON
    OR ORDER OTHERS OUTER OVER PARTITION PLAN PRAGMA PRECEDING PRIMARY QUERY
    RAISE RANGE RECURSIVE REFERENCES REGEXP REINDEX RELEASE RENAME REPLACE
    RESTRICT RETURNING RIGHT ROLLBACK ROW ROWS SAVEPOINT SELECT SET TABLE TEMP
    TEMPORARY THEN TIES TO TRANSACTION TRIGGER UNBOUNDED UNION UNIQUE UPDATE
    USING VACUUM VALUES VIEW VIRTUAL WHEN WHERE WINDOW WITH WITHOUT
""".split())

_PLAIN_IDENTIFIER = re.compile(r'[A-Za-z_][A-Za-z0-9_]*\Z')

# sqlite3 シェルの .dump と同じ表記（再読込で ±Inf になる）
POSITIVE_INFINITY_LITERAL = "9.0e+999"
NEGATIVE_INFINITY_LITERAL = "-9.0e+999"


def quote_identifier(name: str) -> str:
    """識別子を必要な場合のみダブルクオートで囲む"""
    if _PLAIN_IDENTIFIER.match(name) and name.upper() not in SQLITE_KEYWORDS:
        return name
    return '"' + name.replace('"', '""') + '"'


def quote_text(text: str) -> str:
    """文字列リテラル（シングルクオートは2つ重ねてエスケープ）"""
    return "'" + text.replace("'", "''") + "'"


def format_real(number: float) -> str:
    """浮動小数点数をsqlite3 シェルと同じ表記に変換

    15桁で往復できればそれを使い、できなければ17桁にする。小数点のない表記には
    ".0" を補う（例: 1.0, 1.0e+300）。
    """
    if math.isnan(number):
        raise UnsupportedValueError("NaN はSQLiteのリテラルで表現できません", type_name="real")
    if math.isinf(number):
        return POSITIVE_INFINITY_LITERAL if number > 0 else NEGATIVE_INFINITY_LITERAL
    text = '%.15g' % number
    if float(text) != number:
        text = '%.17g' % number

    mantissa, sep, exponent = text.partition('e')
    if '.' not in mantissa:
        mantissa += '.0'
    return mantissa + sep + exponent


def format_blob(data: bytes) -> str:
    """BLOBを X'..' 形式の16進リテラルに変換"""
    return "X'" + data.hex() + "'"


def to_literal(value: Value) -> str:
    """Value をSQLリテラルに変換"""
    kind = value.kind

    if kind is ValueKind.NULL:
        return "NULL"
    if kind is ValueKind.INTEGER:
        return str(value.payload)
    if kind is ValueKind.REAL:
        return format_real(value.payload)
    if kind is ValueKind.TEXT:
        # 不正なUTF-8は置換文字にして失敗させない
        text = value.payload.decode('utf-8', errors='replace')
        if '\x00' in text:
            # NUL を含む文字列はクオートで表せないため16進から復元する
            return f"CAST({format_blob(text.encode('utf-8'))} AS TEXT)"
        return quote_text(text)
    if kind is ValueKind.BLOB:
        return format_blob(value.payload)

    raise UnsupportedValueError(f"未対応の値です: {value!r}", type_name=str(kind))


def row_to_literals(values) -> str:
    """1行分の値をカンマ区切りのリテラル列に変換"""
    return ','.join(to_literal(value) for value in values)

"""スキーマカタログ・カラム・シーケンス取得のテスト"""

import sqlite3
from unittest.mock import MagicMock

import pytest

from catalog import get_columns, has_sequence_table, iter_sequences, iter_tables
from exceptions import QueryError
from models import Column, SequenceRecord


class TestIterTables:
    """ユーザーテーブルの列挙"""

    def test_catalog_order(self, sample_db):
        tables = list(iter_tables(sample_db))
        assert [table.name for table in tables] == ['users', 'tasks']
        assert tables[0].create_statement.startswith("CREATE TABLE users (")

    def test_excludes_internal_tables(self, memory_db):
        memory_db.executescript("""
            CREATE TABLE items (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT UNIQUE);
            CREATE INDEX idx_items_name ON items(name);
            INSERT INTO items (name) VALUES ('a'), ('b');
            ANALYZE;
        """)
        names = [table.name for table in iter_tables(memory_db)]
        assert names == ['items']

    def test_excludes_views_and_indexes(self, memory_db):
        memory_db.executescript("""
            CREATE TABLE t (x);
            CREATE VIEW v AS SELECT x FROM t;
            CREATE INDEX t_x ON t(x);
        """)
        assert [table.name for table in iter_tables(memory_db)] == ['t']

    def test_closed_connection(self):
        conn = sqlite3.connect(":memory:")
        conn.close()
        with pytest.raises(QueryError) as exc_info:
            list(iter_tables(conn))
        assert exc_info.value.operation == "schema"


class TestGetColumns:
    """カラム定義の取得"""

    def test_columns_in_definition_order(self, sample_db):
        columns = get_columns(sample_db, 'tasks')
        assert columns == [
            Column('id', 0),
            Column('title', 1),
            Column('completed', 2),
            Column('user_id', 3),
        ]

    def test_quoted_table_name(self, memory_db):
        memory_db.execute('CREATE TABLE "order" ("from" TEXT, "my col" INTEGER)')
        columns = get_columns(memory_db, 'order')
        assert [column.name for column in columns] == ['from', 'my col']

    def test_missing_table(self, memory_db):
        with pytest.raises(QueryError) as exc_info:
            get_columns(memory_db, 'nope')
        assert exc_info.value.table == 'nope'

    def test_query_failure(self):
        conn = MagicMock()
        conn.execute.side_effect = sqlite3.OperationalError("database is locked")
        with pytest.raises(QueryError) as exc_info:
            get_columns(conn, 'users')
        assert "database is locked" in str(exc_info.value)
        assert "(table: users)" in str(exc_info.value)


class TestSequences:
    """sqlite_sequence の読み出し"""

    def test_sequences(self, sample_db):
        assert has_sequence_table(sample_db)
        assert list(iter_sequences(sample_db)) == [
            SequenceRecord('users', 2),
            SequenceRecord('tasks', 3),
        ]

    def test_keeps_highest_id_after_delete(self, sample_db):
        sample_db.execute("DELETE FROM tasks WHERE id = 3")
        sample_db.commit()
        assert SequenceRecord('tasks', 3) in list(iter_sequences(sample_db))

    def test_no_sequence_table(self, memory_db):
        memory_db.execute("CREATE TABLE plain (id INTEGER PRIMARY KEY, body TEXT)")
        memory_db.execute("INSERT INTO plain (body) VALUES ('x')")
        assert not has_sequence_table(memory_db)
        assert list(iter_sequences(memory_db)) == []

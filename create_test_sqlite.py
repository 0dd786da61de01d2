#!/usr/bin/env python3
"""テスト用SQLiteデータベース作成スクリプト"""

import sqlite3
import sys
from typing import Union

SAMPLE_SCHEMA = """
-- Users table
CREATE TABLE IF NOT EXISTS users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL
);

-- Tasks table
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    completed INTEGER DEFAULT 0,
    user_id INTEGER,
    FOREIGN KEY (user_id) REFERENCES users(id)
);
"""

SAMPLE_USERS = [('alice',), ('bob',)]

SAMPLE_TASKS = [
    ('Buy groceries', 0, 1),
    ('Finish project report', 1, 1),
    ('Book dentist appointment', 0, 2),
]


def create_test_database(target: Union[str, sqlite3.Connection] = 'sample.sqlite') -> sqlite3.Connection:
    """users / tasks のサンプルデータベースを作成

    Args:
        target: ファイルパス、または作成済みの接続
    """
    conn = target if isinstance(target, sqlite3.Connection) else sqlite3.connect(target)
    cursor = conn.cursor()

    cursor.executescript(SAMPLE_SCHEMA)
    cursor.executemany("INSERT INTO users (username) VALUES (?)", SAMPLE_USERS)
    cursor.executemany(
        "INSERT INTO tasks (title, completed, user_id) VALUES (?, ?, ?)", SAMPLE_TASKS
    )

    conn.commit()
    return conn


if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'sample.sqlite'
    create_test_database(path).close()
    print(f"テスト用SQLiteデータベース '{path}' を作成しました")
    print(f"レコード数: users={len(SAMPLE_USERS)}, tasks={len(SAMPLE_TASKS)}")

"""テスト共通設定"""

import os
import sqlite3
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import metrics
from create_test_sqlite import create_test_database


@pytest.fixture(autouse=True)
def isolate_metrics(monkeypatch):
    """Pushgateway へ実際に送信しないようにグローバルクライアントを初期化"""
    monkeypatch.delenv('PROM_PUSHGATEWAY_URL', raising=False)
    monkeypatch.setattr(metrics, '_metrics_client', None)
    yield


@pytest.fixture
def memory_db():
    """空のインメモリデータベース"""
    conn = sqlite3.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def sample_db(memory_db):
    """users / tasks のサンプルデータ入りデータベース"""
    return create_test_database(memory_db)

"""Shared fixtures for GuardedDB tests."""
from __future__ import annotations

import io

import pytest

from guardeddb.base import Executor, PreparedStatement
from guardeddb.config import load_config
from guardeddb.connectors.sqlite import SQLiteExecutor
from guardeddb.handler import QueryHandler

ALLOWED = {
    "allowed_tables": ["users"],
    "allowed_columns": [
        "id", "name", "email", "phone", "password", "status", "created_at", "updated_at",
    ],
    "allowed_functions": [
        "LOWER", "UPPER", "LENGTH", "ROUND", "TRIM", "COALESCE", "IFNULL", "DATE", "ABS",
    ],
}

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT UNIQUE,
    phone TEXT,
    password TEXT,
    status INTEGER DEFAULT 1,
    created_at TEXT
);
CREATE TABLE secrets (
    id INTEGER PRIMARY KEY,
    value TEXT
);
"""


class FakeStatement(PreparedStatement):
    """Statement that records what it was given instead of talking to a database."""

    def __init__(self, executor: "FakeExecutor", sql: str):
        super().__init__(sql)
        self.executor = executor
        self.bind_calls = 0
        self.executed = False
        self.closed = False

    def bind(self, type_tags, values):
        self.bind_calls += 1
        super().bind(type_tags, values)

    def execute(self):
        if self.executor.fail_with is not None:
            raise self.executor.fail_with
        self.executed = True

    @property
    def affected_rows(self):
        return self.executor.affected_rows

    @property
    def last_insert_id(self):
        return self.executor.insert_id

    def fetch_one(self):
        return dict(self.executor.rows[0]) if self.executor.rows else None

    def fetch_all(self):
        return [dict(row) for row in self.executor.rows]

    def close(self):
        self.closed = True


class FakeExecutor(Executor):
    """Executor double that hands out FakeStatements."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.statements: list[FakeStatement] = []
        self.rows: list[dict] = []
        self.affected_rows = 1
        self.insert_id = 42
        self.fail_with: Exception | None = None
        self.disconnect_calls = 0
        self.connected = True

    def connect(self):
        self.connected = True

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False

    def is_connected(self):
        return self.connected

    def prepare(self, sql):
        statement = FakeStatement(self, sql)
        self.statements.append(statement)
        return statement


@pytest.fixture
def log_file(tmp_path):
    return str(tmp_path / "logs" / "query.log")


@pytest.fixture
def config(log_file):
    return load_config(log_file=log_file, debug=True, **ALLOWED)


@pytest.fixture
def echo():
    return io.StringIO()


@pytest.fixture
def fake_executor():
    return FakeExecutor()


@pytest.fixture
def fake_handler(config, fake_executor, echo):
    handler = QueryHandler(config=config, executor=fake_executor, echo_stream=echo)
    yield handler
    handler.close()


@pytest.fixture
def sqlite_executor():
    executor = SQLiteExecutor(database=":memory:")
    executor.conn.executescript(SCHEMA)
    yield executor
    executor.disconnect()


@pytest.fixture
def handler(config, sqlite_executor, echo):
    handler = QueryHandler(config=config, executor=sqlite_executor, echo_stream=echo)
    yield handler
    handler.close()


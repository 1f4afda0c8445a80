"""Shared test fixtures."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import pytest


def write_json(path: Path, data: Any) -> str:
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def make_db(path: Path, *statements: str) -> str:
    conn = sqlite3.connect(path)
    try:
        for sql in statements:
            conn.execute(sql)
        conn.commit()
    finally:
        conn.close()
    return str(path)


def fetch_all(db_path: str, sql: str, params: tuple = ()) -> list[tuple[Any, ...]]:
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(sql, params).fetchall()
    finally:
        conn.close()


ROWS_DOCUMENT = {"rows": [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]}


@pytest.fixture
def rows_json(tmp_path: Path) -> str:
    return write_json(tmp_path / "rows.json", ROWS_DOCUMENT)


@pytest.fixture
def items_db(tmp_path: Path) -> str:
    return make_db(tmp_path / "items.db", "CREATE TABLE items (pk INTEGER, label TEXT)")


@pytest.fixture
def users_db(tmp_path: Path) -> str:
    return make_db(
        tmp_path / "users.db",
        """
        CREATE TABLE users (
            id INTEGER PRIMARY KEY,
            code TEXT NOT NULL UNIQUE,
            email TEXT,
            name TEXT NOT NULL,
            score REAL,
            active BOOLEAN,
            status TEXT NOT NULL DEFAULT 'new',
            meta TEXT
        )
        """,
        "CREATE UNIQUE INDEX idx_users_email ON users (email)",
        "CREATE INDEX idx_users_name ON users (name)",
    )


class ProgressLog:
    """Progress sink collecting snapshots."""

    def __init__(self) -> None:
        self.records: list[Any] = []

    def __call__(self, record: Any) -> None:
        self.records.append(record)

    @property
    def phases(self) -> list[str]:
        return [str(r.phase) for r in self.records]


@pytest.fixture
def progress_log() -> ProgressLog:
    return ProgressLog()

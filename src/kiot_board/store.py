"""Relational store for the KiotViet catalog (categories, customers, goods, services)."""

from __future__ import annotations

import re
import sqlite3
from pathlib import Path
from typing import Any, Protocol

import structlog

from kiot_board.errors import RecordStoreError

logger = structlog.get_logger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS item_category (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    description TEXT
);

CREATE TABLE IF NOT EXISTS customer (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    customer_code TEXT NOT NULL UNIQUE,
    full_name TEXT,
    phone TEXT,
    gender INTEGER,
    dob TEXT,
    created_by TEXT
);

CREATE TABLE IF NOT EXISTS goods (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    goods_code TEXT NOT NULL UNIQUE,
    name TEXT,
    description TEXT,
    price REAL NOT NULL DEFAULT 0,
    stock_quantity REAL NOT NULL DEFAULT 0,
    status INTEGER NOT NULL DEFAULT 1,
    category_id INTEGER REFERENCES item_category(id),
    image_url TEXT
);

CREATE TABLE IF NOT EXISTS service (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    service_code TEXT NOT NULL UNIQUE,
    name TEXT,
    description TEXT,
    price REAL NOT NULL DEFAULT 0,
    status INTEGER NOT NULL DEFAULT 1,
    category_id INTEGER REFERENCES item_category(id),
    estimated_duration_minutes INTEGER NOT NULL DEFAULT 0,
    image_url TEXT
);
"""

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class RecordStore(Protocol):
    def query(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> list[dict[str, Any]]: ...

    def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]: ...


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise RecordStoreError(f"Invalid SQL identifier: {name!r}")
    return name


class SQLiteRecordStore:
    """``RecordStore`` on a local SQLite file; the schema is created on first connect."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._connection: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            try:
                if str(self.path) != ":memory:":
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                connection = sqlite3.connect(self.path)
                connection.row_factory = sqlite3.Row
                connection.executescript(SCHEMA)
            except (sqlite3.Error, OSError) as e:
                raise RecordStoreError(f"Database connection failed: {e}") from e
            self._connection = connection
            logger.info("database_connected", path=str(self.path))
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("database_closed")

    def __enter__(self) -> SQLiteRecordStore:
        self.connect()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def query(self, sql: str, params: tuple[Any, ...] | list[Any] = ()) -> list[dict[str, Any]]:
        connection = self.connect()
        try:
            rows = connection.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Query failed: {e}") from e
        return [dict(row) for row in rows]

    def insert(self, table: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored."""
        table = _check_identifier(table)
        columns = [_check_identifier(column) for column in data]
        placeholders = ", ".join("?" for _ in columns)
        sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"

        connection = self.connect()
        try:
            with connection:
                cursor = connection.execute(sql, tuple(data.values()))
            row = connection.execute(
                f"SELECT * FROM {table} WHERE rowid = ?", (cursor.lastrowid,)
            ).fetchone()
        except sqlite3.Error as e:
            raise RecordStoreError(f"Insert into {table} failed: {e}") from e
        return dict(row) if row is not None else {}

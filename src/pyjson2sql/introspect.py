"""SQLite schema introspection.

Every table name is checked against ``sqlite_master`` before use, and the
pragma table-valued functions are queried with bound parameters, so no
caller-supplied name is interpolated into introspection statements.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pyjson2sql._errors import (
    ERR_MSG_DATABASE_UNAVAILABLE,
    ERR_MSG_TABLE_NOT_FOUND,
    SchemaError,
)
from pyjson2sql._sql import validate_identifier
from pyjson2sql.schema import ColumnMetadata, TableInfo

logger = logging.getLogger(__name__)


@runtime_checkable
class SQLiteConnection(Protocol):
    """Minimal connection protocol for SQLite."""

    def execute(self, query: str, params: Any = ..., /) -> Any: ...


def connect(db_path: str | Path) -> sqlite3.Connection:
    """Open an existing database in manual transaction mode.

    A missing file is an error; no database is created.

    Raises:
        SchemaError: If the database cannot be opened.
    """
    uri = Path(db_path).resolve().as_uri() + "?mode=rw"
    try:
        return sqlite3.connect(uri, uri=True, isolation_level=None)
    except sqlite3.Error as e:
        raise SchemaError(
            ERR_MSG_DATABASE_UNAVAILABLE,
            f"sqlite3.connect({db_path!r}) failed: {e}",
            wrapped=e,
        ) from e


def list_tables(conn: SQLiteConnection) -> list[str]:
    """Return user table names, excluding SQLite internal tables."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master "
        "WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
    )
    return [str(row[0]) for row in cursor.fetchall()]


def require_table(conn: SQLiteConnection, table: str) -> None:
    """Check ``table`` against the catalog.

    Raises:
        SchemaError: If the table does not exist.
    """
    validate_identifier(table, "table name")
    cursor = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
        (table,),
    )
    if cursor.fetchone() is None:
        raise SchemaError(
            ERR_MSG_TABLE_NOT_FOUND,
            f"table {table!r} not present in sqlite_master",
        )


def table_columns(conn: SQLiteConnection, table: str) -> list[ColumnMetadata]:
    """Read column metadata in declaration order.

    Raises:
        SchemaError: If the table is unknown or has no columns.
    """
    require_table(conn, table)
    cursor = conn.execute(
        'SELECT name, type, "notnull", dflt_value, pk '
        "FROM pragma_table_info(?) ORDER BY cid",
        (table,),
    )
    rows = cursor.fetchall()
    if not rows:
        raise SchemaError(
            ERR_MSG_TABLE_NOT_FOUND,
            f"pragma_table_info({table!r}) returned no rows",
        )

    columns = [
        ColumnMetadata(
            name=str(name),
            type=str(col_type or ""),
            not_null=bool(not_null),
            primary_key=bool(pk),
            default_value=None if default is None else str(default),
        )
        for name, col_type, not_null, default, pk in rows
    ]
    logger.debug("table %r has %d columns", table, len(columns))
    return columns


def unique_constraints(conn: SQLiteConnection, table: str) -> list[list[str]]:
    """Return the member columns of each unique index, in index order."""
    require_table(conn, table)
    cursor = conn.execute(
        'SELECT name FROM pragma_index_list(?) WHERE "unique" = 1 ORDER BY seq',
        (table,),
    )
    constraints: list[list[str]] = []
    for (index_name,) in cursor.fetchall():
        info = conn.execute(
            "SELECT name FROM pragma_index_info(?) ORDER BY seqno",
            (index_name,),
        )
        members = [str(row[0]) for row in info.fetchall() if row[0] is not None]
        if members:
            constraints.append(members)
    return constraints


def unique_columns(conn: SQLiteConnection, table: str) -> set[str]:
    """Return every column participating in at least one unique index."""
    return {name for members in unique_constraints(conn, table) for name in members}


def describe(conn: SQLiteConnection, table: str) -> TableInfo:
    """Collect columns and unique constraints for ``table``."""
    try:
        columns = table_columns(conn, table)
        constraints = unique_constraints(conn, table)
    except sqlite3.Error as e:
        raise SchemaError(
            "schema inspection failed",
            f"introspecting {table!r} raised {e}",
            wrapped=e,
        ) from e
    logger.info(
        "table %r: %d columns, %d unique constraints",
        table,
        len(columns),
        len(constraints),
    )
    return TableInfo(columns=columns, unique_constraints=constraints)

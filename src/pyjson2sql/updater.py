"""Transactional reconciliation of existing rows from JSON records."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from typing import Any

from pyjson2sql import introspect
from pyjson2sql._errors import (
    ERR_MSG_COLUMN_NOT_FOUND,
    ERR_MSG_KEY_NOT_MAPPED,
    ConfigurationError,
    RowError,
    SchemaError,
)
from pyjson2sql._sql import build_count, build_update, to_sql_value
from pyjson2sql._transaction import transaction
from pyjson2sql.document import load_records
from pyjson2sql.progress import (
    CancellationToken,
    Phase,
    ProgressRecord,
    ProgressSink,
    ProgressTracker,
)
from pyjson2sql.synthesis import map_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateConfig:
    """Configuration of one update operation."""

    json_path: str
    db_path: str
    root_expression: str
    table: str
    key_column: str
    update_columns: list[str]
    mapping: dict[str, str]
    dry_run: bool = False


class RowNotFoundError(RowError):
    """Raised when no row matches a record's key."""


def check_key_mapped(config: UpdateConfig) -> None:
    """Require the key column to be the target of a mapping rule.

    Raises:
        ConfigurationError: If no rule maps to ``config.key_column``.
    """
    if config.key_column not in config.mapping.values():
        raise ConfigurationError(
            ERR_MSG_KEY_NOT_MAPPED,
            f"key column {config.key_column!r} is not among mapping targets "
            f"{sorted(set(config.mapping.values()))}",
        )
    if not config.update_columns:
        raise ConfigurationError(
            "no columns to update",
            "update_columns is empty",
        )


def check_columns(conn: sqlite3.Connection, config: UpdateConfig) -> None:
    """Verify the table, key column and update columns exist.

    Raises:
        SchemaError: On the first missing table or column.
    """
    try:
        columns = {c.name for c in introspect.table_columns(conn, config.table)}
    except sqlite3.Error as e:
        raise SchemaError(
            "schema inspection failed",
            f"introspecting {config.table!r} raised {e}",
            wrapped=e,
        ) from e

    if config.key_column not in columns:
        raise SchemaError(
            ERR_MSG_COLUMN_NOT_FOUND,
            f"key column {config.key_column!r} not in {config.table!r}",
        )
    missing = [c for c in config.update_columns if c not in columns]
    if missing:
        raise SchemaError(
            ERR_MSG_COLUMN_NOT_FOUND,
            f"update columns {missing} not in {config.table!r}",
        )


def _update_row(
    conn: sqlite3.Connection,
    count_sql: str,
    record: Any,
    index: int,
    config: UpdateConfig,
) -> None:
    values = map_record(record, config.mapping)

    key_value = values.get(config.key_column)
    if key_value is None:
        raise RowError(
            "key value missing",
            f"record {index}: no value for key column {config.key_column!r}",
        )
    key_param = to_sql_value(key_value)

    try:
        (count,) = conn.execute(count_sql, (key_param,)).fetchone()
    except (sqlite3.Error, OverflowError) as e:
        raise RowError("existence check failed", f"record {index}: {e}", wrapped=e) from e
    if count == 0:
        raise RowNotFoundError(
            "row not found",
            f"record {index}: no row with {config.key_column} = {key_value!r}",
        )

    present = [c for c in config.update_columns if values.get(c) is not None]
    if not present:
        raise RowError(
            "nothing to update",
            f"record {index}: none of {config.update_columns} have a mapped value",
        )

    sql = build_update(config.table, present, config.key_column)
    params = [to_sql_value(values[c]) for c in present] + [key_param]
    try:
        cursor = conn.execute(sql, params)
    except (sqlite3.Error, OverflowError) as e:
        raise RowError("update failed", f"record {index}: {e}", wrapped=e) from e
    if cursor.rowcount == 0:
        raise RowError(
            "no row updated",
            f"record {index}: UPDATE matched no row for {config.key_column} = {key_value!r}",
        )


def update_records(
    config: UpdateConfig,
    progress: ProgressSink | None = None,
    cancel_token: CancellationToken | None = None,
) -> ProgressRecord:
    """Update rows of ``config.table`` keyed by ``config.key_column``.

    Only direct mapping applies; defaults, forced values and templates are
    not used. Records whose key is missing or matches no row, or which carry
    no value for any update column, are counted as failed.

    Returns:
        The final progress snapshot.

    Raises:
        ConfigurationError: If the key column is not mapped; raised before
            the document is read or the database is opened.
        DocumentReadError, DocumentParseError, PathError: Before any database
            access.
        SchemaError: If the table, key column or an update column is missing.
        CommitError: If the commit fails; no changes were applied.
        OperationCancelledError: If ``cancel_token`` is cancelled.
    """
    check_key_mapped(config)
    records = load_records(config.json_path, config.root_expression)
    tracker = ProgressTracker(len(records), progress)
    tracker.emit(Phase.PREPARING, "preparing")

    if config.dry_run:
        logger.info("dry run: %d records would update %r", len(records), config.table)
        return tracker.emit(Phase.DONE, "simulation complete (dry run)")

    with closing(introspect.connect(config.db_path)) as conn:
        tracker.emit(Phase.ANALYZING_SCHEMA, "checking table and columns")
        check_columns(conn, config)
        count_sql = build_count(config.table, config.key_column)

        with transaction(conn, tracker, f"update of {config.table!r}"):
            tracker.emit(Phase.UPDATING, "updating records")
            for index, record in enumerate(records):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                try:
                    _update_row(conn, count_sql, record, index, config)
                except RowNotFoundError as e:
                    logger.warning("record %d skipped: %s", index, e.internal())
                    tracker.fail(not_found=True)
                except RowError as e:
                    logger.warning("record %d not updated: %s", index, e.internal())
                    tracker.fail()
                else:
                    tracker.succeed()

    r = tracker.record
    logger.info(
        "update of %r done: %d succeeded, %d failed, %d not found",
        config.table,
        r.succeeded,
        r.failed,
        r.not_found,
    )
    return tracker.emit(
        Phase.DONE,
        f"update complete. succeeded: {r.succeeded}, failed: {r.failed}, "
        f"not found: {r.not_found}",
    )

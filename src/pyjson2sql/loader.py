"""Transactional batch insert of JSON records into a SQLite table."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass, field
from typing import Any

from pyjson2sql import introspect
from pyjson2sql._errors import (
    ERR_MSG_NOT_NULL_UNCOVERED,
    ConfigurationError,
    RowError,
    SchemaError,
)
from pyjson2sql._sql import build_insert, to_sql_value
from pyjson2sql._transaction import transaction
from pyjson2sql.document import load_records
from pyjson2sql.progress import (
    CancellationToken,
    Phase,
    ProgressRecord,
    ProgressSink,
    ProgressTracker,
)
from pyjson2sql.schema import TableInfo
from pyjson2sql.synthesis import Overrides, required_columns, synthesize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportConfig:
    """Configuration of one import operation."""

    json_path: str
    db_path: str
    root_expression: str
    table: str
    mapping: dict[str, str]
    defaults: dict[str, Any] | None = None
    forced: dict[str, Any] | None = None
    dynamic_templates: dict[str, str] | None = None
    limit: int | None = None
    offset: int | None = None
    dry_run: bool = False

    @property
    def overrides(self) -> Overrides:
        return Overrides(
            defaults=dict(self.defaults or {}),
            forced=dict(self.forced or {}),
            dynamic_templates=dict(self.dynamic_templates or {}),
        )


@dataclass(frozen=True)
class InsertPlan:
    """Target columns and statement for an import, fixed before the transaction."""

    table: TableInfo
    columns: list[str]
    sql: str
    unique_columns: set[str] = field(default_factory=set)


def _validate_config(config: ImportConfig) -> None:
    for name in ("offset", "limit"):
        value = getattr(config, name)
        if value is not None and value < 0:
            raise ConfigurationError(
                f"{name} cannot be negative",
                f"{name}={value!r}",
            )


def plan_insert(table: TableInfo, config: ImportConfig) -> InsertPlan:
    """Compute the insert column list and check NOT NULL coverage.

    Target columns are the mapped, defaulted, forced and templated columns
    that exist on the table, in table column order.

    Raises:
        SchemaError: If a required column has no value source.
    """
    wanted = set(config.mapping.values()) | set(config.overrides.columns)
    ignored = sorted(c for c in wanted if c not in table)
    if ignored:
        logger.warning("ignoring columns absent from %r: %s", config.table, ", ".join(ignored))

    columns = [name for name in table.column_names if name in wanted]
    missing = [name for name in required_columns(table.columns) if name not in wanted]
    if missing:
        raise SchemaError(
            ERR_MSG_NOT_NULL_UNCOVERED,
            f"columns {missing} of {config.table!r} are NOT NULL without default "
            "and are not mapped, defaulted, forced or templated",
        )
    if not columns:
        raise SchemaError(
            "no mapped column exists on the table",
            f"none of {sorted(wanted)} are columns of {config.table!r}",
        )

    return InsertPlan(
        table=table,
        columns=columns,
        sql=build_insert(config.table, columns),
        unique_columns=table.unique_columns,
    )


def _insert_row(
    conn: sqlite3.Connection,
    plan: InsertPlan,
    record: Any,
    index: int,
    config: ImportConfig,
    overrides: Overrides,
) -> None:
    values = synthesize(
        record,
        index,
        config.mapping,
        overrides,
        table=plan.table,
        unique_columns=plan.unique_columns,
    )
    params = [to_sql_value(values.get(c)) for c in plan.columns]
    try:
        conn.execute(plan.sql, params)
    except (sqlite3.Error, OverflowError) as e:
        raise RowError(
            "insert failed",
            f"record {index}: {e}",
            wrapped=e,
        ) from e


def import_records(
    config: ImportConfig,
    progress: ProgressSink | None = None,
    cancel_token: CancellationToken | None = None,
) -> ProgressRecord:
    """Insert the records of ``config.json_path`` into ``config.table``.

    All inserts run inside one transaction. A failing row is counted and
    logged and does not stop the batch; the counts reported before the
    commit are attempted counts.

    Returns:
        The final progress snapshot.

    Raises:
        DocumentReadError, DocumentParseError, PathError: Before any database
            access.
        SchemaError: If the table cannot hold the mapped records.
        CommitError: If the commit fails; no changes were applied.
        OperationCancelledError: If ``cancel_token`` is cancelled.
    """
    _validate_config(config)
    records = load_records(
        config.json_path,
        config.root_expression,
        offset=config.offset,
        limit=config.limit,
    )
    tracker = ProgressTracker(len(records), progress)
    tracker.emit(Phase.PREPARING, "preparing")

    if config.dry_run:
        logger.info("dry run: %d records would be inserted into %r", len(records), config.table)
        return tracker.emit(Phase.DONE, "simulation complete (dry run)")

    with closing(introspect.connect(config.db_path)) as conn:
        tracker.emit(Phase.ANALYZING_SCHEMA, "analyzing table structure")
        table = introspect.describe(conn, config.table)
        plan = plan_insert(table, config)

        tracker.emit(Phase.PREPARING_STATEMENT, "preparing insert")
        logger.debug("insert statement: %s", plan.sql)
        overrides = config.overrides

        with transaction(conn, tracker, f"import into {config.table!r}"):
            tracker.emit(Phase.INSERTING, "inserting records")
            for index, record in enumerate(records):
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                try:
                    _insert_row(conn, plan, record, index, config, overrides)
                except RowError as e:
                    logger.warning("record %d not inserted: %s", index, e.internal())
                    tracker.fail()
                else:
                    tracker.succeed()

    r = tracker.record
    logger.info(
        "import into %r done: %d succeeded, %d failed", config.table, r.succeeded, r.failed
    )
    return tracker.emit(
        Phase.DONE, f"import complete. succeeded: {r.succeeded}, failed: {r.failed}"
    )


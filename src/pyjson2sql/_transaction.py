"""Single-transaction scope shared by the batch operators."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager

from pyjson2sql._errors import (
    ERR_MSG_COMMIT_FAILED,
    CommitError,
    OperationCancelledError,
)
from pyjson2sql.progress import Phase, ProgressTracker

logger = logging.getLogger(__name__)


@contextmanager
def transaction(
    conn: sqlite3.Connection,
    tracker: ProgressTracker,
    label: str,
) -> Iterator[None]:
    """Run the body in one transaction and commit when it completes.

    Cancellation and any other exception roll the transaction back. A failed
    commit is rolled back and surfaces as :class:`CommitError`.
    """
    conn.execute("BEGIN")
    try:
        yield
        tracker.emit(Phase.COMMITTING, "committing")
        commit(conn, tracker)
    except OperationCancelledError:
        conn.execute("ROLLBACK")
        logger.warning("%s cancelled; rolled back", label)
        tracker.emit(Phase.CANCELLED, "cancelled; no changes applied")
        raise
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise


def commit(conn: sqlite3.Connection, tracker: ProgressTracker) -> None:
    """Commit, or roll back and raise :class:`CommitError`."""
    try:
        conn.execute("COMMIT")
    except sqlite3.Error as e:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        logger.error("commit failed: %s", e)
        tracker.emit(Phase.FAILED, ERR_MSG_COMMIT_FAILED)
        raise CommitError(
            ERR_MSG_COMMIT_FAILED,
            f"COMMIT raised {e}; {tracker.record.succeeded} attempted rows discarded",
            wrapped=e,
        ) from e

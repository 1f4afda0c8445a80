"""Progress snapshots, operation phases and cancellation."""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any

from pyjson2sql._constants import PROGRESS_INTERVAL
from pyjson2sql._errors import ERR_MSG_CANCELLED, OperationCancelledError

logger = logging.getLogger(__name__)


class Phase(enum.StrEnum):
    PREPARING = "preparing"
    ANALYZING_SCHEMA = "analyzing_schema"
    PREPARING_STATEMENT = "preparing_statement"
    INSERTING = "inserting"
    UPDATING = "updating"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ProgressRecord:
    """Immutable progress snapshot handed to progress sinks.

    Counts are attempted counts: ``succeeded`` reflects statements that
    executed, not rows that were durably committed.
    """

    total: int
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    not_found: int = 0
    phase: Phase = Phase.PREPARING
    detail: str = ""

    @property
    def status(self) -> str:
        return self.detail or str(self.phase)

    def as_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "status": self.status,
            "phase": str(self.phase),
        }


ProgressSink = Callable[[ProgressRecord], None]
"""Callback receiving progress snapshots on the worker thread."""


class CancellationToken:
    """Cooperative cancellation flag checked between records."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelledError(ERR_MSG_CANCELLED)


class ProgressTracker:
    """Owns the counters of one operation and publishes snapshots.

    Only the operation's worker mutates the tracker. Sinks receive frozen
    copies; a failing sink is logged and otherwise ignored.
    """

    def __init__(self, total: int, sink: ProgressSink | None = None) -> None:
        self._record = ProgressRecord(total=total)
        self._sink = sink

    @property
    def record(self) -> ProgressRecord:
        return self._record

    def emit(self, phase: Phase | None = None, detail: str = "") -> ProgressRecord:
        self._record = replace(
            self._record,
            phase=phase if phase is not None else self._record.phase,
            detail=detail,
        )
        logger.debug("progress %s", self._record.as_dict())
        if self._sink is not None:
            try:
                self._sink(self._record)
            except Exception:
                logger.exception("progress sink raised; continuing")
        return self._record

    def succeed(self) -> None:
        self._record = replace(
            self._record,
            processed=self._record.processed + 1,
            succeeded=self._record.succeeded + 1,
        )
        self._maybe_emit()

    def fail(self, *, not_found: bool = False) -> None:
        self._record = replace(
            self._record,
            processed=self._record.processed + 1,
            failed=self._record.failed + 1,
            not_found=self._record.not_found + (1 if not_found else 0),
        )
        self._maybe_emit()

    def _maybe_emit(self) -> None:
        r = self._record
        if r.processed % PROGRESS_INTERVAL == 0 or r.processed == r.total:
            self.emit(detail=f"{r.processed}/{r.total} records processed")

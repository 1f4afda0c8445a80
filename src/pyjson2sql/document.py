"""Reading JSON documents from disk."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pyjson2sql._errors import (
    ERR_MSG_DOCUMENT_MALFORMED,
    ERR_MSG_DOCUMENT_UNREADABLE,
    DocumentParseError,
    DocumentReadError,
)
from pyjson2sql.paths import resolve_paths

logger = logging.getLogger(__name__)


def load_document(json_path: str | Path) -> Any:
    """Read and parse the JSON document at ``json_path``.

    Raises:
        DocumentReadError: If the file cannot be read.
        DocumentParseError: If the content is not valid JSON.
    """
    path = Path(json_path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentReadError(
            ERR_MSG_DOCUMENT_UNREADABLE,
            f"reading {str(path)!r} failed: {e}",
            wrapped=e,
        ) from e

    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentParseError(
            ERR_MSG_DOCUMENT_MALFORMED,
            f"{str(path)!r} line {e.lineno} column {e.colno}: {e.msg}",
            wrapped=e,
        ) from e

    logger.debug("loaded %s (%d bytes)", path, len(text))
    return document


def select_window(records: list[Any], offset: int | None, limit: int | None) -> list[Any]:
    """Apply ``offset`` then ``limit`` to extracted records.

    An offset at or past the end yields no records. A limit of zero, or one
    at least as large as what remains, keeps everything.
    """
    if offset:
        records = records[offset:]
    if limit and limit < len(records):
        records = records[:limit]
    return records


def load_records(
    json_path: str | Path,
    root_expression: str,
    *,
    offset: int | None = None,
    limit: int | None = None,
) -> list[Any]:
    """Load a document and extract the records under ``root_expression``."""
    document = load_document(json_path)
    records = resolve_paths(document, root_expression)
    logger.debug("%d records at root %r", len(records), root_expression)
    return select_window(records, offset, limit)


def sample_records(
    json_path: str | Path,
    root_expression: str = "",
    limit: int | None = None,
) -> list[Any]:
    """Return up to ``limit`` records found at ``root_expression``."""
    return load_records(json_path, root_expression, limit=limit)

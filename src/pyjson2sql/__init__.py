"""pyjson2sql - Load and reconcile JSON documents into SQLite tables."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyjson2sql")
except PackageNotFoundError:  # running from a source tree
    __version__ = "0.0.0.dev0"

import sqlite3
from contextlib import closing
from pathlib import Path

from pyjson2sql import introspect as _introspect
from pyjson2sql._errors import (
    CommitError,
    ConfigurationError,
    DocumentParseError,
    DocumentReadError,
    InvalidIdentifierError,
    Json2SqlError,
    OperationCancelledError,
    PathError,
    RowError,
    SchemaError,
)
from pyjson2sql.discovery import (
    DiscoveryComplete,
    DiscoverySink,
    DiscoveryStream,
    PathDiscovered,
    PathInfo,
    stream_paths,
)
from pyjson2sql.discovery import discover_paths as _discover_document
from pyjson2sql.document import load_document, sample_records
from pyjson2sql.loader import ImportConfig, import_records
from pyjson2sql.paths import get_value_by_path, resolve_paths
from pyjson2sql.progress import CancellationToken, Phase, ProgressRecord
from pyjson2sql.schema import ColumnMetadata, TableInfo
from pyjson2sql.updater import UpdateConfig, update_records

__all__ = [
    "describe_table",
    "discover_paths",
    "get_value_by_path",
    "import_records",
    "list_tables",
    "resolve_paths",
    "sample_records",
    "stream_discovery",
    "update_records",
    "CancellationToken",
    "ColumnMetadata",
    "DiscoveryComplete",
    "DiscoveryStream",
    "ImportConfig",
    "PathDiscovered",
    "PathInfo",
    "Phase",
    "ProgressRecord",
    "TableInfo",
    "UpdateConfig",
    "CommitError",
    "ConfigurationError",
    "DocumentParseError",
    "DocumentReadError",
    "InvalidIdentifierError",
    "Json2SqlError",
    "OperationCancelledError",
    "PathError",
    "RowError",
    "SchemaError",
]


def list_tables(db_path: str | Path) -> list[str]:
    """List the user tables of the SQLite database at ``db_path``.

    Raises:
        SchemaError: If the database cannot be read.
    """
    with closing(_introspect.connect(str(db_path))) as conn:
        try:
            return _introspect.list_tables(conn)
        except sqlite3.Error as e:
            raise SchemaError(
                "database could not be read",
                f"listing tables of {str(db_path)!r} raised {e}",
                wrapped=e,
            ) from e


def describe_table(db_path: str | Path, table: str) -> TableInfo:
    """Return the columns and unique constraints of ``table``.

    Raises:
        SchemaError: If the table does not exist or cannot be inspected.
    """
    with closing(_introspect.connect(str(db_path))) as conn:
        return _introspect.describe(conn, table)


def discover_paths(
    json_path: str | Path,
    cancel_token: CancellationToken | None = None,
) -> list[PathInfo]:
    """Enumerate the distinct paths of the JSON document at ``json_path``."""
    return _discover_document(load_document(json_path), cancel_token)


def stream_discovery(
    json_path: str | Path,
    sink: DiscoverySink,
    cancel_token: CancellationToken | None = None,
) -> DiscoveryStream:
    """Start streaming discovery of ``json_path``.

    The document is read and parsed on the calling thread, so read and parse
    errors are raised here. Events are delivered to ``sink`` from a worker
    thread; call :meth:`DiscoveryStream.join` to wait for completion.
    """
    return stream_paths(load_document(json_path), sink, cancel_token)


"""Identifier validation, statement building and value coercion for SQLite."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from pyjson2sql._constants import MAX_IDENTIFIER_LENGTH
from pyjson2sql._errors import InvalidIdentifierError

SQLValue = int | float | str | None
"""Storage representations accepted by the driver."""


def validate_identifier(name: str, kind: str = "identifier") -> None:
    """Reject identifiers that can never name a catalog object.

    Catalog membership is checked separately; this guards the shape only.
    """
    if not isinstance(name, str) or not name:
        raise InvalidIdentifierError(
            f"{kind} cannot be empty",
            f"empty {kind} provided: {name!r}",
        )
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifierError(
            f"{kind} too long",
            f"{kind} {name[:40]!r}... exceeds {MAX_IDENTIFIER_LENGTH} characters",
        )
    if "\x00" in name:
        raise InvalidIdentifierError(
            f"{kind} cannot contain null bytes",
            f"null byte found in {kind}: {name!r}",
        )


def quote_identifier(name: str) -> str:
    """Quote a catalog-checked identifier for embedding in statement text."""
    validate_identifier(name)
    return '"' + name.replace('"', '""') + '"'


def build_insert(table: str, columns: Sequence[str]) -> str:
    cols = ", ".join(quote_identifier(c) for c in columns)
    placeholders = ", ".join("?" for _ in columns)
    return f"INSERT INTO {quote_identifier(table)} ({cols}) VALUES ({placeholders})"


def build_update(table: str, columns: Sequence[str], key_column: str) -> str:
    assignments = ", ".join(f"{quote_identifier(c)} = ?" for c in columns)
    return (
        f"UPDATE {quote_identifier(table)} SET {assignments} "
        f"WHERE {quote_identifier(key_column)} = ?"
    )


def build_count(table: str, key_column: str) -> str:
    return (
        f"SELECT COUNT(*) FROM {quote_identifier(table)} "
        f"WHERE {quote_identifier(key_column)} = ?"
    )


def to_sql_value(value: Any) -> SQLValue:
    """Coerce a JSON value to its storage representation.

    Booleans become 0/1; arrays and objects are serialized to JSON text.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float, str)):
        return value
    return json.dumps(value, ensure_ascii=False)

"""Mapping and value synthesis for a single source record.

The pipeline runs in a fixed order, each stage overriding the previous one
for the same column:

1. mapping rules (path expression -> column)
2. defaults, applied only where the column has no value
3. forced values, always applied
4. dynamic templates (``{{INDEX}}``, ``{{UUID}}``, ``{{TIMESTAMP}}``)
5. synthetic backfill for NOT NULL columns of unique indexes

The literal ``{{DYNAMIC}}`` in defaults or forced values requests a synthetic
value derived from the column's declared type and name.
"""

from __future__ import annotations

import random
import time
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pyjson2sql._constants import (
    DYNAMIC_MARKER,
    INDEX_PLACEHOLDER,
    TIMESTAMP_PLACEHOLDER,
    UUID_PLACEHOLDER,
)
from pyjson2sql.paths import get_value_by_path
from pyjson2sql.schema import ColumnMetadata, TableInfo


@dataclass(frozen=True)
class Overrides:
    """Column overrides applied after mapping."""

    defaults: dict[str, Any] = field(default_factory=dict)
    forced: dict[str, Any] = field(default_factory=dict)
    dynamic_templates: dict[str, str] = field(default_factory=dict)

    @property
    def columns(self) -> list[str]:
        seen: dict[str, None] = {}
        for source in (self.defaults, self.forced, self.dynamic_templates):
            for name in source:
                seen.setdefault(name, None)
        return list(seen)


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


def generate_dynamic_value(
    data_type: str,
    column_name: str,
    index: int,
    rng: random.Random | None = None,
) -> Any:
    """Generate a placeholder value for ``column_name`` at record ``index``.

    Integer columns get ``index + 1000``. Text columns get a value chosen by
    name: identifiers and codes get an uppercase prefix with a timestamp,
    and email, name, title and description columns get readable patterns.
    Real columns get a value in [0, 100), date/time columns today's date
    and boolean columns alternate by index parity.
    """
    rng = rng or random
    data_type_lower = data_type.lower()
    name_lower = column_name.lower()

    if "int" in data_type_lower:
        return index + 1000

    if "text" in data_type_lower or "char" in data_type_lower:
        if "id" in name_lower or "code" in name_lower:
            return f"{column_name[:3].upper()}_{epoch_millis()}_{index}"
        if "email" in name_lower:
            return f"user{index}@example.com"
        if "name" in name_lower:
            return f"Name_{index}"
        if "title" in name_lower:
            return f"Title {index}"
        if "description" in name_lower:
            return f"Description for item {index}"
        return f"{column_name}_{rng.getrandbits(32):x}_{index}"

    if any(t in data_type_lower for t in ("real", "float", "double")):
        return rng.random() * 100.0

    if "date" in data_type_lower or "time" in data_type_lower:
        return date.today().strftime("%Y-%m-%d")

    if "bool" in data_type_lower:
        return index % 2 == 0

    return f"{column_name}_{index}"


def render_template(template: str, index: int) -> str:
    """Substitute the dynamic-template placeholders in ``template``."""
    value = template
    if INDEX_PLACEHOLDER in value:
        value = value.replace(INDEX_PLACEHOLDER, str(index))
    if UUID_PLACEHOLDER in value:
        value = value.replace(UUID_PLACEHOLDER, str(uuid.uuid4()))
    if TIMESTAMP_PLACEHOLDER in value:
        value = value.replace(TIMESTAMP_PLACEHOLDER, str(epoch_millis()))
    return value


def map_record(record: Any, mapping: Mapping[str, str]) -> dict[str, Any]:
    """Apply mapping rules; absent paths map their column to ``None``.

    When several rules target one column, the last rule in iteration order
    wins.
    """
    return {column: get_value_by_path(record, path) for path, column in mapping.items()}


def _literal_or_dynamic(
    value: Any,
    column_name: str,
    index: int,
    table: TableInfo | None,
) -> Any:
    if value != DYNAMIC_MARKER:
        return value
    column = table.find_column(column_name) if table is not None else None
    if column is None:
        return f"{column_name}_{index}"
    return generate_dynamic_value(column.type, column_name, index)


def synthesize(
    record: Any,
    index: int,
    mapping: Mapping[str, str],
    overrides: Overrides | None = None,
    table: TableInfo | None = None,
    unique_columns: Iterable[str] | None = None,
) -> dict[str, Any]:
    """Build the column -> value record for one source object.

    Args:
        record: The source JSON object.
        index: Zero-based position of the record in the processed batch.
        mapping: Path expression -> column rules.
        overrides: Defaults, forced values and dynamic templates.
        table: Table metadata used for ``{{DYNAMIC}}`` and backfill.
        unique_columns: Columns of unique indexes; defaults to those of
            ``table``.

    Returns:
        Column values; ``None`` means the column has no value.
    """
    overrides = overrides or Overrides()
    values = map_record(record, mapping)

    for column, literal in overrides.defaults.items():
        if values.get(column) is None:
            values[column] = _literal_or_dynamic(literal, column, index, table)

    for column, literal in overrides.forced.items():
        values[column] = _literal_or_dynamic(literal, column, index, table)

    for column, template in overrides.dynamic_templates.items():
        values[column] = render_template(str(template), index)

    if table is not None:
        candidates = table.unique_columns if unique_columns is None else unique_columns
        for name in candidates:
            column = table.find_column(name)
            if column is None or not column.not_null:
                continue
            if values.get(name) is None:
                values[name] = generate_dynamic_value(column.type, name, index)

    return values


def required_columns(columns: Iterable[ColumnMetadata]) -> list[str]:
    return [c.name for c in columns if c.required]

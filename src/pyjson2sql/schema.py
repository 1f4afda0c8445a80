"""Table metadata types used by the loader and updater."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ColumnMetadata:
    """Metadata for a single table column."""

    name: str
    type: str = ""
    not_null: bool = False
    primary_key: bool = False
    default_value: str | None = None

    @property
    def required(self) -> bool:
        """True when an insert must supply a value for this column."""
        return self.not_null and not self.primary_key and self.default_value is None


@dataclass(frozen=True)
class TableInfo:
    """Columns and unique constraints of a table, with O(1) column lookup."""

    columns: list[ColumnMetadata]
    unique_constraints: list[list[str]] = field(default_factory=list)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_index", {c.name: c for c in self.columns}
        )

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def unique_columns(self) -> set[str]:
        return {name for constraint in self.unique_constraints for name in constraint}

    def find_column(self, name: str) -> ColumnMetadata | None:
        return self._index.get(name)  # type: ignore[attr-defined]

    def __contains__(self, name: object) -> bool:
        return name in self._index  # type: ignore[attr-defined]

    def __len__(self) -> int:
        return len(self.columns)

    def as_dict(self) -> dict:
        return {
            "columns": [
                {
                    "name": c.name,
                    "data_type": c.type,
                    "not_null": c.not_null,
                    "primary_key": c.primary_key,
                    "default_value": c.default_value,
                }
                for c in self.columns
            ],
            "unique_constraints": [list(u) for u in self.unique_constraints],
        }

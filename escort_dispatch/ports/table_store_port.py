"""Table store port — abstract interface for the row-oriented external store.

Core modules depend on these protocols, never on a specific storage engine.
Implementations raise ``PersistenceError`` on any read/write failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


@dataclass
class TableSnapshot:
    """All rows of one named table plus its header → column index map."""

    name: str
    headers: list[str] = field(default_factory=list)
    rows: list[list[Any]] = field(default_factory=list)
    column_index: dict[str, int] = field(default_factory=dict)

    @classmethod
    def build(cls, name: str, headers: list[str], rows: list[list[Any]]) -> TableSnapshot:
        return cls(
            name=name,
            headers=list(headers),
            rows=rows,
            column_index={h: i for i, h in enumerate(headers)},
        )

    def value(self, row: list[Any], column: str, default: Any = None) -> Any:
        """Return the cell for ``column`` in ``row``, or ``default`` if absent."""
        idx = self.column_index.get(column)
        if idx is None or idx >= len(row):
            return default
        return row[idx]

    def blank_row(self) -> list[Any]:
        return [""] * len(self.headers)

    def set_value(self, row: list[Any], column: str, value: Any) -> None:
        idx = self.column_index.get(column)
        if idx is not None:
            row[idx] = value


class TableStorePort(Protocol):
    """Read-all / append / delete / update-cell over named tables.

    ``row_index`` is the 1-based position of a data row (header excluded).
    Callers deleting several rows must go highest index first.
    """

    def read_all(self, table: str) -> TableSnapshot: ...

    def append_row(self, table: str, row: list[Any]) -> None: ...

    def delete_row(self, table: str, row_index: int) -> None: ...

    def update_cell(self, table: str, row_index: int, col_index: int, value: Any) -> None: ...


class PropertyStorePort(Protocol):
    """String key → string value store for process-wide state."""

    def get_property(self, key: str) -> str | None: ...

    def set_property(self, key: str, value: str) -> None: ...

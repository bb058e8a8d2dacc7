"""
Escort Dispatch — SQLite table and property stores.

A generic header-indexed table store: every named table keeps its header
list plus its rows in insertion order, each row a JSON array of cells.
Row positions are 1-based over the data rows (header excluded), the way a
spreadsheet addresses them.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

from escort_dispatch.core.errors import PersistenceError
from escort_dispatch.ports.table_store_port import TableSnapshot

logger = logging.getLogger(__name__)


def _to_cell(value: Any) -> Any:
    """Cells are JSON scalars; dates and times are stored as ISO strings."""
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def _prepare_db_path(db_path: str) -> None:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)


class TableDB:
    """SQLite-backed implementation of TableStorePort."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from escort_dispatch.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        _prepare_db_path(db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Create the header and row tables if they don't exist."""
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS table_headers (
                        name     TEXT PRIMARY KEY,
                        headers  TEXT NOT NULL
                    )
                """)
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS table_rows (
                        id          INTEGER PRIMARY KEY AUTOINCREMENT,
                        table_name  TEXT    NOT NULL,
                        cells       TEXT    NOT NULL
                    )
                """)
                conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_table_rows_name ON table_rows (table_name, id)"
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot initialize table store at {self._db_path}: {exc}") from exc
        logger.debug("Table store initialized at %s", self._db_path)

    def _headers(self, conn: sqlite3.Connection, table: str) -> list[str]:
        row = conn.execute(
            "SELECT headers FROM table_headers WHERE name = ?", (table,)
        ).fetchone()
        if row is None:
            raise PersistenceError(f'Table "{table}" not found')
        return json.loads(row["headers"])

    def _row_id(self, conn: sqlite3.Connection, table: str, row_index: int) -> int:
        if row_index < 1:
            raise PersistenceError(f"Row index must be >= 1, got {row_index}")
        row = conn.execute(
            "SELECT id FROM table_rows WHERE table_name = ? ORDER BY id LIMIT 1 OFFSET ?",
            (table, row_index - 1),
        ).fetchone()
        if row is None:
            raise PersistenceError(f'Row {row_index} not found in table "{table}"')
        return row["id"]

    def ensure_table(self, table: str, headers: list[str]) -> None:
        """Create ``table`` with ``headers``; add any missing header columns."""
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT headers FROM table_headers WHERE name = ?", (table,)
                ).fetchone()
                if row is None:
                    conn.execute(
                        "INSERT INTO table_headers (name, headers) VALUES (?, ?)",
                        (table, json.dumps(list(headers))),
                    )
                    logger.info("Created table %s with %d columns", table, len(headers))
                    return
                existing = json.loads(row["headers"])
                missing = [h for h in headers if h not in existing]
                if missing:
                    conn.execute(
                        "UPDATE table_headers SET headers = ? WHERE name = ?",
                        (json.dumps(existing + missing), table),
                    )
                    logger.info("Table %s: added columns %s", table, ", ".join(missing))
        except sqlite3.Error as exc:
            raise PersistenceError(f'Cannot create table "{table}": {exc}') from exc

    def read_all(self, table: str) -> TableSnapshot:
        try:
            with self._connect() as conn:
                headers = self._headers(conn, table)
                rows = conn.execute(
                    "SELECT cells FROM table_rows WHERE table_name = ? ORDER BY id",
                    (table,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(f'Cannot read table "{table}": {exc}') from exc

        width = len(headers)
        data: list[list[Any]] = []
        for r in rows:
            cells = json.loads(r["cells"])
            # Rows written before a column was added are padded out
            data.append(cells + [""] * (width - len(cells)))
        return TableSnapshot.build(table, headers, data)

    def append_row(self, table: str, row: list[Any]) -> None:
        try:
            with self._connect() as conn:
                width = len(self._headers(conn, table))
                cells = [_to_cell(v) for v in row[:width]]
                cells += [""] * (width - len(cells))
                conn.execute(
                    "INSERT INTO table_rows (table_name, cells) VALUES (?, ?)",
                    (table, json.dumps(cells)),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f'Cannot append to table "{table}": {exc}') from exc

    def delete_row(self, table: str, row_index: int) -> None:
        try:
            with self._connect() as conn:
                row_id = self._row_id(conn, table, row_index)
                conn.execute("DELETE FROM table_rows WHERE id = ?", (row_id,))
        except sqlite3.Error as exc:
            raise PersistenceError(f'Cannot delete row {row_index} from "{table}": {exc}') from exc

    def update_cell(self, table: str, row_index: int, col_index: int, value: Any) -> None:
        try:
            with self._connect() as conn:
                width = len(self._headers(conn, table))
                if not 0 <= col_index < width:
                    raise PersistenceError(
                        f'Column {col_index} out of range for "{table}" ({width} columns)'
                    )
                row_id = self._row_id(conn, table, row_index)
                cells = json.loads(conn.execute(
                    "SELECT cells FROM table_rows WHERE id = ?", (row_id,)
                ).fetchone()["cells"])
                cells += [""] * (width - len(cells))
                cells[col_index] = _to_cell(value)
                conn.execute(
                    "UPDATE table_rows SET cells = ? WHERE id = ?",
                    (json.dumps(cells), row_id),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(
                f'Cannot update row {row_index} col {col_index} in "{table}": {exc}'
            ) from exc


class PropertyDB:
    """SQLite-backed string key/value store (implements PropertyStorePort)."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from escort_dispatch.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        _prepare_db_path(db_path)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        try:
            with self._connect() as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS properties (
                        key    TEXT PRIMARY KEY,
                        value  TEXT NOT NULL
                    )
                """)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot initialize property store at {self._db_path}: {exc}") from exc

    def get_property(self, key: str) -> str | None:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM properties WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot read property {key!r}: {exc}") from exc
        return None if row is None else row["value"]

    def set_property(self, key: str, value: str) -> None:
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO properties (key, value) VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """,
                    (key, value),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot write property {key!r}: {exc}") from exc
        logger.debug("Property %s updated", key)

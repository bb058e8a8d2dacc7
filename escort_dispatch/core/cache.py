"""
Escort Dispatch — TTL cache with secondary indexes.

Whole-table snapshots are cached with an expiry; point lookups by id, name
or email go through hash indexes built over the cached snapshot. Writers
clear entries explicitly after every mutation. Cache contents are
best-effort: a miss always falls back to a full table read.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class TTLCache:
    """Keyed cache whose entries expire ``timeout`` seconds after ``set``."""

    def __init__(
        self,
        default_timeout: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_timeout = default_timeout
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def set(self, key: str, value: Any, timeout: float | None = None) -> None:
        ttl = self._default_timeout if timeout is None else timeout
        self._entries[key] = (value, self._clock() + ttl)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self.clear(key)
            return None
        return value

    def clear(self, key: str | None = None) -> None:
        """Drop one entry, or everything when no key is given."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None


@dataclass(frozen=True)
class IndexEntry:
    row: list[Any]
    row_index: int          # 1-based data row position


def build_index(
    rows: list[list[Any]], key_extractor: Callable[[list[Any]], Any],
) -> dict[Any, IndexEntry]:
    index: dict[Any, IndexEntry] = {}
    for position, row in enumerate(rows, start=1):
        key = key_extractor(row)
        if key in (None, "") or key in index:
            continue
        index[key] = IndexEntry(row=row, row_index=position)
    return index


class IndexedCache(TTLCache):
    """TTL cache that can index a cached table snapshot for O(1) lookups.

    The cached value for ``data_key`` must expose a ``rows`` list. Indexes
    live only as long as their backing entry: clearing or expiring the
    entry drops every index built over it.
    """

    def __init__(
        self,
        default_timeout: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(default_timeout, clock)
        self._indexes: dict[str, dict[str, dict[Any, IndexEntry]]] = {}

    def set(self, key: str, value: Any, timeout: float | None = None) -> None:
        # A new snapshot makes indexes over the old one stale
        self._indexes.pop(key, None)
        super().set(key, value, timeout)

    def clear(self, key: str | None = None) -> None:
        if key is None:
            self._indexes.clear()
        else:
            self._indexes.pop(key, None)
        super().clear(key)

    def create_index(
        self,
        data_key: str,
        index_key: str,
        key_extractor: Callable[[list[Any]], Any],
        snapshot: Any = None,
    ) -> dict[Any, IndexEntry] | None:
        """Build (or rebuild) an index over the snapshot cached at ``data_key``.

        Rows whose extracted key is empty are skipped; on duplicate keys the
        first row wins. A caller already holding the snapshot passes it in and
        always gets the index back; it is kept only while that snapshot is
        still the cached one. Without a snapshot, returns None when nothing is
        cached for ``data_key``.
        """
        cached = self.get(data_key)
        if snapshot is None:
            snapshot = cached
        if snapshot is None:
            return None

        index = build_index(snapshot.rows, key_extractor)
        if cached is snapshot:
            self._indexes.setdefault(data_key, {})[index_key] = index
            logger.debug("Index %s/%s built with %d keys", data_key, index_key, len(index))
        return index

    def get_index(self, data_key: str, index_key: str) -> dict[Any, IndexEntry] | None:
        """The index over the live cached entry, or None."""
        if self.get(data_key) is None:
            return None
        return self._indexes.get(data_key, {}).get(index_key)

    def has_index(self, data_key: str, index_key: str) -> bool:
        return self.get_index(data_key, index_key) is not None

    def find_by_index(self, data_key: str, index_key: str, value: Any) -> IndexEntry | None:
        """O(1) lookup; None if the entry, the index or the key is missing."""
        index = self.get_index(data_key, index_key)
        if index is None:
            return None
        return index.get(value)

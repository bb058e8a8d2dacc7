"""
Escort Dispatch — Read-through repository.

All reads of the four dispatch tables go through here: snapshots come from
the cache when fresh and from the table store otherwise. Writers call
``invalidate`` after every mutation so the next read sees fresh rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from escort_dispatch.core.request_ids import request_id_key
from escort_dispatch.core.timeutils import parse_date
from escort_dispatch.data.models import (
    ASSIGNMENTS_TABLE,
    AVAILABILITY_TABLE,
    REQUESTS_TABLE,
    RIDERS_TABLE,
    Assignment,
    AvailabilityEntry,
    Request,
    RequestColumns,
    Rider,
    RiderColumns,
    normalize_name,
)

if TYPE_CHECKING:
    from escort_dispatch.core.cache import IndexedCache
    from escort_dispatch.ports.table_store_port import TableSnapshot, TableStorePort

logger = logging.getLogger(__name__)

# Riders and availability change rarely; they live in the long-lived cache
_LONG_LIVED_TABLES = frozenset({RIDERS_TABLE, AVAILABILITY_TABLE})


@dataclass
class AssignmentQuery:
    """Filters for ``find_assignments``; unset fields don't filter."""

    request_id: str | None = None
    rider_name: str | None = None
    event_date: date | str | None = None
    active_only: bool = True


class DispatchRepository:
    """Cached, typed access to the Requests/Riders/Assignments/Availability tables."""

    def __init__(
        self,
        store: TableStorePort,
        cache: IndexedCache,
        long_cache: IndexedCache | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._long_cache = long_cache or cache

    @property
    def store(self) -> TableStorePort:
        return self._store

    def _cache_for(self, table: str) -> IndexedCache:
        return self._long_cache if table in _LONG_LIVED_TABLES else self._cache

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self, table: str, fresh: bool = False) -> TableSnapshot:
        """Return all rows of ``table``, reading the store on a cache miss."""
        cache = self._cache_for(table)
        if not fresh:
            cached = cache.get(table)
            if cached is not None:
                return cached

        snap = self._store.read_all(table)
        cache.set(table, snap)
        logger.debug("Loaded %d rows from %s", len(snap.rows), table)
        return snap

    def invalidate(self, *tables: str) -> None:
        """Drop cached snapshots (and their indexes) for the given tables."""
        for table in tables:
            self._cache_for(table).clear(table)
        logger.debug("Cache invalidated for %s", ", ".join(tables))

    def _lookup(self, table: str, index_key: str, column: str, key: str, normalize):
        snap = self.snapshot(table)
        cache = self._cache_for(table)
        index = cache.get_index(table, index_key) if cache.get(table) is snap else None
        if index is None:
            # Built from the snapshot in hand even if the cache entry is gone
            index = cache.create_index(
                table, index_key,
                lambda row: normalize(snap.value(row, column, "")),
                snapshot=snap,
            )
        return snap, index.get(key)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def get_request(self, request_id: str, fresh: bool = False) -> tuple[Request, int] | None:
        """Return ``(request, row_index)`` or None if the id is unknown."""
        if fresh:
            self.invalidate(REQUESTS_TABLE)
        key = request_id_key(request_id)
        if not key:
            return None
        snap, hit = self._lookup(REQUESTS_TABLE, "id", RequestColumns.ID, key, request_id_key)
        if hit is None:
            return None
        return Request.from_row(hit.row, snap.column_index), hit.row_index

    def request_ids(self, fresh: bool = False) -> list[str]:
        snap = self.snapshot(REQUESTS_TABLE, fresh=fresh)
        ids = (str(snap.value(row, RequestColumns.ID, "") or "").strip() for row in snap.rows)
        return [i for i in ids if i]

    # ------------------------------------------------------------------
    # Riders
    # ------------------------------------------------------------------

    def find_rider(self, identifier: str) -> Rider | None:
        """Look a rider up by name, then by rider id, then by email."""
        for index_key, column, normalize in (
            ("name", RiderColumns.NAME, normalize_name),
            ("id", RiderColumns.ID, lambda v: str(v or "").strip()),
            ("email", RiderColumns.EMAIL, normalize_name),
        ):
            snap, hit = self._lookup(
                RIDERS_TABLE, index_key, column, normalize(identifier), normalize,
            )
            if hit is not None:
                return Rider.from_row(hit.row, snap.column_index)
        return None

    def riders(self) -> list[Rider]:
        snap = self.snapshot(RIDERS_TABLE)
        riders = [Rider.from_row(row, snap.column_index) for row in snap.rows]
        return [r for r in riders if r.name]

    def active_full_time_riders(self) -> list[Rider]:
        return [r for r in self.riders() if r.is_active and not r.part_time]

    # ------------------------------------------------------------------
    # Assignments
    # ------------------------------------------------------------------

    def assignments(self, fresh: bool = False) -> list[Assignment]:
        snap = self.snapshot(ASSIGNMENTS_TABLE, fresh=fresh)
        return [
            Assignment.from_row(row, snap.column_index, row_index=i)
            for i, row in enumerate(snap.rows, start=1)
        ]

    def find_assignments(self, query: AssignmentQuery, fresh: bool = False) -> list[Assignment]:
        """Single entry point for assignment listings, filtered by field presence."""
        request_key = request_id_key(query.request_id) if query.request_id is not None else None
        rider_key = normalize_name(query.rider_name) if query.rider_name is not None else None
        target_date = parse_date(query.event_date) if query.event_date is not None else None
        if query.event_date is not None and target_date is None:
            logger.warning("Unparseable event_date filter %r; no assignments match", query.event_date)
            return []

        result = []
        for a in self.assignments(fresh=fresh):
            if request_key is not None and request_id_key(a.request_id) != request_key:
                continue
            if rider_key is not None and normalize_name(a.rider_name) != rider_key:
                continue
            if target_date is not None and a.event_date != target_date:
                continue
            if query.active_only and not a.is_active:
                continue
            result.append(a)
        return result

    def assignments_for_request(self, request_id: str, fresh: bool = False) -> list[Assignment]:
        """Every row for the request, terminal statuses included."""
        return self.find_assignments(
            AssignmentQuery(request_id=request_id, active_only=False), fresh=fresh,
        )

    def assignments_for_rider_on_date(self, rider_name: str, day: date) -> list[Assignment]:
        """The rider's active assignments on ``day``."""
        return self.find_assignments(AssignmentQuery(rider_name=rider_name, event_date=day))

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def availability_for(self, identifiers: set[str], day: date) -> list[AvailabilityEntry]:
        """Availability entries on ``day`` whose rider key is in ``identifiers``."""
        keys = {normalize_name(i) for i in identifiers if i}
        snap = self.snapshot(AVAILABILITY_TABLE)
        entries = []
        for row in snap.rows:
            entry = AvailabilityEntry.from_row(row, snap.column_index)
            if entry.date == day and normalize_name(entry.rider_id) in keys:
                entries.append(entry)
        return entries

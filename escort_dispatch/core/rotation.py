"""
Escort Dispatch — Rider rotation order.

A single persisted queue of rider names deciding who gets picked next:
the front is the highest priority. Assigning a rider sends them to the
back; losing an assignment brings them back to the front.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from escort_dispatch.data.models import normalize_name

if TYPE_CHECKING:
    from escort_dispatch.core.cache import TTLCache
    from escort_dispatch.core.locks import KeyedLock
    from escort_dispatch.core.repository import DispatchRepository
    from escort_dispatch.ports.table_store_port import PropertyStorePort

logger = logging.getLogger(__name__)

DEFAULT_PROPERTY_KEY = "riderRotationOrder"


def _clean(names: Iterable[str]) -> list[str]:
    """Trimmed, non-empty names with case-insensitive duplicates removed."""
    result: list[str] = []
    seen: set[str] = set()
    for raw in names:
        name = str(raw or "").strip()
        key = normalize_name(name)
        if name and key not in seen:
            seen.add(key)
            result.append(name)
    return result


def _without(order: list[str], names: list[str]) -> list[str]:
    drop = {normalize_name(n) for n in names}
    return [n for n in order if normalize_name(n) not in drop]


def advance_order(order: list[str], assigned: Iterable[str]) -> list[str]:
    """Move each assigned name to the back, in call order."""
    new_order = list(order)
    for name in _clean(assigned):
        new_order = _without(new_order, [name])
        new_order.append(name)
    return new_order


def retreat_order(order: list[str], unassigned: Iterable[str]) -> list[str]:
    """Move the unassigned names to the front, keeping their input order."""
    names = _clean(unassigned)
    new_order = _without(order, names)
    for name in reversed(names):
        new_order.insert(0, name)
    return new_order


class RotationManager:
    """Reads and rewrites the persisted rotation order.

    The order is stored newline-joined under one property key. Every
    read-modify-write runs under the ``rotation:<key>`` lock.
    """

    def __init__(
        self,
        properties: PropertyStorePort,
        repository: DispatchRepository,
        locks: KeyedLock,
        cache: TTLCache | None = None,
        property_key: str = DEFAULT_PROPERTY_KEY,
    ) -> None:
        self._properties = properties
        self._repo = repository
        self._locks = locks
        self._cache = cache
        self._key = property_key

    @property
    def _lock_key(self) -> str:
        return f"rotation:{self._key}"

    def _read(self) -> list[str] | None:
        if self._cache is not None:
            cached = self._cache.get(self._key)
            if cached is not None:
                return list(cached)
        raw = self._properties.get_property(self._key)
        if raw is None or not raw.strip():
            return None
        order = _clean(raw.split("\n"))
        if self._cache is not None:
            self._cache.set(self._key, order)
        return list(order)

    def _write(self, order: list[str]) -> None:
        try:
            self._properties.set_property(self._key, "\n".join(order))
        finally:
            if self._cache is not None:
                self._cache.clear(self._key)

    def _seed(self) -> list[str]:
        riders = self._repo.active_full_time_riders()
        order = _clean(sorted(r.name for r in riders))
        self._write(order)
        logger.info("Rotation order seeded with %d active full-time riders", len(order))
        return order

    def get_order(self) -> list[str]:
        """Return the persisted order, seeding it on first use."""
        order = self._read()
        if order is not None:
            return order
        with self._locks.hold(self._lock_key):
            order = self._read()
            return order if order is not None else self._seed()

    def advance(self, assigned_names: Iterable[str]) -> list[str]:
        """Push just-assigned riders to the back of the queue."""
        names = _clean(assigned_names)
        with self._locks.hold(self._lock_key):
            current = self._read()
            if current is None:
                current = self._seed()
            order = advance_order(current, names)
            self._write(order)
        logger.info("Rotation advanced for %s", ", ".join(names) or "nobody")
        return order

    def retreat(self, unassigned_names: Iterable[str]) -> list[str]:
        """Return riders who lost an assignment to the front of the queue."""
        names = _clean(unassigned_names)
        with self._locks.hold(self._lock_key):
            current = self._read()
            if current is None:
                current = self._seed()
            order = retreat_order(current, names)
            self._write(order)
        logger.info("Rotation retreated for %s", ", ".join(names) or "nobody")
        return order

    def reset(self) -> list[str]:
        """Discard the persisted order and reseed it from the roster."""
        with self._locks.hold(self._lock_key):
            return self._seed()

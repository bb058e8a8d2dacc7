"""In-process exclusive locks keyed by the state they protect.

Guards the read-modify-write sequences against the shared store: replacing
a request's assignments (``request:<id>``), numbering new assignments
(``assignment-ids``) and rewriting the rotation order (``rotation:<key>``).
A key's lock exists only while some caller holds or waits for it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from escort_dispatch.core.errors import LockTimeoutError

logger = logging.getLogger(__name__)


@dataclass
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class KeyedLock:
    """One ``threading.Lock`` per key in use."""

    def __init__(self, timeout: float = 10.0) -> None:
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: dict[str, _KeyLock] = {}

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._locks)

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.users += 1
            return entry.lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            entry = self._locks[key]
            entry.users -= 1
            if entry.users == 0:
                del self._locks[key]

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        """Hold the lock for ``key``; raise LockTimeoutError if it stays busy."""
        wait = self._timeout if timeout is None else timeout
        lock = self._checkout(key)
        try:
            if not lock.acquire(timeout=wait):
                raise LockTimeoutError(f"Timed out after {wait:.1f}s waiting for lock {key!r}")
            logger.debug("Lock %s acquired", key)
            try:
                yield
            finally:
                lock.release()
                logger.debug("Lock %s released", key)
        finally:
            self._checkin(key)

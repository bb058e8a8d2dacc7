"""
Escort Dispatch — Request status derivation.

A request is Assigned once it has at least as many distinct named riders as
it needs; otherwise it is Unassigned. ``derive_status`` is pure;
``StatusService.apply_status`` reads the request, derives and persists.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from escort_dispatch.core.errors import NotFoundError, PersistenceError
from escort_dispatch.data.models import REQUESTS_TABLE, Request, RequestColumns, RequestStatus

if TYPE_CHECKING:
    from escort_dispatch.core.repository import DispatchRepository

logger = logging.getLogger(__name__)

_NAME_SEPARATORS = re.compile(r"[\n,]")
_PLACEHOLDER = "tbd"


def assigned_rider_names(assigned_text: str) -> list[str]:
    """Distinct rider names in a comma/newline-joined list, first spelling kept.

    Blank entries and the "TBD" placeholder are dropped; duplicates are
    compared case-insensitively.
    """
    names: list[str] = []
    seen: set[str] = set()
    for part in _NAME_SEPARATORS.split(assigned_text or ""):
        name = part.strip()
        key = name.casefold()
        if not name or key == _PLACEHOLDER or key in seen:
            continue
        seen.add(key)
        names.append(name)
    return names


def status_for_count(assigned_count: int, riders_needed: int) -> RequestStatus:
    if assigned_count == 0 or assigned_count < riders_needed:
        return RequestStatus.UNASSIGNED
    return RequestStatus.ASSIGNED


def derive_status(request: Request) -> RequestStatus:
    """Fulfillment status from the request's riders-needed and assigned names."""
    count = len(assigned_rider_names(request.assigned_riders_text))
    return status_for_count(count, request.riders_needed)


def is_over_assigned(request: Request) -> bool:
    return len(assigned_rider_names(request.assigned_riders_text)) > request.riders_needed


class StatusService:
    """Recomputes and persists a request's status."""

    def __init__(
        self,
        repository: DispatchRepository,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._repo = repository
        self._clock = clock

    def apply_status(self, request_id: str) -> RequestStatus:
        """Derive the status from fresh data and write Status + Last Updated.

        Raises NotFoundError for an unknown id and PersistenceError when the
        Requests table lacks a Status column or the write fails.
        """
        found = self._repo.get_request(request_id, fresh=True)
        if found is None:
            raise NotFoundError(f'Request "{request_id}" not found')
        request, row_index = found

        status = derive_status(request)
        if is_over_assigned(request):
            logger.warning(
                "Request %s has more riders than needed (%d); status %s",
                request.id, request.riders_needed, status.value,
            )

        snap = self._repo.snapshot(REQUESTS_TABLE)
        status_col = snap.column_index.get(RequestColumns.STATUS)
        if status_col is None:
            raise PersistenceError(f'Column "{RequestColumns.STATUS}" missing from {REQUESTS_TABLE}')

        store = self._repo.store
        try:
            store.update_cell(REQUESTS_TABLE, row_index, status_col, status.value)
            updated_col = snap.column_index.get(RequestColumns.LAST_UPDATED)
            if updated_col is not None:
                store.update_cell(REQUESTS_TABLE, row_index, updated_col, self._clock())
        finally:
            self._repo.invalidate(REQUESTS_TABLE)

        logger.info("Request %s status set to %s", request.id, status.value)
        return status

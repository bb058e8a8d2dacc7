"""
Escort Dispatch — Library boundary.

The operations UI, reporting and notification layers call. Each method
delegates to the engine component that owns the behavior; the service
itself holds no state beyond its collaborators.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime
from typing import TYPE_CHECKING

from escort_dispatch.core.repository import AssignmentQuery
from escort_dispatch.core.request_ids import generate_request_id

if TYPE_CHECKING:
    from escort_dispatch.core.assignment_processor import AssignmentProcessor, AssignmentResult
    from escort_dispatch.core.conflict_checker import AvailabilityChecker
    from escort_dispatch.core.repository import DispatchRepository
    from escort_dispatch.core.rotation import RotationManager
    from escort_dispatch.core.status import StatusService
    from escort_dispatch.data.models import Assignment, Request, RequestStatus

logger = logging.getLogger(__name__)


class DispatchService:
    """Facade over the assignment & rotation engine."""

    def __init__(
        self,
        repository: DispatchRepository,
        processor: AssignmentProcessor,
        status_service: StatusService,
        rotation: RotationManager,
        checker: AvailabilityChecker,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._repo = repository
        self._processor = processor
        self._status = status_service
        self._rotation = rotation
        self._checker = checker
        self._clock = clock

    def process_assignment(
        self,
        request_id: str,
        riders: Iterable[str],
        use_priority: bool = True,
        notify: bool = False,
    ) -> AssignmentResult:
        return self._processor.process_assignment(
            request_id, riders, use_priority=use_priority, notify=notify,
        )

    def cancel_rider_assignment(self, request_id: str, rider_name: str) -> RequestStatus:
        return self._processor.cancel_rider_assignment(request_id, rider_name)

    def get_request_details(self, request_id: str) -> Request | None:
        found = self._repo.get_request(request_id)
        return found[0] if found else None

    def apply_status(self, request_id: str) -> RequestStatus:
        return self._status.apply_status(request_id)

    def get_rotation_order(self) -> list[str]:
        return self._rotation.get_order()

    def is_rider_available(self, rider_name: str, event_date: date | str, start_time: object) -> bool:
        return self._checker.is_rider_available(rider_name, event_date, start_time)

    def find_assignments(self, query: AssignmentQuery | None = None) -> list[Assignment]:
        return self._repo.find_assignments(query or AssignmentQuery())

    def rider_has_active_assignments(self, rider_name: str) -> bool:
        """True while the rider holds an Assigned/Confirmed/En Route/In Progress job."""
        if not str(rider_name or "").strip():
            return False
        rows = self._repo.find_assignments(AssignmentQuery(rider_name=rider_name))
        engaged = [a for a in rows if a.is_engaged]
        if engaged:
            logger.info("Rider %s has %d active assignment(s)", rider_name, len(engaged))
        return bool(engaged)

    def next_request_id(self, today: date | None = None) -> str:
        """The id a request created today would get."""
        return generate_request_id(
            self._repo.request_ids(fresh=True), today or self._clock().date(),
        )

    def reset_rotation(self) -> list[str]:
        return self._rotation.reset()

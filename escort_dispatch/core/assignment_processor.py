"""
Escort Dispatch — Assignment Processor.

Replaces a request's whole assignment set in one call:
validate request -> remove existing rows (riders go to the rotation front)
-> create one row per rider -> rewrite the request's assigned-riders text
-> recompute status -> advance rotation -> invalidate caches.

Rider creation is partial-failure tolerant: a rider that fails is recorded
on the result and the batch carries on with the rest.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from escort_dispatch.core.errors import NotFoundError, PersistenceError, ValidationError
from escort_dispatch.core.repository import AssignmentQuery
from escort_dispatch.core.request_ids import (
    is_valid_request_id,
    normalize_request_id,
    request_id_key,
)
from escort_dispatch.data.models import (
    ASSIGNMENTS_TABLE,
    REQUESTS_TABLE,
    AssignmentColumns,
    AssignmentStatus,
    Request,
    RequestColumns,
    RequestStatus,
    normalize_name,
)

if TYPE_CHECKING:
    from escort_dispatch.core.conflict_checker import AvailabilityChecker
    from escort_dispatch.core.locks import KeyedLock
    from escort_dispatch.core.notifications import AssignmentNotifier, NotificationFailure
    from escort_dispatch.core.repository import DispatchRepository
    from escort_dispatch.core.rotation import RotationManager
    from escort_dispatch.core.status import StatusService

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 10
ASSIGNMENT_ID_LOCK = "assignment-ids"
_ASSIGNMENT_ID_RE = re.compile(r"^ASG-(\d+)$")
# The assigned-riders text is split on these when riders are counted
_LIST_SEPARATORS_RE = re.compile(r"[\n,]")


class ConflictPolicy(str, Enum):
    """What the processor does when a rider is already booked nearby."""

    IGNORE = "ignore"      # no check at all
    WARN = "warn"          # assign, but log and annotate the outcome
    REJECT = "reject"      # record the rider as failed


class OutcomeStatus(str, Enum):
    ASSIGNED = "assigned"
    FAILED = "failed"


@dataclass
class RiderOutcome:
    rider_name: str
    status: OutcomeStatus
    assignment_id: str = ""
    error: str = ""
    warning: str = ""


@dataclass
class AssignmentResult:
    """Structured outcome of ``process_assignment``.

    ``success`` is True whenever the batch ran to completion, even if some
    riders failed; inspect ``per_rider`` / ``errors`` for the partial failures.
    """

    request_id: str
    status: RequestStatus
    per_rider: list[RiderOutcome] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    over_assigned: bool = False
    notification_failures: list[NotificationFailure] = field(default_factory=list)
    success: bool = True

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.per_rider if o.status == OutcomeStatus.ASSIGNED)

    @property
    def fail_count(self) -> int:
        return sum(1 for o in self.per_rider if o.status == OutcomeStatus.FAILED)

    @property
    def assigned_names(self) -> list[str]:
        return [o.rider_name for o in self.per_rider if o.status == OutcomeStatus.ASSIGNED]

    @property
    def errors(self) -> list[str]:
        failed = [o for o in self.per_rider if o.status == OutcomeStatus.FAILED]
        return [f"{o.rider_name}: {o.error}" for o in failed[:MAX_REPORTED_ERRORS]]


def unique_rider_names(riders: Iterable[str]) -> list[str]:
    """Trimmed, non-empty names; later case-insensitive duplicates are dropped."""
    names: list[str] = []
    seen: set[str] = set()
    for raw in riders:
        name = str(raw or "").strip()
        key = normalize_name(name)
        if not name:
            continue
        if key in seen:
            logger.info("Ignoring duplicate rider %r in assignment list", name)
            continue
        seen.add(key)
        names.append(name)
    return names


class AssignmentProcessor:
    """Orchestrates replace-all-assignments for a request."""

    def __init__(
        self,
        repository: DispatchRepository,
        status_service: StatusService,
        rotation: RotationManager,
        locks: KeyedLock,
        checker: AvailabilityChecker | None = None,
        notifier: AssignmentNotifier | None = None,
        conflict_policy: ConflictPolicy = ConflictPolicy.IGNORE,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._repo = repository
        self._status = status_service
        self._rotation = rotation
        self._locks = locks
        self._checker = checker
        self._notifier = notifier
        self._policy = ConflictPolicy(conflict_policy)
        self._clock = clock

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def process_assignment(
        self,
        request_id: str,
        riders: Iterable[str],
        use_priority: bool = True,
        notify: bool = False,
    ) -> AssignmentResult:
        """Replace every assignment of ``request_id`` with one per rider in ``riders``.

        Args:
            request_id: Request to (re)assign; normalized before lookup.
            riders: Rider names. Duplicates and blanks are ignored.
            use_priority: When False the rotation order is not advanced.
            notify: Announce the new assignments through the notifier.

        Raises:
            ValidationError: malformed request id or non-positive riders needed.
            NotFoundError: the request does not exist.
            PersistenceError: the removal phase or a request write failed.
        """
        request_key = self._validated_id(request_id)
        names = unique_rider_names(riders)

        with self._locks.hold(f"request:{request_key}"):
            try:
                request, row_index = self._load_request(request_id)
                if request.riders_needed < 1:
                    raise ValidationError(
                        f"Request {request.id} needs {request.riders_needed} riders; must be at least 1"
                    )

                removed = self.remove_assignments(request.id)
                if removed:
                    self._rotation.retreat(removed)

                outcomes = [self._create_assignment(request, name) for name in names]
                assigned = [o.rider_name for o in outcomes if o.status == OutcomeStatus.ASSIGNED]

                self._write_assigned_text(row_index, assigned)
                status = self._status.apply_status(request.id)

                if use_priority and assigned:
                    self._rotation.advance(assigned)
            finally:
                self._repo.invalidate(REQUESTS_TABLE, ASSIGNMENTS_TABLE)

        result = AssignmentResult(
            request_id=request.id,
            status=status,
            per_rider=outcomes,
            removed=removed,
            over_assigned=len(assigned) > request.riders_needed,
        )
        if result.over_assigned:
            logger.warning(
                "Request %s over-assigned: %d riders for %d needed",
                request.id, len(assigned), request.riders_needed,
            )
        if notify and self._notifier is not None and assigned:
            result.notification_failures = self._announce(request, outcomes)

        logger.info(
            "Processed assignment for %s: %d assigned, %d failed, %d removed, status %s",
            request.id, result.success_count, result.fail_count, len(removed), status.value,
        )
        return result

    def remove_assignments(self, request_id: str) -> list[str]:
        """Delete every assignment row of the request; return the removed rider names.

        Rows are deleted highest index first so earlier positions stay valid.
        """
        rows = self._repo.assignments_for_request(request_id, fresh=True)
        try:
            for assignment in sorted(rows, key=lambda a: a.row_index, reverse=True):
                self._repo.store.delete_row(ASSIGNMENTS_TABLE, assignment.row_index)
                logger.info(
                    "Removed assignment %s (%s) from request %s",
                    assignment.id, assignment.rider_name, request_id,
                )
        finally:
            self._repo.invalidate(ASSIGNMENTS_TABLE)
        return [a.rider_name for a in rows if a.rider_name]

    def cancel_rider_assignment(self, request_id: str, rider_name: str) -> RequestStatus:
        """Mark one rider's active assignment Cancelled and refresh the request.

        The row is kept for history. The rider goes back to the rotation front.
        """
        request_key = self._validated_id(request_id)
        if not str(rider_name or "").strip():
            raise ValidationError("Rider name is required")
        with self._locks.hold(f"request:{request_key}"):
            try:
                request, row_index = self._load_request(request_id)
                active = self._repo.find_assignments(
                    AssignmentQuery(request_id=request.id, rider_name=rider_name), fresh=True,
                )
                if not active:
                    raise NotFoundError(
                        f"No active assignment for {rider_name!r} on request {request.id}"
                    )
                target = active[0]

                snap = self._repo.snapshot(ASSIGNMENTS_TABLE)
                status_col = self._column(snap.column_index, AssignmentColumns.STATUS, ASSIGNMENTS_TABLE)
                self._repo.store.update_cell(
                    ASSIGNMENTS_TABLE, target.row_index, status_col, AssignmentStatus.CANCELLED.value,
                )
                self._repo.invalidate(ASSIGNMENTS_TABLE)
                logger.info("Cancelled assignment %s for %s on %s", target.id, target.rider_name, request.id)

                remaining = [
                    a.rider_name
                    for a in self._repo.find_assignments(AssignmentQuery(request_id=request.id))
                ]
                self._write_assigned_text(row_index, remaining)
                status = self._status.apply_status(request.id)
                self._rotation.retreat([target.rider_name])
            finally:
                self._repo.invalidate(REQUESTS_TABLE, ASSIGNMENTS_TABLE)
        return status

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validated_id(request_id: str) -> str:
        normalized = normalize_request_id(request_id)
        if not normalized:
            raise ValidationError("Request id is required")
        if not is_valid_request_id(normalized):
            raise ValidationError(f"Malformed request id: {request_id!r}")
        return request_id_key(normalized)

    def _load_request(self, request_id: str) -> tuple[Request, int]:
        found = self._repo.get_request(request_id, fresh=True)
        if found is None:
            raise NotFoundError(f'Request "{request_id}" not found')
        return found

    @staticmethod
    def _column(column_index: dict[str, int], column: str, table: str) -> int:
        idx = column_index.get(column)
        if idx is None:
            raise PersistenceError(f'Column "{column}" missing from {table}')
        return idx

    def _next_assignment_id(self) -> str:
        """Highest existing ASG-#### plus one; timestamp-based if that fails."""
        try:
            snap = self._repo.snapshot(ASSIGNMENTS_TABLE, fresh=True)
            highest = 0
            for row in snap.rows:
                match = _ASSIGNMENT_ID_RE.match(str(snap.value(row, AssignmentColumns.ID, "")).strip())
                if match:
                    highest = max(highest, int(match.group(1)))
            return f"ASG-{highest + 1:04d}"
        except Exception as exc:
            fallback = f"ASG-T{int(self._clock().timestamp() * 1000)}"
            logger.warning("Assignment numbering failed (%s); using %s", exc, fallback)
            return fallback

    def _conflict_warning(self, request: Request, rider_name: str) -> str:
        if self._policy == ConflictPolicy.IGNORE or self._checker is None:
            return ""
        conflict = self._checker.check_conflict(
            rider_name, request.event_date, request.start_time, exclude_request_id=request.id,
        )
        if not conflict.has_conflict:
            return ""
        ids = ", ".join(a.request_id for a in conflict.conflicting_assignments)
        return f"{rider_name} is already booked near this start time ({ids})"

    def _create_assignment(self, request: Request, rider_name: str) -> RiderOutcome:
        try:
            if _LIST_SEPARATORS_RE.search(rider_name):
                raise ValidationError(
                    f"Rider name {rider_name!r} must not contain a comma or line break"
                )
            warning = self._conflict_warning(request, rider_name)
            if warning:
                logger.warning("Request %s: %s", request.id, warning)
                if self._policy == ConflictPolicy.REJECT:
                    return RiderOutcome(rider_name, OutcomeStatus.FAILED, error=warning)

            with self._locks.hold(ASSIGNMENT_ID_LOCK):
                assignment_id = self._next_assignment_id()
                snap = self._repo.snapshot(ASSIGNMENTS_TABLE)
                row = snap.blank_row()
                c = AssignmentColumns
                for column, value in (
                    (c.ID, assignment_id),
                    (c.REQUEST_ID, request.id),
                    (c.EVENT_DATE, request.event_date or ""),
                    (c.START_TIME, request.start_time or ""),
                    (c.END_TIME, request.end_time or ""),
                    (c.START_LOCATION, request.start_location),
                    (c.END_LOCATION, request.end_location),
                    (c.SECONDARY_LOCATION, request.secondary_location),
                    (c.RIDER_NAME, rider_name),
                    (c.STATUS, AssignmentStatus.ASSIGNED.value),
                    (c.CREATED_DATE, self._clock()),
                ):
                    snap.set_value(row, column, value)
                try:
                    self._repo.store.append_row(ASSIGNMENTS_TABLE, row)
                finally:
                    self._repo.invalidate(ASSIGNMENTS_TABLE)

            logger.info("Created assignment %s for %s on request %s", assignment_id, rider_name, request.id)
            return RiderOutcome(rider_name, OutcomeStatus.ASSIGNED, assignment_id=assignment_id, warning=warning)
        except Exception as exc:
            logger.error("Failed to assign %s to request %s: %s", rider_name, request.id, exc)
            return RiderOutcome(rider_name, OutcomeStatus.FAILED, error=str(exc))

    def _write_assigned_text(self, row_index: int, names: list[str]) -> None:
        snap = self._repo.snapshot(REQUESTS_TABLE, fresh=True)
        col = self._column(snap.column_index, RequestColumns.RIDERS_ASSIGNED, REQUESTS_TABLE)
        try:
            self._repo.store.update_cell(REQUESTS_TABLE, row_index, col, "\n".join(names))
        finally:
            self._repo.invalidate(REQUESTS_TABLE)

    def _announce(self, request: Request, outcomes: list[RiderOutcome]) -> list[NotificationFailure]:
        created = [
            (o.assignment_id, o.rider_name)
            for o in outcomes if o.status == OutcomeStatus.ASSIGNED
        ]
        riders = {name: self._repo.find_rider(name) for _, name in created}
        return self._notifier.notify(request, created, riders)

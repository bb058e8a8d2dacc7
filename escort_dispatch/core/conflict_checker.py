"""
Escort Dispatch — Rider Conflict & Availability Checker.

Detects a rider being double-booked around the same start time and honors
the rider's opt-out availability calendar. Both checks are advisory:
unparseable input answers "no conflict" rather than raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from escort_dispatch.core.request_ids import request_id_key
from escort_dispatch.core.timeutils import combine, parse_date

if TYPE_CHECKING:
    from escort_dispatch.core.repository import DispatchRepository
    from escort_dispatch.data.models import Assignment

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_MINUTES = 60


@dataclass
class ConflictResult:
    """Result of a conflict check against a rider's other assignments."""

    has_conflict: bool
    conflicting_assignments: list[Assignment] = field(default_factory=list)


def starts_within(
    candidate: datetime, other: datetime, window_minutes: int = DEFAULT_WINDOW_MINUTES,
) -> bool:
    """True if the two start times are at most ``window_minutes`` apart (inclusive)."""
    return abs((candidate - other).total_seconds()) <= window_minutes * 60


class AvailabilityChecker:
    """Read-side scheduling checks over Assignment and Availability snapshots."""

    def __init__(
        self,
        repository: DispatchRepository,
        window_minutes: int = DEFAULT_WINDOW_MINUTES,
    ) -> None:
        self._repo = repository
        self._window = window_minutes

    def check_conflict(
        self,
        rider_name: str,
        event_date: date | str,
        start_time: object,
        exclude_request_id: str | None = None,
    ) -> ConflictResult:
        """Find the rider's active same-day assignments starting near ``start_time``.

        Args:
            rider_name: Rider to check (matched case-insensitively).
            event_date: Calendar date of the candidate job.
            start_time: Candidate start time.
            exclude_request_id: Request whose own rows are ignored (re-assignment).
        """
        day = parse_date(event_date)
        candidate = combine(day, start_time)
        if not rider_name or candidate is None:
            logger.warning(
                "Skipping conflict check for %r: unparseable date/time %r %r",
                rider_name, event_date, start_time,
            )
            return ConflictResult(has_conflict=False)

        excluded = request_id_key(exclude_request_id) if exclude_request_id else None
        conflicting = []
        for assignment in self._repo.assignments_for_rider_on_date(rider_name, day):
            if excluded and request_id_key(assignment.request_id) == excluded:
                continue
            if assignment.start_time is None:
                continue
            # Both starts are placed on the same calendar date before differencing
            other = datetime.combine(day, assignment.start_time)
            if starts_within(candidate, other, self._window):
                conflicting.append(assignment)

        if conflicting:
            logger.info(
                "Rider %s has %d assignment(s) within %d min of %s",
                rider_name, len(conflicting), self._window, candidate.isoformat(),
            )
        return ConflictResult(
            has_conflict=bool(conflicting), conflicting_assignments=conflicting,
        )

    def has_time_conflict(
        self, rider_name: str, event_date: date | str, start_time: object,
    ) -> bool:
        return self.check_conflict(rider_name, event_date, start_time).has_conflict

    def _verdict(self, identifiers: set[str], when: datetime) -> bool:
        for entry in self._repo.availability_for(identifiers, when.date()):
            if entry.covers(when):
                return entry.marks_available
        return True

    def is_available(self, rider_identifier: str, when: datetime) -> bool:
        """Opt-out check: True unless an entry covering ``when`` says otherwise.

        The first entry for the rider on that date whose window contains
        ``when`` decides; a blank or "Available" status means available.
        """
        return self._verdict({rider_identifier}, when)

    def is_rider_available(
        self, rider_name: str, date_str: date | str, start_time_str: object,
    ) -> bool:
        """Combined gate: no nearby assignment and no blocking availability entry."""
        if self.has_time_conflict(rider_name, date_str, start_time_str):
            return False

        when = combine(date_str, start_time_str)
        if when is None:
            logger.warning(
                "Skipping availability check for %r: unparseable date/time %r %r",
                rider_name, date_str, start_time_str,
            )
            return True

        rider = self._repo.find_rider(rider_name)
        if rider is None:
            identifiers = {rider_name}
        else:
            identifiers = {i for i in (rider.id, rider.email) if i} or {rider_name}
        return self._verdict(identifiers, when)

"""
Escort Dispatch — Data Models.

Rows live in an external header-indexed table store; these dataclasses are
typed views over one row each. Column header names match the tables the
dispatch office already keeps, so they are listed here once and shared by
the store schema and the row mappers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Any

from escort_dispatch.core.errors import ValidationError
from escort_dispatch.core.timeutils import parse_date, parse_time

# ---------------------------------------------------------------------------
# Table names and headers
# ---------------------------------------------------------------------------

REQUESTS_TABLE = "Requests"
RIDERS_TABLE = "Riders"
ASSIGNMENTS_TABLE = "Assignments"
AVAILABILITY_TABLE = "Availability"


class RequestColumns:
    ID = "Request ID"
    DATE = "Date"
    REQUESTER_NAME = "Requester Name"
    TYPE = "Request Type"
    EVENT_DATE = "Event Date"
    START_TIME = "Start Time"
    END_TIME = "End Time"
    START_LOCATION = "Start Location"
    END_LOCATION = "End Location"
    SECONDARY_LOCATION = "Secondary End Location"
    RIDERS_NEEDED = "Riders Needed"
    STATUS = "Status"
    NOTES = "Notes"
    RIDERS_ASSIGNED = "Riders Assigned"
    COURTESY = "Courtesy"
    LAST_UPDATED = "Last Updated"


class RiderColumns:
    ID = "Rider ID"
    NAME = "Full Name"
    PHONE = "Phone Number"
    EMAIL = "Email"
    STATUS = "Status"
    PART_TIME = "Part Time"


class AssignmentColumns:
    ID = "Assignment ID"
    REQUEST_ID = "Request ID"
    EVENT_DATE = "Event Date"
    START_TIME = "Start Time"
    END_TIME = "End Time"
    START_LOCATION = "Start Location"
    END_LOCATION = "End Location"
    SECONDARY_LOCATION = "Secondary End Location"
    RIDER_NAME = "Rider Name"
    STATUS = "Status"
    CREATED_DATE = "Created Date"
    NOTIFIED = "Notified"
    SMS_SENT = "SMS Sent"
    EMAIL_SENT = "Email Sent"


class AvailabilityColumns:
    RIDER_ID = "Rider ID"
    DATE = "Date"
    START_TIME = "Start Time"
    END_TIME = "End Time"
    STATUS = "Status"


def _headers(columns: type) -> list[str]:
    return [v for k, v in vars(columns).items() if k.isupper()]


TABLE_HEADERS: dict[str, list[str]] = {
    REQUESTS_TABLE: _headers(RequestColumns),
    RIDERS_TABLE: _headers(RiderColumns),
    ASSIGNMENTS_TABLE: _headers(AssignmentColumns),
    AVAILABILITY_TABLE: _headers(AvailabilityColumns),
}

# ---------------------------------------------------------------------------
# Status vocabularies
# ---------------------------------------------------------------------------


class RequestStatus(str, Enum):
    NEW = "New"
    PENDING = "Pending"
    ASSIGNED = "Assigned"
    UNASSIGNED = "Unassigned"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class RiderStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    VACATION = "Vacation"
    TRAINING = "Training"
    SUSPENDED = "Suspended"


class AssignmentStatus(str, Enum):
    ASSIGNED = "Assigned"
    CONFIRMED = "Confirmed"
    EN_ROUTE = "En Route"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No Show"


TERMINAL_ASSIGNMENT_STATUSES = frozenset({
    AssignmentStatus.COMPLETED.value,
    AssignmentStatus.CANCELLED.value,
    AssignmentStatus.NO_SHOW.value,
})

# Statuses that block removing a rider from the roster
ENGAGED_ASSIGNMENT_STATUSES = frozenset({
    AssignmentStatus.ASSIGNED.value,
    AssignmentStatus.CONFIRMED.value,
    AssignmentStatus.EN_ROUTE.value,
    AssignmentStatus.IN_PROGRESS.value,
})

_TERMINAL_KEYS = frozenset(s.casefold() for s in TERMINAL_ASSIGNMENT_STATUSES)
_ENGAGED_KEYS = frozenset(s.casefold() for s in ENGAGED_ASSIGNMENT_STATUSES)

_TRUTHY = {"true", "yes", "y", "1", "x"}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _cell(row: list[Any], column_index: dict[str, int], column: str) -> Any:
    idx = column_index.get(column)
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def normalize_name(name: Any) -> str:
    """Matching key for rider names: trimmed and case-folded."""
    return _text(name).casefold()


# ---------------------------------------------------------------------------
# Row views
# ---------------------------------------------------------------------------


@dataclass
class Request:
    """A transportation job needing a number of riders."""

    id: str
    event_date: date | None
    start_time: time | None
    end_time: time | None
    start_location: str = ""
    end_location: str = ""
    secondary_location: str = ""
    riders_needed: int = 0
    assigned_riders_text: str = ""     # derived display cache, not authoritative
    status: str = RequestStatus.NEW.value
    requester_name: str = ""
    notes: str = ""
    courtesy: bool = False
    last_updated: str = ""

    @classmethod
    def from_row(cls, row: list[Any], column_index: dict[str, int]) -> Request:
        c = RequestColumns
        raw_needed = _text(_cell(row, column_index, c.RIDERS_NEEDED))
        try:
            riders_needed = int(float(raw_needed)) if raw_needed else 0
        except ValueError:
            raise ValidationError(f"Riders Needed is not a number: {raw_needed!r}") from None
        if riders_needed < 0:
            raise ValidationError(f"Riders Needed cannot be negative: {riders_needed}")

        return cls(
            id=_text(_cell(row, column_index, c.ID)),
            event_date=parse_date(_cell(row, column_index, c.EVENT_DATE)),
            start_time=parse_time(_cell(row, column_index, c.START_TIME)),
            end_time=parse_time(_cell(row, column_index, c.END_TIME)),
            start_location=_text(_cell(row, column_index, c.START_LOCATION)),
            end_location=_text(_cell(row, column_index, c.END_LOCATION)),
            secondary_location=_text(_cell(row, column_index, c.SECONDARY_LOCATION)),
            riders_needed=riders_needed,
            assigned_riders_text=_text(_cell(row, column_index, c.RIDERS_ASSIGNED)),
            status=_text(_cell(row, column_index, c.STATUS)) or RequestStatus.NEW.value,
            requester_name=_text(_cell(row, column_index, c.REQUESTER_NAME)),
            notes=_text(_cell(row, column_index, c.NOTES)),
            courtesy=_text(_cell(row, column_index, c.COURTESY)).lower() in _TRUTHY,
            last_updated=_text(_cell(row, column_index, c.LAST_UPDATED)),
        )


@dataclass
class Rider:
    """An escort rider. Read-only to the dispatch core."""

    id: str
    name: str
    phone: str = ""
    email: str = ""
    status: str = RiderStatus.ACTIVE.value
    part_time: bool = False

    @property
    def is_active(self) -> bool:
        return self.status.lower() == RiderStatus.ACTIVE.value.lower()

    @classmethod
    def from_row(cls, row: list[Any], column_index: dict[str, int]) -> Rider:
        c = RiderColumns
        return cls(
            id=_text(_cell(row, column_index, c.ID)),
            name=_text(_cell(row, column_index, c.NAME)),
            phone=_text(_cell(row, column_index, c.PHONE)),
            email=_text(_cell(row, column_index, c.EMAIL)),
            # A blank status means the rider was never deactivated
            status=_text(_cell(row, column_index, c.STATUS)) or RiderStatus.ACTIVE.value,
            part_time=_text(_cell(row, column_index, c.PART_TIME)).lower() in _TRUTHY,
        )


@dataclass
class Assignment:
    """One rider's commitment to one request.

    Schedule and location fields are a snapshot of the request taken when
    the row was created.
    """

    id: str
    request_id: str
    rider_name: str
    event_date: date | None = None
    start_time: time | None = None
    end_time: time | None = None
    start_location: str = ""
    end_location: str = ""
    secondary_location: str = ""
    status: str = AssignmentStatus.ASSIGNED.value
    created_date: str = ""
    row_index: int = 0                 # 1-based data row position in the store

    @property
    def is_active(self) -> bool:
        return self.status.strip().casefold() not in _TERMINAL_KEYS

    @property
    def is_engaged(self) -> bool:
        return self.status.strip().casefold() in _ENGAGED_KEYS

    @classmethod
    def from_row(
        cls, row: list[Any], column_index: dict[str, int], row_index: int = 0,
    ) -> Assignment:
        c = AssignmentColumns
        return cls(
            id=_text(_cell(row, column_index, c.ID)),
            request_id=_text(_cell(row, column_index, c.REQUEST_ID)),
            rider_name=_text(_cell(row, column_index, c.RIDER_NAME)),
            event_date=parse_date(_cell(row, column_index, c.EVENT_DATE)),
            start_time=parse_time(_cell(row, column_index, c.START_TIME)),
            end_time=parse_time(_cell(row, column_index, c.END_TIME)),
            start_location=_text(_cell(row, column_index, c.START_LOCATION)),
            end_location=_text(_cell(row, column_index, c.END_LOCATION)),
            secondary_location=_text(_cell(row, column_index, c.SECONDARY_LOCATION)),
            status=_text(_cell(row, column_index, c.STATUS)) or AssignmentStatus.ASSIGNED.value,
            created_date=_text(_cell(row, column_index, c.CREATED_DATE)),
            row_index=row_index,
        )


@dataclass
class AvailabilityEntry:
    """An opt-out calendar entry: absence of an entry means available."""

    rider_id: str                      # rider id or email
    date: date | None
    start_time: time | None = None
    end_time: time | None = None
    status: str = ""

    def covers(self, when: datetime) -> bool:
        """True if ``when`` falls inside this entry's window on its date."""
        if self.date is None or when.date() != self.date:
            return False
        start = datetime.combine(self.date, self.start_time) if self.start_time else None
        end = datetime.combine(self.date, self.end_time) if self.end_time else None
        if start is None and end is None:
            return True
        if end is None:
            return when >= start
        if start is None:
            return when <= end
        return start <= when <= end

    @property
    def marks_available(self) -> bool:
        return self.status.strip().lower() in ("", "available")

    @classmethod
    def from_row(cls, row: list[Any], column_index: dict[str, int]) -> AvailabilityEntry:
        c = AvailabilityColumns
        return cls(
            rider_id=_text(_cell(row, column_index, c.RIDER_ID)),
            date=parse_date(_cell(row, column_index, c.DATE)),
            start_time=parse_time(_cell(row, column_index, c.START_TIME)),
            end_time=parse_time(_cell(row, column_index, c.END_TIME)),
            status=_text(_cell(row, column_index, c.STATUS)),
        )

"""Shared test fixtures and configuration.

Sets up environment variables before any escort_dispatch import, and
provides a temp SQLite store plus helpers that seed table rows.
"""

import os

# Patch env vars BEFORE any escort_dispatch imports
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("NOTIFY_WEBHOOK_URL", "")
os.environ.setdefault("NOTIFY_THROTTLE_SECONDS", "0")

import pytest


def append_record(table_db, table, values):
    """Append a row given as {header: value}; unknown headers are ignored."""
    snap = table_db.read_all(table)
    row = snap.blank_row()
    for column, value in values.items():
        snap.set_value(row, column, value)
    table_db.append_row(table, row)


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_escorts.db")


@pytest.fixture
def table_db(tmp_db_path):
    """Return a TableDB with the four dispatch tables created."""
    from escort_dispatch.data.db import TableDB
    from escort_dispatch.data.models import TABLE_HEADERS

    db = TableDB(db_path=tmp_db_path)
    for name, headers in TABLE_HEADERS.items():
        db.ensure_table(name, headers)
    return db


@pytest.fixture
def property_db(tmp_db_path):
    from escort_dispatch.data.db import PropertyDB
    return PropertyDB(db_path=tmp_db_path)


@pytest.fixture
def add_request(table_db):
    from escort_dispatch.data.models import REQUESTS_TABLE, RequestColumns as C

    def _add(request_id="B-02-24", riders_needed=2, event_date="2024-02-10",
             start_time="14:00", end_time="16:00", status="New", assigned="", **extra):
        values = {
            C.ID: request_id,
            C.EVENT_DATE: event_date,
            C.START_TIME: start_time,
            C.END_TIME: end_time,
            C.START_LOCATION: "Funeral Home",
            C.END_LOCATION: "Cemetery",
            C.RIDERS_NEEDED: riders_needed,
            C.STATUS: status,
            C.RIDERS_ASSIGNED: assigned,
        }
        values.update(extra)
        append_record(table_db, REQUESTS_TABLE, values)

    return _add


@pytest.fixture
def add_rider(table_db):
    from escort_dispatch.data.models import RIDERS_TABLE, RiderColumns as C

    def _add(name, rider_id="", status="Active", part_time="No", email="", phone=""):
        append_record(table_db, RIDERS_TABLE, {
            C.ID: rider_id or f"R-{name}",
            C.NAME: name,
            C.STATUS: status,
            C.PART_TIME: part_time,
            C.EMAIL: email,
            C.PHONE: phone,
        })

    return _add


@pytest.fixture
def add_assignment(table_db):
    from escort_dispatch.data.models import ASSIGNMENTS_TABLE, AssignmentColumns as C

    def _add(assignment_id, request_id, rider_name, event_date="2024-02-10",
             start_time="14:00", status="Assigned"):
        append_record(table_db, ASSIGNMENTS_TABLE, {
            C.ID: assignment_id,
            C.REQUEST_ID: request_id,
            C.RIDER_NAME: rider_name,
            C.EVENT_DATE: event_date,
            C.START_TIME: start_time,
            C.STATUS: status,
        })

    return _add


@pytest.fixture
def add_availability(table_db):
    from escort_dispatch.data.models import AVAILABILITY_TABLE, AvailabilityColumns as C

    def _add(rider_id, day, start="", end="", status="Unavailable"):
        append_record(table_db, AVAILABILITY_TABLE, {
            C.RIDER_ID: rider_id,
            C.DATE: day,
            C.START_TIME: start,
            C.END_TIME: end,
            C.STATUS: status,
        })

    return _add


@pytest.fixture
def settings(tmp_db_path):
    from escort_dispatch.config import Settings
    return Settings(DATABASE_PATH=tmp_db_path, NOTIFY_THROTTLE_SECONDS=0)


@pytest.fixture
def repository(table_db):
    from escort_dispatch.core.cache import IndexedCache
    from escort_dispatch.core.repository import DispatchRepository
    return DispatchRepository(table_db, IndexedCache(), IndexedCache())

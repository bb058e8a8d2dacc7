"""Tests for escort_dispatch.core.conflict_checker — double-booking and availability."""

from datetime import date, datetime

import pytest

from escort_dispatch.core.conflict_checker import AvailabilityChecker, starts_within

D = "2024-02-10"


@pytest.fixture
def checker(repository):
    return AvailabilityChecker(repository, window_minutes=60)


# ---------------------------------------------------------------------------
# starts_within
# ---------------------------------------------------------------------------


class TestStartsWithin:
    def test_inclusive_boundary(self):
        a = datetime(2024, 2, 10, 14, 0)
        assert starts_within(a, datetime(2024, 2, 10, 15, 0), 60) is True
        assert starts_within(a, datetime(2024, 2, 10, 15, 1), 60) is False

    def test_symmetric(self):
        a = datetime(2024, 2, 10, 14, 0)
        assert starts_within(a, datetime(2024, 2, 10, 13, 0), 60) is True


# ---------------------------------------------------------------------------
# has_time_conflict
# ---------------------------------------------------------------------------


class TestHasTimeConflict:
    def test_boundaries_around_14_00(self, checker, add_assignment):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date=D, start_time="14:00")

        assert checker.has_time_conflict("Alice", D, "14:59") is True
        assert checker.has_time_conflict("Alice", D, "15:00") is True
        assert checker.has_time_conflict("Alice", D, "15:01") is False
        assert checker.has_time_conflict("Alice", D, "12:59") is False

    def test_other_date_no_conflict(self, checker, add_assignment):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date="2024-02-11", start_time="14:00")
        assert checker.has_time_conflict("Alice", D, "14:00") is False

    def test_other_rider_no_conflict(self, checker, add_assignment):
        add_assignment("ASG-0001", "B-01-24", "Bob", event_date=D, start_time="14:00")
        assert checker.has_time_conflict("Alice", D, "14:00") is False

    @pytest.mark.parametrize("status", ["Completed", "Cancelled", "No Show"])
    def test_terminal_statuses_ignored(self, checker, add_assignment, status):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date=D, start_time="14:00", status=status)
        assert checker.has_time_conflict("Alice", D, "14:00") is False

    @pytest.mark.parametrize("status", ["Assigned", "Confirmed", "En Route", "In Progress"])
    def test_active_statuses_conflict(self, checker, add_assignment, status):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date=D, start_time="14:00", status=status)
        assert checker.has_time_conflict("Alice", D, "14:30") is True

    def test_rider_name_case_insensitive(self, checker, add_assignment):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date=D, start_time="14:00")
        assert checker.has_time_conflict(" alice ", D, "2:30 PM") is True

    def test_us_date_format(self, checker, add_assignment):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date="02/10/2024", start_time="14:00")
        assert checker.has_time_conflict("Alice", date(2024, 2, 10), "14:15") is True

    @pytest.mark.parametrize("day,start", [("not-a-date", "14:00"), (D, "later"), (D, ""), (None, None)])
    def test_unparseable_input_means_no_conflict(self, checker, add_assignment, day, start):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date=D, start_time="14:00")
        assert checker.has_time_conflict("Alice", day, start) is False

    def test_check_conflict_excludes_request(self, checker, add_assignment):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date=D, start_time="14:00")
        result = checker.check_conflict("Alice", D, "14:00", exclude_request_id="b-1-24")
        assert result.has_conflict is False

    def test_check_conflict_lists_conflicts(self, checker, add_assignment):
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date=D, start_time="14:00")
        add_assignment("ASG-0002", "B-03-24", "Alice", event_date=D, start_time="18:00")
        result = checker.check_conflict("Alice", D, "14:30")
        assert [a.id for a in result.conflicting_assignments] == ["ASG-0001"]


# ---------------------------------------------------------------------------
# is_available
# ---------------------------------------------------------------------------


class TestIsAvailable:
    def test_no_entries_means_available(self, checker):
        assert checker.is_available("R-1", datetime(2024, 2, 10, 10, 0)) is True

    def test_window_blocks_inside_only(self, checker, add_availability):
        add_availability("R-1", D, start="09:00", end="12:00", status="Unavailable")
        assert checker.is_available("R-1", datetime(2024, 2, 10, 10, 0)) is False
        assert checker.is_available("R-1", datetime(2024, 2, 10, 12, 0)) is False
        assert checker.is_available("R-1", datetime(2024, 2, 10, 13, 0)) is True

    def test_whole_day_entry(self, checker, add_availability):
        add_availability("R-1", D, status="Unavailable")
        assert checker.is_available("R-1", datetime(2024, 2, 10, 23, 59)) is False
        assert checker.is_available("R-1", datetime(2024, 2, 11, 0, 0)) is True

    def test_only_start(self, checker, add_availability):
        add_availability("R-1", D, start="15:00", status="Busy")
        assert checker.is_available("R-1", datetime(2024, 2, 10, 14, 59)) is True
        assert checker.is_available("R-1", datetime(2024, 2, 10, 15, 0)) is False

    def test_only_end(self, checker, add_availability):
        add_availability("R-1", D, end="08:00", status="Unavailable")
        assert checker.is_available("R-1", datetime(2024, 2, 10, 7, 30)) is False
        assert checker.is_available("R-1", datetime(2024, 2, 10, 8, 1)) is True

    @pytest.mark.parametrize("status", ["", "Available", "available"])
    def test_available_status(self, checker, add_availability, status):
        add_availability("R-1", D, status=status)
        assert checker.is_available("R-1", datetime(2024, 2, 10, 10, 0)) is True

    def test_first_matching_entry_decides(self, checker, add_availability):
        add_availability("R-1", D, start="08:00", end="18:00", status="Available")
        add_availability("R-1", D, status="Unavailable")
        assert checker.is_available("R-1", datetime(2024, 2, 10, 10, 0)) is True
        assert checker.is_available("R-1", datetime(2024, 2, 10, 19, 0)) is False

    def test_identifier_case_insensitive(self, checker, add_availability):
        add_availability("Alice@Example.com", D, status="Unavailable")
        assert checker.is_available("alice@example.com", datetime(2024, 2, 10, 10, 0)) is False


# ---------------------------------------------------------------------------
# is_rider_available
# ---------------------------------------------------------------------------


class TestIsRiderAvailable:
    def test_free_rider(self, checker, add_rider):
        add_rider("Alice", rider_id="R-1")
        assert checker.is_rider_available("Alice", D, "14:00") is True

    def test_conflict_makes_unavailable(self, checker, add_rider, add_assignment):
        add_rider("Alice", rider_id="R-1")
        add_assignment("ASG-0001", "B-01-24", "Alice", event_date=D, start_time="14:30")
        assert checker.is_rider_available("Alice", D, "14:00") is False

    def test_resolves_rider_id(self, checker, add_rider, add_availability):
        add_rider("Alice", rider_id="R-1")
        add_availability("R-1", D, start="09:00", end="12:00")
        assert checker.is_rider_available("Alice", D, "10:00") is False
        assert checker.is_rider_available("Alice", D, "13:00") is True

    def test_resolves_rider_email(self, checker, add_rider, add_availability):
        add_rider("Alice", rider_id="R-1", email="alice@example.com")
        add_availability("alice@example.com", D)
        assert checker.is_rider_available("Alice", D, "10:00") is False

    def test_unknown_rider_checked_by_name(self, checker, add_availability):
        add_availability("Ghost", D)
        assert checker.is_rider_available("Ghost", D, "10:00") is False

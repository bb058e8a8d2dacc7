"""Tests for escort_dispatch.data.db — SQLite table and property stores."""

from datetime import date, datetime, time

import pytest

from escort_dispatch.core.errors import PersistenceError
from escort_dispatch.data.db import PropertyDB, TableDB


@pytest.fixture
def db(tmp_db_path):
    store = TableDB(db_path=tmp_db_path)
    store.ensure_table("People", ["Name", "City"])
    return store


# ---------------------------------------------------------------------------
# TableDB
# ---------------------------------------------------------------------------


class TestTableDB:
    def test_empty_table(self, db):
        snap = db.read_all("People")
        assert snap.headers == ["Name", "City"]
        assert snap.rows == []
        assert snap.column_index == {"Name": 0, "City": 1}

    def test_append_and_read_in_order(self, db):
        db.append_row("People", ["Ann", "Austin"])
        db.append_row("People", ["Ben"])

        rows = db.read_all("People").rows
        assert rows == [["Ann", "Austin"], ["Ben", ""]]

    def test_append_truncates_extra_cells(self, db):
        db.append_row("People", ["Ann", "Austin", "extra"])
        assert db.read_all("People").rows == [["Ann", "Austin"]]

    def test_temporal_values_stored_as_text(self, db):
        db.ensure_table("Times", ["D", "T", "DT"])
        db.append_row("Times", [date(2024, 2, 10), time(14, 5), datetime(2024, 2, 10, 14, 5, 30)])
        assert db.read_all("Times").rows == [["2024-02-10", "14:05", "2024-02-10T14:05:30"]]

    def test_delete_row_shifts_positions(self, db):
        for name in ("Ann", "Ben", "Cid"):
            db.append_row("People", [name, ""])

        db.delete_row("People", 2)

        names = [r[0] for r in db.read_all("People").rows]
        assert names == ["Ann", "Cid"]

    def test_update_cell(self, db):
        db.append_row("People", ["Ann", "Austin"])
        db.update_cell("People", 1, 1, "Boston")
        assert db.read_all("People").rows == [["Ann", "Boston"]]

    def test_tables_are_isolated(self, db):
        db.ensure_table("Other", ["X"])
        db.append_row("Other", ["x1"])
        db.append_row("People", ["Ann", ""])

        db.delete_row("People", 1)

        assert db.read_all("Other").rows == [["x1"]]

    def test_ensure_table_adds_missing_columns(self, db):
        db.append_row("People", ["Ann", "Austin"])
        db.ensure_table("People", ["Name", "City", "Phone"])

        snap = db.read_all("People")
        assert snap.headers == ["Name", "City", "Phone"]
        assert snap.rows == [["Ann", "Austin", ""]]

    def test_ensure_table_is_idempotent(self, db):
        db.ensure_table("People", ["Name", "City"])
        assert db.read_all("People").headers == ["Name", "City"]

    def test_unknown_table(self, db):
        with pytest.raises(PersistenceError):
            db.read_all("Missing")
        with pytest.raises(PersistenceError):
            db.append_row("Missing", ["x"])

    @pytest.mark.parametrize("row_index", [0, 2])
    def test_bad_row_index(self, db, row_index):
        db.append_row("People", ["Ann", ""])
        with pytest.raises(PersistenceError):
            db.delete_row("People", row_index)
        with pytest.raises(PersistenceError):
            db.update_cell("People", row_index, 0, "x")

    def test_bad_column_index(self, db):
        db.append_row("People", ["Ann", ""])
        with pytest.raises(PersistenceError):
            db.update_cell("People", 1, 5, "x")

    def test_persists_across_instances(self, tmp_db_path, db):
        db.append_row("People", ["Ann", ""])
        assert TableDB(db_path=tmp_db_path).read_all("People").rows == [["Ann", ""]]


# ---------------------------------------------------------------------------
# PropertyDB
# ---------------------------------------------------------------------------


class TestPropertyDB:
    def test_missing_key(self, property_db):
        assert property_db.get_property("nope") is None

    def test_set_and_overwrite(self, property_db):
        property_db.set_property("riderRotationOrder", "Alice\nBob")
        property_db.set_property("riderRotationOrder", "Bob\nAlice")
        assert property_db.get_property("riderRotationOrder") == "Bob\nAlice"

    def test_shares_file_with_table_store(self, tmp_db_path, db):
        PropertyDB(db_path=tmp_db_path).set_property("k", "v")
        assert PropertyDB(db_path=tmp_db_path).get_property("k") == "v"
        assert db.read_all("People").rows == []

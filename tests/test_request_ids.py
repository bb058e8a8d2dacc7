"""Tests for escort_dispatch.core.request_ids."""

from datetime import date

import pytest

from escort_dispatch.core.request_ids import (
    generate_request_id,
    is_valid_request_id,
    normalize_request_id,
    request_id_key,
)


class TestNormalize:
    @pytest.mark.parametrize("raw,expected", [
        ("B-02-24", "B-02-24"),
        ("b-2-24", "B-02-24"),
        ('  "C-7-25" ', "C-07-25"),
        ("L-123-24", "L-123-24"),
        ("not an id", "not an id"),
        ("M-01-24", "M-01-24"),
        (None, ""),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_request_id(raw) == expected

    def test_key_is_case_insensitive(self):
        assert request_id_key("b-2-24") == request_id_key("B-02-24") == "b-02-24"


class TestValidate:
    @pytest.mark.parametrize("value", ["A-01-24", "L-99-25", "B-100-24"])
    def test_valid(self, value):
        assert is_valid_request_id(value)

    @pytest.mark.parametrize("value", ["", "B-2-24", "b-02-24", "M-01-24", "B-01-2024", None])
    def test_invalid(self, value):
        assert not is_valid_request_id(value)


class TestGenerate:
    def test_first_of_month(self):
        assert generate_request_id([], today=date(2024, 2, 3)) == "B-01-24"

    def test_next_after_highest_same_month(self):
        existing = ["B-01-24", "b-7-24", "B-03-24", "C-20-24", "B-40-23", "junk"]
        assert generate_request_id(existing, today=date(2024, 2, 3)) == "B-08-24"

    def test_december(self):
        assert generate_request_id(["L-09-25"], today=date(2025, 12, 31)) == "L-10-25"

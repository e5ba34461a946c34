"""Tests for row decoding and candidate seat generation."""

import itertools

import pytest

from ticket_sales_platform.utils.exceptions import InvalidRowEncodingError
from ticket_sales_platform.utils.seat_codec import (
    iter_candidate_seats,
    require_row_integer,
    row_to_integer,
    seat_key,
)


class TestRowToInteger:
    """Row labels to inventory row numbers"""

    @pytest.mark.parametrize("row,expected", [("A", 1), ("b", 2), (" C ", 3), ("Z", 26), ("z", 26)])
    def test_letters_map_to_alphabet_position(self, row, expected):
        assert row_to_integer(row) == expected

    @pytest.mark.parametrize("row,expected", [("1", 1), ("12", 12), (" 7 ", 7), ("+5", 5)])
    def test_numerals_are_parsed(self, row, expected):
        assert row_to_integer(row) == expected

    @pytest.mark.parametrize("row", ["AA", "", "   ", "Ñ", "1A", None, "1_0", "+", "1 0", "٣", "²"])
    def test_anything_else_is_none(self, row):
        assert row_to_integer(row) is None

    def test_require_row_integer_raises(self):
        with pytest.raises(InvalidRowEncodingError) as exc_info:
            require_row_integer("AA")
        assert exc_info.value.row == "AA"


class TestCandidateSeats:
    """Exhaustive probing order"""

    def test_row_major_from_one(self):
        assert list(iter_candidate_seats(2, 3)) == [(1, 1), (1, 2), (1, 3), (2, 1), (2, 2), (2, 3)]

    def test_is_lazy(self):
        candidates = iter_candidate_seats(50, 50)
        assert list(itertools.islice(candidates, 2)) == [(1, 1), (1, 2)]

    def test_empty_grid(self):
        assert list(iter_candidate_seats(0, 10)) == []


def test_seat_key_trims_row():
    assert seat_key(" B ", 3) == "B-3"


def test_seat_key_upper_cases_row():
    assert seat_key("b", 3) == seat_key("B", 3) == "B-3"

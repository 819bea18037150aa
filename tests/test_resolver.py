"""Tests for cell and range resolution."""

from __future__ import annotations

from cellcalc.formulas.resolver import expand_range, get_cell_value
from cellcalc.models import Cell


class TestGetCellValue:
    def test_missing_cell(self) -> None:
        assert get_cell_value({}, 0, 0) is None

    def test_dict_cell(self) -> None:
        assert get_cell_value({"0,0": {"value": 5}}, 0, 0) == 5

    def test_model_cell(self) -> None:
        assert get_cell_value({"1,2": Cell(value="x")}, 1, 2) == "x"

    def test_erroring_cell_reads_as_empty(self) -> None:
        cells = {"0,0": {"value": 5, "error": "#REF!"}}
        assert get_cell_value(cells, 0, 0) is None


class TestExpandRange:
    def test_row_major_order(self) -> None:
        cells = {
            "0,0": {"value": 1},
            "0,1": {"value": 2},
            "1,0": {"value": 3},
            "1,1": {"value": 4},
        }
        assert expand_range(cells, "A", "1", "B", "2") == [1, 2, 3, 4]

    def test_missing_cells_are_none(self) -> None:
        cells = {"0,0": {"value": 1}}
        assert expand_range(cells, "A", "1", "A", "3") == [1, None, None]

    def test_backwards_range_is_empty(self) -> None:
        cells = {"0,0": {"value": 1}}
        assert expand_range(cells, "B", "1", "A", "1") == []
        assert expand_range(cells, "A", "3", "A", "1") == []

    def test_only_first_column_letter_counts(self) -> None:
        # "AB" reads as column A.
        cells = {"0,0": {"value": 7}, "0,27": {"value": 9}}
        assert expand_range(cells, "AB", "1", "AB", "1") == [7]

    def test_lowercase_letters(self) -> None:
        cells = {"0,1": {"value": 2}}
        assert expand_range(cells, "b", "1", "b", "1") == [2]

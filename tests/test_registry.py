"""Tests for the function registry."""

from __future__ import annotations

import pytest

from cellcalc.formulas.errors import FormulaFunctionError
from cellcalc.functions import (
    check_arity,
    get_function,
    lookup_function,
    register,
    registered_functions,
)

MATH = """SUM SUMIF SUMIFS AVERAGE AVERAGEIF COUNT COUNTA COUNTBLANK COUNTIF
COUNTIFS MAX MIN ROUND ROUNDUP ROUNDDOWN ABS SQRT POWER MOD PRODUCT MEDIAN
STDEV VAR FLOOR CEILING TRUNC LOG LN EXP PI RAND RANDBETWEEN""".split()
LOOKUP = "VLOOKUP HLOOKUP INDEX MATCH LOOKUP".split()
LOGIC = """IF IFS AND OR NOT XOR IFERROR IFNA SWITCH ISBLANK ISNUMBER ISTEXT
ISERROR""".split()
TEXT = """CONCAT CONCATENATE TEXTJOIN LEN UPPER LOWER PROPER TRIM CLEAN LEFT
RIGHT MID SUBSTITUTE REPLACE FIND SEARCH REPT CHAR CODE TEXT VALUE SPLIT""".split()
DATE = """NOW TODAY DATE TIME YEAR MONTH DAY HOUR MINUTE SECOND WEEKDAY WEEKNUM
DATEDIF EDATE EOMONTH NETWORKDAYS""".split()


class TestRegistry:
    def test_builtin_catalogue(self) -> None:
        expected = set(MATH + LOOKUP + LOGIC + TEXT + DATE)
        assert set(registered_functions()) == expected

    def test_lookup_is_case_insensitive(self) -> None:
        assert lookup_function("sum") is lookup_function("SUM")
        assert lookup_function("NOSUCH") is None

    def test_get_function(self) -> None:
        assert get_function("vlookup").name == "VLOOKUP"
        with pytest.raises(KeyError, match="NOSUCH"):
            get_function("NOSUCH")

    def test_flags(self) -> None:
        assert get_function("IFERROR").accepts_errors
        assert not get_function("SUM").accepts_errors
        assert not get_function("SUMIF").flatten
        assert get_function("SUM").flatten
        volatile = {name for name, spec in registered_functions().items() if spec.volatile}
        assert volatile == {"RAND", "RANDBETWEEN", "NOW", "TODAY"}

    def test_view_is_read_only(self) -> None:
        view = registered_functions()
        with pytest.raises(TypeError):
            view["NEW"] = None  # type: ignore[index]

    def test_duplicate_registration_rejected(self) -> None:
        with pytest.raises(ValueError, match="already registered"):
            register("sum")(lambda args: 0)


class TestCheckArity:
    def test_within_bounds(self) -> None:
        check_arity("F", [1], 1, 1)
        check_arity("F", [1, 2, 3], 1)

    def test_exact(self) -> None:
        with pytest.raises(FormulaFunctionError, match="F requires exactly 1 argument$"):
            check_arity("F", [], 1, 1)
        with pytest.raises(FormulaFunctionError, match="F requires exactly 2 arguments"):
            check_arity("F", [1], 2, 2)

    def test_at_least(self) -> None:
        with pytest.raises(FormulaFunctionError, match="F requires at least 3 arguments"):
            check_arity("F", [1], 3)

    def test_range(self) -> None:
        with pytest.raises(FormulaFunctionError, match="F requires 2-3 arguments") as info:
            check_arity("F", [1, 2, 3, 4], 2, 3)
        assert info.value.func_name == "F"

"""Tests for the date and time functions."""

from __future__ import annotations

import time
from datetime import date, datetime, timezone
from typing import Any

import pytest

from cellcalc import ErrorCode, evaluate
from cellcalc.formulas.fn_date import coerce_datetime


def _eval(formula: str, cells: dict | None = None) -> Any:
    result = evaluate(formula, cells or {})
    assert result.error is None, f"{formula} -> {result.error}"
    return result.value


def _err(formula: str) -> ErrorCode | None:
    return evaluate(formula, {}).error


# ────────────────────────────────────────────────────────────────
# Date coercion
# ────────────────────────────────────────────────────────────────


class TestCoerceDatetime:
    def test_iso_date(self) -> None:
        assert coerce_datetime("2024-03-15") == datetime(2024, 3, 15)

    def test_iso_datetime(self) -> None:
        assert coerce_datetime("2024-03-15T08:30:00") == datetime(2024, 3, 15, 8, 30)

    def test_utc_suffix_becomes_local(self) -> None:
        expected = (
            datetime(2024, 3, 15, 12, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        )
        assert coerce_datetime("2024-03-15T12:00:00Z") == expected

    def test_us_format(self) -> None:
        assert coerce_datetime("03/15/2024") == datetime(2024, 3, 15)
        assert coerce_datetime("2024/03/15") == datetime(2024, 3, 15)

    def test_epoch_milliseconds(self) -> None:
        ms = 1_700_000_000_000
        assert coerce_datetime(ms) == datetime.fromtimestamp(ms / 1000)
        assert coerce_datetime(str(ms)) == datetime.fromtimestamp(ms / 1000)

    def test_date_object(self) -> None:
        assert coerce_datetime(date(2024, 1, 2)) == datetime(2024, 1, 2)

    @pytest.mark.parametrize("value", [None, "", "nope", True, ErrorCode.NA])
    def test_unreadable(self, value: Any) -> None:
        assert coerce_datetime(value) is None


# ────────────────────────────────────────────────────────────────
# Current time
# ────────────────────────────────────────────────────────────────


class TestCurrentTime:
    def test_now_is_epoch_ms(self) -> None:
        before = int(time.time() * 1000)
        value = _eval("=NOW()")
        after = int(time.time() * 1000)
        assert before <= value <= after

    def test_today_is_iso(self) -> None:
        assert _eval("=TODAY()") == date.today().isoformat()

    def test_now_feeds_date_parts(self) -> None:
        assert _eval("=YEAR(NOW())") == datetime.now().year


# ────────────────────────────────────────────────────────────────
# Construction and parts
# ────────────────────────────────────────────────────────────────


class TestDateConstruction:
    def test_date(self) -> None:
        assert _eval("=DATE(2024, 1, 15)") == "2024-01-15"

    def test_date_rolls_over(self) -> None:
        assert _eval("=DATE(2024, 14, 1)") == "2025-02-01"
        assert _eval("=DATE(2024, 3, 0)") == "2024-02-29"
        assert _eval("=DATE(2024, 0, 1)") == "2023-12-01"

    def test_time(self) -> None:
        assert _eval("=TIME(14, 5, 9)") == "14:05:09"
        assert _eval("=TIME(25, 0, 0)") == "01:00:00"
        assert _err("=TIME(-1, 0, 0)") == ErrorCode.VALUE


class TestDateParts:
    def test_date_parts(self) -> None:
        assert _eval('=YEAR("2024-03-15")') == 2024
        assert _eval('=MONTH("2024-03-15")') == 3
        assert _eval('=DAY("2024-03-15")') == 15
        assert _eval('=YEAR("03/15/2024")') == 2024

    def test_time_parts(self) -> None:
        assert _eval('=HOUR("2024-03-15T14:30:45")') == 14
        assert _eval('=MINUTE("2024-03-15T14:30:45")') == 30
        assert _eval('=SECOND("2024-03-15T14:30:45")') == 45
        assert _eval('=HOUR("14:30")') == 14

    def test_date_from_cell(self) -> None:
        cells = {"0,0": {"value": "2023-12-31"}}
        assert _eval("=MONTH(A1)", cells) == 12

    def test_unreadable_date(self) -> None:
        assert _err('=YEAR("nope")') == ErrorCode.VALUE
        assert _err("=YEAR(A1)") == ErrorCode.VALUE

    def test_weekday(self) -> None:
        # 2024-03-17 is a Sunday.
        assert _eval('=WEEKDAY("2024-03-17")') == 1
        assert _eval('=WEEKDAY("2024-03-17", 2)') == 7
        assert _eval('=WEEKDAY("2024-03-17", 3)') == 6
        assert _eval('=WEEKDAY("2024-03-18", 2)') == 1
        assert _err('=WEEKDAY("2024-03-17", 9)') == ErrorCode.VALUE

    def test_weeknum(self) -> None:
        # 2024-01-01 is a Monday.
        assert _eval('=WEEKNUM("2024-01-06")') == 1
        assert _eval('=WEEKNUM("2024-01-07")') == 2
        assert _eval('=WEEKNUM("2024-01-07", 2)') == 1
        assert _eval('=WEEKNUM("2024-01-08", 2)') == 2


# ────────────────────────────────────────────────────────────────
# Date arithmetic
# ────────────────────────────────────────────────────────────────


class TestDatedif:
    @pytest.mark.parametrize(
        "unit, expected",
        [("Y", 4), ("M", 49), ("YM", 1), ("MD", 24)],
    )
    def test_units(self, unit: str, expected: int) -> None:
        assert _eval(f'=DATEDIF("2020-01-15", "2024-03-10", "{unit}")') == expected

    def test_days(self) -> None:
        assert _eval('=DATEDIF("2024-01-01", "2024-03-01", "D")') == 60

    def test_year_days(self) -> None:
        assert _eval('=DATEDIF("2023-11-20", "2024-02-10", "YD")') == 82

    def test_unit_is_case_insensitive(self) -> None:
        assert _eval('=DATEDIF("2020-01-15", "2024-03-10", "y")') == 4

    def test_end_before_start(self) -> None:
        assert _err('=DATEDIF("2024-03-10", "2020-01-15", "D")') == ErrorCode.VALUE

    def test_unknown_unit(self) -> None:
        assert _err('=DATEDIF("2020-01-15", "2024-03-10", "Q")') == ErrorCode.VALUE


class TestMonthShifts:
    def test_edate_clamps_day(self) -> None:
        assert _eval('=EDATE("2024-01-31", 1)') == "2024-02-29"
        assert _eval('=EDATE("2024-03-15", -2)') == "2024-01-15"

    def test_eomonth(self) -> None:
        assert _eval('=EOMONTH("2024-01-15", 1)') == "2024-02-29"
        assert _eval('=EOMONTH("2024-01-15", 0)') == "2024-01-31"
        assert _eval('=EOMONTH("2024-01-15", -1)') == "2023-12-31"

    def test_bad_start(self) -> None:
        assert _err('=EDATE("nope", 1)') == ErrorCode.VALUE


class TestNetworkdays:
    def test_month(self) -> None:
        assert _eval('=NETWORKDAYS("2024-03-01", "2024-03-31")') == 21

    def test_holidays(self) -> None:
        assert _eval('=NETWORKDAYS("2024-03-01", "2024-03-31", "2024-03-29")') == 20

    def test_holiday_range_skips_empty_cells(self) -> None:
        cells = {"0,0": {"value": "2024-03-29"}, "2,0": {"value": "2024-03-28"}}
        assert _eval('=NETWORKDAYS("2024-03-01", "2024-03-31", A1:A3)', cells) == 19

    def test_reversed_is_negative(self) -> None:
        assert _eval('=NETWORKDAYS("2024-03-31", "2024-03-01")') == -21

    def test_weekend_only(self) -> None:
        assert _eval('=NETWORKDAYS("2024-03-30", "2024-03-31")') == 0

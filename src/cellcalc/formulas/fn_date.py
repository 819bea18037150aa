"""Date and time formula functions.

Dates travel through the engine as ISO text (``"2024-03-15"``) and times
as ``"HH:MM:SS"``; NOW is the exception and yields epoch milliseconds.
Date arguments are read by :func:`coerce_datetime`.
"""

from __future__ import annotations

import calendar
import math
import time
from datetime import date, datetime, timedelta
from typing import Any

from cellcalc.formulas.errors import ErrorCode
from cellcalc.formulas.values import is_empty, is_error, is_number, parse_number, to_int, to_text
from cellcalc.functions.registry import check_arity, register

_TEXT_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%Y/%m/%d",
    "%H:%M:%S",
    "%H:%M",
)


def _from_epoch_ms(ms: int | float) -> datetime | None:
    if not math.isfinite(ms):
        return None
    try:
        return datetime.fromtimestamp(ms / 1000)
    except (OverflowError, OSError, ValueError):
        return None


def coerce_datetime(value: Any) -> datetime | None:
    """Read a date argument.

    Accepts ``datetime``/``date`` objects, epoch milliseconds (numbers or
    numeric text, local time), ISO date or datetime text and ``M/D/YYYY``
    text.  Returns None for anything else, including empty input.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool) or value is None or is_error(value):
        return None
    if is_number(value):
        return _from_epoch_ms(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    num = parse_number(text)
    if num is not None:
        return _from_epoch_ms(num)
    iso = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(iso)
    except ValueError:
        parsed = None
    if parsed is not None:
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone().replace(tzinfo=None)
        return parsed
    for fmt in _TEXT_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _iso(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def _add_months(d: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    total = d.year * 12 + (d.month - 1) + months
    year, month = divmod(total, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def _date_args(args: list) -> list[date] | ErrorCode:
    out: list[date] = []
    for arg in args:
        dt = coerce_datetime(arg)
        if dt is None:
            return ErrorCode.VALUE
        out.append(dt.date())
    return out


# ---------- Current time ----------


@register("NOW", volatile=True)
def _fn_now(args: list) -> int:
    """NOW() -- current time as epoch milliseconds."""
    check_arity("NOW", args, 0, 0)
    return int(time.time() * 1000)


@register("TODAY", volatile=True)
def _fn_today(args: list) -> str:
    """TODAY() -- current local date as ISO text."""
    check_arity("TODAY", args, 0, 0)
    return _iso(date.today())


# ---------- Construction ----------


@register("DATE")
def _fn_date(args: list) -> str | ErrorCode:
    """DATE(year, month, day).

    Months and days outside their normal range roll over, so
    ``DATE(2024, 14, 1)`` is ``2025-02-01`` and ``DATE(2024, 3, 0)`` is
    ``2024-02-29``.
    """
    check_arity("DATE", args, 3, 3)
    year, month, day = (to_int(a) for a in args)
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    try:
        result = date(year, month, 1) + timedelta(days=day - 1)
    except (ValueError, OverflowError):
        return ErrorCode.VALUE
    return _iso(result)


@register("TIME")
def _fn_time(args: list) -> str | ErrorCode:
    """TIME(hour, minute, second) -- wraps past midnight."""
    check_arity("TIME", args, 3, 3)
    hours, minutes, seconds = (to_int(a) for a in args)
    total = hours * 3600 + minutes * 60 + seconds
    if total < 0:
        return ErrorCode.VALUE
    total %= 86400
    return f"{total // 3600:02d}:{total % 3600 // 60:02d}:{total % 60:02d}"


# ---------- Parts ----------


def _part(name: str, args: list, attr: str) -> int | ErrorCode:
    check_arity(name, args, 1, 1)
    dt = coerce_datetime(args[0])
    if dt is None:
        return ErrorCode.VALUE
    return getattr(dt, attr)


@register("YEAR")
def _fn_year(args: list) -> int | ErrorCode:
    return _part("YEAR", args, "year")


@register("MONTH")
def _fn_month(args: list) -> int | ErrorCode:
    return _part("MONTH", args, "month")


@register("DAY")
def _fn_day(args: list) -> int | ErrorCode:
    return _part("DAY", args, "day")


@register("HOUR")
def _fn_hour(args: list) -> int | ErrorCode:
    return _part("HOUR", args, "hour")


@register("MINUTE")
def _fn_minute(args: list) -> int | ErrorCode:
    return _part("MINUTE", args, "minute")


@register("SECOND")
def _fn_second(args: list) -> int | ErrorCode:
    return _part("SECOND", args, "second")


@register("WEEKDAY")
def _fn_weekday(args: list) -> int | ErrorCode:
    """WEEKDAY(date [, type]).

    type 1 (default): Sunday=1 .. Saturday=7; type 2: Monday=1 .. Sunday=7;
    type 3: Monday=0 .. Sunday=6.
    """
    check_arity("WEEKDAY", args, 1, 2)
    dt = coerce_datetime(args[0])
    if dt is None:
        return ErrorCode.VALUE
    kind = to_int(args[1]) if len(args) == 2 else 1
    wd = dt.weekday()
    if kind == 1:
        return (wd + 1) % 7 + 1
    if kind == 2:
        return wd + 1
    if kind == 3:
        return wd
    return ErrorCode.VALUE


@register("WEEKNUM")
def _fn_weeknum(args: list) -> int | ErrorCode:
    """WEEKNUM(date [, type]) -- week 1 holds January 1st.

    type 1 (default) starts weeks on Sunday, type 2 on Monday.
    """
    check_arity("WEEKNUM", args, 1, 2)
    dt = coerce_datetime(args[0])
    if dt is None:
        return ErrorCode.VALUE
    kind = to_int(args[1]) if len(args) == 2 else 1
    jan1 = date(dt.year, 1, 1)
    if kind == 1:
        offset = (jan1.weekday() + 1) % 7
    elif kind == 2:
        offset = jan1.weekday()
    else:
        return ErrorCode.VALUE
    return (dt.date().toordinal() - jan1.toordinal() + offset) // 7 + 1


# ---------- Arithmetic ----------


@register("DATEDIF")
def _fn_datedif(args: list) -> int | ErrorCode:
    """DATEDIF(start, end, unit) with unit one of Y, M, D, MD, YM, YD."""
    check_arity("DATEDIF", args, 3, 3)
    dates = _date_args(args[:2])
    if is_error(dates):
        return dates
    start, end = dates
    if start > end:
        return ErrorCode.VALUE
    unit = to_text(args[2]).strip().upper()

    months = (end.year - start.year) * 12 + end.month - start.month
    if end.day < start.day:
        months -= 1

    if unit == "D":
        return (end - start).days
    if unit == "M":
        return months
    if unit == "Y":
        return months // 12
    if unit == "YM":
        return months % 12
    if unit == "MD":
        if end.day >= start.day:
            return end.day - start.day
        prev_month_len = (end.replace(day=1) - timedelta(days=1)).day
        return prev_month_len - start.day + end.day
    if unit == "YD":
        anchor = _add_months(start, (end.year - start.year) * 12)
        if anchor > end:
            anchor = _add_months(start, (end.year - start.year - 1) * 12)
        return (end - anchor).days
    return ErrorCode.VALUE


@register("EDATE")
def _fn_edate(args: list) -> str | ErrorCode:
    """EDATE(start, months) -- same day N months away, clamped to month end."""
    check_arity("EDATE", args, 2, 2)
    dates = _date_args(args[:1])
    if is_error(dates):
        return dates
    try:
        return _iso(_add_months(dates[0], to_int(args[1])))
    except ValueError:
        return ErrorCode.VALUE


@register("EOMONTH")
def _fn_eomonth(args: list) -> str | ErrorCode:
    """EOMONTH(start, months) -- last day of the month N months away."""
    check_arity("EOMONTH", args, 2, 2)
    dates = _date_args(args[:1])
    if is_error(dates):
        return dates
    try:
        shifted = _add_months(dates[0].replace(day=1), to_int(args[1]))
    except ValueError:
        return ErrorCode.VALUE
    last = calendar.monthrange(shifted.year, shifted.month)[1]
    return _iso(shifted.replace(day=last))


@register("NETWORKDAYS")
def _fn_networkdays(args: list) -> int | ErrorCode:
    """NETWORKDAYS(start, end [, holidays...]).

    Counts Monday-Friday dates between the endpoints inclusive, minus any
    holidays.  Any further arguments (ranges are flattened) are holidays;
    empty entries among them are ignored.  Negative when end < start.
    """
    check_arity("NETWORKDAYS", args, 2)
    dates = _date_args(args[:2])
    if is_error(dates):
        return dates
    holidays = _date_args([h for h in args[2:] if not is_empty(h)])
    if is_error(holidays):
        return holidays

    start, end = dates
    sign = 1
    if start > end:
        start, end, sign = end, start, -1
    skip = set(holidays)
    count = 0
    day = start
    while day <= end:
        if day.weekday() < 5 and day not in skip:
            count += 1
        day += timedelta(days=1)
    return sign * count

"""Text formula functions."""

from __future__ import annotations

import math
import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from cellcalc.formulas.criteria import wildcard_to_regex
from cellcalc.formulas.errors import ErrorCode
from cellcalc.formulas.fn_date import coerce_datetime
from cellcalc.formulas.values import (
    flatten,
    format_number,
    is_empty,
    is_number,
    is_numeric,
    parse_number,
    to_bool,
    to_int,
    to_num,
    to_text,
)
from cellcalc.functions.registry import check_arity, register

_WORD_RE = re.compile(r"[A-Za-z]+")
_NUMBER_FORMAT_RE = re.compile(r"^([^0#.,]*)([0#,]*)(?:\.([0#]+))?(%?)(.*)$", re.DOTALL)
_DATE_TOKEN_RE = re.compile(
    r"yyyy|yy|mmmm|mmm|mm|m|dddd|ddd|dd|d|hh|h|ss|s|am/pm", re.IGNORECASE
)


# ---------- Joining ----------


@register("CONCAT")
def _fn_concat(args: list) -> str:
    return "".join(to_text(a) for a in args)


@register("CONCATENATE")
def _fn_concatenate(args: list) -> str:
    return "".join(to_text(a) for a in args)


@register("TEXTJOIN", flatten=False)
def _fn_textjoin(args: list) -> str:
    """TEXTJOIN(delimiter, ignore_empty, values...)."""
    check_arity("TEXTJOIN", args, 3)
    delimiter = to_text(args[0])
    ignore_empty = to_bool(args[1])
    parts = [to_text(v) for v in flatten(args[2:])]
    if ignore_empty:
        parts = [p for p in parts if p != ""]
    return delimiter.join(parts)


# ---------- Case and whitespace ----------


@register("LEN")
def _fn_len(args: list) -> int:
    check_arity("LEN", args, 1, 1)
    return len(to_text(args[0]))


@register("UPPER")
def _fn_upper(args: list) -> str:
    check_arity("UPPER", args, 1, 1)
    return to_text(args[0]).upper()


@register("LOWER")
def _fn_lower(args: list) -> str:
    check_arity("LOWER", args, 1, 1)
    return to_text(args[0]).lower()


@register("PROPER")
def _fn_proper(args: list) -> str:
    """PROPER(text) -- capitalise each run of letters."""
    check_arity("PROPER", args, 1, 1)
    return _WORD_RE.sub(lambda m: m.group(0).capitalize(), to_text(args[0]))


@register("TRIM")
def _fn_trim(args: list) -> str:
    """TRIM(text) -- strips leading and trailing whitespace only."""
    check_arity("TRIM", args, 1, 1)
    return to_text(args[0]).strip()


@register("CLEAN")
def _fn_clean(args: list) -> str:
    """CLEAN(text) -- drops control characters (code points below 32)."""
    check_arity("CLEAN", args, 1, 1)
    return "".join(ch for ch in to_text(args[0]) if ord(ch) >= 32)


# ---------- Slicing ----------


@register("LEFT")
def _fn_left(args: list) -> str:
    """LEFT(text [, count]) -- a count of 0 is read as 1."""
    check_arity("LEFT", args, 1, 2)
    text = to_text(args[0])
    n = (to_int(args[1]) if len(args) == 2 and not is_empty(args[1]) else 1) or 1
    return text[: max(n, 0)]


@register("RIGHT")
def _fn_right(args: list) -> str:
    """RIGHT(text [, count]) -- a count of 0 is read as 1."""
    check_arity("RIGHT", args, 1, 2)
    text = to_text(args[0])
    n = (to_int(args[1]) if len(args) == 2 and not is_empty(args[1]) else 1) or 1
    start = min(max(len(text) - n, 0), len(text))
    return text[start:]


@register("MID")
def _fn_mid(args: list) -> str | ErrorCode:
    """MID(text, start, count) -- 1-based start."""
    check_arity("MID", args, 3, 3)
    text = to_text(args[0])
    start, count = to_int(args[1]), to_int(args[2])
    if start < 1 or count < 0:
        return ErrorCode.VALUE
    return text[start - 1 : start - 1 + count]


@register("REPLACE")
def _fn_replace(args: list) -> str | ErrorCode:
    """REPLACE(text, start, count, new_text)."""
    check_arity("REPLACE", args, 4, 4)
    text = to_text(args[0])
    start, count = to_int(args[1]), to_int(args[2])
    if start < 1 or count < 0:
        return ErrorCode.VALUE
    return text[: start - 1] + to_text(args[3]) + text[start - 1 + count :]


@register("SUBSTITUTE")
def _fn_substitute(args: list) -> str | ErrorCode:
    """SUBSTITUTE(text, old, new [, instance]) -- every occurrence by default."""
    check_arity("SUBSTITUTE", args, 3, 4)
    text, old, new = to_text(args[0]), to_text(args[1]), to_text(args[2])
    if old == "":
        return text
    if len(args) == 3:
        return text.replace(old, new)
    instance = to_int(args[3])
    if instance < 1:
        return ErrorCode.VALUE
    pos = -1
    for _ in range(instance):
        pos = text.find(old, pos + 1)
        if pos < 0:
            return text
    return text[:pos] + new + text[pos + len(old) :]


# ---------- Searching ----------


def _start_index(args: list, haystack: str) -> int | None:
    start = to_int(args[2]) if len(args) == 3 else 1
    if start < 1 or start > len(haystack) + 1:
        return None
    return start - 1


@register("FIND")
def _fn_find(args: list) -> int | ErrorCode:
    """FIND(needle, haystack [, start]) -- case-sensitive, 1-based."""
    check_arity("FIND", args, 2, 3)
    needle, haystack = to_text(args[0]), to_text(args[1])
    start = _start_index(args, haystack)
    if start is None:
        return ErrorCode.VALUE
    pos = haystack.find(needle, start)
    return ErrorCode.VALUE if pos < 0 else pos + 1


@register("SEARCH")
def _fn_search(args: list) -> int | ErrorCode:
    """SEARCH(needle, haystack [, start]) -- case-insensitive, ``*``/``?`` wildcards."""
    check_arity("SEARCH", args, 2, 3)
    needle, haystack = to_text(args[0]), to_text(args[1])
    start = _start_index(args, haystack)
    if start is None:
        return ErrorCode.VALUE
    m = wildcard_to_regex(needle, anchored=False).search(haystack, start)
    return ErrorCode.VALUE if m is None else m.start() + 1


# ---------- Characters ----------


@register("REPT")
def _fn_rept(args: list) -> str | ErrorCode:
    check_arity("REPT", args, 2, 2)
    times = to_int(args[1])
    if times < 0:
        return ErrorCode.VALUE
    return to_text(args[0]) * times


@register("CHAR")
def _fn_char(args: list) -> str | ErrorCode:
    check_arity("CHAR", args, 1, 1)
    code = to_int(args[0])
    if code < 1 or code > 0x10FFFF:
        return ErrorCode.VALUE
    return chr(code)


@register("CODE")
def _fn_code(args: list) -> int | ErrorCode:
    check_arity("CODE", args, 1, 1)
    text = to_text(args[0])
    return ord(text[0]) if text else ErrorCode.VALUE


# ---------- Conversion ----------


@register("VALUE")
def _fn_value(args: list) -> int | float | ErrorCode:
    """VALUE(text) -- accepts thousands separators and a trailing ``%``."""
    check_arity("VALUE", args, 1, 1)
    value = args[0]
    if is_number(value):
        return value
    text = to_text(value).strip().replace(",", "")
    percent = text.endswith("%")
    if percent:
        text = text[:-1]
    num = parse_number(text)
    if num is None:
        return ErrorCode.VALUE
    return num / 100 if percent else num


@register("SPLIT")
def _fn_split(args: list) -> list:
    """SPLIT(text, delimiter) -- parts that are numbers come back as numbers."""
    check_arity("SPLIT", args, 2, 2)
    text, delimiter = to_text(args[0]), to_text(args[1])
    parts = text.split(delimiter) if delimiter else [text]
    out: list[Any] = []
    for part in parts:
        num = parse_number(part)
        out.append(part if num is None else num)
    return out


def _format_number(num: int | float, fmt: str) -> str:
    """Apply a ``0``/``#`` picture such as ``"$#,##0.00"`` or ``"0.0%"``."""
    if not math.isfinite(num):
        return format_number(num)
    m = _NUMBER_FORMAT_RE.match(fmt)
    prefix, int_pattern, frac_pattern, percent, suffix = m.groups()
    frac_pattern = frac_pattern or ""

    amount = Decimal(repr(num) if isinstance(num, float) else num)
    if percent:
        amount *= 100
    quantum = Decimal(1).scaleb(-len(frac_pattern))
    amount = amount.quantize(quantum, rounding=ROUND_HALF_UP)

    int_str, _, frac_str = f"{abs(amount):f}".partition(".")
    # Optional (#) decimal places drop their trailing zeros.
    min_frac = frac_pattern.count("0")
    while len(frac_str) > min_frac and frac_str.endswith("0"):
        frac_str = frac_str[:-1]

    min_int = int_pattern.replace(",", "").count("0")
    int_str = int_str.lstrip("0").zfill(min_int)
    if "," in int_pattern and int_str:
        int_str = f"{int(int_str):,}"

    sign = "-" if amount < 0 else ""
    body = int_str + ("." + frac_str if frac_str else "")
    return f"{sign}{prefix}{body}{percent}{suffix}"


def _format_date(value: Any, fmt: str) -> str | ErrorCode:
    dt = coerce_datetime(value)
    if dt is None:
        return ErrorCode.VALUE

    tokens = list(_DATE_TOKEN_RE.finditer(fmt))
    out: list[str] = []
    pos = 0
    for i, tok in enumerate(tokens):
        out.append(fmt[pos : tok.start()])
        pos = tok.end()
        t = tok.group(0).lower()
        if t in ("m", "mm"):
            # m after an hour or before a second means minutes.
            prev = tokens[i - 1].group(0).lower() if i > 0 else ""
            nxt = tokens[i + 1].group(0).lower() if i + 1 < len(tokens) else ""
            if prev in ("h", "hh") or nxt in ("s", "ss"):
                out.append(f"{dt.minute:02d}" if t == "mm" else str(dt.minute))
                continue
        out.append(_date_token(dt, t, fmt))
    out.append(fmt[pos:])
    return "".join(out)


def _date_token(dt: datetime, token: str, fmt: str) -> str:
    twelve_hour = "am/pm" in fmt.lower()
    hour = (dt.hour % 12 or 12) if twelve_hour else dt.hour
    return {
        "yyyy": f"{dt.year:04d}",
        "yy": f"{dt.year % 100:02d}",
        "mmmm": dt.strftime("%B"),
        "mmm": dt.strftime("%b"),
        "mm": f"{dt.month:02d}",
        "m": str(dt.month),
        "dddd": dt.strftime("%A"),
        "ddd": dt.strftime("%a"),
        "dd": f"{dt.day:02d}",
        "d": str(dt.day),
        "hh": f"{hour:02d}",
        "h": str(hour),
        "ss": f"{dt.second:02d}",
        "s": str(dt.second),
        "am/pm": "AM" if dt.hour < 12 else "PM",
    }[token]


@register("TEXT")
def _fn_text(args: list) -> str | ErrorCode:
    """TEXT(value, format).

    Formats containing ``0`` or ``#`` are number pictures (prefix, optional
    grouping comma, decimal places, ``%``, suffix).  Formats built from
    ``y m d h s`` letters format a date.  Non-numeric values under a number
    picture come back as their text.
    """
    check_arity("TEXT", args, 2, 2)
    value, fmt = args[0], to_text(args[1])
    if re.search(r"[0#]", fmt):
        if not is_numeric(value):
            return to_text(value)
        return _format_number(to_num(value), fmt)
    if _DATE_TOKEN_RE.search(fmt):
        return _format_date(value, fmt)
    return to_text(value)

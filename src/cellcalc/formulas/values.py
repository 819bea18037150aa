"""Value vocabulary and named coercions.

Every value flowing through the engine is one of:

- number: ``int`` or ``float`` (``bool`` is *not* a number here)
- text: ``str``
- bool
- empty: ``None``
- an :class:`ErrorCode`
- a list of the above (ranges, SPLIT results)

Each coercion below documents its fallback.  The silent fallbacks (``0``
for unparsable text in :func:`to_num`, NaN in :func:`to_arith_number`)
are part of the engine's compatibility contract.
"""

from __future__ import annotations

import math
import re
from typing import Any, Union

from cellcalc.formulas.errors import ErrorCode

Value = Union[int, float, str, bool, None, ErrorCode, list]

# Leading-number scan in the manner of JavaScript's parseFloat.
_PREFIX_NUMBER_RE = re.compile(
    r"^\s*([+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?))"
)
_FULL_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")


def _to_number(text: str) -> int | float:
    if "Infinity" in text:
        return -math.inf if text.startswith("-") else math.inf
    if "." in text or "e" in text or "E" in text:
        return float(text)
    return int(text)


def parse_float_prefix(text: str) -> int | float | None:
    """Parse the longest numeric prefix of *text* (``"12px"`` -> 12).

    Returns None when *text* does not start with a number.
    """
    m = _PREFIX_NUMBER_RE.match(text)
    if not m:
        return None
    return _to_number(m.group(1))


def parse_number(text: str) -> int | float | None:
    """Parse *text* only if the whole (stripped) string is a number literal."""
    s = text.strip()
    if not _FULL_NUMBER_RE.match(s):
        return None
    return _to_number(s)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_error(value: Any) -> bool:
    return isinstance(value, ErrorCode)


def is_numeric(value: Any) -> bool:
    """True for numbers and for text holding a complete number literal."""
    if is_number(value):
        return True
    return isinstance(value, str) and not is_error(value) and parse_number(value) is not None


def is_empty(value: Any) -> bool:
    return value is None or value == ""


def first_error(values: list[Any]) -> ErrorCode | None:
    """Return the first error code in *values*, or None."""
    for v in values:
        if is_error(v):
            return v
    return None


def flatten(values: list[Any]) -> list[Any]:
    """Flatten nested lists into one ordered sequence."""
    out: list[Any] = []
    for v in values:
        if isinstance(v, list):
            out.extend(flatten(v))
        else:
            out.append(v)
    return out


def to_num(value: Any) -> int | float:
    """Coerce to a number; unparsable input becomes ``0``, never an error.

    Text goes through :func:`parse_float_prefix`, booleans become 1/0.
    """
    if is_number(value):
        return value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str) and not is_error(value):
        num = parse_float_prefix(value)
        return 0 if num is None else num
    return 0


def to_int(value: Any) -> int:
    """:func:`to_num` truncated toward zero."""
    num = to_num(value)
    if isinstance(num, float) and not math.isfinite(num):
        raise ValueError(f"Cannot convert {num!r} to an integer")
    return int(num)


def to_arith_number(value: Any) -> int | float:
    """Operand coercion for plain-expression arithmetic.

    Mirrors JavaScript ``Number()``: empty and blank text give ``0``, a
    complete numeric literal gives its number, any other text gives NaN.
    """
    if is_number(value):
        return value
    if isinstance(value, bool):
        return int(value)
    if value is None:
        return 0
    if isinstance(value, str) and not is_error(value):
        s = value.strip()
        if s == "":
            return 0
        if s in ("Infinity", "+Infinity", "-Infinity"):
            return _to_number(s)
        num = parse_number(s)
        return math.nan if num is None else num
    return math.nan


def format_number(value: int | float) -> str:
    """Render a number the way the editor displays it (``3.0`` -> ``"3"``)."""
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def to_text(value: Any) -> str:
    """Coerce to text.  Empty is ``""``, booleans are ``TRUE``/``FALSE``."""
    if value is None:
        return ""
    if isinstance(value, ErrorCode):
        return value.value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if is_number(value):
        return format_number(value)
    if isinstance(value, list):
        return ",".join(to_text(v) for v in value)
    return str(value)


def to_bool(value: Any) -> bool:
    """Coerce to a truth value.

    Numbers are true when non-zero (NaN is false).  Text ``TRUE``/``FALSE``
    maps case-insensitively; other text is true unless empty.
    """
    if isinstance(value, bool):
        return value
    if value is None or is_error(value):
        return False
    if is_number(value):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        upper = value.strip().upper()
        if upper == "TRUE":
            return True
        if upper == "FALSE":
            return False
        return value != ""
    if isinstance(value, list):
        return len(value) > 0
    return bool(value)


def _blank_as_zero(a: Any, b: Any) -> tuple[Any, Any]:
    if a is None and is_numeric(b):
        return 0, b
    if b is None and is_numeric(a):
        return a, 0
    return a, b


def values_equal(a: Any, b: Any) -> bool:
    """Loose equality: numerically when both sides are numeric, else
    case-insensitive text.  Empty counts as 0 against a number."""
    a, b = _blank_as_zero(a, b)
    if is_numeric(a) and is_numeric(b):
        return float(to_num(a)) == float(to_num(b))
    return to_text(a).lower() == to_text(b).lower()


def compare(a: Any, b: Any) -> int:
    """Three-way comparison with the same rules as :func:`values_equal`."""
    a, b = _blank_as_zero(a, b)
    if is_numeric(a) and is_numeric(b):
        x, y = float(to_num(a)), float(to_num(b))
    else:
        x, y = to_text(a).lower(), to_text(b).lower()
    return (x > y) - (x < y)

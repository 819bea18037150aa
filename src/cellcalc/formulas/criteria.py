"""Criteria strings for the ``*IF`` / ``*IFS`` family, plus wildcard patterns."""

from __future__ import annotations

import operator
import re
from typing import Any, Callable

from cellcalc.formulas.values import to_num, to_text

_CRITERIA_OP_RE = re.compile(r"^(>=|<=|<>|!=|>|<|=)(.*)$", re.DOTALL)

_ORDERING_OPS: dict[str, Callable[[Any, Any], bool]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


def wildcard_to_regex(pattern: str, *, anchored: bool = True) -> re.Pattern[str]:
    """Translate ``*`` / ``?`` wildcards into a case-insensitive regex."""
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    body = "".join(parts)
    if anchored:
        body = rf"{body}\Z"
    return re.compile(body, re.IGNORECASE | re.DOTALL)


def has_wildcards(text: str) -> bool:
    return "*" in text or "?" in text


def parse_criteria(criteria: Any) -> Callable[[Any], bool]:
    """Build a predicate from a criteria value.

    Interpretation, first match wins:

    1. Operator prefix.  ``>``, ``<``, ``>=`` and ``<=`` compare numerically
       (both sides through :func:`to_num`); ``=``, ``<>`` and ``!=`` compare
       the text forms for (in)equality.
    2. Wildcards: text containing ``*`` or ``?`` is matched as a pattern,
       case-insensitively.
    3. Otherwise case-insensitive equality of the text forms.

    Examples:
        ``">=10"``, ``"<>done"``, ``"app*"``, ``"Sales"``, ``42``
    """
    text = to_text(criteria)

    m = _CRITERIA_OP_RE.match(text)
    if m:
        op, operand = m.group(1), m.group(2)
        if op in _ORDERING_OPS:
            compare = _ORDERING_OPS[op]
            threshold = to_num(operand)
            return lambda v: compare(to_num(v), threshold)
        if op == "=":
            return lambda v: to_text(v) == operand
        return lambda v: to_text(v) != operand

    if has_wildcards(text):
        pattern = wildcard_to_regex(text)
        return lambda v: pattern.match(to_text(v)) is not None

    lowered = text.lower()
    return lambda v: to_text(v).lower() == lowered


def match_criteria(criteria: Any, value: Any) -> bool:
    """Test a single value against a criteria value."""
    return parse_criteria(criteria)(value)

"""Splitting and resolving the arguments of a function call.

An argument is resolved by the first rule that matches:

1. range ``A1:B3`` -> flat row-major list of values
2. cell ``B3`` -> the cell's value (None when empty or erroring)
3. top-level comparison ``X op Y`` -> bool
4. nested call ``NAME(...)`` -> its value; a failed call reads as None,
   or as its error code when the caller is error-aware
5. number literal -> number
6. quoted literal -> the text between the quotes
7. arithmetic over numbers and cell addresses (``A1*2``) -> number
8. anything else -> the raw text
"""

from __future__ import annotations

import re
from typing import Any

from cellcalc.address import parse_cell_address
from cellcalc.formulas.errors import ErrorCode
from cellcalc.formulas.expression import evaluate_expression
from cellcalc.formulas.parser import CELL_TOKEN_RE
from cellcalc.formulas.resolver import CellMap, expand_range, get_cell_value
from cellcalc.formulas.tokenizer import is_quoted, opens_quote, tokenize, unquote
from cellcalc.formulas.values import compare, is_error, parse_number, values_equal

DEFAULT_MAX_DEPTH = 64

_RANGE_RE = re.compile(r"^([A-Z]+)(\d+):([A-Z]+)(\d+)$", re.IGNORECASE)
_CALL_RE = re.compile(r"^[A-Z]+\(", re.IGNORECASE)

_TWO_CHAR_COMPARISONS = (">=", "<=", "<>")
_ARITHMETIC_OPS = frozenset("+-*/")


def split_arguments(text: str) -> list[str]:
    """Split an argument list on commas outside parentheses and quotes.

    Each piece is stripped.  Empty pieces between commas are kept as
    ``""``; a trailing empty piece is dropped.

    Examples:
        ``'A1:A3, IF(B1>2, "a,b", 3)'`` -> ``["A1:A3", 'IF(B1>2, "a,b", 3)']``
        ``"1,,2,"`` -> ``["1", "", "2"]``
    """
    args: list[str] = []
    current = ""
    depth = 0
    quote: str | None = None

    for i, ch in enumerate(text):
        if quote is not None:
            if ch == quote:
                quote = None
        elif opens_quote(text, i):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            args.append(current.strip())
            current = ""
            continue
        current += ch

    if current.strip():
        args.append(current.strip())
    return args


def find_top_level_comparison(text: str) -> tuple[str, str, str] | None:
    """Locate the first comparison operator outside quotes and parentheses.

    Returns:
        ``(left, operator, right)`` with both sides stripped, or None when
        there is no such operator or either side is empty (``">5"`` is a
        criteria string, not a comparison).
    """
    depth = 0
    quote: str | None = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote is not None:
            if ch == quote:
                quote = None
        elif opens_quote(text, i):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch in "<>=" and depth == 0:
            op = text[i : i + 2] if text[i : i + 2] in _TWO_CHAR_COMPARISONS else ch
            left = text[:i].strip()
            right = text[i + len(op) :].strip()
            if not left or not right:
                return None
            return left, op, right
        i += 1
    return None


def _compare_values(left: Any, op: str, right: Any) -> Any:
    for side in (left, right):
        if is_error(side):
            return side
    if isinstance(left, list) or isinstance(right, list):
        return ErrorCode.VALUE
    if op == "=":
        return values_equal(left, right)
    if op == "<>":
        return not values_equal(left, right)
    order = compare(left, right)
    if op == ">":
        return order > 0
    if op == "<":
        return order < 0
    if op == ">=":
        return order >= 0
    return order <= 0


def _is_arithmetic(text: str) -> bool:
    """True for ``operand (op operand)+`` over numbers and cell addresses."""
    tokens = tokenize(text)
    if len(tokens) < 3 or len(tokens) % 2 == 0:
        return False
    for i, tok in enumerate(tokens):
        if i % 2:
            if tok not in _ARITHMETIC_OPS:
                return False
        elif parse_number(tok) is None and not CELL_TOKEN_RE.match(tok):
            return False
    return True


def parse_argument(
    text: str,
    cells: CellMap,
    *,
    depth: int = 0,
    max_depth: int = DEFAULT_MAX_DEPTH,
    keep_errors: bool = False,
) -> Any:
    """Resolve one argument's text to a value.

    Args:
        text: The argument text as produced by :func:`split_arguments`.
        cells: The cell map.
        depth: Nesting depth of the call this argument belongs to.
        max_depth: Nesting ceiling handed on to nested calls.
        keep_errors: Return a failed nested call's error code instead of
            None.  Set when resolving arguments for IFERROR and the other
            error-aware functions.

    Returns:
        The resolved value; a list for ranges.
    """
    arg = text.strip()

    m = _RANGE_RE.match(arg)
    if m:
        return expand_range(cells, *m.groups())

    if CELL_TOKEN_RE.match(arg):
        pos = parse_cell_address(arg)
        return get_cell_value(cells, pos.row, pos.col)

    comparison = find_top_level_comparison(arg)
    if comparison is not None:
        left, op, right = comparison
        opts = {"depth": depth, "max_depth": max_depth, "keep_errors": keep_errors}
        return _compare_values(
            parse_argument(left, cells, **opts),
            op,
            parse_argument(right, cells, **opts),
        )

    if _CALL_RE.match(arg):
        from cellcalc.formulas.evaluator import evaluate

        result = evaluate("=" + arg, cells, max_depth=max_depth, _depth=depth + 1)
        if result.error is not None:
            return result.error if keep_errors else None
        return result.value

    num = parse_number(arg)
    if num is not None:
        return num

    if is_quoted(arg):
        return unquote(arg)

    if _is_arithmetic(arg):
        return evaluate_expression(arg, cells)

    return arg

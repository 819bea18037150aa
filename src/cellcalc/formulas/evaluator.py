"""Formula evaluation entry point.

``evaluate`` takes the raw text a user typed into a cell and a snapshot of
the cell map.  A formula (text starting with ``=``) that is a single
function call wrapping its whole body is dispatched to the function
registry; anything else goes to the plain arithmetic evaluator.

No exception crosses :func:`evaluate`: failures become a
:class:`FormulaResult` carrying an :class:`ErrorCode`.
"""

from __future__ import annotations

import logging
import re
from typing import Any

# Function tables register themselves on import.
from cellcalc.formulas import fn_date, fn_logical, fn_lookup, fn_math, fn_text  # noqa: F401
from cellcalc.formulas.arguments import DEFAULT_MAX_DEPTH, parse_argument, split_arguments
from cellcalc.formulas.errors import (
    ErrorCode,
    FormulaDepthError,
    FormulaFunctionError,
    FormulaParseError,
)
from cellcalc.formulas.expression import evaluate_expression
from cellcalc.formulas.resolver import CellMap
from cellcalc.formulas.tokenizer import opens_quote
from cellcalc.formulas.values import first_error, flatten, is_error
from cellcalc.functions.registry import lookup_function
from cellcalc.logging.events import (
    FORMULA_DEPTH_ERROR,
    FORMULA_FUNCTION_ERROR,
    FORMULA_INTERNAL_ERROR,
    FORMULA_PARSE_ERROR,
    FORMULA_UNKNOWN_FUNCTION,
    EventType,
    emit_error,
    emit_warning,
)
from cellcalc.models import FormulaResult

log = logging.getLogger(__name__)

_CALL_RE = re.compile(r"^([A-Z]+)\((.*)\)$", re.IGNORECASE | re.DOTALL)


def _call_spans_whole(expr: str) -> bool:
    """True when the first ``(`` in *expr* is closed by its last character."""
    depth = 0
    quote: str | None = None
    for i, ch in enumerate(expr):
        if quote is not None:
            if ch == quote:
                quote = None
        elif opens_quote(expr, i):
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i == len(expr) - 1
    return False


def _result(value: Any) -> FormulaResult:
    if is_error(value):
        return FormulaResult(value=None, error=value)
    return FormulaResult(value=value)


def _event_error_code(exc: Exception) -> str:
    if isinstance(exc, FormulaParseError):
        return FORMULA_PARSE_ERROR
    if isinstance(exc, FormulaFunctionError):
        return FORMULA_FUNCTION_ERROR
    return FORMULA_INTERNAL_ERROR


def evaluate(
    formula_text: str,
    cells: CellMap,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
    _depth: int = 0,
) -> FormulaResult:
    """Evaluate cell input against a cell map.

    Args:
        formula_text: What the user typed.  Text not starting with ``=`` is
            returned unchanged as the value.
        cells: Mapping of ``"row,col"`` keys to :class:`Cell` models or
            plain dicts.  Never mutated.
        max_depth: Ceiling on nested function calls.

    Returns:
        The value, or ``value=None`` with an error code: ``#NAME?`` for an
        unknown function, a function's own ``#REF!``/``#N/A``/``#VALUE!``,
        and ``#ERROR!`` for everything else.
    """
    if not formula_text.startswith("="):
        return FormulaResult(value=formula_text)

    expr = formula_text[1:].strip()

    try:
        if _depth >= max_depth:
            raise FormulaDepthError(_depth, max_depth)

        m = _CALL_RE.match(expr)
        if m and _call_spans_whole(expr):
            return _call(m.group(1).upper(), m.group(2), cells, depth=_depth, max_depth=max_depth)

        if not expr:
            return FormulaResult(value=None)
        return _result(evaluate_expression(expr, cells))

    except FormulaDepthError as exc:
        # An overrun fails the whole formula, not just the innermost call.
        if _depth > 0:
            raise
        emit_warning(
            EventType.formula_depth_exceeded,
            str(exc),
            {"formula": formula_text, "depth": exc.depth, "limit": exc.limit},
            error_code=FORMULA_DEPTH_ERROR,
        )
        return FormulaResult(value=None, error=ErrorCode.ERROR)
    except Exception as exc:
        log.debug("Formula %r failed", formula_text, exc_info=True)
        emit_error(
            EventType.formula_failed,
            f"{type(exc).__name__}: {exc}",
            {"formula": formula_text},
            error_code=_event_error_code(exc),
        )
        return FormulaResult(value=None, error=ErrorCode.ERROR)


def _call(
    name: str,
    args_text: str,
    cells: CellMap,
    *,
    depth: int,
    max_depth: int,
) -> FormulaResult:
    spec = lookup_function(name)
    keep_errors = spec is not None and spec.accepts_errors
    args = [
        parse_argument(arg, cells, depth=depth, max_depth=max_depth, keep_errors=keep_errors)
        for arg in split_arguments(args_text)
    ]

    if spec is None:
        emit_warning(
            EventType.formula_unknown_function,
            f"Unknown function: {name}",
            {"function": name},
            error_code=FORMULA_UNKNOWN_FUNCTION,
        )
        return FormulaResult(value=None, error=ErrorCode.NAME)

    if spec.flatten:
        args = flatten(args)
    if not spec.accepts_errors:
        err = first_error(flatten(args))
        if err is not None:
            return FormulaResult(value=None, error=err)

    return _result(spec.fn(args))

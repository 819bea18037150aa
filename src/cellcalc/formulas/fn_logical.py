"""Logical formula functions: IF, IFS, AND, OR, NOT, XOR, SWITCH, IFERROR, IFNA, IS*."""

from __future__ import annotations

from typing import Any

from cellcalc.formulas.errors import ErrorCode, FormulaFunctionError
from cellcalc.formulas.values import (
    is_empty,
    is_error,
    is_numeric,
    to_bool,
    values_equal,
)
from cellcalc.functions.registry import check_arity, register


@register("IF", accepts_errors=True)
def _fn_if(args: list) -> Any:
    """IF(condition, then_value [, else_value]).

    A missing or empty branch yields 0.  An error in the condition or in the
    chosen branch is returned; an error in the other branch is ignored.
    """
    check_arity("IF", args, 2, 3)
    condition = args[0]
    if is_error(condition):
        return condition
    if to_bool(condition):
        chosen = args[1]
    else:
        chosen = args[2] if len(args) == 3 else None
    return 0 if chosen is None else chosen


@register("IFS", accepts_errors=True)
def _fn_ifs(args: list) -> Any:
    """IFS(cond1, value1 [, cond2, value2, ...]) -- #N/A when nothing holds."""
    if len(args) < 2 or len(args) % 2 != 0:
        raise FormulaFunctionError("IFS", "IFS requires condition/value pairs")
    for i in range(0, len(args), 2):
        condition = args[i]
        if is_error(condition):
            return condition
        if to_bool(condition):
            return args[i + 1]
    return ErrorCode.NA


def _truth_values(name: str, args: list) -> list[bool] | ErrorCode:
    check_arity(name, args, 1)
    present = [a for a in args if a is not None]
    if not present:
        return ErrorCode.VALUE
    return [to_bool(a) for a in present]


@register("AND")
def _fn_and(args: list) -> bool | ErrorCode:
    """AND(values...) -- TRUE if every non-empty argument is truthy."""
    values = _truth_values("AND", args)
    return values if is_error(values) else all(values)


@register("OR")
def _fn_or(args: list) -> bool | ErrorCode:
    """OR(values...) -- TRUE if any non-empty argument is truthy."""
    values = _truth_values("OR", args)
    return values if is_error(values) else any(values)


@register("XOR")
def _fn_xor(args: list) -> bool | ErrorCode:
    """XOR(values...) -- TRUE if an odd number of arguments are truthy."""
    values = _truth_values("XOR", args)
    return values if is_error(values) else sum(values) % 2 == 1


@register("NOT")
def _fn_not(args: list) -> bool:
    check_arity("NOT", args, 1, 1)
    return not to_bool(args[0])


@register("SWITCH", accepts_errors=True)
def _fn_switch(args: list) -> Any:
    """SWITCH(expr, case1, result1 [, case2, result2, ...] [, default])."""
    check_arity("SWITCH", args, 3)
    expr = args[0]
    if is_error(expr):
        return expr
    rest = args[1:]
    pairs = len(rest) // 2
    for i in range(pairs):
        if values_equal(expr, rest[2 * i]):
            return rest[2 * i + 1]
    if len(rest) % 2 == 1:
        return rest[-1]
    return ErrorCode.NA


@register("IFERROR", accepts_errors=True)
def _fn_iferror(args: list) -> Any:
    """IFERROR(value, fallback) -- fallback when value is any error code."""
    check_arity("IFERROR", args, 2, 2)
    return args[1] if is_error(args[0]) else args[0]


@register("IFNA", accepts_errors=True)
def _fn_ifna(args: list) -> Any:
    """IFNA(value, fallback) -- fallback only for #N/A."""
    check_arity("IFNA", args, 2, 2)
    return args[1] if args[0] == ErrorCode.NA else args[0]


@register("ISBLANK", accepts_errors=True)
def _fn_isblank(args: list) -> bool:
    check_arity("ISBLANK", args, 1, 1)
    return is_empty(args[0])


@register("ISNUMBER", accepts_errors=True)
def _fn_isnumber(args: list) -> bool:
    """ISNUMBER(value) -- numbers and text holding a complete number."""
    check_arity("ISNUMBER", args, 1, 1)
    return is_numeric(args[0])


@register("ISTEXT", accepts_errors=True)
def _fn_istext(args: list) -> bool:
    check_arity("ISTEXT", args, 1, 1)
    value = args[0]
    return isinstance(value, str) and not is_error(value) and not is_numeric(value)


@register("ISERROR", accepts_errors=True)
def _fn_iserror(args: list) -> bool:
    check_arity("ISERROR", args, 1, 1)
    return is_error(args[0])

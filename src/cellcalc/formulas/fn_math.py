"""Math formula functions: aggregates, conditional aggregates, rounding, powers."""

from __future__ import annotations

import math
import random
import statistics
from typing import Any

from cellcalc.formulas.criteria import parse_criteria
from cellcalc.formulas.errors import FormulaFunctionError
from cellcalc.formulas.values import (
    flatten,
    is_empty,
    is_number,
    parse_float_prefix,
    to_int,
    to_num,
)
from cellcalc.functions.registry import check_arity, register


def _numeric_values(args: list) -> list[int | float]:
    """Numbers and numeric-looking text; empties, booleans and plain text are skipped."""
    out: list[int | float] = []
    for arg in args:
        if is_number(arg):
            if not math.isnan(arg):
                out.append(arg)
        elif isinstance(arg, str):
            num = parse_float_prefix(arg)
            if num is not None:
                out.append(num)
    return out


def _as_list(value: Any) -> list:
    return flatten(value) if isinstance(value, list) else [value]


def _at(values: list, index: int) -> Any:
    return values[index] if index < len(values) else None


def _clean(num: float) -> float:
    # Absorb binary noise such as 1.1 * 10 == 11.000000000000002.
    return round(num, 10)


# ---------- Aggregates ----------


@register("SUM")
def _fn_sum(args: list) -> int | float:
    """SUM(values...) -- numbers and numeric text add; anything else is skipped."""
    return sum(_numeric_values(args))


@register("AVERAGE")
def _fn_average(args: list) -> float:
    """AVERAGE(values...) -- 0 when nothing numeric is present."""
    nums = _numeric_values(args)
    return sum(nums) / len(nums) if nums else 0


@register("COUNT")
def _fn_count(args: list) -> int:
    """COUNT(values...) -- non-empty entries."""
    return sum(1 for a in args if not is_empty(a))


@register("COUNTA")
def _fn_counta(args: list) -> int:
    """COUNTA(values...) -- every entry that is not an empty cell."""
    return sum(1 for a in args if a is not None)


@register("COUNTBLANK")
def _fn_countblank(args: list) -> int:
    return sum(1 for a in args if is_empty(a))


@register("MAX")
def _fn_max(args: list) -> int | float:
    nums = _numeric_values(args)
    return max(nums) if nums else 0


@register("MIN")
def _fn_min(args: list) -> int | float:
    nums = _numeric_values(args)
    return min(nums) if nums else 0


@register("PRODUCT")
def _fn_product(args: list) -> int | float:
    nums = _numeric_values(args)
    return math.prod(nums) if nums else 0


@register("MEDIAN")
def _fn_median(args: list) -> int | float:
    nums = _numeric_values(args)
    return statistics.median(nums) if nums else 0


@register("STDEV")
def _fn_stdev(args: list) -> float:
    """STDEV(values...) -- sample standard deviation."""
    nums = _numeric_values(args)
    if len(nums) < 2:
        raise FormulaFunctionError("STDEV", "STDEV requires at least 2 numeric values")
    return statistics.stdev(nums)


@register("VAR")
def _fn_var(args: list) -> float:
    """VAR(values...) -- sample variance."""
    nums = _numeric_values(args)
    if len(nums) < 2:
        raise FormulaFunctionError("VAR", "VAR requires at least 2 numeric values")
    return statistics.variance(nums)


# ---------- Conditional aggregates ----------


def _matching_indices(pairs: list[tuple[list, Any]]) -> list[int]:
    """Indices (over the first criteria range) where every criterion holds."""
    predicates = [(values, parse_criteria(crit)) for values, crit in pairs]
    size = len(pairs[0][0])
    return [
        i
        for i in range(size)
        if all(pred(_at(values, i)) for values, pred in predicates)
    ]


def _criteria_pairs(name: str, args: list) -> list[tuple[list, Any]]:
    if len(args) < 2 or len(args) % 2 != 0:
        raise FormulaFunctionError(
            name, f"{name} requires (range, criteria) pairs -- got {len(args)} arguments"
        )
    return [(_as_list(args[i]), args[i + 1]) for i in range(0, len(args), 2)]


@register("SUMIF", flatten=False)
def _fn_sumif(args: list) -> int | float:
    """SUMIF(range, criteria [, sum_range])."""
    check_arity("SUMIF", args, 2, 3)
    values = _as_list(args[0])
    targets = _as_list(args[2]) if len(args) == 3 else values
    indices = _matching_indices([(values, args[1])])
    return sum(to_num(_at(targets, i)) for i in indices)


@register("SUMIFS", flatten=False)
def _fn_sumifs(args: list) -> int | float:
    """SUMIFS(sum_range, range1, criteria1 [, range2, criteria2, ...])."""
    if len(args) < 3:
        raise FormulaFunctionError("SUMIFS", "SUMIFS requires at least 3 arguments")
    targets = _as_list(args[0])
    indices = _matching_indices(_criteria_pairs("SUMIFS", args[1:]))
    return sum(to_num(_at(targets, i)) for i in indices)


@register("AVERAGEIF", flatten=False)
def _fn_averageif(args: list) -> float:
    """AVERAGEIF(range, criteria [, average_range]) -- 0 when nothing matches."""
    check_arity("AVERAGEIF", args, 2, 3)
    values = _as_list(args[0])
    targets = _as_list(args[2]) if len(args) == 3 else values
    indices = _matching_indices([(values, args[1])])
    if not indices:
        return 0
    return sum(to_num(_at(targets, i)) for i in indices) / len(indices)


@register("COUNTIF", flatten=False)
def _fn_countif(args: list) -> int:
    """COUNTIF(range, criteria)."""
    check_arity("COUNTIF", args, 2, 2)
    return len(_matching_indices([(_as_list(args[0]), args[1])]))


@register("COUNTIFS", flatten=False)
def _fn_countifs(args: list) -> int:
    """COUNTIFS(range1, criteria1 [, range2, criteria2, ...])."""
    return len(_matching_indices(_criteria_pairs("COUNTIFS", args)))


# ---------- Rounding ----------


def _digits(args: list) -> int:
    return to_int(args[1]) if len(args) > 1 else 0


@register("ROUND")
def _fn_round(args: list) -> float:
    """ROUND(value [, digits]) -- halves round up, toward +infinity."""
    check_arity("ROUND", args, 1, 2)
    factor = 10 ** _digits(args)
    return math.floor(to_num(args[0]) * factor + 0.5) / factor


@register("ROUNDUP")
def _fn_roundup(args: list) -> float:
    """ROUNDUP(value [, digits]) -- away from zero."""
    check_arity("ROUNDUP", args, 1, 2)
    num = to_num(args[0])
    factor = 10 ** _digits(args)
    return math.copysign(math.ceil(_clean(abs(num) * factor)) / factor, num)


@register("ROUNDDOWN")
def _fn_rounddown(args: list) -> float:
    """ROUNDDOWN(value [, digits]) -- toward zero."""
    check_arity("ROUNDDOWN", args, 1, 2)
    num = to_num(args[0])
    factor = 10 ** _digits(args)
    return math.copysign(math.floor(_clean(abs(num) * factor)) / factor, num)


@register("TRUNC")
def _fn_trunc(args: list) -> float:
    """TRUNC(value [, digits])."""
    check_arity("TRUNC", args, 1, 2)
    return _fn_rounddown(args)


@register("FLOOR")
def _fn_floor(args: list) -> int | float:
    """FLOOR(value [, significance]) -- round down to a multiple of significance."""
    check_arity("FLOOR", args, 1, 2)
    num = to_num(args[0])
    if len(args) == 1:
        return math.floor(num)
    significance = to_num(args[1])
    if significance == 0:
        return 0
    return math.floor(_clean(num / significance)) * significance


@register("CEILING")
def _fn_ceiling(args: list) -> int | float:
    """CEILING(value [, significance]) -- round up to a multiple of significance."""
    check_arity("CEILING", args, 1, 2)
    num = to_num(args[0])
    if len(args) == 1:
        return math.ceil(num)
    significance = to_num(args[1])
    if significance == 0:
        return 0
    return math.ceil(_clean(num / significance)) * significance


# ---------- Arithmetic ----------


@register("ABS")
def _fn_abs(args: list) -> int | float:
    check_arity("ABS", args, 1, 1)
    return abs(to_num(args[0]))


@register("SQRT")
def _fn_sqrt(args: list) -> float:
    """SQRT(value) -- negative input gives 0."""
    check_arity("SQRT", args, 1, 1)
    num = to_num(args[0])
    return 0 if num < 0 else math.sqrt(num)


@register("POWER")
def _fn_power(args: list) -> float:
    """POWER(base, exponent) -- NaN when the result is not real."""
    check_arity("POWER", args, 2, 2)
    try:
        return math.pow(to_num(args[0]), to_num(args[1]))
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan


@register("MOD")
def _fn_mod(args: list) -> int | float:
    """MOD(number, divisor) -- result takes the divisor's sign."""
    check_arity("MOD", args, 2, 2)
    divisor = to_num(args[1])
    if divisor == 0:
        raise ZeroDivisionError("MOD divisor is zero")
    return to_num(args[0]) % divisor


@register("LOG")
def _fn_log(args: list) -> float:
    """LOG(value [, base]) -- base defaults to 10."""
    check_arity("LOG", args, 1, 2)
    base = to_num(args[1]) if len(args) == 2 else 10
    return math.log(to_num(args[0]), base)


@register("LN")
def _fn_ln(args: list) -> float:
    check_arity("LN", args, 1, 1)
    return math.log(to_num(args[0]))


@register("EXP")
def _fn_exp(args: list) -> float:
    check_arity("EXP", args, 1, 1)
    return math.exp(to_num(args[0]))


@register("PI")
def _fn_pi(args: list) -> float:
    check_arity("PI", args, 0, 0)
    return math.pi


# ---------- Random ----------


@register("RAND", volatile=True)
def _fn_rand(args: list) -> float:
    check_arity("RAND", args, 0, 0)
    return random.random()


@register("RANDBETWEEN", volatile=True)
def _fn_randbetween(args: list) -> int:
    """RANDBETWEEN(low, high) -- inclusive integer bounds."""
    check_arity("RANDBETWEEN", args, 2, 2)
    low = math.ceil(to_num(args[0]))
    high = math.floor(to_num(args[1]))
    return random.randint(low, high)

"""Lookup formula functions: VLOOKUP, HLOOKUP, INDEX, MATCH, LOOKUP.

Ranges reach these functions as flat row-major lists, so two-dimensional
lookups rebuild a grid with ``ceil(sqrt(len(range)))`` columns.  That is
exact for square ranges only; a genuinely rectangular range is read with
the wrong row width and no error is raised.
"""

from __future__ import annotations

import math
from typing import Any

from cellcalc.formulas.criteria import has_wildcards, wildcard_to_regex
from cellcalc.formulas.errors import ErrorCode
from cellcalc.formulas.values import (
    compare,
    flatten,
    is_number,
    to_int,
    to_text,
    values_equal,
)
from cellcalc.functions.registry import check_arity, register


def _as_list(value: Any) -> list:
    return flatten(value) if isinstance(value, list) else [value]


def _reshape(values: list) -> list[list]:
    """Cut a flat range into rows of ``ceil(sqrt(n))`` cells."""
    if not values:
        return []
    num_cols = math.ceil(math.sqrt(len(values)))
    return [values[i : i + num_cols] for i in range(0, len(values), num_cols)]


def _is_sorted_mode(flag: Any) -> bool:
    """Sorted (approximate) mode unless the flag is 0, FALSE or ``"FALSE"``."""
    if flag is False:
        return False
    if is_number(flag) and flag == 0:
        return False
    if isinstance(flag, str) and flag.strip().upper() == "FALSE":
        return False
    return True


def _lookup_hit(candidate: Any, key: Any, sorted_mode: bool) -> bool:
    if values_equal(candidate, key):
        return True
    if not sorted_mode or candidate is None:
        return False
    prefix = to_text(key).lower()
    return prefix != "" and to_text(candidate).lower().startswith(prefix)


@register("VLOOKUP", flatten=False)
def _fn_vlookup(args: list) -> Any:
    """VLOOKUP(key, range, col_index [, sorted]).

    Searches the first column of the reshaped range.  In sorted mode a
    row also matches when its key text starts with the lookup text.
    """
    check_arity("VLOOKUP", args, 3, 4)
    key = args[0]
    rows = _reshape(_as_list(args[1]))
    col = to_int(args[2])
    num_cols = len(rows[0]) if rows else 0
    if col < 1 or col > num_cols:
        return ErrorCode.REF
    sorted_mode = _is_sorted_mode(args[3]) if len(args) == 4 else True

    for row in rows:
        if _lookup_hit(row[0], key, sorted_mode):
            return row[col - 1] if col - 1 < len(row) else None
    return ErrorCode.NA


@register("HLOOKUP", flatten=False)
def _fn_hlookup(args: list) -> Any:
    """HLOOKUP(key, range, row_index [, sorted]) -- searches the first row."""
    check_arity("HLOOKUP", args, 3, 4)
    key = args[0]
    rows = _reshape(_as_list(args[1]))
    row_index = to_int(args[2])
    if row_index < 1 or row_index > len(rows):
        return ErrorCode.REF
    sorted_mode = _is_sorted_mode(args[3]) if len(args) == 4 else True

    for j, candidate in enumerate(rows[0]):
        if _lookup_hit(candidate, key, sorted_mode):
            target = rows[row_index - 1]
            return target[j] if j < len(target) else None
    return ErrorCode.NA


@register("INDEX", flatten=False)
def _fn_index(args: list) -> Any:
    """INDEX(range, n) or INDEX(range, row, col), 1-based."""
    check_arity("INDEX", args, 2, 3)
    values = _as_list(args[0])
    if len(args) == 2:
        n = to_int(args[1])
        if n < 1 or n > len(values):
            return ErrorCode.REF
        return values[n - 1]

    rows = _reshape(values)
    row, col = to_int(args[1]), to_int(args[2])
    if row < 1 or row > len(rows) or col < 1 or col > len(rows[0]):
        return ErrorCode.REF
    target = rows[row - 1]
    return target[col - 1] if col - 1 < len(target) else None


def _approximate_position(key: Any, values: list, descending: bool = False) -> int | None:
    """0-based position of the last entry on the key's side of a sorted run."""
    found: int | None = None
    for i, v in enumerate(values):
        if v is None:
            continue
        order = compare(v, key)
        if (order > 0 and not descending) or (order < 0 and descending):
            break
        found = i
    return found


@register("MATCH", flatten=False)
def _fn_match(args: list) -> Any:
    """MATCH(key, range [, match_type]) -- 1-based position.

    match_type 0 finds an exact (or wildcard) match, 1 (default) the
    largest value <= key in ascending data, -1 the smallest value >= key in
    descending data.
    """
    check_arity("MATCH", args, 2, 3)
    key = args[0]
    values = _as_list(args[1])
    match_type = to_int(args[2]) if len(args) == 3 else 1

    if match_type == 0:
        if isinstance(key, str) and has_wildcards(key):
            pattern = wildcard_to_regex(key)
            for i, v in enumerate(values):
                if pattern.match(to_text(v)):
                    return i + 1
            return ErrorCode.NA
        for i, v in enumerate(values):
            if values_equal(v, key):
                return i + 1
        return ErrorCode.NA

    pos = _approximate_position(key, values, descending=match_type < 0)
    return ErrorCode.NA if pos is None else pos + 1


@register("LOOKUP", flatten=False)
def _fn_lookup(args: list) -> Any:
    """LOOKUP(key, lookup_range [, result_range]) -- approximate, ascending."""
    check_arity("LOOKUP", args, 2, 3)
    lookup_values = _as_list(args[1])
    pos = _approximate_position(args[0], lookup_values)
    if pos is None:
        return ErrorCode.NA
    results = _as_list(args[2]) if len(args) == 3 else lookup_values
    if pos >= len(results):
        return ErrorCode.NA
    return results[pos]

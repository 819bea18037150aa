"""Tree-walking evaluator for plain arithmetic formulas.

Operands are prepared the way the editor always has:

- a cell address reads the referenced value as a number (empty, missing,
  erroring or non-numeric cells read as ``0``)
- a number literal is parsed with leading-number semantics (``1e`` -> 1)
- a quoted literal is unwrapped
- any other operand is kept as text

Arithmetic coerces operands with :func:`to_arith_number`, so text operands
produce NaN rather than an error, and division by zero yields an IEEE
infinity (NaN for ``0/0``).
"""

from __future__ import annotations

import math
from typing import Any

from lark import Token, Tree

from cellcalc.address import parse_cell_address
from cellcalc.formulas.errors import FormulaError
from cellcalc.formulas.parser import parse_expression
from cellcalc.formulas.resolver import CellMap, get_cell_value
from cellcalc.formulas.tokenizer import unquote
from cellcalc.formulas.values import (
    is_number,
    parse_float_prefix,
    to_arith_number,
    to_text,
)


def evaluate_expression(text: str, cells: CellMap) -> Any:
    """Parse and evaluate expression text (without the leading ``=``).

    Returns:
        A number, or the lone operand when the expression has no operator.

    Raises:
        FormulaParseError: If the text is not a valid plain expression.
    """
    return _eval(parse_expression(text), cells)


def _eval(node: Tree | Token, cells: CellMap) -> Any:
    if isinstance(node, Token):
        return str(node)

    rule = node.data

    if rule == "start":
        return _eval(node.children[0], cells)

    if rule == "binop":
        return _fold_chain(node, cells)

    if rule == "number":
        return parse_float_prefix(str(node.children[0]))
    if rule == "string":
        return unquote(str(node.children[0]))
    if rule == "cell_ref":
        return _resolve_cell_operand(str(node.children[0]), cells)
    if rule == "text":
        return str(node.children[0])

    raise FormulaError(f"Unknown node type: {rule}")


def _fold_chain(node: Tree, cells: CellMap) -> int | float:
    """Reduce a left-deep run of ``binop`` nodes left to right.

    ``1+2+3`` parses as ``binop(binop(1, +, 2), +, 3)``.  The left spine is
    walked in a loop so chains of any length stay off the call stack.
    """
    pending: list[tuple[str, Tree | Token]] = []
    while isinstance(node, Tree) and node.data == "binop":
        left_node, op, right_node = node.children
        pending.append((str(op), right_node))
        node = left_node

    acc = to_arith_number(_eval(node, cells))
    for op, right_node in reversed(pending):
        right = to_arith_number(_eval(right_node, cells))
        if op == "+":
            acc = acc + right
        elif op == "-":
            acc = acc - right
        elif op == "*":
            acc = acc * right
        else:
            acc = _divide(acc, right)
    return acc


def _resolve_cell_operand(address: str, cells: CellMap) -> int | float:
    pos = parse_cell_address(address)
    if pos is None:
        return 0
    value = get_cell_value(cells, pos.row, pos.col)
    if value is None:
        return 0
    if is_number(value):
        return value
    num = parse_float_prefix(to_text(value))
    if num is None or (isinstance(num, float) and math.isnan(num)):
        return 0
    return num


def _divide(left: int | float, right: int | float) -> float:
    if right == 0:
        if left == 0 or math.isnan(left):
            return math.nan
        return math.copysign(math.inf, left) * math.copysign(1.0, right)
    return left / right

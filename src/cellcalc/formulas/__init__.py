"""Formula engine: tokenizer, argument resolution, function tables, evaluation."""

from cellcalc.formulas.errors import (
    ErrorCode,
    FormulaDepthError,
    FormulaError,
    FormulaFunctionError,
    FormulaParseError,
)
from cellcalc.formulas.evaluator import evaluate

__all__ = [
    "ErrorCode",
    "FormulaDepthError",
    "FormulaError",
    "FormulaFunctionError",
    "FormulaParseError",
    "evaluate",
]

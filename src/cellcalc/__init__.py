"""cellcalc -- spreadsheet formula evaluation engine.

Public API::

    from cellcalc import evaluate, Cell, FormulaResult
"""

__version__ = "0.1.0"

from cellcalc.formulas import ErrorCode, evaluate
from cellcalc.models import Cell, CellPosition, CellRange, FormulaResult

__all__ = [
    "__version__",
    "Cell",
    "CellPosition",
    "CellRange",
    "ErrorCode",
    "FormulaResult",
    "evaluate",
]

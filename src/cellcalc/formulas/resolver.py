"""Read-only lookups of cell values and rectangular ranges in a cell map."""

from __future__ import annotations

from typing import Any, Mapping

from cellcalc.address import cell_key

CellMap = Mapping[str, Any]


def _field(cell: Any, name: str) -> Any:
    """Read a field from a :class:`Cell` model or a plain dict."""
    if isinstance(cell, Mapping):
        return cell.get(name)
    return getattr(cell, name, None)


def get_cell_value(cells: CellMap, row: int, col: int) -> Any:
    """Return the stored value at ``(row, col)``.

    A missing cell and a cell whose ``error`` is set both read as None, so
    a referencing formula treats an erroring cell as empty instead of
    seeing its error code.
    """
    cell = cells.get(cell_key(row, col))
    if cell is None:
        return None
    if _field(cell, "error"):
        return None
    return _field(cell, "value")


def _column_index(letters: str) -> int:
    # Only the first letter counts: ranges are limited to columns A..Z.
    return ord(letters[0].upper()) - ord("A")


def expand_range(
    cells: CellMap,
    start_col: str,
    start_row: str,
    end_col: str,
    end_row: str,
) -> list[Any]:
    """Expand a range such as ``A1:B3`` into a flat row-major list.

    Args:
        cells: The cell map.
        start_col: Column letters of the top-left corner.
        start_row: 1-based row text of the top-left corner.
        end_col: Column letters of the bottom-right corner.
        end_row: 1-based row text of the bottom-right corner.

    Returns:
        Cell values in row-major order.  A range written end-before-start
        expands to an empty list.
    """
    col_start = _column_index(start_col)
    col_end = _column_index(end_col)
    row_start = int(start_row) - 1
    row_end = int(end_row) - 1

    values: list[Any] = []
    for r in range(row_start, row_end + 1):
        for c in range(col_start, col_end + 1):
            values.append(get_cell_value(cells, r, c))
    return values

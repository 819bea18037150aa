"""Host-side helpers around the engine: cell edits, display text, recalculation, CSV I/O.

A sheet is a plain ``dict`` mapping ``"row,col"`` keys to :class:`Cell`
models.  None of these helpers mutate the map they are given; edits and
recalculation return a new map.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Any, Mapping

import polars as pl

from cellcalc.address import cell_key, col_to_letter, parse_key
from cellcalc.formulas.arguments import DEFAULT_MAX_DEPTH
from cellcalc.formulas.evaluator import evaluate
from cellcalc.formulas.values import to_text
from cellcalc.logging.events import EventType, emit_info
from cellcalc.models import Cell

Sheet = dict[str, Cell]


def _as_cell(cell: Any) -> Cell:
    return cell if isinstance(cell, Cell) else Cell.model_validate(cell)


def _same(a: Any, b: Any) -> bool:
    # NaN results must not keep the pass loop going.
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True
    return a == b


def _evaluated(text: str, cells: Mapping[str, Any], *, style: Any, max_depth: int) -> Cell:
    result = evaluate(text, cells, max_depth=max_depth)
    return Cell(
        value=result.value,
        formula=text,
        display_value=to_text(result.value),
        error=result.error.value if result.error is not None else None,
        style=style,
    )


def update_cell(
    cells: Mapping[str, Any],
    row: int,
    col: int,
    text: str,
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Sheet:
    """Apply user input to one cell and return the new sheet.

    Text starting with ``=`` is stored as the cell's formula and evaluated
    against the current sheet; anything else is stored as the value.  The
    previous cell's style is carried over, every other field is replaced.
    """
    key = cell_key(row, col)
    existing = cells.get(key)
    style = _as_cell(existing).style if existing is not None else None

    if text.startswith("="):
        new_cell = _evaluated(text, cells, style=style, max_depth=max_depth)
    else:
        new_cell = Cell(value=text, style=style)

    new_cells = {k: _as_cell(v) for k, v in cells.items()}
    new_cells[key] = new_cell
    return new_cells


def display_value(cells: Mapping[str, Any], row: int, col: int) -> str:
    """Text shown for a cell: its error, else its display value, else its value."""
    cell = cells.get(cell_key(row, col))
    if cell is None:
        return ""
    cell = _as_cell(cell)
    if cell.error:
        return cell.error
    if cell.display_value is not None:
        return cell.display_value
    return to_text(cell.value)


def recalculate(
    cells: Mapping[str, Any],
    *,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> Sheet:
    """Re-evaluate every formula cell and return the new sheet.

    Formula cells are visited in row-major order, each against the sheet as
    updated so far.  Passes repeat until no value changes, at most once per
    formula cell, so chains that point at later rows settle.  There is no
    dependency tracking and no cycle detection; a cycle simply stops at the
    pass limit.
    """
    sheet = {k: _as_cell(v) for k, v in cells.items()}
    formula_keys = sorted(
        (k for k, c in sheet.items() if c.formula),
        key=parse_key,
    )

    passes = 0
    for _ in range(max(len(formula_keys), 1)):
        passes += 1
        changed = False
        for key in formula_keys:
            old = sheet[key]
            new = _evaluated(old.formula, sheet, style=old.style, max_depth=max_depth)
            if not _same(new.value, old.value) or new.error != old.error:
                changed = True
            sheet[key] = new
        if not changed:
            break

    emit_info(
        EventType.sheet_recalculated,
        f"Recalculated {len(formula_keys)} formula cells",
        {"formula_cells": len(formula_keys), "passes": passes},
    )
    return sheet


# ---------------------------------------------------------------------------
# CSV import / export
# ---------------------------------------------------------------------------


def load_csv(path: Path, *, delimiter: str = ",") -> Sheet:
    """Read a header-less CSV grid into a sheet (not yet recalculated).

    Every field is read as text.  Fields starting with ``=`` become formula
    cells; empty fields are left out of the map.
    """
    df = pl.read_csv(
        path,
        has_header=False,
        infer_schema_length=0,
        separator=delimiter,
    )
    sheet: Sheet = {}
    for r, row in enumerate(df.iter_rows()):
        for c, text in enumerate(row):
            if text is None or text == "":
                continue
            if text.startswith("="):
                sheet[cell_key(r, c)] = Cell(formula=text)
            else:
                sheet[cell_key(r, c)] = Cell(value=text)
    return sheet


def to_frame(cells: Mapping[str, Any]) -> pl.DataFrame:
    """Display text of every cell as a string DataFrame, one column per sheet column.

    The frame spans from ``A1`` to the bottom-right occupied cell; blank
    cells are null.
    """
    positions = [parse_key(k) for k in cells]
    if not positions:
        return pl.DataFrame()
    n_rows = max(p.row for p in positions) + 1
    n_cols = max(p.col for p in positions) + 1
    return pl.DataFrame(
        {
            col_to_letter(c): [display_value(cells, r, c) or None for r in range(n_rows)]
            for c in range(n_cols)
        },
        schema={col_to_letter(c): pl.Utf8 for c in range(n_cols)},
    )


def write_csv(
    cells: Mapping[str, Any],
    path: Path | None = None,
    *,
    delimiter: str = ",",
) -> str | None:
    """Write display values as a header-less CSV grid.

    Returns the CSV text when *path* is None, otherwise writes the file.
    """
    df = to_frame(cells)
    return df.write_csv(path, include_header=False, separator=delimiter)

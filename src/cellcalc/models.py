"""Data model shared by the engine and its hosts."""

from __future__ import annotations

from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from cellcalc.formulas.errors import ErrorCode


class CellPosition(NamedTuple):
    """Zero-based grid position."""

    row: int
    col: int


class CellRange(NamedTuple):
    """Inclusive rectangular span between two corners."""

    start: CellPosition
    end: CellPosition


class Cell(BaseModel):
    """One grid location as stored by the host editor.

    Field names follow the editor's camelCase wire names (``displayValue``,
    ``rowSpan``); snake_case names are accepted too.  Only ``value`` and
    ``error`` are read by the engine; style, format and border are opaque
    and any unknown keys are kept.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    value: Any = None
    formula: str | None = None
    display_value: str | None = Field(default=None, alias="displayValue")
    error: str | None = None
    style: Any = None
    format: Any = None
    border: Any = None
    row_span: int | None = Field(default=None, alias="rowSpan")
    col_span: int | None = Field(default=None, alias="colSpan")


class FormulaResult(BaseModel):
    """Outcome of one evaluation: a value, or ``None`` plus an error code."""

    model_config = ConfigDict(frozen=True)

    value: Any = None
    error: ErrorCode | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

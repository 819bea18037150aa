"""Cell addressing: ``(row, col)`` pairs, A1-style addresses and cell-map keys.

Rows and columns are zero-based everywhere.  Column letters use bijective
base-26 numbering (A=0, Z=25, AA=26, ...), so there is no zero digit.
"""

from __future__ import annotations

import re

from cellcalc.models import CellPosition, CellRange

_ADDR_RE = re.compile(r"^([A-Z]+)(\d+)$", re.IGNORECASE)
_RANGE_RE = re.compile(r"^([A-Z]+\d+):([A-Z]+\d+)$", re.IGNORECASE)


def cell_key(row: int, col: int) -> str:
    """Build the cell-map key for a zero-based position, e.g. ``"2,1"``."""
    return f"{row},{col}"


def parse_key(key: str) -> CellPosition:
    """Inverse of :func:`cell_key`."""
    row, col = key.split(",")
    return CellPosition(int(row), int(col))


def col_to_letter(col: int) -> str:
    """Convert 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    result = ""
    n = col + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def letter_to_col(letters: str) -> int:
    """Convert column letter(s) to 0-based index, case-insensitively."""
    idx = 0
    for ch in letters.upper():
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def cell_address(row: int, col: int) -> str:
    """Build an A1-style address from 0-based row/col."""
    return f"{col_to_letter(col)}{row + 1}"


def parse_cell_address(address: str) -> CellPosition | None:
    """Parse ``"B3"`` into ``CellPosition(row=2, col=1)``.

    Returns None when *address* is not an A1-style address.
    """
    m = _ADDR_RE.match(address)
    if not m:
        return None
    return CellPosition(row=int(m.group(2)) - 1, col=letter_to_col(m.group(1)))


def parse_range_address(text: str) -> CellRange | None:
    """Parse ``"A1:C3"`` into a :class:`CellRange`, or None on mismatch."""
    m = _RANGE_RE.match(text.strip())
    if not m:
        return None
    start = parse_cell_address(m.group(1))
    end = parse_cell_address(m.group(2))
    if start is None or end is None:
        return None
    return CellRange(start, end)


def address_to_key(address: str) -> str | None:
    """Convert ``"B3"`` to the cell-map key ``"2,1"``."""
    pos = parse_cell_address(address)
    if pos is None:
        return None
    return cell_key(pos.row, pos.col)

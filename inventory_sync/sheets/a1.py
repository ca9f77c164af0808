"""
A1 notation helpers.

Internally columns are 0-based offsets and rows are 1-based sheet row numbers;
letters only appear at the gateway boundary.
"""

import re
from typing import NamedTuple, Optional

from inventory_sync.utils.errors import GatewayError, RangeSpecError

_CELL_RE = re.compile(r"^([A-Za-z]+)?(\d+)?$")


class GridRange(NamedTuple):
    """Parsed A1 range, 0-based columns, 1-based rows, None when unbounded."""

    worksheet: Optional[str]
    start_column: Optional[int]
    start_row: Optional[int]
    end_column: Optional[int]
    end_row: Optional[int]


def column_letter(index: int) -> str:
    """0 -> 'A', 25 -> 'Z', 26 -> 'AA'."""
    if index < 0:
        raise GatewayError(f"Column index must be >= 0, got {index}", {"column_index": index})
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def column_index(letters: str) -> int:
    """'A' -> 0, 'AA' -> 26."""
    if not letters or not letters.isalpha():
        raise RangeSpecError(letters)
    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index - 1


def quote_worksheet(worksheet: str) -> str:
    """Quote a worksheet title for use in a range when it needs it."""
    if re.fullmatch(r"[A-Za-z0-9_]+", worksheet):
        return worksheet
    return "'" + worksheet.replace("'", "''") + "'"


def _split_sheet(spec: str):
    if "!" not in spec:
        return None, spec
    sheet, _, cells = spec.rpartition("!")
    if sheet.startswith("'") and sheet.endswith("'") and len(sheet) >= 2:
        sheet = sheet[1:-1].replace("''", "'")
    return sheet, cells


def _parse_cell(text: str, spec: str):
    match = _CELL_RE.match(text.strip())
    if not match or not (match.group(1) or match.group(2)):
        raise RangeSpecError(spec)
    column = column_index(match.group(1)) if match.group(1) else None
    row = int(match.group(2)) if match.group(2) else None
    if row is not None and row < 1:
        raise RangeSpecError(spec)
    return column, row


def parse_range(spec: str) -> GridRange:
    """
    Parse 'Sheet!A1:C3', 'A:Q', 'S5:AP5' or a single cell 'B2'.

    Raises:
        RangeSpecError: If the spec is not valid A1 notation
    """
    if not spec or not spec.strip():
        raise RangeSpecError(spec)

    worksheet, cells = _split_sheet(spec.strip())
    start, _, end = cells.partition(":")
    start_column, start_row = _parse_cell(start, spec)
    if end:
        end_column, end_row = _parse_cell(end, spec)
    else:
        end_column, end_row = start_column, start_row

    if start_column is not None and end_column is not None and end_column < start_column:
        raise RangeSpecError(spec)
    if start_row is not None and end_row is not None and end_row < start_row:
        raise RangeSpecError(spec)

    return GridRange(worksheet, start_column, start_row, end_column, end_row)


def _prefix(worksheet: Optional[str]) -> str:
    return f"{quote_worksheet(worksheet)}!" if worksheet else ""


def row_range(row: int, start_column: int, end_column: int, worksheet: Optional[str] = None) -> str:
    """Single-row block, e.g. row_range(5, 18, 41) -> 'S5:AP5'."""
    if row < 1:
        raise GatewayError(f"Row number must be >= 1, got {row}", {"row": row})
    return f"{_prefix(worksheet)}{column_letter(start_column)}{row}:{column_letter(end_column)}{row}"


def column_range(start_column: int, end_column: int, worksheet: Optional[str] = None) -> str:
    """Whole-column block, e.g. column_range(0, 16) -> 'A:Q'."""
    return f"{_prefix(worksheet)}{column_letter(start_column)}:{column_letter(end_column)}"

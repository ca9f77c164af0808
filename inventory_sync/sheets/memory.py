"""
In-process worksheet used by the test suite and by dry runs.

Behaves like the Sheets values API as far as the reconciliation engine can
observe: reads omit trailing empty rows and cells, updates overwrite exactly,
inserts shift every row at or below the index down by one.
"""

import csv
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from inventory_sync.sheets.a1 import parse_range
from inventory_sync.sheets.base import Color, Rows, TableGateway, TableRef
from inventory_sync.utils.errors import GatewayError, RangeSpecError, WorksheetNotFoundError
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)


def _trim(cells: List[str]) -> List[str]:
    end = len(cells)
    while end and cells[end - 1] in ("", None):
        end -= 1
    return cells[:end]


class InMemoryTableGateway(TableGateway):
    """Table gateway backed by plain lists of rows, one list per worksheet."""

    def __init__(self, worksheets: Optional[Dict[str, Rows]] = None) -> None:
        """
        Initialize the in-memory spreadsheet.

        Args:
            worksheets: Initial rows per worksheet title (row 1 first)
        """
        self._sheets: Dict[str, Rows] = {}
        self._highlights: Dict[str, Dict[int, Color]] = {}
        self.calls: List[Tuple[str, str]] = []
        for title, rows in (worksheets or {}).items():
            self.seed(title, rows)

    @classmethod
    def from_csv(cls, path: Path, worksheet: str) -> "InMemoryTableGateway":
        """Load one worksheet from a CSV export of the inventory sheet."""
        try:
            with open(path, newline="", encoding="utf-8-sig") as handle:
                rows = [list(row) for row in csv.reader(handle)]
        except OSError as e:
            raise GatewayError(f"Cannot read table snapshot {path}: {e}")
        logger.info(f"Loaded {len(rows)} rows from {path} into worksheet '{worksheet}'")
        return cls({worksheet: rows})

    def seed(self, worksheet: str, rows: Sequence[Sequence[str]]) -> None:
        self._sheets[worksheet] = [_trim([str(cell) for cell in row]) for row in rows]
        self._highlights[worksheet] = {}

    def rows(self, worksheet: str) -> Rows:
        """Copy of the current contents of a worksheet."""
        return [list(row) for row in self._sheet(worksheet)]

    def highlights(self, worksheet: str) -> Dict[int, Color]:
        self._sheet(worksheet)
        return dict(self._highlights[worksheet])

    def dump_csv(self, path: Path, worksheet: str) -> None:
        with open(path, "w", newline="", encoding="utf-8") as handle:
            csv.writer(handle).writerows(self._sheet(worksheet))

    @property
    def write_calls(self) -> List[Tuple[str, str]]:
        return [call for call in self.calls if call[0] != "read_range"]

    def _sheet(self, worksheet: str) -> Rows:
        if worksheet not in self._sheets:
            raise WorksheetNotFoundError(worksheet)
        return self._sheets[worksheet]

    def _resolve(self, table: TableRef, range_spec: str):
        grid = parse_range(range_spec)
        return self._sheet(grid.worksheet or table.worksheet), grid

    async def read_range(self, table: TableRef, range_spec: str) -> Rows:
        self.calls.append(("read_range", range_spec))
        sheet, grid = self._resolve(table, range_spec)

        first_row = grid.start_row or 1
        last_row = min(grid.end_row or len(sheet), len(sheet))
        first_col = grid.start_column or 0
        last_col = grid.end_column

        result = []
        for row in sheet[first_row - 1 : last_row]:
            cells = row[first_col:] if last_col is None else row[first_col : last_col + 1]
            result.append(_trim(list(cells)))

        while result and not result[-1]:
            result.pop()
        return result

    async def update_range(self, table: TableRef, range_spec: str, values: Sequence[Sequence[str]]) -> None:
        self.calls.append(("update_range", range_spec))
        sheet, grid = self._resolve(table, range_spec)
        if grid.start_row is None:
            raise RangeSpecError(range_spec)

        first_col = grid.start_column or 0
        for offset, row_values in enumerate(values):
            row_number = grid.start_row + offset
            if grid.end_row is not None and row_number > grid.end_row:
                raise GatewayError(f"Values exceed the rows of range {range_spec}")
            if grid.end_column is not None and first_col + len(row_values) - 1 > grid.end_column:
                raise GatewayError(f"Values exceed the columns of range {range_spec}")

            while len(sheet) < row_number:
                sheet.append([])
            row = sheet[row_number - 1]
            needed = first_col + len(row_values)
            if len(row) < needed:
                row.extend([""] * (needed - len(row)))
            for column, value in enumerate(row_values, start=first_col):
                row[column] = "" if value is None else str(value)
            sheet[row_number - 1] = _trim(row)

    async def insert_row_at(self, table: TableRef, index: int) -> None:
        self.calls.append(("insert_row_at", str(index)))
        if index < 0:
            raise GatewayError(f"Row index must be >= 0, got {index}")
        sheet = self._sheet(table.worksheet)
        while len(sheet) < index:
            sheet.append([])
        sheet.insert(index, [])

        shifted = {}
        for row_number, color in self._highlights[table.worksheet].items():
            shifted[row_number + 1 if row_number > index else row_number] = color
        self._highlights[table.worksheet] = shifted

    async def highlight_row(self, table: TableRef, row_index: int, color: Color) -> None:
        self.calls.append(("highlight_row", str(row_index)))
        if row_index < 1:
            raise GatewayError(f"Row number must be >= 1, got {row_index}")
        self._sheet(table.worksheet)
        self._highlights[table.worksheet][row_index] = tuple(color)

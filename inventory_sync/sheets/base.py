"""
Table gateway contract.

The reconciliation engine only talks to the worksheet through this narrow
read / update / insert interface, so the Google Sheets client and the
in-memory table are interchangeable.
"""

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict

Rows = List[List[str]]
Color = Tuple[float, float, float]


class TableRef(BaseModel):
    """A worksheet inside a spreadsheet."""

    model_config = ConfigDict(frozen=True)

    spreadsheet_id: str
    worksheet: str

    def __str__(self) -> str:
        return f"{self.spreadsheet_id}/{self.worksheet}"


class TableGateway(ABC):
    """Abstract base class for worksheet access."""

    @abstractmethod
    async def read_range(self, table: TableRef, range_spec: str) -> Rows:
        """
        Read a block of cells.

        Rows past the end of the table are omitted and trailing empty cells of
        a row are absent, not padded.
        """
        pass

    @abstractmethod
    async def update_range(self, table: TableRef, range_spec: str, values: Sequence[Sequence[str]]) -> None:
        """Overwrite the addressed block exactly; no merge semantics."""
        pass

    @abstractmethod
    async def insert_row_at(self, table: TableRef, index: int) -> None:
        """
        Insert one empty row at a 0-based index.

        Every row at or below the index shifts down by one. Formatting is not
        inherited from the row above.
        """
        pass

    @abstractmethod
    async def highlight_row(self, table: TableRef, row_index: int, color: Color) -> None:
        """Paint the background of a 1-based sheet row."""
        pass

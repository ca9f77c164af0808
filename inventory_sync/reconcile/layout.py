"""
Worksheet layout: which columns identify a row and where record values go.
"""

from typing import List, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from inventory_sync.extraction.rules import RuleSet
from inventory_sync.sheets.a1 import column_range, row_range
from inventory_sync.utils.errors import ConfigurationError


class ColumnBlock(BaseModel):
    """Contiguous, inclusive run of 0-based columns written as one block."""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "ColumnBlock":
        if self.end < self.start:
            raise ValueError(f"block end {self.end} is before start {self.start}")
        return self

    @property
    def width(self) -> int:
        return self.end - self.start + 1


class TableLayout(BaseModel):
    """Column positions of the inventory worksheet."""

    model_config = ConfigDict(frozen=True)

    serial_column: int = Field(..., ge=0)
    rack_column: int = Field(..., ge=0)
    slot_column: int = Field(..., ge=0)
    address_column: int = Field(..., ge=0)
    header_rows: int = Field(1, ge=0)
    write_blocks: Tuple[ColumnBlock, ...]

    @model_validator(mode="after")
    def check_blocks(self) -> "TableLayout":
        if not self.write_blocks:
            raise ValueError("layout needs at least one write block")
        ordered = sorted(self.write_blocks, key=lambda block: block.start)
        for previous, current in zip(ordered, ordered[1:]):
            if current.start <= previous.end:
                raise ValueError("write blocks overlap")
        return self

    @property
    def field_capacity(self) -> int:
        return sum(block.width for block in self.write_blocks)

    @property
    def identity_columns(self) -> Tuple[int, int, int]:
        return self.serial_column, self.rack_column, self.slot_column

    @property
    def last_identity_column(self) -> int:
        return max(self.identity_columns)

    @property
    def last_placement_column(self) -> int:
        return max(self.rack_column, self.slot_column, self.address_column)

    def identity_range(self, worksheet: str) -> str:
        """Columns A through the last identity column, e.g. 'Inventory!A:Q'."""
        return column_range(0, self.last_identity_column, worksheet)

    def placement_range(self, worksheet: str) -> str:
        """Columns A through the last placement column, e.g. 'Inventory!A:AJ'."""
        return column_range(0, self.last_placement_column, worksheet)

    def row_snapshot_range(self, worksheet: str, row: int) -> str:
        """Single row across the placement columns, used to re-validate an anchor."""
        return row_range(row, 0, self.last_placement_column, worksheet)

    def block_ranges(self, worksheet: str, row: int) -> List[str]:
        return [row_range(row, block.start, block.end, worksheet) for block in self.write_blocks]

    def validate_for(self, rule_set: RuleSet) -> None:
        """
        Check that a rule set fills the write blocks exactly.

        Raises:
            ConfigurationError: When the field count differs from the block widths
        """
        if len(rule_set) != self.field_capacity:
            raise ConfigurationError(
                f"Rule set '{rule_set.name}' declares {len(rule_set)} fields "
                f"but the layout writes {self.field_capacity} columns",
                {"blocks": [(block.start, block.end) for block in self.write_blocks]},
            )

    def split_values(self, values: Sequence[str]) -> List[List[str]]:
        """Cut a record's ordered values into one slice per write block."""
        if len(values) != self.field_capacity:
            raise ConfigurationError(
                f"Expected {self.field_capacity} values for the write blocks, got {len(values)}"
            )
        slices = []
        offset = 0
        for block in self.write_blocks:
            slices.append(list(values[offset : offset + block.width]))
            offset += block.width
        return slices


LINUX_LAYOUT = TableLayout(
    serial_column=11,
    rack_column=4,
    slot_column=5,
    address_column=37,
    write_blocks=(ColumnBlock(start=18, end=41), ColumnBlock(start=48, end=50)),
)

WINDOWS_LAYOUT = TableLayout(
    serial_column=9,
    rack_column=16,
    slot_column=17,
    address_column=35,
    write_blocks=(ColumnBlock(start=16, end=39), ColumnBlock(start=46, end=48)),
)

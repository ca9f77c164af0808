"""
Placement engine for virtual entities.

Computes where a new VM row goes: directly below the physical host sharing
its rack and slot, otherwise below the row whose address column contains the
VM's parent address, otherwise at the end of the table. The engine only
computes indices; the structural insert is the orchestrator's job.
"""

from typing import Optional, Sequence

from inventory_sync.extraction.identifiers import first_of_range
from inventory_sync.models import AnchorKind, Identifiers, Placement
from inventory_sync.reconcile.layout import TableLayout
from inventory_sync.reconcile.resolver import cell
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)


class PlacementEngine:
    """Choose the anchor row for a new virtual entity."""

    def __init__(self, layout: TableLayout) -> None:
        self.layout = layout

    def place(self, snapshot: Sequence[Sequence[str]], identifiers: Identifiers) -> Placement:
        """
        Compute the insertion point for a virtual entity.

        Args:
            snapshot: Rows read from the worksheet, starting at sheet row 1
            identifiers: Canonical identifiers of the VM report

        Returns:
            Placement anchored on the parent row, or on the last row when
            no parent is found (using_fallback=True)
        """
        row_number = self._find_by_location(snapshot, identifiers)
        if row_number is not None:
            logger.debug(
                "Found parent by rack and slot",
                extra={"rack": identifiers.rack_number, "unit": identifiers.slot_number, "row_index": row_number},
            )
            return Placement(parent_row_index=row_number, anchor=AnchorKind.RACK_SLOT)

        row_number = self._find_by_address(snapshot, identifiers)
        if row_number is not None:
            logger.debug(
                "Found parent by address",
                extra={"parent_address": identifiers.parent_address, "row_index": row_number},
            )
            return Placement(parent_row_index=row_number, anchor=AnchorKind.ADDRESS)

        logger.warning(
            "No parent row found, appending at end of table",
            extra={
                "rack": identifiers.rack_number,
                "unit": identifiers.slot_number,
                "parent_address": identifiers.parent_address,
                "last_row": len(snapshot),
            },
        )
        return Placement(parent_row_index=len(snapshot), using_fallback=True, anchor=AnchorKind.END_OF_TABLE)

    def _data_rows(self, snapshot: Sequence[Sequence[str]]):
        for position in range(self.layout.header_rows, len(snapshot)):
            yield position + 1, snapshot[position]

    def _location_matches(self, row: Sequence[str], identifiers: Identifiers) -> bool:
        if not identifiers.has_location:
            return False
        if cell(row, self.layout.rack_column) != identifiers.rack_number:
            return False
        row_slot = cell(row, self.layout.slot_column)
        return bool(row_slot) and first_of_range(row_slot) == first_of_range(identifiers.slot_number)

    def _address_matches(self, row: Sequence[str], identifiers: Identifiers) -> bool:
        address = identifiers.parent_address
        return bool(address) and address in cell(row, self.layout.address_column)

    def _find_by_location(self, snapshot, identifiers: Identifiers) -> Optional[int]:
        for row_number, row in self._data_rows(snapshot):
            if self._location_matches(row, identifiers):
                return row_number
        return None

    def _find_by_address(self, snapshot, identifiers: Identifiers) -> Optional[int]:
        if not identifiers.parent_address:
            return None
        for row_number, row in self._data_rows(snapshot):
            if self._address_matches(row, identifiers):
                return row_number
        return None

    def anchor_holds(self, placement: Placement, identifiers: Identifiers, current: Sequence[Sequence[str]]) -> bool:
        """
        Check a placement against freshly read rows.

        For a parent anchor, ``current`` is the parent row re-read on its own;
        for the end-of-table fallback it is a fresh read of the placement
        columns and the table must not have grown or shrunk.
        """
        if placement.anchor is AnchorKind.END_OF_TABLE:
            return len(current) == placement.parent_row_index

        row = current[0] if current else []
        if placement.anchor is AnchorKind.RACK_SLOT:
            return self._location_matches(row, identifiers)
        return self._address_matches(row, identifiers)

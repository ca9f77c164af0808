"""
Identity resolver.

Finds the existing worksheet row a report belongs to. Three tiers are tried
in order and the first tier that yields a row wins:

1. serial + rack + slot all equal (physical identity and location agree)
2. rack + slot equal; a differing serial on the row is reported as stale data
3. serial equal; several rows with that serial are reported as duplicates and
   the lowest row is used

The resolver is pure: it works on a snapshot the caller has just read.
"""

from typing import List, Optional, Sequence

from inventory_sync.models import Identifiers, MatchResult, MatchTier, MatchWarning, WarningKind
from inventory_sync.reconcile.layout import TableLayout
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)


def cell(row: Sequence[str], column: int) -> str:
    """Stripped cell value; cells past the end of a sparse row are empty."""
    if column < len(row) and row[column] is not None:
        return str(row[column]).strip()
    return ""


class IdentityResolver:
    """Tiered row lookup over a snapshot of the identity columns."""

    def __init__(self, layout: TableLayout) -> None:
        self.layout = layout

    def _data_rows(self, snapshot: Sequence[Sequence[str]]):
        """(sheet row number, row) pairs below the header."""
        for position in range(self.layout.header_rows, len(snapshot)):
            yield position + 1, snapshot[position]

    def resolve(self, snapshot: Sequence[Sequence[str]], identifiers: Identifiers) -> Optional[MatchResult]:
        """
        Resolve identifiers to a row.

        Args:
            snapshot: Rows read from the worksheet, starting at sheet row 1
            identifiers: Canonical identifiers of the report

        Returns:
            The match, or None when no tier finds a row
        """
        return (
            self._exact_match(snapshot, identifiers)
            or self._location_match(snapshot, identifiers)
            or self._serial_match(snapshot, identifiers)
        )

    def _exact_match(self, snapshot, identifiers: Identifiers) -> Optional[MatchResult]:
        serial, rack, slot = identifiers.serial_number, identifiers.rack_number, identifiers.slot_number
        if not (serial and rack and slot):
            return None

        layout = self.layout
        for row_number, row in self._data_rows(snapshot):
            if (
                cell(row, layout.serial_column) == serial
                and cell(row, layout.rack_column) == rack
                and cell(row, layout.slot_column) == slot
            ):
                logger.debug(
                    "Found exact match (serial + rack + slot)",
                    extra={"serial": serial, "rack": rack, "unit": slot, "row_index": row_number},
                )
                return MatchResult(row_index=row_number, tier=MatchTier.EXACT)
        return None

    def _location_match(self, snapshot, identifiers: Identifiers) -> Optional[MatchResult]:
        if not identifiers.has_location:
            return None

        layout = self.layout
        for row_number, row in self._data_rows(snapshot):
            if (
                cell(row, layout.rack_column) != identifiers.rack_number
                or cell(row, layout.slot_column) != identifiers.slot_number
            ):
                continue

            warning = None
            row_serial = cell(row, layout.serial_column)
            if identifiers.serial_number and row_serial and row_serial != identifiers.serial_number:
                warning = MatchWarning(
                    kind=WarningKind.STALE_DATA,
                    message=f"SN mismatch: expected {identifiers.serial_number}, found {row_serial}",
                    rows=[row_number],
                )
                logger.warning(
                    "Rack and slot matched but serial number differs",
                    extra={
                        "expected_serial": identifiers.serial_number,
                        "found_serial": row_serial,
                        "row_index": row_number,
                    },
                )

            logger.debug(
                "Found row by rack and slot",
                extra={"rack": identifiers.rack_number, "unit": identifiers.slot_number, "row_index": row_number},
            )
            return MatchResult(row_index=row_number, tier=MatchTier.LOCATION, warning=warning)
        return None

    def _serial_match(self, snapshot, identifiers: Identifiers) -> Optional[MatchResult]:
        serial = identifiers.serial_number
        if not serial:
            return None

        matches: List[int] = [
            row_number
            for row_number, row in self._data_rows(snapshot)
            if cell(row, self.layout.serial_column) == serial
        ]
        if not matches:
            return None

        warning = None
        if len(matches) > 1:
            warning = MatchWarning(
                kind=WarningKind.DUPLICATE_MATCH,
                message=(
                    f"Serial number {serial} found in {len(matches)} rows "
                    f"({', '.join(str(row) for row in matches)}); using row {matches[0]}"
                ),
                duplicate_count=len(matches),
                rows=matches,
            )
            logger.warning(
                "Multiple rows share the serial number, using the first",
                extra={"serial": serial, "rows": matches},
            )

        return MatchResult(row_index=matches[0], tier=MatchTier.SERIAL, warning=warning)

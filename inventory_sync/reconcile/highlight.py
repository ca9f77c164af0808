"""
Row highlighting.

Marks the worksheet rows that have a report on disk, using only the identity
markers in the report filenames. Useful to eyeball which inventory rows are
covered before running a sync.
"""

from pathlib import Path, PurePath
from typing import Iterable, Optional, Sequence

from inventory_sync.extraction.identifiers import derive_identifiers
from inventory_sync.models import Outcome
from inventory_sync.reconcile.context import RunContext
from inventory_sync.reconcile.layout import TableLayout
from inventory_sync.reconcile.orchestrator import NO_MATCHING_ROW, NO_USABLE_IDENTIFIER
from inventory_sync.reconcile.recap import ProcessingRecap
from inventory_sync.reconcile.resolver import IdentityResolver
from inventory_sync.sheets.base import Color, TableGateway, TableRef
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HIGHLIGHT_COLOR: Color = (1.0, 0.8, 0.6)


class Highlighter:
    """Paint the background of rows matched by report filenames."""

    def __init__(
        self,
        gateway: TableGateway,
        table: TableRef,
        layout: TableLayout,
        color: Color = DEFAULT_HIGHLIGHT_COLOR,
        placeholder_serials: Sequence[str] = (),
        context: Optional[RunContext] = None,
    ) -> None:
        self.gateway = gateway
        self.table = table
        self.layout = layout
        self.color = color
        self.placeholder_serials = tuple(placeholder_serials)
        self.context = context or RunContext("highlight")
        self.resolver = IdentityResolver(layout)

    async def highlight_file(self, path: Path) -> Outcome:
        """Resolve one report's row from its filename and highlight it."""
        filename = PurePath(path).name
        identifiers = derive_identifiers(filename, placeholder_serials=self.placeholder_serials)
        details = {"entity_kind": identifiers.entity_kind, "hostname": identifiers.hostname}

        if not identifiers.has_usable_identifier:
            return Outcome.skipped(filename, NO_USABLE_IDENTIFIER, **details)

        snapshot = await self.gateway.read_range(
            self.table, self.layout.identity_range(self.table.worksheet)
        )
        match = self.resolver.resolve(snapshot, identifiers)
        if match is None:
            return Outcome.skipped(filename, NO_MATCHING_ROW, **details)

        await self.gateway.highlight_row(self.table, match.row_index, self.color)
        self.context.sheet_operation(
            "highlight", self.table, row_index=match.row_index, tier=match.tier.label
        )
        warnings = [match.warning] if match.warning else []
        return Outcome.highlighted(filename, match.row_index, tier=match.tier, warnings=warnings, **details)

    async def run(self, paths: Iterable[Path], recap: Optional[ProcessingRecap] = None) -> ProcessingRecap:
        """Highlight every report's row; one outcome per file."""
        recap = recap or ProcessingRecap()
        for path in paths:
            try:
                outcome = await self.highlight_file(path)
            except Exception as e:
                logger.error(f"Failed to highlight row for {PurePath(path).name}: {e}")
                outcome = Outcome.failed(PurePath(path).name, e)
            recap.add(outcome)
        recap.finish()
        return recap

"""
Reconciliation orchestrator.

Drives one report at a time through extraction, identity resolution or
placement, and the worksheet writes. Files are processed strictly one after
another: a row insert shifts every index below it, so each decision is taken
on a snapshot read after the previous file's writes have completed.
"""

from pathlib import Path, PurePath
from typing import Iterable, List, Optional, Sequence, Tuple

from inventory_sync.extraction.catalogs import PlatformProfile
from inventory_sync.extraction.engine import FieldExtractor
from inventory_sync.extraction.identifiers import entity_kind_from_name, report_name
from inventory_sync.extraction.record import Record
from inventory_sync.models import (
    AnchorKind,
    EntityKind,
    Identifiers,
    MatchWarning,
    Outcome,
    OutcomeKind,
    Placement,
    WarningKind,
)
from inventory_sync.reconcile.context import RunContext
from inventory_sync.reconcile.placement import PlacementEngine
from inventory_sync.reconcile.recap import ProcessingRecap
from inventory_sync.reconcile.resolver import IdentityResolver
from inventory_sync.sheets.base import TableGateway, TableRef
from inventory_sync.sources import read_report
from inventory_sync.utils.errors import PlacementError
from inventory_sync.utils.logging import LogContext, get_logger

logger = get_logger(__name__)

NO_USABLE_IDENTIFIER = "no usable identifier"
NO_MATCHING_ROW = "no matching row"

_BATCH_ORDER = (EntityKind.PHYSICAL, EntityKind.VIRTUAL, EntityKind.UNKNOWN)


def order_batch(paths: Iterable[Path]) -> List[Path]:
    """Physical reports first, then virtual, then unclassified; stable within each group."""
    paths = list(paths)
    kinds = {path: entity_kind_from_name(report_name(str(path))) for path in paths}
    return [path for kind in _BATCH_ORDER for path in paths if kinds[path] is kind]


class Reconciler:
    """Reconciles extracted records into the inventory worksheet."""

    def __init__(
        self,
        gateway: TableGateway,
        table: TableRef,
        profile: PlatformProfile,
        context: Optional[RunContext] = None,
        stop_on_first_error: bool = False,
        placeholder_serials: Sequence[str] = (),
        extractor: Optional[FieldExtractor] = None,
    ) -> None:
        """
        Initialize the reconciler.

        Args:
            gateway: Worksheet access
            table: Target spreadsheet and worksheet
            profile: Rule set and layout of the report platform
            context: Run context (a fresh one if None)
            stop_on_first_error: Re-raise the first per-file failure
            placeholder_serials: Serial tokens treated as absent
            extractor: Field extractor (built from placeholder_serials if None)
        """
        profile.layout.validate_for(profile.rule_set)

        self.gateway = gateway
        self.table = table
        self.profile = profile
        self.layout = profile.layout
        self.context = context or RunContext(profile.name)
        self.stop_on_first_error = stop_on_first_error
        self.extractor = extractor or FieldExtractor(placeholder_serials)
        self.resolver = IdentityResolver(self.layout)
        self.placement = PlacementEngine(self.layout)

    # ========== SINGLE RECORD ==========

    async def reconcile(self, record: Record) -> Outcome:
        """
        Update or insert the worksheet row for one record.

        Returns:
            Updated, Inserted or Skipped outcome

        Raises:
            GatewayError: If a worksheet call fails
            PlacementError: If a new row's anchor moved twice before the insert
        """
        identifiers = record.identifiers
        filename = PurePath(record.source_file).name
        details = {"entity_kind": identifiers.entity_kind, "hostname": identifiers.hostname}

        if identifiers.entity_kind is EntityKind.UNKNOWN or not identifiers.has_usable_identifier:
            logger.warning(
                "Skipping report without usable identifier",
                extra={"report_file": filename, "identifiers": identifiers.model_dump(mode="json")},
            )
            return Outcome.skipped(filename, NO_USABLE_IDENTIFIER, **details)

        if identifiers.entity_kind is EntityKind.PHYSICAL:
            return await self._update_physical(record, filename, details)
        return await self._insert_virtual(record, filename, details)

    async def _update_physical(self, record: Record, filename: str, details: dict) -> Outcome:
        identifiers = record.identifiers
        snapshot = await self.gateway.read_range(
            self.table, self.layout.identity_range(self.table.worksheet)
        )
        match = self.resolver.resolve(snapshot, identifiers)
        if match is None:
            logger.warning(
                "No matching row for physical server",
                extra={"report_file": filename, "identity": identifiers.describe()},
            )
            return Outcome.skipped(filename, NO_MATCHING_ROW, **details)

        await self.write_record(record, match.row_index)
        self.context.sheet_operation(
            "update",
            self.table,
            row_index=match.row_index,
            tier=match.tier.label,
            identity=identifiers.describe(),
        )
        warnings = [match.warning] if match.warning else []
        return Outcome.updated(filename, match.row_index, tier=match.tier, warnings=warnings, **details)

    async def _insert_virtual(self, record: Record, filename: str, details: dict) -> Outcome:
        identifiers = record.identifiers
        placement = self.placement.place(await self._placement_snapshot(), identifiers)
        placement, warnings = await self._revalidate(placement, identifiers)

        if placement.using_fallback:
            warnings.append(
                MatchWarning(
                    kind=WarningKind.PLACEMENT_FALLBACK,
                    message=(
                        f"No parent row found for {identifiers.describe()}; "
                        f"appended at end of table (row {placement.row_index})"
                    ),
                    rows=[placement.row_index],
                )
            )

        await self.gateway.insert_row_at(self.table, placement.insert_index)
        await self.write_record(record, placement.row_index)

        self.context.vm_operation(
            "inserted",
            identifiers.hostname,
            row_index=placement.row_index,
            parent_row=None if placement.using_fallback else placement.parent_row_index,
            anchor=placement.anchor.value,
        )
        return Outcome.inserted(
            filename,
            placement.row_index,
            parent_found=not placement.using_fallback,
            warnings=warnings,
            **details,
        )

    async def _placement_snapshot(self):
        return await self.gateway.read_range(
            self.table, self.layout.placement_range(self.table.worksheet)
        )

    async def _read_anchor(self, placement: Placement):
        if placement.anchor is AnchorKind.END_OF_TABLE:
            return await self._placement_snapshot()
        return await self.gateway.read_range(
            self.table,
            self.layout.row_snapshot_range(self.table.worksheet, placement.parent_row_index),
        )

    async def _revalidate(self, placement: Placement, identifiers: Identifiers) -> Tuple[Placement, List[MatchWarning]]:
        """
        Confirm the anchor right before the structural insert.

        A moved anchor is re-placed once from a fresh snapshot; if the new
        anchor does not hold either, the insert is abandoned.
        """
        warnings: List[MatchWarning] = []
        for attempt in range(2):
            current = await self._read_anchor(placement)
            if self.placement.anchor_holds(placement, identifiers, current):
                return placement, warnings
            if attempt:
                break

            logger.warning(
                "Insertion anchor moved, re-placing",
                extra={"anchor": placement.anchor.value, "parent_row": placement.parent_row_index},
            )
            previous_row = placement.parent_row_index
            placement = self.placement.place(await self._placement_snapshot(), identifiers)
            warnings.append(
                MatchWarning(
                    kind=WarningKind.ANCHOR_MOVED,
                    message=f"Anchor row {previous_row} moved before insert; re-placed at row {placement.parent_row_index}",
                    rows=[previous_row, placement.parent_row_index],
                )
            )

        raise PlacementError(
            "Insertion point changed twice before the insert",
            {"anchor": placement.anchor.value, "parent_row": placement.parent_row_index},
        )

    async def write_record(self, record: Record, row_index: int) -> None:
        """Write the record's values, in declared order, into the layout's blocks of one row."""
        slices = self.layout.split_values(record.values())
        ranges = self.layout.block_ranges(self.table.worksheet, row_index)
        for range_spec, values in zip(ranges, slices):
            await self.gateway.update_range(self.table, range_spec, [values])

    # ========== FILES AND BATCHES ==========

    async def _reconcile_file(self, path: Path) -> Outcome:
        content = read_report(path)
        record = self.extractor.extract(self.profile.rule_set, content, str(path))
        return await self.reconcile(record)

    async def _run_guarded(self, path: Path) -> Tuple[Outcome, Optional[Exception]]:
        """Process one file inside the per-file error boundary."""
        filename = PurePath(path).name
        operation_id = self.context.start_operation("process_file", report_file=filename)

        with LogContext(report_file=filename, platform=self.profile.name):
            try:
                outcome = await self._reconcile_file(Path(path))
            except Exception as e:
                duration = self.context.fail_operation(operation_id, e)
                kind = entity_kind_from_name(report_name(filename))
                outcome = Outcome.failed(filename, e, entity_kind=kind, duration_ms=duration)
                self.context.file_event(str(path), "failed", error=str(e))
                return outcome, e

            duration = self.context.end_operation(operation_id, outcome=outcome.kind.value)
            outcome = outcome.model_copy(update={"duration_ms": duration})
            if outcome.kind is OutcomeKind.SKIPPED:
                self.context.file_event(str(path), "skipped", reason=outcome.reason)
            else:
                self.context.file_event(str(path), outcome.kind.value, row_index=outcome.row_index)
            for warning in outcome.warnings:
                logger.warning(warning.message, extra={"warning_kind": warning.kind.value})
            return outcome, None

    async def process_file(self, path: Path) -> Outcome:
        """
        Read, extract and reconcile one report.

        Any error is converted to a Failed outcome unless stop_on_first_error
        is set, in which case it propagates.
        """
        outcome, error = await self._run_guarded(path)
        if error is not None and self.stop_on_first_error:
            raise error
        return outcome

    async def run_batch(self, paths: Iterable[Path], recap: Optional[ProcessingRecap] = None) -> ProcessingRecap:
        """
        Process a batch, physical reports before virtual ones.

        Returns:
            The recap holding exactly one outcome per file

        Raises:
            Exception: The first per-file error when stop_on_first_error is set;
                its Failed outcome is already in the recap
        """
        recap = recap or ProcessingRecap()
        ordered = order_batch(paths)
        counts = {kind: 0 for kind in _BATCH_ORDER}
        for path in ordered:
            counts[entity_kind_from_name(report_name(str(path)))] += 1
        logger.info(
            "File distribution",
            extra={
                "physical_servers": counts[EntityKind.PHYSICAL],
                "virtual_machines": counts[EntityKind.VIRTUAL],
                "unclassified": counts[EntityKind.UNKNOWN],
            },
        )

        try:
            for path in ordered:
                outcome, error = await self._run_guarded(path)
                recap.add(outcome)
                if error is not None and self.stop_on_first_error:
                    logger.error(
                        "Stopping batch on first error",
                        extra={"report_file": outcome.filename, "error": outcome.error},
                    )
                    raise error
        finally:
            recap.finish()
            self.context.batch_summary(
                total=recap.total,
                succeeded=len(recap.succeeded),
                failed=len(recap.failed),
                duration_ms=recap.duration_seconds * 1000,
            )

        return recap

"""
Tests for the reconciliation orchestrator.
"""

import pytest

from inventory_sync.config import Settings
from inventory_sync.extraction.catalogs import PlatformProfile, get_profile
from inventory_sync.extraction.engine import FieldExtractor
from inventory_sync.extraction.rules import build_rule_set
from inventory_sync.models import EntityKind, MatchTier, OutcomeKind, WarningKind
from inventory_sync.reconcile.orchestrator import (
    NO_MATCHING_ROW,
    NO_USABLE_IDENTIFIER,
    Reconciler,
    order_batch,
)
from inventory_sync.reconcile.recap import ProcessingRecap
from inventory_sync.sheets.a1 import parse_range
from inventory_sync.sheets.memory import InMemoryTableGateway
from inventory_sync.utils.errors import ConfigurationError, ReportSourceError

from .conftest import INVENTORY_ROWS, SMALL_FUNCTIONS, SMALL_RULES, WORKSHEET

WRITTEN = ["web01", "Xeon Gold 6230", "", "nginx, postgresql"]


class ShiftingGateway(InMemoryTableGateway):
    """Inserts a row above everything on single-row reads, like a concurrent editor."""

    def __init__(self, worksheets, shifts=1):
        super().__init__(worksheets)
        self.shifts = shifts

    async def read_range(self, table, range_spec):
        if self.shifts and parse_range(range_spec).start_row is not None:
            self.shifts -= 1
            await self.insert_row_at(table, 1)
        return await super().read_range(table, range_spec)


@pytest.fixture
def reconciler(gateway, table, small_profile):
    return Reconciler(gateway, table, small_profile, extractor=FieldExtractor(["NONE"]))


def updates(gateway):
    return [call for call in gateway.calls if call[0] == "update_range"]


class TestPhysicalServers:
    """Test updates of existing rows."""

    async def test_exact_match_updates_row(self, reconciler, gateway, write_report):
        path = write_report("sn.ABC123_r5_u22_ty.svr.txt")

        outcome = await reconciler.process_file(path)

        assert outcome.kind is OutcomeKind.UPDATED
        assert outcome.row_index == 4
        assert outcome.tier is MatchTier.EXACT
        assert outcome.entity_kind is EntityKind.PHYSICAL
        assert outcome.duration_ms is not None
        assert gateway.rows(WORKSHEET)[3] == ["5", "22", "ABC123", "10.0.0.4"] + WRITTEN
        # One write per column block, nothing structural
        assert gateway.write_calls == [
            ("update_range", "Inventory!E4:F4"),
            ("update_range", "Inventory!H4:H4"),
        ]

    async def test_location_match_with_stale_serial(self, reconciler, write_report):
        outcome = await reconciler.process_file(write_report("sn.NEW111_r5_u22_ty.svr.txt"))

        assert outcome.kind is OutcomeKind.UPDATED
        assert outcome.row_index == 4
        assert outcome.tier is MatchTier.LOCATION
        assert [w.kind for w in outcome.warnings] == [WarningKind.STALE_DATA]

    async def test_no_matching_row(self, reconciler, gateway, write_report):
        outcome = await reconciler.process_file(write_report("sn.ZZZ999_r40_u1_ty.svr.txt"))

        assert outcome.kind is OutcomeKind.SKIPPED
        assert outcome.reason == NO_MATCHING_ROW
        assert gateway.write_calls == []

    async def test_windows_update_keeps_identity_columns(self, table, write_report, windows_report):
        # Windows values start at column Q, which is also the rack column
        row = [""] * 49
        row[9], row[16], row[17] = "ABC123", "5", "22"
        gateway = InMemoryTableGateway({WORKSHEET: [["Header"] * 49, row]})
        reconciler = Reconciler(gateway, table, get_profile("windows"))
        path = write_report("sn.ABC123_hn.server1_r5_u22_ty.svr.txt", windows_report)

        first = await reconciler.process_file(path)
        second = await reconciler.process_file(path)

        assert (first.row_index, first.tier) == (2, MatchTier.EXACT)
        assert (second.row_index, second.tier) == (2, MatchTier.EXACT)
        assert gateway.rows(WORKSHEET)[1][16:18] == ["5", "22"]

    async def test_update_is_idempotent(self, reconciler, gateway, write_report):
        path = write_report("sn.ABC123_r5_u22_ty.svr.txt")

        await reconciler.process_file(path)
        first = gateway.rows(WORKSHEET)
        await reconciler.process_file(path)

        assert gateway.rows(WORKSHEET) == first


class TestVirtualMachines:
    """Test inserts of new VM rows."""

    async def test_inserted_below_host(self, reconciler, gateway, write_report):
        outcome = await reconciler.process_file(write_report("sn.NONE_hn.app01_r9_u30_ty.vm.txt"))

        assert outcome.kind is OutcomeKind.INSERTED
        assert outcome.row_index == 8
        assert outcome.parent_found is True
        assert outcome.hostname == "app01"
        assert outcome.warnings == []

        rows = gateway.rows(WORKSHEET)
        assert rows[6] == ["9", "30", "HOST09", "10.20.0.5"]
        assert rows[7] == ["", "", "", ""] + WRITTEN
        assert ("insert_row_at", "7") in gateway.write_calls

    async def test_inserted_below_address_anchor(self, reconciler, gateway, write_report):
        outcome = await reconciler.process_file(write_report("sn.NONE_r40_u1_ty.vm-s-10.0.0.5.txt"))

        assert outcome.kind is OutcomeKind.INSERTED
        assert outcome.row_index == 6
        assert outcome.parent_found is True

        rows = gateway.rows(WORKSHEET)
        assert rows[4][2] == "DEF456"
        assert rows[6][2] == "GHI789"

    async def test_no_anchor_appends_at_end(self, reconciler, gateway, write_report):
        outcome = await reconciler.process_file(write_report("sn.NONE_r40_u1_ty.vm.txt"))

        assert outcome.kind is OutcomeKind.INSERTED
        assert outcome.row_index == len(INVENTORY_ROWS) + 1
        assert outcome.parent_found is False
        assert [w.kind for w in outcome.warnings] == [WarningKind.PLACEMENT_FALLBACK]
        assert gateway.rows(WORKSHEET)[-1][4:] == WRITTEN

    async def test_insert_shifts_rows_for_later_files(self, reconciler, write_report):
        vm = await reconciler.process_file(write_report("sn.NONE_r5_u22_ty.vm.txt"))
        server = await reconciler.process_file(write_report("sn.DEF456_r5_u24_ty.svr.txt"))

        assert vm.row_index == 5
        # DEF456 was on row 5 before the insert
        assert server.row_index == 6

    async def test_anchor_moved_is_replaced_once(self, table, small_profile, write_report):
        gateway = ShiftingGateway({WORKSHEET: INVENTORY_ROWS}, shifts=1)
        reconciler = Reconciler(gateway, table, small_profile, placeholder_serials=["NONE"])

        outcome = await reconciler.process_file(write_report("sn.NONE_r9_u30_ty.vm.txt"))

        assert outcome.kind is OutcomeKind.INSERTED
        assert outcome.row_index == 9
        assert [w.kind for w in outcome.warnings] == [WarningKind.ANCHOR_MOVED]
        assert gateway.rows(WORKSHEET)[7][2] == "HOST09"

    async def test_anchor_moved_twice_fails_without_writes(self, table, small_profile, write_report):
        gateway = ShiftingGateway({WORKSHEET: INVENTORY_ROWS}, shifts=2)
        reconciler = Reconciler(gateway, table, small_profile, placeholder_serials=["NONE"])

        outcome = await reconciler.process_file(write_report("sn.NONE_r9_u30_ty.vm.txt"))

        assert outcome.kind is OutcomeKind.FAILED
        assert outcome.error_type == "PlacementError"
        assert updates(gateway) == []


class TestSkipsAndFailures:
    """Test the per-file error boundary."""

    async def test_no_usable_identifier_touches_nothing(self, reconciler, gateway, write_report):
        outcome = await reconciler.process_file(write_report("report_ty.svr.txt"))

        assert outcome.kind is OutcomeKind.SKIPPED
        assert outcome.reason == NO_USABLE_IDENTIFIER
        assert gateway.calls == []

    async def test_firmware_placeholder_serial_touches_nothing(self, gateway, table, small_profile, write_report):
        reconciler = Reconciler(gateway, table, small_profile, placeholder_serials=Settings().placeholder_serials)

        outcome = await reconciler.process_file(
            write_report("report_ty.svr.txt", "Serial Number: Not Specified\nHostname: web01\n")
        )

        assert outcome.kind is OutcomeKind.SKIPPED
        assert outcome.reason == NO_USABLE_IDENTIFIER
        assert gateway.calls == []

    async def test_unknown_entity_kind_skipped(self, reconciler, gateway, write_report):
        outcome = await reconciler.process_file(write_report("sn.ABC123_r5_u22.txt"))

        assert outcome.kind is OutcomeKind.SKIPPED
        assert outcome.reason == NO_USABLE_IDENTIFIER
        assert gateway.calls == []

    async def test_vm_with_only_parent_address_skipped(self, reconciler, gateway, write_report):
        outcome = await reconciler.process_file(write_report("sn.NONE_ty.vm-s-10.0.0.5.txt"))

        assert outcome.kind is OutcomeKind.SKIPPED
        assert gateway.calls == []

    async def test_missing_required_field_fails_without_writes(self, gateway, table, small_layout, write_report):
        rules = [dict(rule) for rule in SMALL_RULES]
        rules[1]["required"] = True
        profile = PlatformProfile("strict", build_rule_set("strict", rules, SMALL_FUNCTIONS), small_layout)
        reconciler = Reconciler(gateway, table, profile)

        outcome = await reconciler.process_file(
            write_report("sn.ABC123_r5_u22_ty.svr.txt", "Hostname: web01\n")
        )

        assert outcome.kind is OutcomeKind.FAILED
        assert outcome.error_type == "MissingFieldError"
        assert outcome.entity_kind is EntityKind.PHYSICAL
        assert gateway.calls == []

    async def test_unreadable_report_fails(self, reconciler, reports_dir):
        outcome = await reconciler.process_file(reports_dir / "sn.A1_r1_u1_ty.svr.txt")

        assert outcome.kind is OutcomeKind.FAILED
        assert outcome.error_type == "ReportSourceError"

    async def test_stop_on_first_error_propagates(self, gateway, table, small_profile, reports_dir):
        reconciler = Reconciler(gateway, table, small_profile, stop_on_first_error=True)

        with pytest.raises(ReportSourceError):
            await reconciler.process_file(reports_dir / "sn.A1_r1_u1_ty.svr.txt")

    def test_layout_must_fit_rule_set(self, gateway, table, small_layout):
        rule_set = build_rule_set("short", SMALL_RULES[:2], SMALL_FUNCTIONS)

        with pytest.raises(ConfigurationError):
            Reconciler(gateway, table, PlatformProfile("short", rule_set, small_layout))


class TestBatch:
    """Test batch processing."""

    def test_order_batch(self, reports_dir):
        names = ["b_ty.vm.txt", "c.txt", "a_ty.vm.txt", "d_ty.svr.txt"]
        ordered = order_batch([reports_dir / name for name in names])

        assert [path.name for path in ordered] == ["d_ty.svr.txt", "b_ty.vm.txt", "a_ty.vm.txt", "c.txt"]

    async def test_physical_processed_before_virtual(self, reconciler, write_report):
        vm = write_report("sn.NONE_r5_u22_ty.vm.txt")
        server = write_report("sn.DEF456_r5_u24_ty.svr.txt")

        recap = await reconciler.run_batch([vm, server])

        assert [outcome.filename for outcome in recap.outcomes] == [server.name, vm.name]
        # The server row was updated before the VM insert shifted it
        assert recap.outcomes[0].row_index == 5
        assert recap.outcomes[1].row_index == 5

    async def test_one_outcome_per_file(self, reconciler, write_report, reports_dir):
        files = [
            write_report("sn.ABC123_r5_u22_ty.svr.txt"),
            write_report("sn.NONE_r9_u30_ty.vm.txt"),
            write_report("notes.txt"),
            reports_dir / "sn.MISSING_r1_u1_ty.svr.txt",
        ]

        recap = await reconciler.run_batch(files)

        assert recap.total == 4
        assert len(recap.succeeded) == 2
        assert len(recap.skipped) == 1
        assert len(recap.failed) == 1
        assert recap.physical_count == 1
        assert recap.virtual_count == 1
        assert recap.finished is not None

    async def test_stop_on_first_error_keeps_failed_outcome(self, gateway, table, small_profile, write_report, reports_dir):
        reconciler = Reconciler(gateway, table, small_profile, stop_on_first_error=True)
        vm = write_report("sn.NONE_r9_u30_ty.vm.txt")
        recap = ProcessingRecap()

        with pytest.raises(ReportSourceError):
            await reconciler.run_batch([vm, reports_dir / "sn.MISSING_r1_u1_ty.svr.txt"], recap)

        assert [outcome.kind for outcome in recap.outcomes] == [OutcomeKind.FAILED]
        assert recap.finished is not None
        # The VM after the failing server never ran
        assert gateway.write_calls == []

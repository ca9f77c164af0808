"""
Tests for the extraction engine, records and helper functions.
"""

from datetime import datetime, timezone

import pytest

from inventory_sync.extraction.engine import FieldExtractor, apply_rule, extract
from inventory_sync.extraction.helpers import (
    bytes_to_gb,
    collect,
    first_group,
    join_or_na,
    percent,
    section,
    unique,
)
from inventory_sync.extraction.record import Record
from inventory_sync.extraction.rules import NOT_AVAILABLE, build_rule, build_rule_set
from inventory_sync.models import EntityKind
from inventory_sync.utils.errors import MissingFieldError, RuleSetError, UnknownFieldError

FIXED_TIME = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)


def explode(content, filename):
    raise ValueError("parser bug")


class TestApplyRule:
    """Test single rule evaluation."""

    def test_content_pattern(self):
        rule = build_rule({"field": "CPU", "pattern": r"CPU:\s*(.+)"}, {})
        assert apply_rule(rule, "CPU:  Xeon  \n", "x.txt") == "Xeon"

    def test_filename_pattern(self):
        rule = build_rule({"field": "Rack", "pattern": r"_r(\d+)", "scope": "filename"}, {})
        assert apply_rule(rule, "r99 in content", "sn.X_r5_u2.txt") == "5"

    def test_no_match_is_sentinel(self):
        rule = build_rule({"field": "CPU", "pattern": r"CPU:\s*(.+)"}, {})
        assert apply_rule(rule, "nothing here", "x.txt") == NOT_AVAILABLE

    def test_blank_capture_is_sentinel(self):
        rule = build_rule({"field": "CPU", "pattern": r"CPU:([ ]*)$", "flags": "m"}, {})
        assert apply_rule(rule, "CPU:   ", "x.txt") == NOT_AVAILABLE

    def test_function_returning_none_is_sentinel(self):
        rule = build_rule({"field": "X", "function": "none"}, {"none": lambda content, filename: None})
        assert apply_rule(rule, "", "x.txt") == NOT_AVAILABLE

    def test_function_error_is_sentinel(self):
        rule = build_rule({"field": "X", "function": "explode"}, {"explode": explode})
        assert apply_rule(rule, "", "x.txt") == NOT_AVAILABLE


class TestFieldExtractor:
    """Test record extraction over a rule set."""

    def test_values_in_declared_order(self, small_rule_set):
        extractor = FieldExtractor(clock=lambda: FIXED_TIME)
        record = extractor.extract(
            small_rule_set,
            "Hostname: web01\nCPU: Xeon\nApp: nginx\nApp: redis\n",
            "reports/sn.ABC123_r5_u22_ty.svr.txt",
        )

        assert record.values() == ("web01", "Xeon", "nginx, redis")
        assert record["CPU"] == "Xeon"
        assert record.processed_at == FIXED_TIME
        assert record.source_file == "reports/sn.ABC123_r5_u22_ty.svr.txt"

    def test_missing_optional_field_is_sentinel(self, small_rule_set):
        record = extract(small_rule_set, "Hostname: web01\n", "sn.ABC123_r5_u22_ty.svr.txt")
        assert record.values() == ("web01", NOT_AVAILABLE, NOT_AVAILABLE)

    def test_missing_required_field_raises(self):
        rule_set = build_rule_set(
            "strict",
            [
                {"field": "Hostname", "pattern": r"Hostname:\s*(\S+)"},
                {"field": "Serial", "pattern": r"Serial:\s*(\S+)", "required": True},
            ],
        )

        with pytest.raises(MissingFieldError) as exc_info:
            extract(rule_set, "Hostname: web01\n", "report.txt")

        assert exc_info.value.field_name == "Serial"

    def test_identifiers_from_filename(self, small_rule_set):
        record = extract(small_rule_set, "", "/data/sn.ABC123_hn.web01_r5_u22-23_ty.svr.txt")

        identifiers = record.identifiers
        assert identifiers.serial_number == "ABC123"
        assert identifiers.rack_number == "5"
        assert identifiers.slot_number == "22"
        assert identifiers.entity_kind is EntityKind.PHYSICAL
        assert identifiers.hostname == "web01"

    def test_placeholder_serial_dropped(self, small_rule_set):
        extractor = FieldExtractor(placeholder_serials=["NONE"])
        record = extractor.extract(small_rule_set, "", "sn.NONE_r9_u30_ty.vm.txt")

        assert record.identifiers.serial_number is None
        assert record.identifiers.has_usable_identifier

    def test_default_clock_uses_zone(self, small_rule_set):
        record = FieldExtractor(tz=timezone.utc).extract(small_rule_set, "", "report.txt")
        assert record.processed_at.tzinfo is timezone.utc


class TestRecord:
    """Test the immutable record."""

    @pytest.fixture
    def record(self, small_rule_set):
        return FieldExtractor(clock=lambda: FIXED_TIME).extract(
            small_rule_set, "Hostname: web01\nCPU: Xeon\n", "sn.A1_r1_u1_ty.svr.txt"
        )

    def test_unknown_field_raises(self, record):
        with pytest.raises(UnknownFieldError):
            record["Colour"]

    def test_immutable(self, record):
        with pytest.raises(AttributeError):
            record.source_file = "other.txt"

    def test_as_dict(self, record):
        data = record.as_dict()

        assert list(data)[:3] == ["Hostname", "CPU", "Apps"]
        assert data["Source File"] == "sn.A1_r1_u1_ty.svr.txt"
        assert data["Processed At"] == "2024-05-01T08:30:00+00:00"

    def test_iteration_and_items(self, record):
        assert list(record) == ["Hostname", "CPU", "Apps"]
        assert len(record) == 3
        assert dict(record.items())["Apps"] == NOT_AVAILABLE

    def test_value_count_checked(self, small_rule_set, record):
        with pytest.raises(RuleSetError):
            Record(small_rule_set, ("only one",), record.identifiers, "x.txt", FIXED_TIME)


class TestHelpers:
    """Test the custom function building blocks."""

    def test_first_group(self):
        assert first_group("Model: X1 \n", r"Model:\s*(.+)") == "X1"
        assert first_group("", r"Model:\s*(.+)") is None

    def test_section_with_group(self):
        text = "Apps:\n1 nginx\n====\nother"
        assert section(text, r"Apps:\n([\s\S]*?)(?=====)") == "1 nginx\n"

    def test_section_without_group(self):
        assert section("a START b END c", r"START[\s\S]*?END") == "START b END"
        assert section("abc", r"START") is None

    def test_collect_skips_missing_text(self):
        assert collect(None, r"(\d+)") == []
        assert collect("a1 b22", r"(\d+)") == ["1", "22"]

    def test_unique_keeps_order(self):
        assert unique(["b", "a", "", "b", "c"]) == ["b", "a", "c"]

    def test_join_or_na(self):
        assert join_or_na([]) == NOT_AVAILABLE
        assert join_or_na(["a", "b", "c"], limit=2) == "a, b"
        assert join_or_na(["a", "b"], separator="; ") == "a; b"

    def test_numbers(self):
        assert percent(1, 4) == "25.00%"
        assert bytes_to_gb(1024 ** 3 * 2) == "2.00"

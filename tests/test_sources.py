"""
Tests for report discovery, reading and counting.
"""

import re

import pytest

from inventory_sync.sources import (
    TypeCounts,
    classify_name,
    count_reports,
    discover_reports,
    read_report,
)
from inventory_sync.utils.errors import ReportSourceError


class TestDiscoverReports:
    """Test report discovery."""

    def test_sorted_and_filtered(self, reports_dir, write_report):
        write_report("b_ty.vm.txt")
        write_report("a_ty.svr.txt")
        write_report("notes.md")
        (reports_dir / "nested").mkdir()
        (reports_dir / "nested" / "c.txt").write_text("x")

        files = discover_reports(reports_dir)

        assert [path.name for path in files] == ["a_ty.svr.txt", "b_ty.vm.txt"]

    def test_compiled_pattern(self, reports_dir, write_report):
        write_report("a.log")
        write_report("b.txt")

        files = discover_reports(reports_dir, re.compile(r"\.log$"))

        assert [path.name for path in files] == ["a.log"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ReportSourceError, match="not found"):
            discover_reports(tmp_path / "missing")


class TestReadReport:
    """Test report decoding."""

    def test_utf8(self, write_report):
        assert read_report(write_report("a.txt", "Hostname: web01\n")) == "Hostname: web01\n"

    def test_utf8_bom_dropped(self, write_report):
        path = write_report("a.txt", "Hostname: web01", encoding="utf-8-sig")

        assert read_report(path) == "Hostname: web01"

    def test_powershell_utf16(self, write_report):
        # Python's utf-16 codec writes a byte order mark
        path = write_report("a.txt", "Hostname: WIN-DB01\r\n", encoding="utf-16")

        assert read_report(path) == "Hostname: WIN-DB01\r\n"

    def test_undecodable(self, reports_dir):
        path = reports_dir / "a.txt"
        path.write_bytes(b"Hostname: \xc3\x28")

        with pytest.raises(ReportSourceError, match="Cannot decode"):
            read_report(path)

    def test_missing_file(self, reports_dir):
        with pytest.raises(ReportSourceError, match="Cannot read"):
            read_report(reports_dir / "missing.txt")


class TestCounting:
    """Test type-marker counting."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("sn.A_ty.vm.txt", "vm"),
            ("sn.A_ty.vm-s-10.0.0.1.txt", "vm"),
            ("sn.A_ty.svr.txt", "svr"),
            ("sn.A_ty.nas.txt", "none"),
            ("sn.A.txt", "none"),
        ],
    )
    def test_classify_name(self, name, expected):
        assert classify_name(name) == expected

    def test_count_reports(self, tmp_path):
        for relative in ("done/jan/a_ty.vm.txt", "done/jan/b_ty.svr.txt", "done/feb/deep/c.txt"):
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("x")

        results = count_reports(tmp_path, ["done", "draft"])

        assert results["draft"] is None
        assert list(results["done"]) == ["feb", "jan"]
        assert results["done"]["jan"] == TypeCounts(total=2, vm=1, svr=1, none=0)
        assert results["done"]["feb"] == TypeCounts(total=1, vm=0, svr=0, none=1)

    def test_type_counts_add(self):
        total = TypeCounts(2, 1, 1, 0) + TypeCounts(1, 0, 0, 1)

        assert total == TypeCounts(3, 1, 1, 1)
        assert total.summary() == "(vm: 1, svr: 1, none: 1)"

"""
Report file discovery, reading and counting.
"""

import codecs
import re
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Union

from inventory_sync.utils.errors import ReportSourceError
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)

TYPE_TOKEN_RE = re.compile(r"ty\.([a-zA-Z0-9-]+)")

PatternLike = Union[str, "re.Pattern[str]"]


def discover_reports(directory: Path, pattern: PatternLike = r"\.txt$") -> List[Path]:
    """
    List report files in a directory whose names match a pattern.

    Args:
        directory: Directory holding the reports (not searched recursively)
        pattern: Regex searched in each file name

    Returns:
        Matching files sorted by name

    Raises:
        ReportSourceError: If the directory does not exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise ReportSourceError(f"Report directory not found: {directory}")

    regex = re.compile(pattern, re.IGNORECASE) if isinstance(pattern, str) else pattern
    files = sorted(
        (path for path in directory.iterdir() if path.is_file() and regex.search(path.name)),
        key=lambda path: path.name,
    )
    logger.info("Files discovered", extra={"total_files": len(files), "directory": str(directory)})
    return files


def read_report(path: Path) -> str:
    """
    Read a report as text.

    PowerShell writes UTF-16 with a byte order mark; everything else is read
    as UTF-8 (a UTF-8 BOM is dropped).

    Raises:
        ReportSourceError: If the file cannot be read or decoded
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise ReportSourceError(f"Cannot read report {path}: {e}", {"path": str(path)})

    if raw.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
        encoding = "utf-16"
    else:
        encoding = "utf-8-sig"

    try:
        return raw.decode(encoding)
    except UnicodeDecodeError as e:
        raise ReportSourceError(
            f"Cannot decode report {path} as {encoding}", {"path": str(path), "error": str(e)}
        )


class TypeCounts(NamedTuple):
    total: int = 0
    vm: int = 0
    svr: int = 0
    none: int = 0

    def __add__(self, other: "TypeCounts") -> "TypeCounts":
        return TypeCounts(*(mine + theirs for mine, theirs in zip(self, other)))

    def summary(self) -> str:
        return f"(vm: {self.vm}, svr: {self.svr}, none: {self.none})"


def classify_name(name: str) -> str:
    """'vm', 'svr' or 'none' from the ty.<token> marker of a file name."""
    match = TYPE_TOKEN_RE.search(name)
    if not match:
        return "none"
    token = match.group(1).lower()
    if "vm" in token:
        return "vm"
    if "svr" in token:
        return "svr"
    return "none"


def count_tree(directory: Path) -> TypeCounts:
    """Count every file below a directory by type marker."""
    counts = TypeCounts()
    for path in Path(directory).rglob("*"):
        if path.is_file():
            kind = classify_name(path.name)
            counts = counts + TypeCounts(
                total=1,
                vm=int(kind == "vm"),
                svr=int(kind == "svr"),
                none=int(kind == "none"),
            )
    return counts


def count_reports(
    base_dir: Path,
    folders: Iterable[str] = ("draft", "done", "notes"),
) -> Dict[str, Optional[Dict[str, TypeCounts]]]:
    """
    Count report files per sub-folder of each parent folder.

    Args:
        base_dir: Directory holding the parent folders
        folders: Parent folder names

    Returns:
        {parent: {sub-folder: counts}}; a missing parent maps to None
    """
    result: Dict[str, Optional[Dict[str, TypeCounts]]] = {}
    for parent in folders:
        parent_path = Path(base_dir) / parent
        if not parent_path.is_dir():
            logger.warning(f"Folder '{parent}' not found, skipped")
            result[parent] = None
            continue

        result[parent] = {
            sub.name: count_tree(sub)
            for sub in sorted(parent_path.iterdir(), key=lambda p: p.name)
            if sub.is_dir()
        }
    return result

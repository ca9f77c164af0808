"""
Pure building blocks for custom extraction functions.

Custom functions scan a bounded section of a report, collect several
sub-matches, de-duplicate them and join them for a single spreadsheet cell.
None of these helpers raise for "not found"; they return None, an empty list
or the sentinel instead.
"""

import re
from typing import Iterable, List, Optional, Union

from inventory_sync.extraction.rules import NOT_AVAILABLE

PatternLike = Union[str, "re.Pattern[str]"]


def _compile(pattern: PatternLike, flags: int = 0) -> "re.Pattern[str]":
    if isinstance(pattern, str):
        return re.compile(pattern, flags)
    return pattern


def first_group(text: str, pattern: PatternLike, flags: int = 0) -> Optional[str]:
    """First capture group of the first match, stripped, or None."""
    match = _compile(pattern, flags).search(text or "")
    if not match or match.group(1) is None:
        return None
    value = match.group(1).strip()
    return value or None


def section(text: str, start: PatternLike, flags: int = 0) -> Optional[str]:
    """
    Return the block of text matched by a section pattern.

    The pattern should carry its own terminator (usually a lookahead such as
    ``(?=\\n\\s*\\n|={20}|$)``). When the pattern has a capture group, the group
    is returned instead of the whole match.
    """
    match = _compile(start, flags).search(text or "")
    if not match:
        return None
    if match.re.groups:
        return match.group(1)
    return match.group(0)


def collect(text: Optional[str], pattern: PatternLike, flags: int = 0, group: int = 1) -> List[str]:
    """All values of one capture group across every match."""
    if not text:
        return []
    return [m.group(group).strip() for m in _compile(pattern, flags).finditer(text) if m.group(group)]


def unique(items: Iterable[str]) -> List[str]:
    """Order-preserving de-duplication, dropping empty strings."""
    seen = set()
    result = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def join_or_na(items: Iterable[str], separator: str = ", ", limit: Optional[int] = None) -> str:
    """Join items for display, optionally capped to the first ``limit`` items."""
    values = [item for item in items if item]
    if limit is not None:
        values = values[:limit]
    return separator.join(values) if values else NOT_AVAILABLE


def percent(numerator: float, denominator: float) -> str:
    """Format a ratio as a percentage with two decimals."""
    return f"{numerator / denominator * 100:.2f}%"


def bytes_to_gb(value: float) -> str:
    return f"{value / 1024 / 1024 / 1024:.2f}"

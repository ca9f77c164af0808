"""
Canonical identity derivation from report filenames.

Filenames carry dot/underscore/hyphen separated markers, for example
``sn.ABC123_hn.web01_r5_u22-23_ty.svr.txt`` or
``sn.NONE_r9_u30_ty.vm-s-10.20.0.5.txt``. Identity always comes from these
markers (with a few report fields as fallback), never from rule set output,
so every platform resolves rows the same way.
"""

import re
from pathlib import PurePath
from typing import Iterable, Optional

from inventory_sync.extraction.rules import NOT_AVAILABLE
from inventory_sync.models import EntityKind, Identifiers

SERIAL_RE = re.compile(r"sn[._-]([A-Za-z0-9-]+)(?=_{0,2}[^A-Za-z0-9-]|_hn|$)", re.IGNORECASE)
RACK_RE = re.compile(r"r[._-]?(\d+(?:-\d+)?)", re.IGNORECASE)
SLOT_RE = re.compile(r"u[._-]?(\d+(?:-\d+)?)", re.IGNORECASE)
TYPE_RE = re.compile(r"ty[._-](svr|vm)(?:[_-].*?)?(?=_|$)", re.IGNORECASE)
HOSTNAME_RE = re.compile(r"hn[._-]([^_]+)", re.IGNORECASE)
PARENT_ADDRESS_RE = re.compile(r"(?:svr|vm)[_-]s[_-](\d+\.\d+\.\d+\.\d+)", re.IGNORECASE)

# Report fields consulted when the filename has no marker
CONTENT_SERIAL_RE = re.compile(r"^\s*Serial\s*(?:Number)?\s*:\s*([^\r\n]+)", re.IGNORECASE | re.MULTILINE)
CONTENT_RACK_RE = re.compile(r"^\s*Rack(?:\s*Number)?\s*:\s*(\d+)", re.IGNORECASE | re.MULTILINE)
CONTENT_SLOT_RE = re.compile(r"^\s*U\s*Slot(?:\s*Number)?\s*:\s*(\d+)", re.IGNORECASE | re.MULTILINE)
CONTENT_HOSTNAME_RE = re.compile(r"Hostname\s*:\s*([^\n\r]+)")

REPORT_SUFFIXES = (".txt", ".log")

_TYPE_KINDS = {"svr": EntityKind.PHYSICAL, "vm": EntityKind.VIRTUAL}


def report_name(filename: str) -> str:
    """Base name of a report path without a report suffix (.txt/.log)."""
    name = PurePath(filename).name
    lowered = name.lower()
    for suffix in REPORT_SUFFIXES:
        if lowered.endswith(suffix):
            return name[: -len(suffix)]
    return name


def first_of_range(value: Optional[str]) -> Optional[str]:
    """'22-23' -> '22'; other values unchanged."""
    if value is None:
        return None
    return value.strip().split("-")[0] or None


def entity_kind_from_name(name: str) -> EntityKind:
    """Type marker ty.svr / ty.vm, with a fallback scan for the bare marker."""
    match = TYPE_RE.search(name)
    if match:
        return _TYPE_KINDS.get(match.group(1).lower(), EntityKind.UNKNOWN)
    if re.search(r"ty\.svr", name, re.IGNORECASE):
        return EntityKind.PHYSICAL
    if re.search(r"ty\.vm", name, re.IGNORECASE):
        return EntityKind.VIRTUAL
    return EntityKind.UNKNOWN


def _mask(name: str, match: Optional["re.Match[str]"]) -> str:
    """Blank out a matched marker so its value cannot be mistaken for another marker."""
    if not match:
        return name
    start, end = match.span()
    return name[:start] + "_" * (end - start) + name[end:]


def _group(match: Optional["re.Match[str]"]) -> Optional[str]:
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def derive_identifiers(
    filename: str,
    content: str = "",
    placeholder_serials: Iterable[str] = (),
) -> Identifiers:
    """
    Derive the canonical identifiers of a report.

    Args:
        filename: Report file name or path (only the base name is used)
        content: Report text, consulted when a filename marker is absent
        placeholder_serials: Serial tokens (e.g. NONE) that mean "no serial"

    Returns:
        Identifiers for the report
    """
    name = report_name(filename)

    serial_match = SERIAL_RE.search(name)
    hostname_match = HOSTNAME_RE.search(name)

    # Serial and hostname values may contain r/u + digits; hide them from
    # the rack and slot scans.
    location_name = _mask(_mask(name, serial_match), hostname_match)

    serial = _group(serial_match) or first_group_or_none(CONTENT_SERIAL_RE, content)
    placeholders = {token.upper() for token in placeholder_serials}
    if serial and serial.upper() in placeholders:
        serial = None

    rack = _group(RACK_RE.search(location_name)) or first_group_or_none(CONTENT_RACK_RE, content)
    slot = _group(SLOT_RE.search(location_name)) or first_group_or_none(CONTENT_SLOT_RE, content)

    kind = entity_kind_from_name(name)
    parent_address = None
    if kind is EntityKind.VIRTUAL:
        parent_address = _group(PARENT_ADDRESS_RE.search(name))

    hostname = _group(hostname_match) or first_group_or_none(CONTENT_HOSTNAME_RE, content)

    return Identifiers(
        serial_number=serial,
        rack_number=first_of_range(rack),
        slot_number=first_of_range(slot),
        entity_kind=kind,
        parent_address=parent_address,
        hostname=hostname,
    )


def first_group_or_none(pattern: "re.Pattern[str]", text: str) -> Optional[str]:
    if not text:
        return None
    return _group(pattern.search(text))


def rack_field(content: str, filename: str) -> str:
    """Catalog function: the canonical rack number, so written cells match what the resolver reads."""
    return derive_identifiers(filename, content).rack_number or NOT_AVAILABLE


def slot_field(content: str, filename: str) -> str:
    """Catalog function: the canonical U slot (first value of a range)."""
    return derive_identifiers(filename, content).slot_number or NOT_AVAILABLE

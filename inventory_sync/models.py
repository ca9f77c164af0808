"""
Core data models for the inventory sheet sync.

This module defines the Pydantic models shared by the extraction engine,
the identity resolver, the placement engine and the batch recap.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class EntityKind(str, Enum):
    """Classification of the asset described by a report."""

    PHYSICAL = "physical"
    VIRTUAL = "virtual"
    UNKNOWN = "unknown"


class MatchTier(int, Enum):
    """Identity resolver priority level (1 is the strongest signal)."""

    EXACT = 1
    LOCATION = 2
    SERIAL = 3

    @property
    def label(self) -> str:
        return {
            MatchTier.EXACT: "Serial + Rack + U Slot",
            MatchTier.LOCATION: "Rack + U Slot",
            MatchTier.SERIAL: "Serial Number Only",
        }[self]


class WarningKind(str, Enum):
    """Non-fatal conditions surfaced alongside an outcome."""

    STALE_DATA = "stale_data"
    DUPLICATE_MATCH = "duplicate_match"
    PLACEMENT_FALLBACK = "placement_fallback"
    ANCHOR_MOVED = "anchor_moved"


class AnchorKind(str, Enum):
    """What anchored a new virtual row."""

    RACK_SLOT = "rack_slot"
    ADDRESS = "address"
    END_OF_TABLE = "end_of_table"


class OutcomeKind(str, Enum):
    """Result of processing one report file."""

    UPDATED = "updated"
    INSERTED = "inserted"
    SKIPPED = "skipped"
    FAILED = "failed"
    HIGHLIGHTED = "highlighted"


# =============================================================================
# Identity Models
# =============================================================================


class Identifiers(BaseModel):
    """Identity fields derived from a report filename (and content fallback)."""

    model_config = ConfigDict(frozen=True)

    serial_number: Optional[str] = Field(None, description="Device serial number")
    rack_number: Optional[str] = Field(None, description="Rack number")
    slot_number: Optional[str] = Field(None, description="U slot (first value of a range)")
    entity_kind: EntityKind = Field(EntityKind.UNKNOWN, description="Physical, virtual or unknown")
    parent_address: Optional[str] = Field(None, description="Host address of a virtual entity")
    hostname: Optional[str] = Field(None, description="Hostname from filename or report")

    @property
    def has_location(self) -> bool:
        return bool(self.rack_number and self.slot_number)

    @property
    def has_usable_identifier(self) -> bool:
        """A serial number, or both rack and slot, is enough to search the table."""
        return bool(self.serial_number) or self.has_location

    def describe(self) -> str:
        """Short human-readable form used in recap lines."""
        if self.serial_number:
            return f"SN: {self.serial_number}"
        return f"Rack: {self.rack_number}, U: {self.slot_number}"


class MatchWarning(BaseModel):
    """A soft conflict attached to an otherwise successful decision."""

    kind: WarningKind
    message: str
    duplicate_count: Optional[int] = Field(None, ge=2)
    rows: List[int] = Field(default_factory=list, description="Rows involved")

    def __str__(self) -> str:
        return self.message


class MatchResult(BaseModel):
    """Row chosen by the identity resolver."""

    row_index: int = Field(..., ge=1, description="1-based sheet row number")
    tier: MatchTier
    warning: Optional[MatchWarning] = None

    @property
    def duplicate_count(self) -> Optional[int]:
        return self.warning.duplicate_count if self.warning else None


class Placement(BaseModel):
    """Where a new virtual row goes."""

    parent_row_index: int = Field(..., ge=0, description="1-based row of the anchor (0 for an empty table)")
    using_fallback: bool = False
    anchor: AnchorKind

    @property
    def insert_index(self) -> int:
        """0-based index handed to the structural insert (directly below the parent)."""
        return self.parent_row_index

    @property
    def row_index(self) -> int:
        """1-based sheet row the new entity occupies after the insert."""
        return self.parent_row_index + 1


# =============================================================================
# Outcome Models
# =============================================================================


class Outcome(BaseModel):
    """Exactly one outcome is produced per input file."""

    kind: OutcomeKind
    filename: str
    row_index: Optional[int] = None
    parent_found: Optional[bool] = None
    reason: Optional[str] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    entity_kind: EntityKind = EntityKind.UNKNOWN
    hostname: Optional[str] = None
    tier: Optional[MatchTier] = None
    warnings: List[MatchWarning] = Field(default_factory=list)
    duration_ms: Optional[float] = None

    @classmethod
    def updated(cls, filename: str, row_index: int, **details) -> "Outcome":
        return cls(kind=OutcomeKind.UPDATED, filename=filename, row_index=row_index, **details)

    @classmethod
    def inserted(cls, filename: str, row_index: int, parent_found: bool, **details) -> "Outcome":
        return cls(
            kind=OutcomeKind.INSERTED,
            filename=filename,
            row_index=row_index,
            parent_found=parent_found,
            **details,
        )

    @classmethod
    def highlighted(cls, filename: str, row_index: int, **details) -> "Outcome":
        return cls(kind=OutcomeKind.HIGHLIGHTED, filename=filename, row_index=row_index, **details)

    @classmethod
    def skipped(cls, filename: str, reason: str, **details) -> "Outcome":
        return cls(kind=OutcomeKind.SKIPPED, filename=filename, reason=reason, **details)

    @classmethod
    def failed(cls, filename: str, error: BaseException, **details) -> "Outcome":
        return cls(
            kind=OutcomeKind.FAILED,
            filename=filename,
            error=str(error),
            error_type=type(error).__name__,
            **details,
        )

    @property
    def succeeded(self) -> bool:
        return self.kind in (OutcomeKind.UPDATED, OutcomeKind.INSERTED, OutcomeKind.HIGHLIGHTED)

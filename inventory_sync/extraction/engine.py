"""
Field extraction engine.

Applies any rule set to report text plus its filename and produces a
Record. The engine is generic over "pattern rule or custom function"; the
platform catalogs are configuration handed to it.
"""

from datetime import datetime, timezone, tzinfo
from pathlib import PurePath
from typing import Callable, Iterable, Optional

from inventory_sync.extraction.identifiers import derive_identifiers
from inventory_sync.extraction.record import Record
from inventory_sync.extraction.rules import NOT_AVAILABLE, ExtractionRule, RuleScope, RuleSet
from inventory_sync.utils.errors import MissingFieldError
from inventory_sync.utils.logging import get_logger

logger = get_logger(__name__)


def apply_rule(rule: ExtractionRule, content: str, filename: str) -> str:
    """
    Evaluate one rule.

    Returns the extracted value or the sentinel. A custom function that raises
    is treated like "not found"; whether that is fatal is decided by the caller
    through ``rule.required``.
    """
    if rule.uses_pattern:
        text = filename if rule.scope is RuleScope.FILENAME else content
        match = rule.pattern.search(text or "")
        if not match or match.group(1) is None:
            return NOT_AVAILABLE
        return match.group(1).strip() or NOT_AVAILABLE

    try:
        value = rule.function(content, filename)
    except Exception as e:
        logger.warning(
            f"Extraction function for '{rule.field_name}' raised: {e}",
            extra={"field": rule.field_name, "error": str(e)},
        )
        return NOT_AVAILABLE
    if value is None:
        return NOT_AVAILABLE
    value = str(value).strip()
    return value or NOT_AVAILABLE


class FieldExtractor:
    """Turn raw report text into a Record."""

    def __init__(
        self,
        placeholder_serials: Iterable[str] = (),
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Initialize the extractor.

        Args:
            placeholder_serials: Serial tokens treated as "no serial"
            tz: Zone used for the processed-at timestamp
            clock: Replacement for datetime.now (tests)
        """
        self.placeholder_serials = tuple(placeholder_serials)
        self.tz = tz or timezone.utc
        self._clock = clock or (lambda: datetime.now(self.tz))

    def extract(self, rule_set: RuleSet, content: str, filename: str) -> Record:
        """
        Extract every declared field of a rule set.

        Args:
            rule_set: Rule set to apply, in declared order
            content: Report text
            filename: Report filename or path

        Returns:
            The immutable record

        Raises:
            MissingFieldError: When a required rule resolves to the sentinel
        """
        name = PurePath(filename).name
        values = []
        for rule in rule_set:
            value = apply_rule(rule, content, name)
            if rule.required and value == NOT_AVAILABLE:
                logger.debug("Required field missing", extra={"field": rule.field_name})
                raise MissingFieldError(rule.field_name)
            values.append(value)

        identifiers = derive_identifiers(name, content, self.placeholder_serials)
        logger.debug(
            "Extracted identifiers",
            extra={
                "serial": identifiers.serial_number,
                "rack": identifiers.rack_number,
                "unit": identifiers.slot_number,
                "entity_kind": identifiers.entity_kind.value,
                "parent_address": identifiers.parent_address,
            },
        )

        return Record(
            rule_set=rule_set,
            values=tuple(values),
            identifiers=identifiers,
            source_file=str(filename),
            processed_at=self._clock(),
        )


def extract(rule_set: RuleSet, content: str, filename: str) -> Record:
    """Extract a record with default extractor settings."""
    return FieldExtractor().extract(rule_set, content, filename)

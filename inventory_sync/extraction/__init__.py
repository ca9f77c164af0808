"""
Rule-driven field extraction.

This package turns raw report text plus its filename into an immutable
Record, using whichever rule set it is given.
"""

from inventory_sync.extraction.engine import FieldExtractor, apply_rule, extract
from inventory_sync.extraction.identifiers import derive_identifiers
from inventory_sync.extraction.record import Record
from inventory_sync.extraction.rules import (
    NOT_AVAILABLE,
    ExtractionRule,
    RuleScope,
    RuleSet,
    build_rule_set,
    load_rule_set,
)

__all__ = [
    "NOT_AVAILABLE",
    "ExtractionRule",
    "FieldExtractor",
    "Record",
    "RuleScope",
    "RuleSet",
    "apply_rule",
    "build_rule_set",
    "derive_identifiers",
    "extract",
    "load_rule_set",
]

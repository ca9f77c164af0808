"""
Immutable extraction result keyed by its rule set.
"""

from datetime import datetime
from typing import Dict, Iterator, Tuple

from inventory_sync.extraction.rules import NOT_AVAILABLE, RuleSet
from inventory_sync.models import Identifiers
from inventory_sync.utils.errors import RuleSetError, UnknownFieldError


class Record:
    """
    One report's extracted values.

    The field set is fixed by the rule set that produced the record: every
    declared field holds a value (or the sentinel) and asking for an
    undeclared field raises UnknownFieldError instead of returning "N/A".
    """

    __slots__ = ("_rule_set", "_values", "_identifiers", "_source_file", "_processed_at")

    def __init__(
        self,
        rule_set: RuleSet,
        values: Tuple[str, ...],
        identifiers: Identifiers,
        source_file: str,
        processed_at: datetime,
    ) -> None:
        if len(values) != len(rule_set):
            raise RuleSetError(
                f"Record for rule set '{rule_set.name}' needs {len(rule_set)} values, got {len(values)}"
            )
        object.__setattr__(self, "_rule_set", rule_set)
        object.__setattr__(self, "_values", tuple(NOT_AVAILABLE if v is None else str(v) for v in values))
        object.__setattr__(self, "_identifiers", identifiers)
        object.__setattr__(self, "_source_file", source_file)
        object.__setattr__(self, "_processed_at", processed_at)

    def __setattr__(self, name, value):
        raise AttributeError("Record is immutable")

    @property
    def rule_set(self) -> RuleSet:
        return self._rule_set

    @property
    def identifiers(self) -> Identifiers:
        return self._identifiers

    @property
    def source_file(self) -> str:
        return self._source_file

    @property
    def processed_at(self) -> datetime:
        return self._processed_at

    @property
    def field_names(self) -> Tuple[str, ...]:
        return self._rule_set.field_names

    def values(self) -> Tuple[str, ...]:
        """Values in the rule set's declared order."""
        return self._values

    def __getitem__(self, field_name: str) -> str:
        position = self._rule_set.position(field_name)
        if position is None:
            raise UnknownFieldError(field_name, self._rule_set.name)
        return self._values[position]

    def __iter__(self) -> Iterator[str]:
        return iter(self.field_names)

    def __len__(self) -> int:
        return len(self._values)

    def items(self) -> Iterator[Tuple[str, str]]:
        return zip(self.field_names, self._values)

    def as_dict(self) -> Dict[str, str]:
        """Ordered field mapping plus the source metadata."""
        data = dict(self.items())
        data["Source File"] = self._source_file
        data["Processed At"] = self._processed_at.isoformat()
        return data

    def __repr__(self) -> str:
        return f"Record(rule_set={self._rule_set.name!r}, source_file={self._source_file!r})"

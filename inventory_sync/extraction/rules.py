"""
Extraction rules and rule sets.

A rule set is the ordered catalog of field name -> extraction strategy for one
report format. Catalogs are declared as plain data entries; custom functions
are referenced by name through a registry so the same entries can also be
loaded from JSON.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple

from inventory_sync.utils.errors import RuleSetError

NOT_AVAILABLE = "N/A"

CustomFunction = Callable[[str, str], str]

_FLAG_LETTERS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
}


class RuleScope(str, Enum):
    """Text a pattern rule is applied to."""

    CONTENT = "content"
    FILENAME = "filename"


@dataclass(frozen=True)
class ExtractionRule:
    """One output field and the strategy that produces it."""

    field_name: str
    pattern: Optional["re.Pattern[str]"] = None
    function: Optional[CustomFunction] = None
    scope: RuleScope = RuleScope.CONTENT
    required: bool = False

    def __post_init__(self) -> None:
        if not self.field_name:
            raise RuleSetError("Extraction rule needs a field name")
        if (self.pattern is None) == (self.function is None):
            raise RuleSetError(
                f"Rule '{self.field_name}' must define exactly one of pattern or function"
            )
        if self.pattern is not None and self.pattern.groups < 1:
            raise RuleSetError(
                f"Pattern for '{self.field_name}' has no capture group",
                {"pattern": self.pattern.pattern},
            )

    @property
    def uses_pattern(self) -> bool:
        return self.pattern is not None


@dataclass(frozen=True)
class RuleSet:
    """Immutable, ordered collection of extraction rules."""

    name: str
    rules: Tuple[ExtractionRule, ...]
    _index: Dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: Dict[str, int] = {}
        for position, rule in enumerate(self.rules):
            if rule.field_name in index:
                raise RuleSetError(
                    f"Duplicate field '{rule.field_name}' in rule set '{self.name}'"
                )
            index[rule.field_name] = position
        object.__setattr__(self, "_index", index)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(rule.field_name for rule in self.rules)

    def position(self, field_name: str) -> Optional[int]:
        return self._index.get(field_name)

    def __contains__(self, field_name: object) -> bool:
        return field_name in self._index

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules)


def compile_flags(flags: str) -> int:
    """Translate regex flag letters ('im', 's', ...) into re flags."""
    value = 0
    for letter in flags or "":
        try:
            value |= _FLAG_LETTERS[letter.lower()]
        except KeyError:
            raise RuleSetError(f"Unknown regex flag '{letter}'")
    return value


def build_rule(entry: Mapping[str, Any], functions: Mapping[str, CustomFunction]) -> ExtractionRule:
    """Build one rule from a data entry."""
    name = entry.get("field")
    if not name:
        raise RuleSetError("Rule entry is missing 'field'", {"entry": dict(entry)})

    required = bool(entry.get("required", False))
    if "function" in entry:
        function_name = entry["function"]
        if function_name not in functions:
            raise RuleSetError(
                f"Unknown extraction function '{function_name}' for field '{name}'"
            )
        return ExtractionRule(field_name=name, function=functions[function_name], required=required)

    if "pattern" not in entry:
        raise RuleSetError(f"Rule '{name}' defines neither pattern nor function")

    try:
        pattern = re.compile(entry["pattern"], compile_flags(entry.get("flags", "")))
    except re.error as e:
        raise RuleSetError(f"Invalid pattern for field '{name}': {e}")

    try:
        scope = RuleScope(entry.get("scope", RuleScope.CONTENT.value))
    except ValueError:
        raise RuleSetError(f"Unknown scope '{entry.get('scope')}' for field '{name}'")

    return ExtractionRule(field_name=name, pattern=pattern, scope=scope, required=required)


def build_rule_set(
    name: str,
    entries: Iterable[Mapping[str, Any]],
    functions: Optional[Mapping[str, CustomFunction]] = None,
) -> RuleSet:
    """
    Build a rule set from data entries.

    Args:
        name: Rule set name (usually the platform)
        entries: Ordered entries, each either
            {"field", "pattern", "flags"?, "scope"?, "required"?} or
            {"field", "function", "required"?}
        functions: Registry used to resolve "function" entries

    Returns:
        The immutable rule set

    Raises:
        RuleSetError: If an entry is invalid
    """
    functions = functions or {}
    return RuleSet(name=name, rules=tuple(build_rule(entry, functions) for entry in entries))


def load_rule_set(
    path: Path,
    functions: Optional[Mapping[str, CustomFunction]] = None,
) -> RuleSet:
    """
    Load a rule set from a JSON file.

    The file holds either a list of entries or {"name": ..., "rules": [...]}.
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise RuleSetError(f"Cannot load rule set from {path}: {e}")

    if isinstance(payload, list):
        name, entries = Path(path).stem, payload
    elif isinstance(payload, dict) and isinstance(payload.get("rules"), list):
        name, entries = payload.get("name", Path(path).stem), payload["rules"]
    else:
        raise RuleSetError(f"Rule set file {path} must contain a list of rules")

    return build_rule_set(name, entries, functions)

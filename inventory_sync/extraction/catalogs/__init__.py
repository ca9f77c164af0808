"""
Bundled platform profiles.

A profile pairs the rule set for one report format with the worksheet layout
its values are written into.
"""

from pathlib import Path
from typing import Dict, NamedTuple, Optional, Union

from inventory_sync.extraction.catalogs import linux, windows
from inventory_sync.extraction.rules import RuleSet, load_rule_set
from inventory_sync.reconcile.layout import LINUX_LAYOUT, WINDOWS_LAYOUT, TableLayout
from inventory_sync.utils.errors import ConfigurationError


class PlatformProfile(NamedTuple):
    name: str
    rule_set: RuleSet
    layout: TableLayout


PROFILES: Dict[str, PlatformProfile] = {
    "linux": PlatformProfile("linux", linux.RULE_SET, LINUX_LAYOUT),
    "windows": PlatformProfile("windows", windows.RULE_SET, WINDOWS_LAYOUT),
}

_FUNCTIONS = {
    "linux": linux.FUNCTIONS,
    "windows": windows.FUNCTIONS,
}


def get_profile(platform: str, rules_file: Optional[Union[str, Path]] = None) -> PlatformProfile:
    """
    Look up a platform profile, optionally replacing its rule set from JSON.

    Function entries in the JSON file resolve against the platform's own
    function registry.

    Raises:
        ConfigurationError: Unknown platform, or a rule set that does not fit the layout
    """
    key = platform.strip().lower()
    if key not in PROFILES:
        raise ConfigurationError(
            f"Unknown platform '{platform}'", {"available": sorted(PROFILES)}
        )

    profile = PROFILES[key]
    if rules_file is not None:
        rule_set = load_rule_set(Path(rules_file), _FUNCTIONS[key])
        profile = profile._replace(rule_set=rule_set)

    profile.layout.validate_for(profile.rule_set)
    return profile

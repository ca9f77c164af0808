"""
Identity resolution, placement and worksheet reconciliation.

The orchestrator, recap and highlighter live in their own modules and are
imported from there; this package exposes the pure building blocks.
"""

from inventory_sync.reconcile.layout import LINUX_LAYOUT, WINDOWS_LAYOUT, ColumnBlock, TableLayout
from inventory_sync.reconcile.placement import PlacementEngine
from inventory_sync.reconcile.resolver import IdentityResolver

__all__ = [
    "LINUX_LAYOUT",
    "WINDOWS_LAYOUT",
    "ColumnBlock",
    "IdentityResolver",
    "PlacementEngine",
    "TableLayout",
]

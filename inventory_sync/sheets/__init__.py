"""Worksheet access: the table gateway contract and its adapters."""

from inventory_sync.sheets.base import TableGateway, TableRef
from inventory_sync.sheets.memory import InMemoryTableGateway

__all__ = ["TableGateway", "TableRef", "InMemoryTableGateway"]

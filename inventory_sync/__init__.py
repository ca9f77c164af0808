"""
Inventory sheet sync.

Extracts server and VM inventory reports into records and reconciles them
into the rows of the inventory worksheet.
"""

__version__ = "0.1.0"

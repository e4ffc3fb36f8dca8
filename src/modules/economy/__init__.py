"""
Economy Module
==============

Catalog purchases and holdings queries.

Exports:
- EconomyService: buy, inventory and history operations
"""

from .service import EconomyService, InventoryLine, LedgerEntry, PurchaseResult

__all__ = ["EconomyService", "InventoryLine", "LedgerEntry", "PurchaseResult"]

"""
Ledger access: repositories and the shared settlement primitives.
"""

from src.modules.ledger.operations import LedgerOperations
from src.modules.ledger.repositories import (
    AuctionRepository,
    BidRepository,
    CharacterRepository,
    InventoryRepository,
    ItemRepository,
    TradeRepository,
    TransactionLogRepository,
    UserRepository,
)

__all__ = [
    "LedgerOperations",
    "AuctionRepository",
    "BidRepository",
    "CharacterRepository",
    "InventoryRepository",
    "ItemRepository",
    "TradeRepository",
    "TransactionLogRepository",
    "UserRepository",
]

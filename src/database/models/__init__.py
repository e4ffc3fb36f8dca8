"""
Database Models Package
========================

SQLAlchemy ORM models for Gildhall Economy, organized by domain.

Conventions:
- Schema-only, no business logic
- Mapped[] syntax with mapped_column()
- Explicit foreign keys with CASCADE / RESTRICT rules
- Optimistic locking (``version_id_col``) on every row a settlement mutates
- Aware UTC timestamps via UTCDateTime

Domain Organization:
--------------------
- core: identities and holdings (User, Character, Item, InventoryEntry)
- economy: settlement records (Trade, Auction, Bid, TransactionLog)
- enums: shared status and type enumerations
"""

from src.core.database.base import Base

# Core models
from .core import (
    Character,
    InventoryEntry,
    Item,
    User,
)

# Economy models
from .economy import (
    Auction,
    Bid,
    Trade,
    TransactionLog,
)

# Enums
from .enums import (
    AuctionStatus,
    TradeStatus,
    TransactionType,
)

__all__ = [
    "Base",
    # Core
    "User",
    "Character",
    "Item",
    "InventoryEntry",
    # Economy
    "Trade",
    "Auction",
    "Bid",
    "TransactionLog",
    # Enums
    "AuctionStatus",
    "TradeStatus",
    "TransactionType",
]

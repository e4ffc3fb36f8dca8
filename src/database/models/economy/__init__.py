"""
Economy domain ORM models.

Exports:
- Trade
- Auction
- Bid
- TransactionLog
"""

from src.core.database.base import Base

from .trade import Trade
from .auction import Auction, Bid
from .transaction_log import TransactionLog

__all__ = [
    "Base",
    "Trade",
    "Auction",
    "Bid",
    "TransactionLog",
]

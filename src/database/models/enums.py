"""
Database Model Enums
====================

Lightweight enumerations for categorical columns. Stored as their string
values (non-native enums) so the schema is portable between PostgreSQL and
SQLite. Services reference these for state-machine checks.
"""

from __future__ import annotations

import enum


class TradeStatus(str, enum.Enum):
    """
    Lifecycle of a two-party trade.

    PENDING is the only non-terminal state. The engine drives EXECUTED
    (acceptance) and EXPIRED (sweep); CANCELLED belongs to the command layer.
    """

    PENDING = "PENDING"
    EXECUTED = "EXECUTED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class AuctionStatus(str, enum.Enum):
    """
    Lifecycle of an auction.

    OPEN settles exactly once into SOLD (had a bidder) or EXPIRED (no bids).
    CANCELLED is reserved.
    """

    OPEN = "OPEN"
    SOLD = "SOLD"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class TransactionType(str, enum.Enum):
    """Audit log entry types, one per committed economic mutation."""

    BUY = "BUY"
    TRADE = "TRADE"
    AUCTION_SALE = "AUCTION_SALE"
    AUCTION_REFUND = "AUCTION_REFUND"

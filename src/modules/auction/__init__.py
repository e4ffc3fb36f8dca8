"""
Auction Module
==============

Exports:
- AuctionService: listing, bidding and settlement
- AuctionSettlementScheduler: periodic settlement sweep
- AuctionSnapshot, BidSnapshot, SettlementOutcome, SweepReport
"""

from .service import AUCTION_EXPIRED_EVENT, AUCTION_SOLD_EVENT, AuctionService
from .scheduler import AuctionSettlementScheduler
from .types import AuctionSnapshot, BidSnapshot, SettlementOutcome, SweepReport

__all__ = [
    "AUCTION_EXPIRED_EVENT",
    "AUCTION_SOLD_EVENT",
    "AuctionService",
    "AuctionSettlementScheduler",
    "AuctionSnapshot",
    "BidSnapshot",
    "SettlementOutcome",
    "SweepReport",
]

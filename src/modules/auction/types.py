"""
Auction value objects: immutable snapshots handed to callers and event
listeners, settlement outcomes and the per-sweep report.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from src.database.models import AuctionStatus

if TYPE_CHECKING:
    from src.database.models import Auction, Bid, Item


class SettlementOutcome(str, enum.Enum):
    SOLD = "SOLD"
    EXPIRED = "EXPIRED"
    # Already settled, or not yet due; nothing changed
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class AuctionSnapshot:
    """Committed state of an auction, safe to publish after commit."""

    id: int
    seller_id: int
    item_id: int
    qty: int
    min_bid: int
    current_bid: Optional[int]
    current_bidder_id: Optional[int]
    status: AuctionStatus
    created_at: datetime
    expires_at: datetime
    item_key: Optional[str] = None
    item_name: Optional[str] = None

    @classmethod
    def from_model(cls, auction: Auction, item: Optional[Item] = None) -> AuctionSnapshot:
        return cls(
            id=auction.id,
            seller_id=auction.seller_id,
            item_id=auction.item_id,
            qty=auction.qty,
            min_bid=auction.min_bid,
            current_bid=auction.current_bid,
            current_bidder_id=auction.current_bidder_id,
            status=auction.status,
            created_at=auction.created_at,
            expires_at=auction.expires_at,
            item_key=item.key if item is not None else None,
            item_name=item.name if item is not None else None,
        )

    @property
    def has_bids(self) -> bool:
        return self.current_bidder_id is not None


@dataclass(frozen=True)
class BidSnapshot:
    id: int
    auction_id: int
    bidder_id: int
    amount: int
    created_at: datetime

    @classmethod
    def from_model(cls, bid: Bid) -> BidSnapshot:
        return cls(
            id=bid.id,
            auction_id=bid.auction_id,
            bidder_id=bid.bidder_id,
            amount=bid.amount,
            created_at=bid.created_at,
        )


@dataclass
class SweepReport:
    """Counters for one scheduler tick."""

    examined: int = 0
    sold: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0
    trades_expired: int = 0
    failed_auction_ids: List[int] = field(default_factory=list)

    def record(self, outcome: SettlementOutcome) -> None:
        if outcome is SettlementOutcome.SOLD:
            self.sold += 1
        elif outcome is SettlementOutcome.EXPIRED:
            self.expired += 1
        else:
            self.skipped += 1

    def record_failure(self, auction_id: int) -> None:
        self.failed += 1
        self.failed_auction_ids.append(auction_id)

    @property
    def settled(self) -> int:
        return self.sold + self.expired

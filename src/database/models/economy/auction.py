"""
Auction and Bid: competitive sale of escrowed items.
Pure schema.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import BigInteger, CheckConstraint, Enum, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, TimestampMixin, UTCDateTime
from ..enums import AuctionStatus

if TYPE_CHECKING:
    from ..core.item import Item


class Auction(Base, IdMixin, TimestampMixin):
    """
    An auction listing.

    Schema-only:
    - seller_id (FK to characters)
    - item_id (FK to items)
    - qty (escrowed out of the seller's inventory at creation)
    - min_bid
    - current_bid / current_bidder_id (null until the first accepted bid)
    - status (OPEN, SOLD, EXPIRED, CANCELLED)
    - expires_at
    - version (optimistic locking)
    """

    __tablename__ = "auctions"
    __table_args__ = (
        Index("ix_auctions_status_expires", "status", "expires_at"),
        Index("ix_auctions_seller_status", "seller_id", "status"),
        Index("ix_auctions_bidder_status", "current_bidder_id", "status"),
        CheckConstraint("qty > 0", name="qty_positive"),
        CheckConstraint("min_bid > 0", name="min_bid_positive"),
    )

    seller_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("characters.id", ondelete="CASCADE"),
        nullable=False,
    )

    item_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
    )

    qty: Mapped[int] = mapped_column(Integer, nullable=False)

    min_bid: Mapped[int] = mapped_column(BigInteger, nullable=False)

    current_bid: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    current_bidder_id: Mapped[Optional[int]] = mapped_column(
        BigInteger,
        ForeignKey("characters.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[AuctionStatus] = mapped_column(
        Enum(AuctionStatus, native_enum=False, length=16),
        nullable=False,
        default=AuctionStatus.OPEN,
    )

    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Optimistic locking version",
    )

    item: Mapped["Item"] = relationship("Item", lazy="raise")

    __mapper_args__ = {"version_id_col": version}


class Bid(Base, IdMixin, TimestampMixin):
    """
    Immutable record of an accepted bid.

    Schema-only:
    - auction_id
    - bidder_id
    - amount
    - created_at
    """

    __tablename__ = "bids"
    __table_args__ = (
        Index("ix_bids_auction_time", "auction_id", "created_at"),
        Index("ix_bids_bidder", "bidder_id"),
    )

    auction_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("auctions.id", ondelete="CASCADE"),
        nullable=False,
    )

    bidder_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("characters.id", ondelete="CASCADE"),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

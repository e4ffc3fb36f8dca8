"""
Trade: two-party pending offer negotiation.
Pure schema.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, BigInteger, Enum, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin, UTCDateTime
from ..enums import TradeStatus


def _empty_offer() -> Dict[str, Any]:
    return {"gold": 0, "items": []}


class Trade(Base, IdMixin, TimestampMixin):
    """
    A trade between an initiator and a recipient.

    Schema-only:
    - from_character_id / to_character_id
    - offer_from / offer_to (serialized TradeOffer per side)
    - status (PENDING, EXECUTED, EXPIRED, CANCELLED)
    - expires_at
    - version (optimistic locking)

    Offers are JSON only at this edge; services work with TradeOffer.
    """

    __tablename__ = "trades"
    __table_args__ = (
        Index("ix_trades_from_status", "from_character_id", "status"),
        Index("ix_trades_to_status", "to_character_id", "status"),
        Index("ix_trades_status_expires", "status", "expires_at"),
    )

    from_character_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("characters.id", ondelete="CASCADE"),
        nullable=False,
    )

    to_character_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("characters.id", ondelete="CASCADE"),
        nullable=False,
    )

    offer_from: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=_empty_offer,
    )

    offer_to: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=_empty_offer,
    )

    status: Mapped[TradeStatus] = mapped_column(
        Enum(TradeStatus, native_enum=False, length=16),
        nullable=False,
        default=TradeStatus.PENDING,
    )

    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Optimistic locking version",
    )

    __mapper_args__ = {"version_id_col": version}

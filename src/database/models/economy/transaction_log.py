"""
TransactionLog: economy audit log (immutable).
Pure schema only.
"""

from __future__ import annotations

from typing import Any, Dict

from sqlalchemy import JSON, BigInteger, Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin, TimestampMixin
from ..enums import TransactionType


class TransactionLog(Base, IdMixin, TimestampMixin):
    """
    Append-only audit record of every committed economic mutation.

    Schema-only:
    - character_id
    - transaction_type (BUY, TRADE, AUCTION_SALE, AUCTION_REFUND)
    - payload (JSON, camelCase keys)
    - created_at

    Settlement code writes these and never reads them back for decisions.
    """

    __tablename__ = "transaction_logs"
    __table_args__ = (
        Index("ix_transaction_logs_character_time", "character_id", "created_at"),
        Index("ix_transaction_logs_type", "transaction_type"),
    )

    character_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("characters.id", ondelete="CASCADE"),
        nullable=False,
    )

    transaction_type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False, length=32),
        nullable=False,
    )

    payload: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

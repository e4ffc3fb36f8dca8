"""
Character: the economic actor.
Pure schema.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from .user import User


class Character(Base, IdMixin, TimestampMixin):
    """
    One character per user; holds the gold balance.

    Schema-only:
    - user_id (unique FK to users)
    - name
    - gold (never negative)
    - version (optimistic locking)

    Inventory rows live in ``inventory``; characters are never deleted by
    settlement code.
    """

    __tablename__ = "characters"
    __table_args__ = (
        CheckConstraint("gold >= 0", name="gold_non_negative"),
    )

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    name: Mapped[str] = mapped_column(String(64), nullable=False)

    gold: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Optimistic locking version",
    )

    user: Mapped["User"] = relationship("User", back_populates="character", lazy="raise")

    __mapper_args__ = {"version_id_col": version}

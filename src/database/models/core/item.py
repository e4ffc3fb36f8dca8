"""
Item: catalog entry.
Pure schema.
"""

from __future__ import annotations

from sqlalchemy import BigInteger, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, IdMixin


class Item(Base, IdMixin):
    """
    Immutable catalog item referenced by inventory, offers and auctions.

    Schema-only:
    - key (unique, lowercase letters, digits and underscores)
    - name (display name)
    - base_value (shop price per unit)
    """

    __tablename__ = "items"
    __table_args__ = (
        CheckConstraint("base_value >= 0", name="base_value_non_negative"),
    )

    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(128), nullable=False)

    base_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

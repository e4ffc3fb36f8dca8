"""
InventoryEntry: quantity of one item held by one character.
Pure schema.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin

if TYPE_CHECKING:
    from .item import Item


class InventoryEntry(Base, IdMixin):
    """
    (character, item) -> qty.

    Schema-only:
    - character_id (FK to characters)
    - item_id (FK to items)
    - qty (never negative; zero rows are kept)
    - version (optimistic locking)
    """

    __tablename__ = "inventory"
    __table_args__ = (
        UniqueConstraint("character_id", "item_id", name="uq_inventory_character_item"),
        CheckConstraint("qty >= 0", name="qty_non_negative"),
    )

    character_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("characters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    item_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("items.id", ondelete="RESTRICT"),
        nullable=False,
    )

    qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Optimistic locking version",
    )

    item: Mapped["Item"] = relationship("Item", lazy="raise")

    __mapper_args__ = {"version_id_col": version}

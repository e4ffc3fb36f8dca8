"""
User: a Discord account within one guild.
Pure schema.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, IdMixin, TimestampMixin

if TYPE_CHECKING:
    from .character import Character


class User(Base, IdMixin, TimestampMixin):
    """
    Discord identity scoped to a guild.

    Schema-only:
    - discord_id (snowflake string)
    - guild_id (snowflake string)
    - created_at (from TimestampMixin)

    The same Discord account has an independent economy in every guild.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("discord_id", "guild_id", name="uq_users_discord_guild"),
    )

    discord_id: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    guild_id: Mapped[str] = mapped_column(String(32), nullable=False)

    character: Mapped[Optional["Character"]] = relationship(
        "Character",
        back_populates="user",
        uselist=False,
        lazy="raise",
    )

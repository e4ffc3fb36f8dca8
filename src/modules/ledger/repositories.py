"""
Ledger repositories.

One repository per ledger table. Repositories only read and stage rows; the
caller's unit of work decides when anything commits.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from sqlalchemy import or_, select

from src.database.models import (
    Auction,
    AuctionStatus,
    Bid,
    Character,
    InventoryEntry,
    Item,
    Trade,
    TradeStatus,
    TransactionLog,
    User,
)
from src.modules.shared.base_repository import BaseRepository

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class UserRepository(BaseRepository[User]):
    async def find_by_discord(
        self, session: AsyncSession, discord_id: str, guild_id: str
    ) -> Optional[User]:
        return await self.find_one_where(
            session,
            User.discord_id == discord_id,
            User.guild_id == guild_id,
        )


class CharacterRepository(BaseRepository[Character]):
    async def find_by_user(
        self, session: AsyncSession, user_id: int, for_update: bool = False
    ) -> Optional[Character]:
        return await self.find_one_where(
            session, Character.user_id == user_id, for_update=for_update
        )


class ItemRepository(BaseRepository[Item]):
    async def find_by_key(self, session: AsyncSession, key: str) -> Optional[Item]:
        return await self.find_one_where(session, Item.key == key)

    async def list_all(self, session: AsyncSession) -> List[Item]:
        return await self.find_many_where(session, order_by=[Item.name, Item.id])


class InventoryRepository(BaseRepository[InventoryEntry]):
    async def find_entry(
        self,
        session: AsyncSession,
        character_id: int,
        item_id: int,
        for_update: bool = False,
    ) -> Optional[InventoryEntry]:
        return await self.find_one_where(
            session,
            InventoryEntry.character_id == character_id,
            InventoryEntry.item_id == item_id,
            for_update=for_update,
        )

    async def list_holdings(
        self, session: AsyncSession, character_id: int
    ) -> List[Tuple[InventoryEntry, Item]]:
        """Non-empty inventory rows joined to their items, ordered by item name."""
        stmt = (
            select(InventoryEntry, Item)
            .join(Item, Item.id == InventoryEntry.item_id)
            .where(InventoryEntry.character_id == character_id, InventoryEntry.qty > 0)
            .order_by(Item.name, Item.id)
        )
        rows = [(row[0], row[1]) for row in (await session.execute(stmt)).all()]

        self.log.debug(
            "Repository.list_holdings: InventoryEntry",
            extra={"character_id": character_id, "found_count": len(rows)},
        )
        return rows


class TransactionLogRepository(BaseRepository[TransactionLog]):
    async def recent_for_character(
        self, session: AsyncSession, character_id: int, limit: int
    ) -> List[TransactionLog]:
        return await self.find_many_where(
            session,
            TransactionLog.character_id == character_id,
            order_by=[TransactionLog.created_at.desc(), TransactionLog.id.desc()],
            limit=limit,
        )


class TradeRepository(BaseRepository[Trade]):
    async def find_pending_involving(
        self,
        session: AsyncSession,
        character_ids: Sequence[int],
        for_update: bool = False,
    ) -> List[Trade]:
        """PENDING trades where any of the characters is either participant."""
        ids = list(character_ids)
        return await self.find_many_where(
            session,
            Trade.status == TradeStatus.PENDING,
            or_(Trade.from_character_id.in_(ids), Trade.to_character_id.in_(ids)),
            for_update=for_update,
            order_by=[Trade.id],
        )

    async def find_expired_pending(
        self, session: AsyncSession, now: datetime, limit: Optional[int] = None
    ) -> List[Trade]:
        return await self.find_many_where(
            session,
            Trade.status == TradeStatus.PENDING,
            Trade.expires_at <= now,
            for_update=True,
            order_by=[Trade.id],
            limit=limit,
        )


class AuctionRepository(BaseRepository[Auction]):
    async def find_expired_open_ids(
        self, session: AsyncSession, now: datetime, limit: int
    ) -> List[int]:
        """Ids only; settlement reloads each auction under its own lock."""
        stmt = (
            select(Auction.id)
            .where(Auction.status == AuctionStatus.OPEN, Auction.expires_at <= now)
            .order_by(Auction.expires_at, Auction.id)
            .limit(limit)
        )
        ids = list((await session.execute(stmt)).scalars().all())

        self.log.debug(
            "Repository.find_expired_open_ids: Auction",
            extra={"found_count": len(ids), "limit": limit},
        )
        return ids

    async def find_active(
        self, session: AsyncSession, now: datetime, limit: int
    ) -> List[Auction]:
        return await self.find_many_where(
            session,
            Auction.status == AuctionStatus.OPEN,
            Auction.expires_at > now,
            eager_load=[Auction.item],
            order_by=[Auction.created_at.desc(), Auction.id.desc()],
            limit=limit,
        )

    async def find_for_character(
        self,
        session: AsyncSession,
        character_id: int,
        bid_auction_ids: Sequence[int],
        limit: int,
    ) -> List[Auction]:
        """Auctions the character is selling or has bid on, newest first."""
        condition = Auction.seller_id == character_id
        if bid_auction_ids:
            condition = or_(condition, Auction.id.in_(list(bid_auction_ids)))
        return await self.find_many_where(
            session,
            condition,
            eager_load=[Auction.item],
            order_by=[Auction.created_at.desc(), Auction.id.desc()],
            limit=limit,
        )


class BidRepository(BaseRepository[Bid]):
    async def history(self, session: AsyncSession, auction_id: int) -> List[Bid]:
        """Accepted bids, highest (latest) first."""
        return await self.find_many_where(
            session,
            Bid.auction_id == auction_id,
            order_by=[Bid.amount.desc(), Bid.id.desc()],
        )

    async def auction_ids_for_bidder(
        self, session: AsyncSession, bidder_id: int
    ) -> List[int]:
        stmt = select(Bid.auction_id).where(Bid.bidder_id == bidder_id).distinct()
        return list((await session.execute(stmt)).scalars().all())

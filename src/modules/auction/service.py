"""
Auction Service
===============

Purpose
-------
Competitive bidding on escrowed items, and the settlement routine shared by
the scheduler sweep and any eager caller.

Domain
------
- Creating an auction removes ``qty`` from the seller's inventory in the same
  unit of work (escrow)
- Bids are checked in a fixed order against a freshly locked auction row:
  exists, OPEN, unexpired, not the seller, >= min bid, > current bid, bidder
  can cover it. Gold is not reserved at bid time
- Equal bids are rejected, so the highest committed bid always wins
- Settlement is idempotent: a reload that finds the auction no longer OPEN
  (or not yet due) returns SKIPPED without touching anything
- A winning bidder who can no longer cover the bid at settlement forfeits;
  the items go back to the seller as if there had been no bids
- ``auction.sold`` / ``auction.expired`` are published only after commit

State Machine
-------------
OPEN -> SOLD      settle_auction() with a funded winning bidder
OPEN -> EXPIRED   settle_auction() with no bids
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, List, Optional, Tuple

from src.core.database.service import DatabaseService
from src.core.logging.logger import LogContext, get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models import Auction, AuctionStatus, Bid, TransactionType
from src.modules.auction.types import AuctionSnapshot, BidSnapshot, SettlementOutcome
from src.modules.ledger.repositories import AuctionRepository, BidRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    AuctionExpiredError,
    AuctionNotFoundError,
    AuctionNotOpenError,
    BidNotHigherError,
    BidTooLowError,
    InsufficientGoldError,
    SelfBidError,
)

if TYPE_CHECKING:
    from datetime import datetime
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.modules.ledger.operations import LedgerOperations
    from src.modules.shared.base_service import Clock

AUCTION_SOLD_EVENT = "auction.sold"
AUCTION_EXPIRED_EVENT = "auction.expired"

NO_BIDS_REASON = "No bids received"


class AuctionService(BaseService):
    """
    Auction engine.

    Public Methods
    --------------
    - create_auction() -> List items, escrowing them from the seller
    - place_bid() -> Become the current highest bidder
    - settle_auction() -> Settle one expired auction (idempotent)
    - find_expired_auction_ids() -> Candidates for the sweep
    - get_auction() / get_active_auctions() / get_user_auctions() / get_bid_history()
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        ledger: LedgerOperations,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, logger, clock)
        self._ledger = ledger
        self._auctions = AuctionRepository(Auction, get_logger(f"{__name__}.AuctionRepository"))
        self._bids = BidRepository(Bid, get_logger(f"{__name__}.BidRepository"))

    async def _load_auction(self, session: AsyncSession, auction_id: int) -> Auction:
        auction = await self._auctions.get_for_update(session, auction_id)
        if auction is None:
            raise AuctionNotFoundError(auction_id)
        return auction

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def create_auction(
        self,
        seller_id: int,
        item_key: str,
        qty: int,
        min_bid: int,
        duration_minutes: Optional[int] = None,
    ) -> AuctionSnapshot:
        """
        Open an auction and escrow the items out of the seller's inventory.

        Raises:
            ValidationError: If qty, min_bid or duration is out of bounds
            CharacterNotFoundError / ItemNotFoundError
            InsufficientItemsError: If the seller holds fewer than ``qty``
        """
        seller_id = InputValidator.validate_id(seller_id, "seller_id")
        item_key = InputValidator.validate_item_key(item_key)
        qty = InputValidator.validate_integer(
            qty,
            "qty",
            min_value=self.get_int_config("auction.min_quantity", 1),
            max_value=self.get_int_config("auction.max_quantity", 999_999),
        )
        min_bid = InputValidator.validate_integer(
            min_bid,
            "min_bid",
            min_value=self.get_int_config("auction.min_bid", 1),
            max_value=self.get_int_config("auction.max_bid", 999_999_999),
        )
        if duration_minutes is None:
            duration_minutes = self.get_int_config("auction.default_duration_minutes", 60)
        duration_minutes = InputValidator.validate_integer(
            duration_minutes,
            "duration_minutes",
            min_value=self.get_int_config("auction.min_duration_minutes", 1),
            max_value=self.get_int_config("auction.max_duration_minutes", 10_080),
        )

        now = self.now()
        async with DatabaseService.get_transaction() as session:
            await self._ledger.load_character(session, seller_id)
            item = await self._ledger.load_item_by_key(session, item_key)

            await self._ledger.take_items(session, seller_id, item.id, qty)

            auction = self._auctions.add(
                session,
                Auction(
                    seller_id=seller_id,
                    item_id=item.id,
                    qty=qty,
                    min_bid=min_bid,
                    current_bid=None,
                    current_bidder_id=None,
                    status=AuctionStatus.OPEN,
                    created_at=now,
                    expires_at=now + timedelta(minutes=duration_minutes),
                ),
            )
            await self._auctions.flush(session)
            snapshot = AuctionSnapshot.from_model(auction, item)

        self.log_operation(
            "create_auction",
            auction_id=snapshot.id,
            seller_id=seller_id,
            item_key=item_key,
            qty=qty,
            min_bid=min_bid,
            expires_at=snapshot.expires_at.isoformat(),
        )
        return snapshot

    async def place_bid(self, auction_id: int, bidder_id: int, amount: int) -> AuctionSnapshot:
        """
        Place a bid. The auction row is re-read under lock before any check.

        Raises (in check order):
            AuctionNotFoundError
            AuctionNotOpenError
            AuctionExpiredError
            SelfBidError
            BidTooLowError: amount < min_bid
            BidNotHigherError: amount <= current_bid
            CharacterNotFoundError / InsufficientGoldError: bidder cannot cover amount
        """
        auction_id = InputValidator.validate_id(auction_id, "auction_id")
        bidder_id = InputValidator.validate_id(bidder_id, "bidder_id")
        amount = InputValidator.validate_positive_integer(
            amount, "amount", max_value=self.get_int_config("auction.max_bid", 999_999_999)
        )

        now = self.now()
        async with DatabaseService.get_transaction() as session:
            auction = await self._load_auction(session, auction_id)

            if auction.status != AuctionStatus.OPEN:
                raise AuctionNotOpenError(auction_id, auction.status.value)
            if now >= auction.expires_at:
                raise AuctionExpiredError(auction_id)
            if bidder_id == auction.seller_id:
                raise SelfBidError(auction_id)
            if amount < auction.min_bid:
                raise BidTooLowError(auction_id, amount, auction.min_bid)
            if auction.current_bid is not None and amount <= auction.current_bid:
                raise BidNotHigherError(auction_id, amount, auction.current_bid)

            bidder = await self._ledger.load_character(session, bidder_id)
            if bidder.gold < amount:
                raise InsufficientGoldError(
                    required=amount, current=bidder.gold, character_id=bidder_id
                )

            previous_bidder_id = auction.current_bidder_id
            auction.current_bid = amount
            auction.current_bidder_id = bidder_id
            self._bids.add(
                session,
                Bid(auction_id=auction_id, bidder_id=bidder_id, amount=amount, created_at=now),
            )
            await self._auctions.flush(session)
            snapshot = AuctionSnapshot.from_model(auction)

        self.log_operation(
            "place_bid",
            auction_id=auction_id,
            bidder_id=bidder_id,
            amount=amount,
            previous_bidder_id=previous_bidder_id,
        )
        return snapshot

    async def settle_auction(
        self, auction_id: int, now: Optional[datetime] = None
    ) -> SettlementOutcome:
        """
        Settle one auction believed to be expired.

        Safe to call any number of times, concurrently or not: the auction is
        reloaded under lock and only an OPEN, due auction is settled. Events
        are published after the unit of work commits.

        Raises:
            AuctionNotFoundError: If the auction does not exist
            InsufficientGoldError: If the winning bidder can no longer cover the
                bid (the auction stays OPEN for the next sweep)
            GoldCeilingExceededError: If paying the seller would pass the ceiling
                (the auction stays OPEN)
        """
        now = now or self.now()

        with LogContext(component="auction", operation="settle_auction", auction_id=auction_id):
            async with DatabaseService.get_transaction() as session:
                auction = await self._load_auction(session, auction_id)

                if auction.status != AuctionStatus.OPEN or now < auction.expires_at:
                    self.log.debug(
                        "Auction settlement skipped",
                        extra={
                            "auction_id": auction_id,
                            "status": auction.status.value,
                            "expires_at": auction.expires_at.isoformat(),
                        },
                    )
                    return SettlementOutcome.SKIPPED

                if auction.current_bidder_id is not None:
                    outcome, reason = await self._settle_with_bidder(session, auction)
                else:
                    outcome, reason = await self._refund_seller(session, auction, NO_BIDS_REASON)

                await self._auctions.flush(session)
                snapshot = AuctionSnapshot.from_model(auction)

            await self._publish_outcome(snapshot, outcome, reason)

        self.log_operation(
            "settle_auction",
            auction_id=auction_id,
            outcome=outcome.value,
            seller_id=snapshot.seller_id,
            buyer_id=snapshot.current_bidder_id if outcome is SettlementOutcome.SOLD else None,
            price=snapshot.current_bid if outcome is SettlementOutcome.SOLD else None,
        )
        return outcome

    async def _settle_with_bidder(
        self, session: AsyncSession, auction: Auction
    ) -> Tuple[SettlementOutcome, Optional[str]]:
        price = auction.current_bid or 0
        bidder_id = auction.current_bidder_id
        characters = await self._ledger.load_characters(session, [auction.seller_id, bidder_id])
        seller = characters[auction.seller_id]
        bidder = characters[bidder_id]

        if bidder.gold < price:
            self.log.warning(
                "Winning bidder cannot cover bid; auction stays open",
                extra={
                    "auction_id": auction.id,
                    "bidder_id": bidder_id,
                    "price": price,
                    "bidder_gold": bidder.gold,
                },
            )
            raise InsufficientGoldError(
                required=price, current=bidder.gold, character_id=bidder_id
            )

        self._ledger.debit_gold(bidder, price)
        self._ledger.credit_gold(seller, price)
        await self._ledger.give_items(session, bidder.id, auction.item_id, auction.qty)
        auction.status = AuctionStatus.SOLD

        self._ledger.append_log(
            session,
            seller.id,
            TransactionType.AUCTION_SALE,
            {
                "auctionId": auction.id,
                "itemId": auction.item_id,
                "qty": auction.qty,
                "salePrice": price,
                "buyerId": bidder.id,
            },
        )
        self._ledger.append_log(
            session,
            bidder.id,
            TransactionType.AUCTION_SALE,
            {
                "auctionId": auction.id,
                "itemId": auction.item_id,
                "qty": auction.qty,
                "salePrice": price,
                "sellerId": seller.id,
            },
        )
        return SettlementOutcome.SOLD, None

    async def _refund_seller(
        self, session: AsyncSession, auction: Auction, reason: str
    ) -> Tuple[SettlementOutcome, Optional[str]]:
        await self._ledger.give_items(session, auction.seller_id, auction.item_id, auction.qty)
        auction.status = AuctionStatus.EXPIRED

        self._ledger.append_log(
            session,
            auction.seller_id,
            TransactionType.AUCTION_REFUND,
            {
                "auctionId": auction.id,
                "itemId": auction.item_id,
                "qty": auction.qty,
                "reason": reason,
            },
        )
        return SettlementOutcome.EXPIRED, reason

    async def _publish_outcome(
        self, snapshot: AuctionSnapshot, outcome: SettlementOutcome, reason: Optional[str]
    ) -> None:
        if outcome is SettlementOutcome.SOLD:
            await self.emit_event(
                AUCTION_SOLD_EVENT,
                {
                    "auction": snapshot,
                    "buyer_id": snapshot.current_bidder_id,
                    "seller_id": snapshot.seller_id,
                    "price": snapshot.current_bid,
                },
            )
        else:
            await self.emit_event(
                AUCTION_EXPIRED_EVENT,
                {"auction": snapshot, "seller_id": snapshot.seller_id, "reason": reason},
            )

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def find_expired_auction_ids(
        self, now: Optional[datetime] = None, limit: Optional[int] = None
    ) -> List[int]:
        """OPEN auctions at or past expiry, oldest expiry first."""
        now = now or self.now()
        if limit is None:
            limit = self.get_int_config("auction.settlement_batch_size", 100)

        async with DatabaseService.get_session() as session:
            return await self._auctions.find_expired_open_ids(session, now, limit)

    async def get_auction(self, auction_id: int) -> AuctionSnapshot:
        auction_id = InputValidator.validate_id(auction_id, "auction_id")

        async with DatabaseService.get_session() as session:
            auction = await self._auctions.get(session, auction_id, eager_load=[Auction.item])
            if auction is None:
                raise AuctionNotFoundError(auction_id)
            return AuctionSnapshot.from_model(auction, auction.item)

    async def get_active_auctions(self) -> List[AuctionSnapshot]:
        """OPEN auctions not yet expired, newest first."""
        limit = self.get_int_config("auction.max_active_auctions", 100)

        async with DatabaseService.get_session() as session:
            auctions = await self._auctions.find_active(session, self.now(), limit)
            return [AuctionSnapshot.from_model(a, a.item) for a in auctions]

    async def get_user_auctions(self, character_id: int) -> List[AuctionSnapshot]:
        """Auctions the character created or bid on, newest first."""
        character_id = InputValidator.validate_id(character_id, "character_id")
        limit = self.get_int_config("auction.max_user_auctions", 50)

        async with DatabaseService.get_session() as session:
            bid_on = await self._bids.auction_ids_for_bidder(session, character_id)
            auctions = await self._auctions.find_for_character(
                session, character_id, bid_on, limit
            )
            return [AuctionSnapshot.from_model(a, a.item) for a in auctions]

    async def get_bid_history(self, auction_id: int) -> List[BidSnapshot]:
        """Accepted bids, highest first."""
        auction_id = InputValidator.validate_id(auction_id, "auction_id")

        async with DatabaseService.get_session() as session:
            if not await self._auctions.exists(session, Auction.id == auction_id):
                raise AuctionNotFoundError(auction_id)
            return [BidSnapshot.from_model(b) for b in await self._bids.history(session, auction_id)]

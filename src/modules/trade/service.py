"""
Trade Service
=============

Purpose
-------
Two-party negotiation ending in an atomic bilateral swap of gold and items.

Domain
------
- A trade starts PENDING with two empty offers and expires
  ``trade.expiry_minutes`` after creation
- A character can be in at most one PENDING trade, as initiator or recipient
- Offers only grow: each participant may add gold or items to their own
  side while the trade is PENDING and unexpired
- Only the recipient can accept. Acceptance re-verifies both offers against
  balances locked inside the accepting unit of work, then swaps gold as two
  independent debit/credit pairs and moves each offered item line
- The settlement scheduler expires stale PENDING trades

State Machine
-------------
PENDING -> EXECUTED   accept_trade()
PENDING -> EXPIRED    expire_stale_trades() / start_trade() clearing a stale trade
PENDING -> CANCELLED  command layer only
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, List, Optional

from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models import Trade, TradeStatus, TransactionType
from src.modules.ledger.repositories import TradeRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import (
    InsufficientGoldError,
    InsufficientItemsError,
    NotParticipantError,
    NotRecipientError,
    PendingTradeExistsError,
    SelfTradeError,
    TradeExpiredError,
    TradeNotFoundError,
    TradeNotPendingError,
    ValidationError,
)
from src.modules.trade.types import OfferKind, OfferLimits, TradeOffer, TradeSnapshot

if TYPE_CHECKING:
    from datetime import datetime
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.database.models import Character
    from src.modules.ledger.operations import LedgerOperations
    from src.modules.shared.base_service import Clock

class TradeService(BaseService):
    """
    Trade engine.

    Public Methods
    --------------
    - start_trade() -> Open a PENDING trade between two characters
    - add_to_trade_offer() -> Add gold or items to the caller's side
    - accept_trade() -> Recipient settles the swap
    - get_trade() / get_pending_trade() -> Queries
    - expire_stale_trades() -> Sweep PENDING trades past their expiry
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
        self._trades = TradeRepository(Trade, get_logger(f"{__name__}.TradeRepository"))

    def _offer_limits(self) -> OfferLimits:
        return OfferLimits(
            max_gold=self.get_int_config("trade.max_gold", 999_999_999),
            max_items=self.get_int_config("trade.max_items_per_offer", 1000),
            max_item_quantity=self.get_int_config("trade.max_item_quantity", 99_999),
        )

    async def _load_trade(
        self, session: AsyncSession, trade_id: int, lock: bool = False
    ) -> Trade:
        if lock:
            trade = await self._trades.get_for_update(session, trade_id)
        else:
            trade = await self._trades.get(session, trade_id)
        if trade is None:
            raise TradeNotFoundError(trade_id)
        return trade

    def _ensure_open(self, trade: Trade, now: datetime) -> None:
        if trade.status != TradeStatus.PENDING:
            raise TradeNotPendingError(trade.id, trade.status.value)
        if now >= trade.expires_at:
            raise TradeExpiredError(trade.id)

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def start_trade(self, from_character_id: int, to_character_id: int) -> TradeSnapshot:
        """
        Open a PENDING trade with two empty offers.

        A stale PENDING trade (past its expiry but not yet swept) involving
        either character is expired here instead of blocking the new one.

        Raises:
            SelfTradeError: If both ids are the same character
            CharacterNotFoundError: If either character does not exist
            PendingTradeExistsError: If either character already has a live PENDING trade
        """
        from_character_id = InputValidator.validate_id(from_character_id, "from_character_id")
        to_character_id = InputValidator.validate_id(to_character_id, "to_character_id")
        if from_character_id == to_character_id:
            raise SelfTradeError(from_character_id)

        now = self.now()
        expiry = timedelta(minutes=self.get_int_config("trade.expiry_minutes", 30))

        async with DatabaseService.get_transaction() as session:
            await self._ledger.load_characters(session, [from_character_id, to_character_id])

            pending = await self._trades.find_pending_involving(
                session, [from_character_id, to_character_id], for_update=True
            )
            for existing in pending:
                if existing.expires_at <= now:
                    existing.status = TradeStatus.EXPIRED
                    continue
                blocked = (
                    from_character_id
                    if from_character_id in (existing.from_character_id, existing.to_character_id)
                    else to_character_id
                )
                raise PendingTradeExistsError(blocked, existing.id)

            trade = self._trades.add(
                session,
                Trade(
                    from_character_id=from_character_id,
                    to_character_id=to_character_id,
                    offer_from=TradeOffer.empty().to_payload(),
                    offer_to=TradeOffer.empty().to_payload(),
                    status=TradeStatus.PENDING,
                    created_at=now,
                    expires_at=now + expiry,
                ),
            )
            await self._trades.flush(session)
            snapshot = TradeSnapshot.from_model(trade)

        self.log_operation(
            "start_trade",
            trade_id=snapshot.id,
            from_character_id=from_character_id,
            to_character_id=to_character_id,
            expires_at=snapshot.expires_at.isoformat(),
        )
        return snapshot

    async def add_to_trade_offer(
        self,
        trade_id: int,
        character_id: int,
        kind: OfferKind | str,
        item_key: Optional[str],
        qty: int,
    ) -> TradeSnapshot:
        """
        Add gold or items to the caller's own side of a PENDING trade.

        The running total already offered plus ``qty`` must be covered by the
        character's committed balance. The other side's offer is untouched.

        Raises:
            ValidationError: Unknown kind, missing item key, or qty out of range
            TradeNotFoundError / TradeNotPendingError / TradeExpiredError
            NotParticipantError: If the character is not in this trade
            ItemNotFoundError: If the item key does not resolve
            InsufficientGoldError / InsufficientItemsError
        """
        trade_id = InputValidator.validate_id(trade_id, "trade_id")
        character_id = InputValidator.validate_id(character_id, "character_id")
        try:
            kind = OfferKind(kind)
        except ValueError:
            raise ValidationError("kind", "Offer kind must be 'gold' or 'item'") from None

        limits = self._offer_limits()
        if kind is OfferKind.GOLD:
            qty = InputValidator.validate_positive_integer(qty, "amount", max_value=limits.max_gold)
        else:
            if item_key is None:
                raise ValidationError("item_key", "An item key is required for item offers")
            item_key = InputValidator.validate_item_key(item_key)
            qty = InputValidator.validate_positive_integer(
                qty, "qty", max_value=limits.max_item_quantity
            )

        async with DatabaseService.get_transaction() as session:
            # participants never change, so an unlocked read is enough to route
            trade = await self._load_trade(session, trade_id)
            if character_id == trade.from_character_id:
                side = "offer_from"
            elif character_id == trade.to_character_id:
                side = "offer_to"
            else:
                raise NotParticipantError(trade_id, character_id)

            character = await self._ledger.load_character(session, character_id)
            trade = await self._load_trade(session, trade_id, lock=True)
            self._ensure_open(trade, self.now())
            offer = TradeOffer.from_payload(getattr(trade, side))

            if kind is OfferKind.GOLD:
                committed = offer.gold + qty
                if committed > character.gold:
                    raise InsufficientGoldError(
                        required=committed, current=character.gold, character_id=character_id
                    )
                updated = offer.with_gold(qty)
            else:
                item = await self._ledger.load_item_by_key(session, item_key)
                held = await self._ledger.get_quantity(session, character_id, item.id, lock=True)
                committed = offer.quantity_of(item.id) + qty
                if committed > held:
                    raise InsufficientItemsError(
                        required=committed,
                        current=held,
                        character_id=character_id,
                        item_id=item.id,
                    )
                updated = offer.with_item(item.id, qty)

            setattr(trade, side, updated.validate(limits).to_payload())
            await self._trades.flush(session)
            snapshot = TradeSnapshot.from_model(trade)

        self.log_operation(
            "add_to_trade_offer",
            trade_id=trade_id,
            character_id=character_id,
            kind=kind.value,
            item_key=item_key,
            qty=qty,
        )
        return snapshot

    async def accept_trade(self, trade_id: int, character_id: int) -> TradeSnapshot:
        """
        Settle a trade. Only the recipient may accept.

        Inside one unit of work: lock both characters in id order, then the
        trade row, re-verify both offers against current balances, swap, mark
        EXECUTED and write one TRADE audit row per participant.

        Raises:
            TradeNotFoundError / NotRecipientError
            TradeNotPendingError / TradeExpiredError
            InsufficientGoldError / InsufficientItemsError: Whichever side is short now
            GoldCeilingExceededError: If a credit would pass the gold ceiling
        """
        trade_id = InputValidator.validate_id(trade_id, "trade_id")
        character_id = InputValidator.validate_id(character_id, "character_id")

        async with DatabaseService.get_transaction() as session:
            trade = await self._load_trade(session, trade_id)
            if character_id != trade.to_character_id:
                raise NotRecipientError(trade_id, character_id)

            characters = await self._ledger.load_characters(
                session, [trade.from_character_id, trade.to_character_id]
            )
            trade = await self._load_trade(session, trade_id, lock=True)
            self._ensure_open(trade, self.now())
            initiator = characters[trade.from_character_id]
            recipient = characters[trade.to_character_id]
            offer_from = TradeOffer.from_payload(trade.offer_from)
            offer_to = TradeOffer.from_payload(trade.offer_to)

            await self._verify_offer(session, initiator, offer_from)
            await self._verify_offer(session, recipient, offer_to)

            self._ledger.debit_gold(initiator, offer_from.gold)
            self._ledger.debit_gold(recipient, offer_to.gold)
            self._ledger.credit_gold(initiator, offer_to.gold)
            self._ledger.credit_gold(recipient, offer_from.gold)

            for line in offer_from.items:
                await self._ledger.take_items(session, initiator.id, line.item_id, line.qty)
                await self._ledger.give_items(session, recipient.id, line.item_id, line.qty)
            for line in offer_to.items:
                await self._ledger.take_items(session, recipient.id, line.item_id, line.qty)
                await self._ledger.give_items(session, initiator.id, line.item_id, line.qty)

            trade.status = TradeStatus.EXECUTED

            self._ledger.append_log(
                session,
                initiator.id,
                TransactionType.TRADE,
                {
                    "tradeId": trade.id,
                    "offerSent": offer_from.to_payload(),
                    "offerReceived": offer_to.to_payload(),
                    "partnerCharId": recipient.id,
                },
            )
            self._ledger.append_log(
                session,
                recipient.id,
                TransactionType.TRADE,
                {
                    "tradeId": trade.id,
                    "offerSent": offer_to.to_payload(),
                    "offerReceived": offer_from.to_payload(),
                    "partnerCharId": initiator.id,
                },
            )

            await self._trades.flush(session)
            snapshot = TradeSnapshot.from_model(trade)

        self.log_operation(
            "accept_trade",
            trade_id=trade_id,
            from_character_id=snapshot.from_character_id,
            to_character_id=snapshot.to_character_id,
            gold_from=snapshot.offer_from.gold,
            gold_to=snapshot.offer_to.gold,
            item_lines_from=len(snapshot.offer_from.items),
            item_lines_to=len(snapshot.offer_to.items),
        )
        return snapshot

    async def _verify_offer(
        self, session: AsyncSession, character: Character, offer: TradeOffer
    ) -> None:
        """Check an offer against the character's locked balances."""
        if character.gold < offer.gold:
            raise InsufficientGoldError(
                required=offer.gold, current=character.gold, character_id=character.id
            )
        for line in offer.items:
            held = await self._ledger.get_quantity(session, character.id, line.item_id, lock=True)
            if held < line.qty:
                raise InsufficientItemsError(
                    required=line.qty,
                    current=held,
                    character_id=character.id,
                    item_id=line.item_id,
                )

    async def expire_stale_trades(self, now: Optional[datetime] = None) -> int:
        """Flip every PENDING trade at or past its expiry to EXPIRED."""
        now = now or self.now()

        async with DatabaseService.get_transaction() as session:
            stale = await self._trades.find_expired_pending(session, now)
            for trade in stale:
                trade.status = TradeStatus.EXPIRED
            expired_ids = [trade.id for trade in stale]

        if expired_ids:
            self.log_operation(
                "expire_stale_trades",
                expired_count=len(expired_ids),
                trade_ids=expired_ids,
            )
        return len(expired_ids)

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_trade(self, trade_id: int) -> TradeSnapshot:
        trade_id = InputValidator.validate_id(trade_id, "trade_id")

        async with DatabaseService.get_session() as session:
            trade = await self._trades.get(session, trade_id)
            if trade is None:
                raise TradeNotFoundError(trade_id)
            return TradeSnapshot.from_model(trade)

    async def get_pending_trade(self, character_id: int) -> Optional[TradeSnapshot]:
        """The character's PENDING trade, if any (stale ones included until swept)."""
        character_id = InputValidator.validate_id(character_id, "character_id")

        async with DatabaseService.get_session() as session:
            pending: List[Trade] = await self._trades.find_pending_involving(
                session, [character_id]
            )
            return TradeSnapshot.from_model(pending[0]) if pending else None

"""
Ledger Operations
=================

Purpose
-------
The single code path that moves value. Purchases, trade swaps and auction
settlement all call these primitives inside their own unit of work, so gold
and item transfer rules live in exactly one place.

Rules
-----
- Every balance check runs against a row read inside the caller's unit of
  work. Rows that are checked and then mutated are read FOR UPDATE.
- Amounts must be non-negative; zero is a no-op.
- Gold never goes below zero or above ``economy.max_gold``.
- Inventory quantities never go below zero; rows at zero are kept.
- Nothing here commits. A raised exception rolls the caller's work back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from src.core.logging.logger import get_logger
from src.database.models import (
    Character,
    InventoryEntry,
    Item,
    TransactionLog,
    TransactionType,
)
from src.modules.ledger.repositories import (
    CharacterRepository,
    InventoryRepository,
    ItemRepository,
    TransactionLogRepository,
)
from src.modules.shared.exceptions import (
    CharacterNotFoundError,
    GoldCeilingExceededError,
    InsufficientGoldError,
    InsufficientItemsError,
    ItemNotFoundError,
    NotFoundError,
)

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.config.manager import ConfigManager

DEFAULT_MAX_GOLD = 999_999_999


def _require_non_negative(amount: int, field_name: str) -> None:
    if amount < 0:
        raise ValueError(f"{field_name} must be non-negative, got {amount}")


class LedgerOperations:
    """
    Settlement primitives shared by every engine.

    Args:
        config_manager: Source of ``economy.max_gold``
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        logger: Optional[Logger] = None,
    ) -> None:
        self._config = config_manager
        self.log = logger or get_logger(__name__)

        self.characters = CharacterRepository(Character, get_logger(f"{__name__}.CharacterRepository"))
        self.items = ItemRepository(Item, get_logger(f"{__name__}.ItemRepository"))
        self.inventory = InventoryRepository(
            InventoryEntry, get_logger(f"{__name__}.InventoryRepository")
        )
        self.logs = TransactionLogRepository(
            TransactionLog, get_logger(f"{__name__}.TransactionLogRepository")
        )

    @property
    def max_gold(self) -> int:
        return int(self._config.get("economy.max_gold", DEFAULT_MAX_GOLD))

    # ========================================================================
    # Loading
    # ========================================================================

    async def load_character(
        self, session: AsyncSession, character_id: int, lock: bool = True
    ) -> Character:
        """Fetch a character (locked by default) or raise CharacterNotFoundError."""
        if lock:
            character = await self.characters.get_for_update(session, character_id)
        else:
            character = await self.characters.get(session, character_id)

        if character is None:
            raise CharacterNotFoundError(character_id)
        return character

    async def load_characters(
        self, session: AsyncSession, character_ids: Iterable[int]
    ) -> Dict[int, Character]:
        """
        Lock several characters in ascending id order.

        Two-party flows go through here so concurrent units of work always
        acquire character locks in the same order.
        """
        wanted = sorted(set(character_ids))
        found = {c.id: c for c in await self.characters.get_many_for_update(session, wanted)}
        for character_id in wanted:
            if character_id not in found:
                raise CharacterNotFoundError(character_id)
        return found

    async def load_item_by_key(self, session: AsyncSession, item_key: str) -> Item:
        item = await self.items.find_by_key(session, item_key)
        if item is None:
            raise ItemNotFoundError(item_key)
        return item

    async def load_item(self, session: AsyncSession, item_id: int) -> Item:
        item = await self.items.get(session, item_id)
        if item is None:
            raise NotFoundError("Item", item_id)
        return item

    async def get_quantity(
        self,
        session: AsyncSession,
        character_id: int,
        item_id: int,
        lock: bool = False,
    ) -> int:
        entry = await self.inventory.find_entry(session, character_id, item_id, for_update=lock)
        return entry.qty if entry is not None else 0

    # ========================================================================
    # Gold
    # ========================================================================

    def debit_gold(self, character: Character, amount: int) -> None:
        """Remove gold from a loaded (locked) character."""
        _require_non_negative(amount, "amount")
        if amount == 0:
            return

        if character.gold < amount:
            raise InsufficientGoldError(
                required=amount, current=character.gold, character_id=character.id
            )

        old_value = character.gold
        character.gold = old_value - amount

        self.log.debug(
            "Gold debited",
            extra={
                "character_id": character.id,
                "amount": amount,
                "old_value": old_value,
                "new_value": character.gold,
            },
        )

    def credit_gold(self, character: Character, amount: int) -> None:
        """Add gold to a loaded (locked) character, refusing to pass the ceiling."""
        _require_non_negative(amount, "amount")
        if amount == 0:
            return

        ceiling = self.max_gold
        if character.gold + amount > ceiling:
            raise GoldCeilingExceededError(
                character_id=character.id,
                balance=character.gold,
                amount=amount,
                ceiling=ceiling,
            )

        old_value = character.gold
        character.gold = old_value + amount

        self.log.debug(
            "Gold credited",
            extra={
                "character_id": character.id,
                "amount": amount,
                "old_value": old_value,
                "new_value": character.gold,
            },
        )

    # ========================================================================
    # Items
    # ========================================================================

    async def take_items(
        self, session: AsyncSession, character_id: int, item_id: int, qty: int
    ) -> None:
        """Decrement a locked inventory row; the committed quantity must cover qty."""
        _require_non_negative(qty, "qty")
        if qty == 0:
            return

        entry = await self.inventory.find_entry(session, character_id, item_id, for_update=True)
        current = entry.qty if entry is not None else 0
        if entry is None or current < qty:
            raise InsufficientItemsError(
                required=qty, current=current, character_id=character_id, item_id=item_id
            )

        entry.qty = current - qty

        self.log.debug(
            "Items taken",
            extra={
                "character_id": character_id,
                "item_id": item_id,
                "qty": qty,
                "remaining": entry.qty,
            },
        )

    async def give_items(
        self, session: AsyncSession, character_id: int, item_id: int, qty: int
    ) -> Optional[InventoryEntry]:
        """Increment-or-create the (character, item) inventory row."""
        _require_non_negative(qty, "qty")
        if qty == 0:
            return None

        entry = await self.inventory.find_entry(session, character_id, item_id, for_update=True)
        if entry is None:
            entry = self.inventory.add(
                session,
                InventoryEntry(character_id=character_id, item_id=item_id, qty=qty),
            )
        else:
            entry.qty = entry.qty + qty

        self.log.debug(
            "Items given",
            extra={
                "character_id": character_id,
                "item_id": item_id,
                "qty": qty,
                "new_quantity": entry.qty,
            },
        )
        return entry

    # ========================================================================
    # Audit
    # ========================================================================

    def append_log(
        self,
        session: AsyncSession,
        character_id: int,
        transaction_type: TransactionType,
        payload: Dict[str, Any],
    ) -> TransactionLog:
        """Stage an append-only audit row in the caller's unit of work."""
        entry = self.logs.add(
            session,
            TransactionLog(
                character_id=character_id,
                transaction_type=transaction_type,
                payload=dict(payload),
            ),
        )
        self.log.debug(
            "Transaction logged",
            extra={
                "character_id": character_id,
                "transaction_type": transaction_type.value,
            },
        )
        return entry

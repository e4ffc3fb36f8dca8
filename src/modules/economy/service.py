"""
Economy Service
===============

Purpose
-------
Direct purchases from the fixed item catalog, plus read access to a
character's inventory and transaction history.

Domain
------
- buy(): single-party settlement. Debits gold, credits inventory, writes a
  BUY audit row, all in one unit of work
- Cost is ``item.base_value * quantity``; the balance check runs against the
  character row locked inside that unit of work
- History is newest first and capped at ``economy.max_history_limit``
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from src.core.database.service import DatabaseService
from src.core.validation.input_validator import InputValidator
from src.database.models import TransactionType
from src.modules.shared.base_service import BaseService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.database.models import TransactionLog
    from src.modules.ledger.operations import LedgerOperations
    from src.modules.shared.base_service import Clock


@dataclass(frozen=True)
class PurchaseResult:
    character_id: int
    item_id: int
    item_key: str
    item_name: str
    quantity: int
    total_cost: int
    gold_remaining: int


@dataclass(frozen=True)
class InventoryLine:
    item_id: int
    item_key: str
    item_name: str
    qty: int


@dataclass(frozen=True)
class LedgerEntry:
    id: int
    character_id: int
    transaction_type: TransactionType
    payload: Dict[str, Any]
    created_at: datetime

    @classmethod
    def from_model(cls, row: TransactionLog) -> LedgerEntry:
        return cls(
            id=row.id,
            character_id=row.character_id,
            transaction_type=row.transaction_type,
            payload=dict(row.payload),
            created_at=row.created_at,
        )


class EconomyService(BaseService):
    """
    Shop purchases and holdings queries.

    Dependencies
    ------------
    - ConfigManager: quantity and history limits
    - LedgerOperations: gold and inventory primitives
    - DatabaseService: unit of work (static)

    Public Methods
    --------------
    - buy() -> Purchase items from the catalog
    - get_inventory() -> Non-empty holdings
    - get_transaction_history() -> Recent audit rows
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

    # ========================================================================
    # PUBLIC API - Write Operations
    # ========================================================================

    async def buy(self, character_id: int, item_key: str, quantity: int) -> PurchaseResult:
        """
        Buy ``quantity`` units of a catalog item.

        This is a **write operation** using get_transaction() with pessimistic locking.

        Raises:
            ValidationError: If quantity is not a positive integer within bounds
            CharacterNotFoundError: If the character does not exist
            ItemNotFoundError: If the key does not resolve to a catalog item
            InsufficientGoldError: If the locked balance cannot cover the cost
        """
        character_id = InputValidator.validate_id(character_id, "character_id")
        item_key = InputValidator.validate_item_key(item_key)
        quantity = InputValidator.validate_positive_integer(
            quantity,
            field_name="quantity",
            max_value=self.get_int_config("inventory.max_quantity", 99_999),
        )

        async with DatabaseService.get_transaction() as session:
            character = await self._ledger.load_character(session, character_id)
            item = await self._ledger.load_item_by_key(session, item_key)

            total_cost = item.base_value * quantity
            self._ledger.debit_gold(character, total_cost)
            await self._ledger.give_items(session, character.id, item.id, quantity)

            self._ledger.append_log(
                session,
                character.id,
                TransactionType.BUY,
                {
                    "itemId": item.id,
                    "itemKey": item.key,
                    "itemName": item.name,
                    "quantity": quantity,
                    "totalCost": total_cost,
                },
            )

            result = PurchaseResult(
                character_id=character.id,
                item_id=item.id,
                item_key=item.key,
                item_name=item.name,
                quantity=quantity,
                total_cost=total_cost,
                gold_remaining=character.gold,
            )

        self.log_operation(
            "buy",
            character_id=character_id,
            item_key=item_key,
            quantity=quantity,
            total_cost=result.total_cost,
            gold_remaining=result.gold_remaining,
        )
        return result

    # ========================================================================
    # PUBLIC API - Read Operations
    # ========================================================================

    async def get_inventory(self, character_id: int) -> List[InventoryLine]:
        """Non-empty holdings ordered by item name."""
        character_id = InputValidator.validate_id(character_id, "character_id")

        async with DatabaseService.get_session() as session:
            await self._ledger.load_character(session, character_id, lock=False)
            rows = await self._ledger.inventory.list_holdings(session, character_id)
            return [
                InventoryLine(item_id=item.id, item_key=item.key, item_name=item.name, qty=entry.qty)
                for entry, item in rows
            ]

    async def get_transaction_history(
        self, character_id: int, limit: Optional[int] = None
    ) -> List[LedgerEntry]:
        """
        Most recent audit rows, newest first.

        ``limit`` defaults to ``economy.default_history_limit`` and is capped
        at ``economy.max_history_limit``.
        """
        character_id = InputValidator.validate_id(character_id, "character_id")
        max_limit = self.get_int_config("economy.max_history_limit", 100)
        if limit is None:
            limit = self.get_int_config("economy.default_history_limit", 10)
        limit = min(InputValidator.validate_positive_integer(limit, field_name="limit"), max_limit)

        async with DatabaseService.get_session() as session:
            await self._ledger.load_character(session, character_id, lock=False)
            rows = await self._ledger.logs.recent_for_character(session, character_id, limit)
            return [LedgerEntry.from_model(row) for row in rows]

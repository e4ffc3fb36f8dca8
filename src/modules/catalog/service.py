"""
Catalog Service
===============

Purpose
-------
Read access to the fixed item catalog and idempotent seeding of catalog
entries from ``data/items.json``.

Domain
------
- Item keys are lowercase letters, digits and underscores
- Settlement flows reference items but never modify them
- Seeding upserts by key: new keys are inserted, existing keys get their
  name and base value refreshed
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from src.core.config.config import Config
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.core.validation.input_validator import InputValidator
from src.database.models import Item
from src.modules.ledger.repositories import ItemRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import ItemNotFoundError, ValidationError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus


@dataclass(frozen=True)
class CatalogItem:
    id: int
    key: str
    name: str
    base_value: int

    @classmethod
    def from_model(cls, item: Item) -> CatalogItem:
        return cls(id=item.id, key=item.key, name=item.name, base_value=item.base_value)


@dataclass(frozen=True)
class SeedResult:
    inserted: int
    updated: int
    unchanged: int


class CatalogService(BaseService):
    """
    Item catalog.

    Public Methods
    --------------
    - list_items() -> All items ordered by name
    - get_item() -> One item by key
    - seed_items() -> Upsert catalog entries from a JSON file
    """

    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)
        self._items = ItemRepository(Item, get_logger(f"{__name__}.ItemRepository"))

    async def list_items(self) -> List[CatalogItem]:
        async with DatabaseService.get_session() as session:
            return [CatalogItem.from_model(item) for item in await self._items.list_all(session)]

    async def get_item(self, item_key: str) -> CatalogItem:
        """
        Raises:
            ValidationError: If the key is malformed
            ItemNotFoundError: If no item has this key
        """
        item_key = InputValidator.validate_item_key(item_key)

        async with DatabaseService.get_session() as session:
            item = await self._items.find_by_key(session, item_key)
            if item is None:
                raise ItemNotFoundError(item_key)
            return CatalogItem.from_model(item)

    # ========================================================================
    # Seeding
    # ========================================================================

    def resolve_seed_path(self, path: Optional[Union[str, Path]]) -> Path:
        if path is None:
            path = self.get_config("catalog.seed_file", "data/items.json")
        resolved = Path(path)
        if not resolved.is_absolute():
            resolved = Config.PROJECT_ROOT / resolved
        return resolved

    @staticmethod
    def _parse_entry(raw: Dict[str, Any], index: int) -> Dict[str, Any]:
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}]", "Catalog entry must be an object")

        key = InputValidator.validate_item_key(raw.get("key"), field_name=f"items[{index}].key")
        name = InputValidator.validate_string(
            raw.get("name"), field_name=f"items[{index}].name", min_length=1, max_length=128
        )
        base_value = InputValidator.validate_non_negative_integer(
            raw.get("baseValue", raw.get("base_value")),
            field_name=f"items[{index}].baseValue",
        )
        return {"key": key, "name": name, "base_value": base_value}

    async def seed_items(self, path: Optional[Union[str, Path]] = None) -> SeedResult:
        """
        Upsert every entry of a catalog JSON file.

        The file holds a list of ``{"key", "name", "baseValue"}`` objects.
        The whole file is applied in one unit of work.

        Raises:
            FileNotFoundError: If the seed file does not exist
            ValidationError: If an entry is malformed or a key repeats
        """
        seed_path = self.resolve_seed_path(path)
        with seed_path.open("r", encoding="utf-8") as handle:
            raw_entries = json.load(handle)

        if not isinstance(raw_entries, list):
            raise ValidationError("items", "Catalog seed file must contain a list")

        entries = [self._parse_entry(raw, index) for index, raw in enumerate(raw_entries)]
        keys = [entry["key"] for entry in entries]
        if len(keys) != len(set(keys)):
            raise ValidationError("items", "Catalog seed file repeats an item key")

        inserted = updated = unchanged = 0
        async with DatabaseService.get_transaction() as session:
            for entry in entries:
                item = await self._items.find_by_key(session, entry["key"])
                if item is None:
                    self._items.add(session, Item(**entry))
                    inserted += 1
                elif item.name != entry["name"] or item.base_value != entry["base_value"]:
                    item.name = entry["name"]
                    item.base_value = entry["base_value"]
                    updated += 1
                else:
                    unchanged += 1

        result = SeedResult(inserted=inserted, updated=updated, unchanged=unchanged)
        self.log_operation(
            "seed_items",
            seed_file=str(seed_path),
            inserted=inserted,
            updated=updated,
            unchanged=unchanged,
        )
        return result

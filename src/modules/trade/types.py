"""
Trade value objects.

``TradeOffer`` is the in-memory form of one side of a trade. It is
immutable; amending an offer produces a new one. The JSON form exists only
at the persistence edge (``to_payload`` / ``from_payload``).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Tuple

from src.database.models import Trade, TradeStatus
from src.modules.shared.exceptions import ValidationError

DEFAULT_MAX_GOLD = 999_999_999
DEFAULT_MAX_ITEMS = 1000
DEFAULT_MAX_ITEM_QUANTITY = 99_999


class OfferKind(str, enum.Enum):
    GOLD = "gold"
    ITEM = "item"


@dataclass(frozen=True)
class OfferLimits:
    max_gold: int = DEFAULT_MAX_GOLD
    max_items: int = DEFAULT_MAX_ITEMS
    max_item_quantity: int = DEFAULT_MAX_ITEM_QUANTITY


@dataclass(frozen=True)
class OfferItem:
    item_id: int
    qty: int


@dataclass(frozen=True)
class TradeOffer:
    """Gold plus a list of (item, qty) lines, one line per item."""

    gold: int = 0
    items: Tuple[OfferItem, ...] = field(default_factory=tuple)

    @classmethod
    def empty(cls) -> TradeOffer:
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.gold == 0 and not self.items

    def quantity_of(self, item_id: int) -> int:
        for line in self.items:
            if line.item_id == item_id:
                return line.qty
        return 0

    def with_gold(self, amount: int) -> TradeOffer:
        """Offer with ``amount`` more gold."""
        return TradeOffer(gold=self.gold + amount, items=self.items)

    def with_item(self, item_id: int, qty: int) -> TradeOffer:
        """Offer with ``qty`` more of an item, merged into an existing line."""
        lines = []
        merged = False
        for line in self.items:
            if line.item_id == item_id:
                lines.append(OfferItem(item_id=item_id, qty=line.qty + qty))
                merged = True
            else:
                lines.append(line)
        if not merged:
            lines.append(OfferItem(item_id=item_id, qty=qty))
        return TradeOffer(gold=self.gold, items=tuple(lines))

    def validate(self, limits: OfferLimits) -> TradeOffer:
        """
        Check bounds; returns self so it can be chained.

        Raises:
            ValidationError: On out-of-range gold, too many lines, or a bad quantity
        """
        if self.gold < 0 or self.gold > limits.max_gold:
            raise ValidationError("gold", f"Offered gold must be between 0 and {limits.max_gold}")
        if len(self.items) > limits.max_items:
            raise ValidationError("items", f"An offer cannot hold more than {limits.max_items} items")

        seen = set()
        for line in self.items:
            if line.item_id in seen:
                raise ValidationError("items", "An offer lists the same item twice")
            seen.add(line.item_id)
            if line.qty < 1 or line.qty > limits.max_item_quantity:
                raise ValidationError(
                    "qty", f"Offered quantity must be between 1 and {limits.max_item_quantity}"
                )
        return self

    def to_payload(self) -> Dict[str, Any]:
        return {
            "gold": self.gold,
            "items": [{"itemId": line.item_id, "qty": line.qty} for line in self.items],
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> TradeOffer:
        if not payload:
            return cls.empty()
        items = tuple(
            OfferItem(item_id=int(raw["itemId"]), qty=int(raw["qty"]))
            for raw in payload.get("items", [])
        )
        return cls(gold=int(payload.get("gold", 0)), items=items)


@dataclass(frozen=True)
class TradeSnapshot:
    """Committed state of a trade, safe to hand outside a unit of work."""

    id: int
    from_character_id: int
    to_character_id: int
    offer_from: TradeOffer
    offer_to: TradeOffer
    status: TradeStatus
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_model(cls, trade: Trade) -> TradeSnapshot:
        return cls(
            id=trade.id,
            from_character_id=trade.from_character_id,
            to_character_id=trade.to_character_id,
            offer_from=TradeOffer.from_payload(trade.offer_from),
            offer_to=TradeOffer.from_payload(trade.offer_to),
            status=trade.status,
            created_at=trade.created_at,
            expires_at=trade.expires_at,
        )

    def offer_of(self, character_id: int) -> TradeOffer:
        if character_id == self.from_character_id:
            return self.offer_from
        if character_id == self.to_character_id:
            return self.offer_to
        raise KeyError(character_id)

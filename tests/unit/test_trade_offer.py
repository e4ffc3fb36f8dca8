"""
Unit tests for the TradeOffer value object.

Offers only grow and are validated against OfferLimits before they are
persisted.
"""

import pytest

from src.modules.shared.exceptions import ValidationError
from src.modules.trade import OfferItem, OfferLimits, TradeOffer


@pytest.mark.unit
class TestTradeOffer:
    def test_empty(self):
        offer = TradeOffer.empty()

        assert offer.is_empty
        assert offer.to_payload() == {"gold": 0, "items": []}

    def test_with_gold_accumulates(self):
        offer = TradeOffer.empty().with_gold(30).with_gold(20)

        assert offer.gold == 50
        assert not offer.is_empty

    def test_with_item_merges_lines(self):
        offer = TradeOffer.empty().with_item(7, 2).with_item(9, 1).with_item(7, 3)

        assert offer.items == (OfferItem(7, 5), OfferItem(9, 1))
        assert offer.quantity_of(7) == 5
        assert offer.quantity_of(42) == 0

    def test_amending_returns_new_offer(self):
        original = TradeOffer.empty()
        original.with_gold(10)

        assert original.gold == 0

    def test_payload_shape(self):
        offer = TradeOffer(gold=15, items=(OfferItem(3, 2),))

        assert offer.to_payload() == {"gold": 15, "items": [{"itemId": 3, "qty": 2}]}
        assert TradeOffer.from_payload(offer.to_payload()) == offer

    @pytest.mark.parametrize("payload", [None, {}])
    def test_from_missing_payload_is_empty(self, payload):
        assert TradeOffer.from_payload(payload) == TradeOffer.empty()


@pytest.mark.unit
class TestOfferValidation:
    limits = OfferLimits(max_gold=100, max_items=2, max_item_quantity=10)

    def test_valid_offer_is_returned(self):
        offer = TradeOffer(gold=100, items=(OfferItem(1, 10), OfferItem(2, 1)))
        assert offer.validate(self.limits) is offer

    def test_gold_over_limit(self):
        with pytest.raises(ValidationError) as exc_info:
            TradeOffer(gold=101).validate(self.limits)
        assert exc_info.value.field == "gold"

    def test_too_many_lines(self):
        offer = TradeOffer(items=(OfferItem(1, 1), OfferItem(2, 1), OfferItem(3, 1)))
        with pytest.raises(ValidationError) as exc_info:
            offer.validate(self.limits)
        assert exc_info.value.field == "items"

    def test_duplicate_lines(self):
        offer = TradeOffer(items=(OfferItem(1, 1), OfferItem(1, 2)))
        with pytest.raises(ValidationError, match="same item twice"):
            offer.validate(self.limits)

    @pytest.mark.parametrize("qty", [0, 11])
    def test_line_quantity_bounds(self, qty):
        with pytest.raises(ValidationError) as exc_info:
            TradeOffer(items=(OfferItem(1, qty),)).validate(self.limits)
        assert exc_info.value.field == "qty"

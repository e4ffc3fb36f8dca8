"""
Unit tests for the economy domain exceptions.

Covers error codes, structured details, severity and the helper predicates
the command layer uses to pick a response.
"""

import pytest

from src.modules.shared.exceptions import (
    AuctionNotOpenError,
    BidNotHigherError,
    CharacterNotFoundError,
    EconomyDomainException,
    ErrorSeverity,
    GoldCeilingExceededError,
    InsufficientGoldError,
    InsufficientItemsError,
    InsufficientResourcesError,
    InvalidStateError,
    ItemNotFoundError,
    NotFoundError,
    PendingTradeExistsError,
    TradeExpiredError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)


@pytest.mark.unit
class TestErrorCodes:
    def test_validation_error_code_includes_field(self):
        exc = ValidationError("qty", "Must be at least 1, got 0")

        assert exc.error_code == "VALIDATION_QTY"
        assert exc.field == "qty"
        assert exc.details == {"field": "qty", "validation_message": "Must be at least 1, got 0"}

    def test_not_found_code_follows_resource(self):
        assert NotFoundError("Auction", 9).error_code == "AUCTION_NOT_FOUND"
        assert CharacterNotFoundError(3).error_code == "CHARACTER_NOT_FOUND"
        assert ItemNotFoundError("ruby").error_code == "ITEM_NOT_FOUND"

    def test_insufficient_gold_reports_deficit(self):
        exc = InsufficientGoldError(required=150, current=100, character_id=4)

        assert isinstance(exc, InsufficientResourcesError)
        assert exc.error_code == "INSUFFICIENT_GOLD"
        assert exc.details["deficit"] == 50
        assert exc.details["character_id"] == 4

    def test_insufficient_items_carries_item(self):
        exc = InsufficientItemsError(required=3, current=1, character_id=2, item_id=7)

        assert exc.error_code == "INSUFFICIENT_ITEMS"
        assert exc.item_id == 7
        assert exc.details["deficit"] == 2

    def test_stale_state_errors_share_base(self):
        assert isinstance(TradeExpiredError(1), InvalidStateError)
        exc = AuctionNotOpenError(5, "SOLD")
        assert exc.error_code == "AUCTION_NOT_OPEN"
        assert exc.details == {"auction_id": 5, "status": "SOLD"}


@pytest.mark.unit
class TestSerialization:
    def test_to_dict(self):
        exc = BidNotHigherError(auction_id=1, amount=10, current_bid=10)

        data = exc.to_dict()

        assert data["error_type"] == "BidNotHigherError"
        assert data["error_code"] == "BID_NOT_HIGHER"
        assert data["details"]["current_bid"] == 10
        assert data["severity"] == "info"
        assert data["is_retryable"] is False

    def test_str_includes_code_and_details(self):
        exc = PendingTradeExistsError(character_id=1, trade_id=2)

        assert str(exc).startswith("[PENDING_TRADE_EXISTS] ")
        assert "trade_id" in str(exc)


@pytest.mark.unit
class TestHelpers:
    def test_rejections_do_not_alert(self):
        assert should_alert(InsufficientGoldError(1, 0)) is False
        assert get_error_severity(ValidationError("x", "bad")) is ErrorSeverity.INFO

    def test_ceiling_is_a_warning(self):
        exc = GoldCeilingExceededError(character_id=1, balance=10, amount=5, ceiling=12)
        assert get_error_severity(exc) is ErrorSeverity.WARNING
        assert should_alert(exc) is False

    def test_unknown_exceptions_alert(self):
        assert get_error_severity(RuntimeError("boom")) is ErrorSeverity.ERROR
        assert should_alert(RuntimeError("boom")) is True

    def test_transient(self):
        assert is_transient_error(EconomyDomainException("x", is_retryable=True)) is True
        assert is_transient_error(ValidationError("x", "bad")) is False
        assert is_transient_error(RuntimeError("x")) is False

"""
Shared domain foundations.

- Domain exceptions and error helpers
- BaseService: logging, config, events, clock
- BaseRepository: type-safe async data access with row locking

Usage
-----
    from src.modules.shared import (
        BaseService,
        BaseRepository,
        InsufficientGoldError,
    )
"""

from __future__ import annotations

from .exceptions import (
    AuctionExpiredError,
    AuctionNotFoundError,
    AuctionNotOpenError,
    AuthorizationError,
    BidNotHigherError,
    BidRejectedError,
    BidTooLowError,
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
    NotParticipantError,
    NotRecipientError,
    PendingTradeExistsError,
    SelfBidError,
    SelfTradeError,
    TradeExpiredError,
    TradeNotFoundError,
    TradeNotPendingError,
    ValidationError,
    get_error_severity,
    is_transient_error,
    should_alert,
)
from .base_repository import BaseRepository
from .base_service import BaseService

__all__ = [
    "BaseRepository",
    "BaseService",
    "EconomyDomainException",
    "ErrorSeverity",
    "ValidationError",
    "NotFoundError",
    "CharacterNotFoundError",
    "ItemNotFoundError",
    "TradeNotFoundError",
    "AuctionNotFoundError",
    "InsufficientResourcesError",
    "InsufficientGoldError",
    "InsufficientItemsError",
    "GoldCeilingExceededError",
    "InvalidStateError",
    "TradeNotPendingError",
    "TradeExpiredError",
    "AuctionNotOpenError",
    "AuctionExpiredError",
    "BidRejectedError",
    "SelfBidError",
    "BidTooLowError",
    "BidNotHigherError",
    "AuthorizationError",
    "NotParticipantError",
    "NotRecipientError",
    "PendingTradeExistsError",
    "SelfTradeError",
    "is_transient_error",
    "get_error_severity",
    "should_alert",
]

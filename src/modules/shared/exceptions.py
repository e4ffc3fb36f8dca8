"""
Settlement rule violations.

Services raise these from inside a unit of work. ``DatabaseService`` rolls
the work back, logs the rejection at INFO and re-raises, and the command
layer shows ``exc.message`` to the player.

Every error exposes:

``message``       text that is safe to show to a player
``details``       structured context for logs (ids, amounts)
``severity``      an ``ErrorSeverity``, which drives log level and alerting
``is_retryable``  whether the identical call could succeed later
``error_code``    a stable machine-readable code such as ``BID_TOO_LOW``

Catch a family (``NotFoundError``, ``InsufficientResourcesError``,
``InvalidStateError``, ``BidRejectedError``, ``AuthorizationError``) when the
exact cause does not matter. Rejections are never retryable: repeating them
with the same input fails the same way. Database faults are not modelled
here and propagate as SQLAlchemy errors.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    DEBUG = "debug"
    INFO = "info"  # ordinary player mistakes
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"  # ledger consistency in doubt


class EconomyDomainException(Exception):
    """
    Root of the hierarchy.

    Subclasses set ``DEFAULT_SEVERITY`` and build their own message, details
    and ``error_code``; ``error_code`` falls back to the class name.

        raise EconomyDomainException("Settlement failed", {"auction_id": 12})
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.severity = severity if severity is not None else self.DEFAULT_SEVERITY
        self.is_retryable = self.DEFAULT_RETRYABLE if is_retryable is None else is_retryable
        self.error_code = error_code or type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Log and API representation."""
        return dict(
            error_type=type(self).__name__,
            error_code=self.error_code,
            message=self.message,
            details=self.details,
            severity=self.severity.value,
            is_retryable=self.is_retryable,
        )

    def __str__(self) -> str:
        if not self.details:
            return f"[{self.error_code}] {self.message}"
        return f"[{self.error_code}] {self.message} | Details: {self.details}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={self.details!r})"


# ============================================================================
# Validation
# ============================================================================


class ValidationError(EconomyDomainException):
    """An input is out of bounds or malformed. ``field`` names the parameter."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.validation_message = message
        super().__init__(
            f"Validation error for {field}: {message}",
            details={"field": field, "validation_message": message},
            error_code=f"VALIDATION_{field.upper()}",
        )


# ============================================================================
# Not found
# ============================================================================


class NotFoundError(EconomyDomainException):
    """
    No row for ``resource_type`` (``"Character"``, ``"Auction"`` ...) with
    that ``identifier``. ``message`` replaces the generic player-facing text.
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(
        self,
        resource_type: str,
        identifier: Optional[Any] = None,
        message: Optional[str] = None,
    ) -> None:
        self.resource_type = resource_type
        self.identifier = identifier

        if message is None:
            if identifier is not None:
                message = f"{resource_type} not found: {identifier}"
            else:
                message = f"{resource_type} not found"

        super().__init__(
            message,
            details={"resource_type": resource_type, "identifier": identifier},
            error_code=f"{resource_type.upper()}_NOT_FOUND",
        )


class CharacterNotFoundError(NotFoundError):
    def __init__(self, identifier: Optional[Any] = None) -> None:
        super().__init__(
            "Character",
            identifier,
            "Character not found. Please register with `/register` first.",
        )


class ItemNotFoundError(NotFoundError):
    def __init__(self, item_key: str) -> None:
        self.item_key = item_key
        super().__init__("Item", item_key, f'Item with key "{item_key}" not found.')


class TradeNotFoundError(NotFoundError):
    def __init__(self, trade_id: int) -> None:
        self.trade_id = trade_id
        super().__init__("Trade", trade_id, f"Trade #{trade_id} not found.")


class AuctionNotFoundError(NotFoundError):
    def __init__(self, auction_id: int) -> None:
        self.auction_id = auction_id
        super().__init__("Auction", auction_id, f"Auction with ID #{auction_id} not found.")


# ============================================================================
# Insufficient resources
# ============================================================================


class InsufficientResourcesError(EconomyDomainException):
    """
    Raised when a character lacks the gold or items an action needs.

    Always evaluated against balances read inside the current unit of work.

    Args:
        resource: ``"gold"`` or ``"items"``
        required: what the action needs
        current: what the character holds right now
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(
        self,
        resource: str,
        required: int,
        current: int,
        message: Optional[str] = None,
        **extra: Any,
    ) -> None:
        self.resource = resource
        self.required = required
        self.current = current
        super().__init__(
            message or f"Insufficient {resource}: need {required:,}, have {current:,}",
            details={
                "resource": resource,
                "required": required,
                "current": current,
                "deficit": required - current,
                **extra,
            },
            error_code=f"INSUFFICIENT_{resource.upper()}",
        )


class InsufficientGoldError(InsufficientResourcesError):
    def __init__(self, required: int, current: int, character_id: Optional[int] = None) -> None:
        self.character_id = character_id
        super().__init__(
            "gold",
            required,
            current,
            "You do not have enough gold for this action.",
            character_id=character_id,
        )


class InsufficientItemsError(InsufficientResourcesError):
    def __init__(
        self,
        required: int,
        current: int,
        character_id: Optional[int] = None,
        item_id: Optional[int] = None,
    ) -> None:
        self.character_id = character_id
        self.item_id = item_id
        super().__init__(
            "items",
            required,
            current,
            "Insufficient items to perform this action.",
            character_id=character_id,
            item_id=item_id,
        )


class GoldCeilingExceededError(EconomyDomainException):
    """Raised when a credit would push a balance past the economy ceiling."""

    DEFAULT_SEVERITY = ErrorSeverity.WARNING

    def __init__(self, character_id: int, balance: int, amount: int, ceiling: int) -> None:
        self.character_id = character_id
        super().__init__(
            "This transfer would exceed the maximum gold a character can hold.",
            details={
                "character_id": character_id,
                "balance": balance,
                "amount": amount,
                "ceiling": ceiling,
            },
            error_code="GOLD_CEILING_EXCEEDED",
        )


# ============================================================================
# Stale state
# ============================================================================


class InvalidStateError(EconomyDomainException):
    """
    Raised when an action targets a trade or auction that has moved on.

    Args:
        entity: "trade" or "auction"
        entity_id: Identifier of the record
        status: Status observed inside the unit of work
        message: User-facing message
    """

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, entity: str, entity_id: int, status: str, message: str, code: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.status = status
        super().__init__(
            message,
            details={f"{entity}_id": entity_id, "status": status},
            error_code=code,
        )


class TradeNotPendingError(InvalidStateError):
    def __init__(self, trade_id: int, status: str) -> None:
        super().__init__(
            "trade", trade_id, status,
            f"Trade #{trade_id} is no longer pending.",
            "TRADE_NOT_PENDING",
        )


class TradeExpiredError(InvalidStateError):
    def __init__(self, trade_id: int) -> None:
        super().__init__(
            "trade", trade_id, "PENDING",
            f"Trade #{trade_id} has expired.",
            "TRADE_EXPIRED",
        )


class AuctionNotOpenError(InvalidStateError):
    def __init__(self, auction_id: int, status: str) -> None:
        super().__init__(
            "auction", auction_id, status,
            f"Auction #{auction_id} is not open for bidding.",
            "AUCTION_NOT_OPEN",
        )


class AuctionExpiredError(InvalidStateError):
    def __init__(self, auction_id: int) -> None:
        super().__init__(
            "auction", auction_id, "OPEN",
            f"Auction #{auction_id} has expired.",
            "AUCTION_EXPIRED",
        )


# ============================================================================
# Bid rejection
# ============================================================================


class BidRejectedError(EconomyDomainException):
    """Base for bids that fail the auction's ordering rules."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, message: str, code: str, **details: Any) -> None:
        super().__init__(message, details=details, error_code=code)


class SelfBidError(BidRejectedError):
    def __init__(self, auction_id: int) -> None:
        super().__init__(
            "You cannot bid on your own auction.", "SELF_BID", auction_id=auction_id
        )


class BidTooLowError(BidRejectedError):
    def __init__(self, auction_id: int, amount: int, min_bid: int) -> None:
        super().__init__(
            "Your bid must be at least the minimum bid amount.",
            "BID_TOO_LOW",
            auction_id=auction_id,
            amount=amount,
            min_bid=min_bid,
        )


class BidNotHigherError(BidRejectedError):
    def __init__(self, auction_id: int, amount: int, current_bid: int) -> None:
        super().__init__(
            "Your bid must be higher than the current highest bid.",
            "BID_NOT_HIGHER",
            auction_id=auction_id,
            amount=amount,
            current_bid=current_bid,
        )


# ============================================================================
# Authorization-shaped domain errors
# ============================================================================


class AuthorizationError(EconomyDomainException):
    """A character acted on a record it has no role in."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, message: str, code: str, **details: Any) -> None:
        super().__init__(message, details=details, error_code=code)


class NotParticipantError(AuthorizationError):
    def __init__(self, trade_id: int, character_id: int) -> None:
        super().__init__(
            "You are not a participant in this trade.",
            "NOT_PARTICIPANT",
            trade_id=trade_id,
            character_id=character_id,
        )


class NotRecipientError(AuthorizationError):
    def __init__(self, trade_id: int, character_id: int) -> None:
        super().__init__(
            "Only the trade recipient can accept this trade.",
            "NOT_RECIPIENT",
            trade_id=trade_id,
            character_id=character_id,
        )


# ============================================================================
# Trade creation
# ============================================================================


class PendingTradeExistsError(EconomyDomainException):
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, character_id: int, trade_id: int) -> None:
        super().__init__(
            "You or your trade partner already have a pending trade.",
            details={"character_id": character_id, "trade_id": trade_id},
            error_code="PENDING_TRADE_EXISTS",
        )


class SelfTradeError(EconomyDomainException):
    DEFAULT_SEVERITY = ErrorSeverity.INFO

    def __init__(self, character_id: int) -> None:
        super().__init__(
            "You cannot trade with yourself.",
            details={"character_id": character_id},
            error_code="SELF_TRADE",
        )


# ============================================================================
# Helpers for callers that handle arbitrary exceptions
# ============================================================================


def get_error_severity(exc: Exception) -> ErrorSeverity:
    """Anything outside the hierarchy counts as ERROR."""
    return exc.severity if isinstance(exc, EconomyDomainException) else ErrorSeverity.ERROR


def is_transient_error(exc: Exception) -> bool:
    return isinstance(exc, EconomyDomainException) and exc.is_retryable


def should_alert(exc: Exception) -> bool:
    return get_error_severity(exc) in {ErrorSeverity.ERROR, ErrorSeverity.CRITICAL}

"""
Trade Module
============

Exports:
- TradeService: negotiation, acceptance and expiry
- TradeOffer, OfferItem, OfferKind, OfferLimits, TradeSnapshot: value objects
"""

from .service import TradeService
from .types import OfferItem, OfferKind, OfferLimits, TradeOffer, TradeSnapshot

__all__ = [
    "OfferKind",
    "TradeService",
    "OfferItem",
    "OfferLimits",
    "TradeOffer",
    "TradeSnapshot",
]

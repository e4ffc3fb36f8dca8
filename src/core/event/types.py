"""
Types shared by the EventBus and its listeners.

Listeners are awaited one at a time, lowest ``ListenerPriority`` value first;
ties keep subscription order. CRITICAL and HIGH listeners run under the bus
timeout (follow-up bookkeeping, player notifications). NORMAL is the default,
and LOW suits audit sinks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

# Payloads carry immutable snapshots; listeners must never receive ORM rows
EventPayload = dict[str, Any]


class ListenerPriority(Enum):
    CRITICAL = 0
    HIGH = 10
    NORMAL = 50
    LOW = 100

    @property
    def has_timeout(self) -> bool:
        return self in (ListenerPriority.CRITICAL, ListenerPriority.HIGH)


CallbackType = Union[
    Callable[[EventPayload], Any],
    Callable[[EventPayload], Awaitable[Any]],
]


@dataclass(slots=True, frozen=True)
class EventListener:
    """One subscription. ``once`` listeners are dropped before they first run."""

    callback: CallbackType
    priority: ListenerPriority
    identifier: str
    once: bool = False

    @classmethod
    def from_callback(
        cls,
        event_name: str,
        callback: CallbackType,
        priority: ListenerPriority,
        identifier: Optional[str],
        once: bool,
    ) -> EventListener:
        """Build a listener, deriving ``module.qualname@event`` when no id is given."""
        if identifier is None:
            module = getattr(callback, "__module__", "unknown")
            qualname = getattr(
                callback, "__qualname__", getattr(callback, "__name__", "callback")
            )
            identifier = f"{module}.{qualname}@{event_name}"

        return cls(
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )

"""
Gildhall EventBus: async pub/sub for post-commit notifications.

Purpose
-------
Decouples the settlement engine from anything that wants to react to a
committed settlement (Discord notifications, audit sinks, tests). Services
publish only after their unit of work commits, so a listener can never see
state that is later rolled back.

Responsibilities
----------------
- Register and unregister listeners with priorities
- Publish events to every listener subscribed to the exact event name
- Run listeners in priority order, awaiting coroutine callbacks
- Isolate errors: a failing or slow listener never blocks the others and
  never propagates back into the publisher

Design Notes
------------
- Instance based; the package exposes one process-wide ``event_bus`` and
  tests build their own.
- CRITICAL and HIGH listeners are bounded by ``events.listener_timeout_seconds``.
- Single event loop only. Registry mutations happen between awaits.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from typing import Any, Optional

from src.core.logging.logger import LogContext, get_logger
from src.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

logger = get_logger(__name__)

DEFAULT_LISTENER_TIMEOUT_SECONDS = 5.0


class EventBus:
    """
    Priority-ordered async event bus.

    Examples
    --------
    >>> bus = EventBus()
    >>> bus.subscribe("auction.sold", notify_seller, priority=ListenerPriority.HIGH)
    >>> await bus.publish("auction.sold", {"auction": snapshot, "price": 150})
    """

    def __init__(self, *, listener_timeout_seconds: Optional[float] = None) -> None:
        self._listeners: dict[str, list[EventListener]] = defaultdict(list)
        self._timeout = float(
            listener_timeout_seconds
            if listener_timeout_seconds is not None
            else DEFAULT_LISTENER_TIMEOUT_SECONDS
        )
        self._error_count = 0

    # ------------------------------------------------------------------ #
    # Subscription API
    # ------------------------------------------------------------------ #

    @staticmethod
    def _check_arity(callback: CallbackType) -> None:
        try:
            arity = len(inspect.signature(callback).parameters)
        except (TypeError, ValueError):
            # no introspectable signature (some builtins)
            return
        if arity != 1:
            name = getattr(callback, "__qualname__", repr(callback))
            raise ValueError(
                f"Listener {name!r} takes {arity} parameters; "
                "listeners must take exactly 1 parameter, the payload dict"
            )

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
    ) -> str:
        """
        Register ``callback`` for ``event_name``.

        Returns the listener identifier. Subscribing the same identifier to
        the same event twice keeps the first registration.

        Raises
        ------
        ValueError:
            If the callback does not take exactly one parameter.
        """
        self._check_arity(callback)

        listener = EventListener.from_callback(
            event_name=event_name,
            callback=callback,
            priority=priority,
            identifier=identifier,
            once=once,
        )

        existing = self._listeners[event_name]
        if any(item.identifier == listener.identifier for item in existing):
            logger.warning(
                "Listener already registered; keeping the first",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )
            return listener.identifier

        existing.append(listener)
        # sort is stable, so equal priorities keep subscription order
        existing.sort(key=lambda item: item.priority.value)

        logger.debug(
            "Listener registered",
            extra={
                "event_name": event_name,
                "listener_id": listener.identifier,
                "priority": listener.priority.name,
                "once": listener.once,
            },
        )
        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        """Remove a listener; returns True if one was removed."""
        listeners = self._listeners.get(event_name, [])
        remaining = [item for item in listeners if item.identifier != identifier]
        removed = len(remaining) != len(listeners)

        if remaining:
            self._listeners[event_name] = remaining
        else:
            self._listeners.pop(event_name, None)

        if removed:
            logger.debug(
                "Listener removed",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    def clear(self) -> None:
        """Drop every registration."""
        total = self.get_listener_count()
        self._listeners.clear()
        logger.info(
            "All listeners removed",
            extra={"removed": total},
        )

    # ------------------------------------------------------------------ #
    # Publish API
    # ------------------------------------------------------------------ #

    def _extract_listeners(self, event_name: str) -> list[EventListener]:
        """Snapshot listeners for dispatch and prune one-shot listeners."""
        listeners = list(self._listeners.get(event_name, []))
        if any(item.once for item in listeners):
            kept = [item for item in listeners if not item.once]
            if kept:
                self._listeners[event_name] = kept
            else:
                self._listeners.pop(event_name, None)
        return listeners

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Run every listener of ``event_name`` with ``data``, in priority order.

        Returns the results of the listeners that completed. Failed or timed
        out listeners are logged and contribute no result.
        """
        listeners = self._extract_listeners(event_name)
        if not listeners:
            logger.debug(
                "Event has no listeners",
                extra={"event_name": event_name},
            )
            return []

        logger.debug(
            "Dispatching event",
            extra={
                "event_name": event_name,
                "keys": sorted(data),
                "listeners": len(listeners),
            },
        )

        results: list[Any] = []
        async with LogContext(component="event_bus", event_name=event_name):
            for listener in listeners:
                ok, result = await self._run_listener(event_name, listener, data)
                if ok:
                    results.append(result)
        return results

    async def _run_listener(
        self, event_name: str, listener: EventListener, data: EventPayload
    ) -> tuple[bool, Any]:
        try:
            result = listener.callback(data)
            if inspect.isawaitable(result):
                if listener.priority.has_timeout:
                    result = await asyncio.wait_for(result, timeout=self._timeout)
                else:
                    result = await result
            return True, result

        except asyncio.TimeoutError:
            self._error_count += 1
            logger.error(
                "Listener exceeded its timeout",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "timeout_seconds": self._timeout,
                },
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._error_count += 1
            logger.error(
                "Listener raised",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "error_type": type(exc).__name__,
                    "error_message": str(exc),
                },
                exc_info=True,
            )
        return False, None

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def error_count(self) -> int:
        return self._error_count

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is not None:
            return len(self._listeners.get(event_name, []))
        return sum(len(items) for items in self._listeners.values())

    def get_all_events(self) -> list[str]:
        return sorted(name for name, items in self._listeners.items() if items)

"""
Common plumbing for the economy services.

Every service (economy, trade, auction, catalog, character) gets the same
four collaborators: the tunables (``ConfigManager``), the post-commit
``EventBus``, a logger, and a clock. Services open their own units of work
through ``DatabaseService.get_transaction()``; nothing here touches the
database.

The clock returns aware UTC datetimes. Trade and auction expiry read it
through ``now()`` only, so tests can freeze or advance time by passing a
callable.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from src.core.database.base import utc_now

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus

Clock = Callable[[], datetime]


class BaseService:
    def __init__(
        self,
        config_manager: type[ConfigManager] | ConfigManager,
        event_bus: EventBus,
        logger: Logger,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self._clock: Clock = clock or utc_now
        self.log = logger

    def now(self) -> datetime:
        return self._clock()

    def get_config(self, key: str, default: Any = None) -> Any:
        """Dot-path tunable lookup, e.g. ``"auction.min_duration_minutes"``."""
        return self._config.get(key, default)

    def get_int_config(self, key: str, default: int) -> int:
        return int(self.get_config(key, default))

    async def emit_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """
        Hand a settlement outcome to the event bus.

        Only call this once the producing unit of work has committed. Listener
        failures are contained by the bus and never reach the caller.
        """
        await self._events.publish(event_type, dict(data))

    def log_operation(self, operation: str, **fields: Any) -> None:
        self.log.info(f"{operation} committed", extra={"operation": operation, **fields})

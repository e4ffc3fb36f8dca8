"""
Service Container
=================

Purpose
-------
Dependency injection container for the economy engine. Builds every domain
service with the shared ConfigManager, EventBus and loggers, owns the
settlement scheduler, and is the object the external command layer talks to.

Responsibilities
----------------
- Create services in dependency order (ledger primitives first)
- Manage lifecycle: ``startup()`` / ``shutdown()`` bring the database, schema,
  catalog seed and scheduler up and down
- Provide typed accessors that fail loudly before initialization

Non-Responsibilities
--------------------
- Business logic
- Discord command handling (external layer)

Architecture Notes
------------------
- Domain services follow the constructor pattern
  ``(config_manager, event_bus, logger, ...)``; engines that move value also
  receive the shared LedgerOperations
- One optional clock is threaded to every service and the scheduler
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional, Union

from src.core.config.config import Config
from src.core.database.service import DatabaseService
from src.core.logging.logger import get_logger
from src.modules.auction import AuctionService, AuctionSettlementScheduler
from src.modules.catalog import CatalogService
from src.modules.character import CharacterService
from src.modules.economy import EconomyService
from src.modules.ledger import LedgerOperations
from src.modules.trade import TradeService

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.core.event.bus import EventBus
    from src.modules.shared.base_service import Clock


class ServiceContainer:
    """
    Container for all economy services.

    Usage:
        container = ServiceContainer(ConfigManager, event_bus, logger)
        await container.startup()

        await container.economy.buy(character_id, "iron_sword", 1)

        await container.shutdown()
    """

    def __init__(
        self,
        config_manager: Union[type[ConfigManager], ConfigManager],
        event_bus: EventBus,
        logger: Logger,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger
        self._clock = clock

        self._ledger: Optional[LedgerOperations] = None
        self._character: Optional[CharacterService] = None
        self._catalog: Optional[CatalogService] = None
        self._economy: Optional[EconomyService] = None
        self._trade: Optional[TradeService] = None
        self._auction: Optional[AuctionService] = None
        self._scheduler: Optional[AuctionSettlementScheduler] = None

        self._initialized = False
        self._service_init_times: Dict[str, float] = {}

    # ========================================================================
    # Lifecycle
    # ========================================================================

    def initialize(self) -> None:
        """Construct all services. Idempotent."""
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            self._ledger = LedgerOperations(
                self._config_manager, get_logger(f"{LedgerOperations.__module__}.LedgerOperations")
            )

            self._character = self._create_service("character", CharacterService, clock=self._clock)
            self._catalog = self._create_service("catalog", CatalogService)
            self._economy = self._create_service(
                "economy", EconomyService, ledger=self._ledger, clock=self._clock
            )
            self._trade = self._create_service(
                "trade", TradeService, ledger=self._ledger, clock=self._clock
            )
            self._auction = self._create_service(
                "auction", AuctionService, ledger=self._ledger, clock=self._clock
            )

            self._scheduler = AuctionSettlementScheduler(
                auction_service=self._auction,
                trade_service=self._trade,
                config_manager=self._config_manager,
                logger=get_logger(f"{AuctionSettlementScheduler.__module__}.AuctionSettlementScheduler"),
                clock=self._clock,
            )

            self._initialized = True
            self._logger.info(
                "Service container initialized",
                extra={
                    "service_count": len(self._service_init_times),
                    "duration_ms": (time.perf_counter() - start) * 1000.0,
                },
            )

        except Exception as e:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

    def _create_service(self, name: str, cls: type, **extra: Any) -> Any:
        """Instantiate a service with the shared dependencies and time it."""
        start = time.perf_counter()

        try:
            instance = cls(
                config_manager=self._config_manager,
                event_bus=self._event_bus,
                logger=get_logger(f"{cls.__module__}.{cls.__name__}"),
                **extra,
            )
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")

        return instance

    async def startup(
        self,
        *,
        database_url: Optional[str] = None,
        create_schema: Optional[bool] = None,
        seed_file: Optional[Union[str, Path]] = None,
        start_scheduler: bool = True,
    ) -> None:
        """
        Bring the engine up: config, database, schema, catalog seed, scheduler.

        ``create_schema`` defaults to ``Config.DATABASE_CREATE_SCHEMA``. The
        catalog is seeded when a seed file is given or the configured seed
        file exists.
        """
        self._config_manager.initialize()
        self.initialize()

        await DatabaseService.initialize(url=database_url)
        self._logger.info("✓ Database service initialized")

        if create_schema is None:
            create_schema = Config.DATABASE_CREATE_SCHEMA
        if create_schema:
            await DatabaseService.create_all()
            self._logger.info("✓ Database schema ensured")

        seed_path = seed_file or self.catalog.resolve_seed_path(None)
        if seed_file is not None or Path(seed_path).exists():
            await self.catalog.seed_items(seed_path)
            self._logger.info("✓ Item catalog seeded")

        if start_scheduler:
            self.scheduler.start()
            self._logger.info("✓ Settlement scheduler started")

    async def shutdown(self) -> None:
        """Stop the scheduler and release the database."""
        if self._scheduler is not None:
            try:
                await self._scheduler.stop()
                self._logger.info("✓ Settlement scheduler stopped")
            except Exception as exc:
                self._logger.error(f"Settlement scheduler shutdown error: {exc}", exc_info=True)

        try:
            await DatabaseService.shutdown()
            self._logger.info("✓ Database service shut down")
        except Exception as exc:
            self._logger.error(f"Database service shutdown error: {exc}", exc_info=True)

        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, Any]:
        """Snapshot for status commands or admin diagnostics."""
        return {
            "initialized": self._initialized,
            "service_count": len(self._service_init_times),
            "database_healthy": await DatabaseService.health_check()
            if DatabaseService.is_initialized()
            else False,
            "scheduler_running": self._scheduler.is_running if self._scheduler else False,
        }

    # ========================================================================
    # Accessors
    # ========================================================================

    def _require(self, service: Optional[Any]) -> Any:
        if not self._initialized or service is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return service

    @property
    def ledger(self) -> LedgerOperations:
        return self._require(self._ledger)

    @property
    def character(self) -> CharacterService:
        return self._require(self._character)

    @property
    def catalog(self) -> CatalogService:
        return self._require(self._catalog)

    @property
    def economy(self) -> EconomyService:
        return self._require(self._economy)

    @property
    def trade(self) -> TradeService:
        return self._require(self._trade)

    @property
    def auction(self) -> AuctionService:
        return self._require(self._auction)

    @property
    def scheduler(self) -> AuctionSettlementScheduler:
        return self._require(self._scheduler)

    @property
    def is_initialized(self) -> bool:
        return self._initialized


# ============================================================================
# Process-wide container
# ============================================================================

_container: Optional[ServiceContainer] = None


def initialize_service_container(
    config_manager: Union[type[ConfigManager], ConfigManager],
    event_bus: EventBus,
    logger: Logger,
    *,
    clock: Optional[Clock] = None,
) -> ServiceContainer:
    global _container
    if _container is None:
        _container = ServiceContainer(config_manager, event_bus, logger, clock=clock)
    return _container


def get_service_container() -> ServiceContainer:
    if _container is None:
        raise RuntimeError("Service container has not been created")
    return _container


async def shutdown_service_container() -> None:
    global _container
    if _container is not None:
        await _container.shutdown()
        _container = None

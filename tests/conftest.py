"""
Pytest Configuration and Fixtures for Gildhall Economy Tests
============================================================

Purpose
-------
Centralized fixtures for the economy test suite: configuration, a fresh
database per test, a controllable clock, the service container, and small
helpers for arranging balances.

Architecture Notes
------------------
- Unit tests use mocks (fast, isolated)
- Integration tests run every service against a real database: a SQLite
  file under ``tmp_path`` by default, PostgreSQL via testcontainers for the
  tests marked ``postgres``
- Every test gets a clean schema and a clean ConfigManager
"""

from __future__ import annotations

import os

# Must be set before src is imported: Config and logging read them at import.
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import itertools
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Dict, Generator, List, Tuple

import pytest
import pytest_asyncio

from src.core.config.config import Config
from src.core.config.manager import ConfigManager
from src.core.database.service import DatabaseService
from src.core.event.bus import EventBus
from src.core.logging.logger import get_logger
from src.core.services.container import ServiceContainer
from src.database.models import Character

logger = get_logger(__name__)

START_TIME = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# CLOCK
# ============================================================================


class FakeClock:
    """Callable clock that only moves when a test moves it."""

    def __init__(self, start: datetime = START_TIME) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **delta: float) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ============================================================================
# CONFIGURATION
# ============================================================================


@pytest.fixture
def config_manager() -> Generator[type[ConfigManager], None, None]:
    """ConfigManager loaded from the project's config/ directory, reset after the test."""
    ConfigManager.reset()
    ConfigManager.initialize(config_dir=Config.PROJECT_ROOT / "config")
    yield ConfigManager
    ConfigManager.reset()


# ============================================================================
# DATABASE FIXTURES (Integration Tests)
# ============================================================================


async def _start_database(url: str) -> None:
    await DatabaseService.shutdown()
    DatabaseService._init_lock = None
    await DatabaseService.initialize(url=url)
    await DatabaseService.create_all()


async def _stop_database() -> None:
    await DatabaseService.shutdown()
    DatabaseService._init_lock = None


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[str, None]:
    """
    Fresh SQLite database file with the full schema.

    Scope: function (clean slate per test)
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'economy.db'}"
    await _start_database(url)
    yield url
    await _stop_database()


# ============================================================================
# SERVICES
# ============================================================================


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus(listener_timeout_seconds=1.0)


@pytest.fixture
def published(event_bus: EventBus) -> List[Tuple[str, Dict]]:
    """Records every auction event published on the test bus."""
    events: List[Tuple[str, Dict]] = []

    def recorder(name: str):
        def record(payload: Dict) -> None:
            events.append((name, payload))

        return record

    for name in ("auction.sold", "auction.expired"):
        event_bus.subscribe(name, recorder(name), identifier=f"recorder:{name}")
    return events


@pytest.fixture
def container(config_manager, event_bus, clock) -> ServiceContainer:
    """Initialized container; the database comes from the ``database`` fixture."""
    container = ServiceContainer(
        config_manager, event_bus, get_logger("tests.container"), clock=clock
    )
    container.initialize()
    return container


@pytest_asyncio.fixture
async def seeded(database, container) -> ServiceContainer:
    """Container over a fresh database with data/items.json loaded."""
    await container.catalog.seed_items()
    return container


# ============================================================================
# ARRANGE HELPERS
# ============================================================================


class EconomyHarness:
    """Direct balance setup and inspection, bypassing the service rules."""

    def __init__(self, container: ServiceContainer) -> None:
        self._container = container
        self._ids = itertools.count(100_000_000_000_000_000)

    async def character(self, name: str = "Hero", gold: int = 0) -> int:
        profile = await self._container.character.register(
            str(next(self._ids)), "424242424242424242", name
        )
        await self.set_gold(profile.id, gold)
        return profile.id

    async def set_gold(self, character_id: int, gold: int) -> None:
        async with DatabaseService.get_transaction() as session:
            character = await session.get(Character, character_id)
            assert character is not None
            character.gold = gold

    async def grant(self, character_id: int, item_key: str, qty: int) -> int:
        ledger = self._container.ledger
        async with DatabaseService.get_transaction() as session:
            item = await ledger.load_item_by_key(session, item_key)
            await ledger.give_items(session, character_id, item.id, qty)
            return item.id

    async def gold(self, character_id: int) -> int:
        async with DatabaseService.get_session() as session:
            character = await session.get(Character, character_id)
            assert character is not None
            return character.gold

    async def qty(self, character_id: int, item_key: str) -> int:
        ledger = self._container.ledger
        async with DatabaseService.get_session() as session:
            item = await ledger.load_item_by_key(session, item_key)
            return await ledger.get_quantity(session, character_id, item.id)

    async def item_id(self, item_key: str) -> int:
        async with DatabaseService.get_session() as session:
            return (await self._container.ledger.load_item_by_key(session, item_key)).id

    async def history(self, character_id: int):
        return await self._container.economy.get_transaction_history(character_id, limit=100)


@pytest.fixture
def harness(seeded) -> EconomyHarness:
    return EconomyHarness(seeded)


# ============================================================================
# MOCK FIXTURES (Unit Tests)
# ============================================================================


@pytest.fixture
def mock_event_bus(mocker):
    mock_bus = mocker.MagicMock()
    mock_bus.publish = mocker.AsyncMock(return_value=[])
    mock_bus.subscribe = mocker.MagicMock()
    return mock_bus


@pytest.fixture
def mock_config_manager(mocker):
    """ConfigManager stand-in that returns each caller's default."""
    mock_config = mocker.MagicMock()
    mock_config.get = mocker.MagicMock(side_effect=lambda key, default=None: default)
    return mock_config

"""
Concurrency tests against PostgreSQL (testcontainers).

Row locks only exist on a real server, so these run only when
RUN_POSTGRES_TESTS=1 and Docker is available.
"""

from __future__ import annotations

import asyncio
import os
from typing import Generator

import pytest
import pytest_asyncio

from src.core.database.service import DatabaseService
from src.database.models import AuctionStatus, Character
from src.modules.auction import SettlementOutcome
from src.modules.shared.exceptions import InsufficientGoldError, PendingTradeExistsError
from src.modules.trade import TradeSnapshot

pytestmark = [
    pytest.mark.integration,
    pytest.mark.database,
    pytest.mark.postgres,
    pytest.mark.skipif(
        os.getenv("RUN_POSTGRES_TESTS") != "1",
        reason="set RUN_POSTGRES_TESTS=1 to run PostgreSQL tests",
    ),
]


@pytest.fixture(scope="module")
def postgres_url() -> Generator[str, None, None]:
    from testcontainers.postgres import PostgresContainer

    container = PostgresContainer(image="postgres:17-alpine", driver="asyncpg")
    container.start()
    try:
        yield container.get_connection_url()
    finally:
        container.stop()


@pytest_asyncio.fixture
async def pg_container(postgres_url, container):
    await DatabaseService.shutdown()
    DatabaseService._init_lock = None
    await DatabaseService.initialize(url=postgres_url)
    await DatabaseService.drop_all()
    await DatabaseService.create_all()
    await container.catalog.seed_items()
    yield container
    await DatabaseService.shutdown()
    DatabaseService._init_lock = None


async def _character(container, discord_id: str, gold: int) -> int:
    profile = await container.character.register(discord_id, "1", f"P{discord_id}")
    await _set_gold(profile.id, gold)
    return profile.id


async def _set_gold(character_id: int, gold: int) -> None:
    async with DatabaseService.get_transaction() as session:
        character = await session.get(Character, character_id)
        character.gold = gold


class TestConcurrentSettlement:
    async def test_parallel_settlements_pay_once(self, pg_container, clock):
        seller = await _character(pg_container, "10", 0)
        buyer = await _character(pg_container, "11", 100)
        async with DatabaseService.get_transaction() as session:
            item = await pg_container.ledger.load_item_by_key(session, "ruby")
            await pg_container.ledger.give_items(session, seller, item.id, 1)
        auction = await pg_container.auction.create_auction(seller, "ruby", 1, 40, duration_minutes=1)
        await pg_container.auction.place_bid(auction.id, buyer, 40)
        now = clock.advance(minutes=2)

        outcomes = await asyncio.gather(
            *(pg_container.auction.settle_auction(auction.id, now=now) for _ in range(5))
        )

        assert outcomes.count(SettlementOutcome.SOLD) == 1
        assert outcomes.count(SettlementOutcome.SKIPPED) == 4
        assert (await pg_container.auction.get_auction(auction.id)).status is AuctionStatus.SOLD
        async with DatabaseService.get_session() as session:
            assert (await pg_container.ledger.load_character(session, buyer, lock=False)).gold == 60
            assert (await pg_container.ledger.load_character(session, seller, lock=False)).gold == 40

    async def test_parallel_buys_never_overdraw(self, pg_container):
        buyer = await _character(pg_container, "20", 100)

        results = await asyncio.gather(
            *(pg_container.economy.buy(buyer, "iron_sword", 1) for _ in range(4)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if not isinstance(r, Exception)) == 2
        assert all(isinstance(r, InsufficientGoldError) for r in results if isinstance(r, Exception))
        async with DatabaseService.get_session() as session:
            assert (await pg_container.ledger.load_character(session, buyer, lock=False)).gold == 0


class TestConcurrentTrades:
    async def test_parallel_starts_open_one_trade(self, pg_container):
        initiator = await _character(pg_container, "30", 0)
        partners = [await _character(pg_container, str(31 + n), 0) for n in range(5)]

        results = await asyncio.gather(
            *(pg_container.trade.start_trade(initiator, p) for p in partners),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, TradeSnapshot)) == 1
        assert all(
            isinstance(r, PendingTradeExistsError)
            for r in results
            if not isinstance(r, TradeSnapshot)
        )

    async def test_accept_alongside_start_does_not_deadlock(self, pg_container):
        # accept locks A and B, start locks A and C; both must take characters first
        for round_ in range(5):
            a = await _character(pg_container, f"4{round_}0", 100)
            b = await _character(pg_container, f"4{round_}1", 100)
            c = await _character(pg_container, f"4{round_}2", 100)
            trade = await pg_container.trade.start_trade(a, b)
            await pg_container.trade.add_to_trade_offer(trade.id, a, "gold", None, 10)

            accepted, started = await asyncio.gather(
                pg_container.trade.accept_trade(trade.id, b),
                pg_container.trade.start_trade(a, c),
                return_exceptions=True,
            )

            assert isinstance(accepted, TradeSnapshot)
            assert isinstance(started, (TradeSnapshot, PendingTradeExistsError))

"""
Integration tests for the settlement sweep.

One pass settles every due auction in its own unit of work, keeps going
past a failing auction, and expires stale trades.
"""

import asyncio

import pytest

from src.database.models import AuctionStatus, TradeStatus


@pytest.mark.integration
@pytest.mark.database
class TestSweep:
    async def test_sweep_settles_due_auctions_and_trades(self, seeded, harness, clock):
        # Arrange
        seller = await harness.character("Seller")
        buyer = await harness.character("Buyer", gold=500)
        other = await harness.character("Other")
        await harness.grant(seller, "ruby", 3)

        sold = await seeded.auction.create_auction(seller, "ruby", 1, 50, duration_minutes=5)
        unsold = await seeded.auction.create_auction(seller, "ruby", 1, 50, duration_minutes=5)
        running = await seeded.auction.create_auction(seller, "ruby", 1, 50, duration_minutes=120)
        await seeded.auction.place_bid(sold.id, buyer, 75)
        trade = await seeded.trade.start_trade(buyer, other)

        # Act
        report = await seeded.scheduler.sweep_once(now=clock.advance(minutes=45))

        # Assert
        assert (report.examined, report.sold, report.expired, report.failed) == (2, 1, 1, 0)
        assert report.trades_expired == 1
        assert (await seeded.auction.get_auction(sold.id)).status is AuctionStatus.SOLD
        assert (await seeded.auction.get_auction(unsold.id)).status is AuctionStatus.EXPIRED
        assert (await seeded.auction.get_auction(running.id)).status is AuctionStatus.OPEN
        assert (await seeded.trade.get_trade(trade.id)).status is TradeStatus.EXPIRED
        assert await harness.qty(buyer, "ruby") == 1
        assert await harness.qty(seller, "ruby") == 1

    async def test_failing_auction_stays_open_for_next_tick(
        self, seeded, harness, clock, config_manager
    ):
        seller = await harness.character("Seller", gold=90)
        buyer = await harness.character("Buyer", gold=500)
        await harness.grant(seller, "ruby", 2)
        blocked = await seeded.auction.create_auction(seller, "ruby", 1, 10, duration_minutes=5)
        refund = await seeded.auction.create_auction(seller, "ruby", 1, 10, duration_minutes=6)
        await seeded.auction.place_bid(blocked.id, buyer, 20)
        config_manager.set("economy.max_gold", 100)

        report = await seeded.scheduler.sweep_once(now=clock.advance(minutes=10))

        assert report.failed_auction_ids == [blocked.id]
        assert report.expired == 1
        assert (await seeded.auction.get_auction(blocked.id)).status is AuctionStatus.OPEN
        assert (await seeded.auction.get_auction(refund.id)).status is AuctionStatus.EXPIRED

        # ceiling lifted: the next tick settles it
        config_manager.clear_overrides()
        report = await seeded.scheduler.sweep_once(now=clock.advance(seconds=10))

        assert report.sold == 1
        assert await harness.gold(seller) == 110

    async def test_batch_size_limits_one_pass(self, seeded, harness, clock, config_manager):
        config_manager.set("auction.settlement_batch_size", 2)
        seller = await harness.character("Seller")
        await harness.grant(seller, "oak_log", 3)
        for _ in range(3):
            await seeded.auction.create_auction(seller, "oak_log", 1, 1, duration_minutes=1)

        first = await seeded.scheduler.sweep_once(now=clock.advance(minutes=5))
        second = await seeded.scheduler.sweep_once()

        assert (first.examined, second.examined) == (2, 1)
        assert await harness.qty(seller, "oak_log") == 3

    async def test_concurrent_settlement_pays_once(self, seeded, harness, clock):
        seller = await harness.character("Seller")
        buyer = await harness.character("Buyer", gold=100)
        await harness.grant(seller, "ruby", 1)
        auction = await seeded.auction.create_auction(seller, "ruby", 1, 40, duration_minutes=1)
        await seeded.auction.place_bid(auction.id, buyer, 40)
        now = clock.advance(minutes=2)

        outcomes = await asyncio.gather(
            seeded.auction.settle_auction(auction.id, now=now),
            seeded.auction.settle_auction(auction.id, now=now),
            return_exceptions=True,
        )

        assert sum(1 for outcome in outcomes if getattr(outcome, "value", None) == "SOLD") == 1
        assert await harness.gold(buyer) == 60
        assert await harness.gold(seller) == 40
        assert await harness.qty(buyer, "ruby") == 1

    async def test_scheduler_loop_runs_in_background(self, seeded, harness, clock, config_manager):
        config_manager.set("auction.settlement_interval_seconds", 0.01)
        seller = await harness.character("Seller")
        await harness.grant(seller, "ruby", 1)
        auction = await seeded.auction.create_auction(seller, "ruby", 1, 10, duration_minutes=1)
        clock.advance(minutes=2)

        seeded.scheduler.start()
        for _ in range(200):
            if (await seeded.auction.get_auction(auction.id)).status is not AuctionStatus.OPEN:
                break
            await asyncio.sleep(0.01)
        await seeded.scheduler.stop()

        assert (await seeded.auction.get_auction(auction.id)).status is AuctionStatus.EXPIRED
        assert not seeded.scheduler.is_running

"""
Unit tests for EventBus.

Tests subscription bookkeeping, priority ordering, listener isolation and
timeouts.
"""

import asyncio

import pytest

from src.core.event import EventBus, ListenerPriority


@pytest.fixture
def bus() -> EventBus:
    return EventBus(listener_timeout_seconds=0.05)


@pytest.mark.unit
class TestSubscription:
    def test_subscribe_returns_identifier(self, bus):
        def on_sold(payload):
            return None

        identifier = bus.subscribe("auction.sold", on_sold)

        assert identifier.endswith("on_sold@auction.sold")
        assert bus.get_listener_count("auction.sold") == 1
        assert bus.get_all_events() == ["auction.sold"]

    def test_duplicate_identifier_keeps_first(self, bus):
        bus.subscribe("auction.sold", lambda p: "first", identifier="notify")
        bus.subscribe("auction.sold", lambda p: "second", identifier="notify")

        assert bus.get_listener_count("auction.sold") == 1

    def test_rejects_wrong_arity(self, bus):
        with pytest.raises(ValueError, match="exactly 1 parameter"):
            bus.subscribe("auction.sold", lambda a, b: None)

    def test_unsubscribe(self, bus):
        bus.subscribe("auction.expired", lambda p: None, identifier="dm")

        assert bus.unsubscribe("auction.expired", "dm") is True
        assert bus.unsubscribe("auction.expired", "dm") is False
        assert bus.get_listener_count() == 0

    def test_clear(self, bus):
        bus.subscribe("a", lambda p: None, identifier="x")
        bus.subscribe("b", lambda p: None, identifier="y")

        bus.clear()

        assert bus.get_all_events() == []


@pytest.mark.unit
@pytest.mark.asyncio
class TestPublish:
    async def test_no_listeners(self, bus):
        assert await bus.publish("auction.sold", {"price": 5}) == []

    async def test_priority_order(self, bus):
        calls = []
        bus.subscribe("e", lambda p: calls.append("low"), priority=ListenerPriority.LOW, identifier="low")
        bus.subscribe("e", lambda p: calls.append("normal"), identifier="normal")
        bus.subscribe(
            "e", lambda p: calls.append("critical"), priority=ListenerPriority.CRITICAL, identifier="crit"
        )

        await bus.publish("e", {})

        assert calls == ["critical", "normal", "low"]

    async def test_async_and_sync_results(self, bus):
        async def double(payload):
            return payload["price"] * 2

        bus.subscribe("auction.sold", double, identifier="async")
        bus.subscribe("auction.sold", lambda p: p["price"], identifier="sync")

        results = await bus.publish("auction.sold", {"price": 21})

        assert sorted(results) == [21, 42]

    async def test_failing_listener_is_isolated(self, bus):
        calls = []

        def broken(payload):
            raise RuntimeError("dm failed")

        bus.subscribe("e", broken, priority=ListenerPriority.HIGH, identifier="broken")
        bus.subscribe("e", lambda p: calls.append(p), identifier="ok")

        results = await bus.publish("e", {"n": 1})

        assert calls == [{"n": 1}]
        assert len(results) == 1
        assert bus.error_count == 1

    async def test_high_priority_listener_times_out(self, bus):
        async def slow(payload):
            await asyncio.sleep(1)

        bus.subscribe("e", slow, priority=ListenerPriority.HIGH, identifier="slow")

        results = await bus.publish("e", {})

        assert results == []
        assert bus.error_count == 1

    async def test_once_listener_runs_once(self, bus):
        calls = []
        bus.subscribe("e", lambda p: calls.append(1), identifier="once", once=True)

        await bus.publish("e", {})
        await bus.publish("e", {})

        assert calls == [1]
        assert bus.get_listener_count("e") == 0

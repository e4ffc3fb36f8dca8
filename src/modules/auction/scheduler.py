"""
Auction Settlement Scheduler
============================

Purpose
-------
Periodic reconciliation pass: every ``auction.settlement_interval_seconds``
it settles OPEN auctions whose expiry has passed and expires stale PENDING
trades.

Design Notes
------------
- Each auction settles in its own unit of work through
  ``AuctionService.settle_auction``, the same path any eager caller uses.
  Settlement is idempotent, so an overlapping manual settle or a redundant
  tick is harmless.
- A failure settling one auction is logged and counted; the auction stays
  OPEN for the next tick and the rest of the batch still runs.
- No per-auction timers. One loop, one batch per tick.

Usage
-----
>>> stop_event = asyncio.Event()
>>> scheduler = AuctionSettlementScheduler(auction_service, trade_service, ConfigManager, logger)
>>> task = asyncio.create_task(scheduler.run_forever(stop_event=stop_event))
>>> # ... later ...
>>> stop_event.set()
>>> await task
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from src.core.database.base import utc_now
from src.core.logging.logger import LogContext
from src.modules.auction.types import SweepReport

if TYPE_CHECKING:
    from logging import Logger

    from src.core.config.manager import ConfigManager
    from src.modules.auction.service import AuctionService
    from src.modules.shared.base_service import Clock
    from src.modules.trade.service import TradeService


class AuctionSettlementScheduler:
    """
    Background sweeper for expired auctions and trades.

    Public Methods
    --------------
    - sweep_once(now) -> Run one settlement pass and return a SweepReport
    - run_forever(stop_event) -> Sweep until stop_event is set
    - start() / stop() -> Manage the loop as a background task
    """

    def __init__(
        self,
        auction_service: AuctionService,
        trade_service: TradeService,
        config_manager: type[ConfigManager] | ConfigManager,
        logger: Logger,
        clock: Optional[Clock] = None,
    ) -> None:
        self._auctions = auction_service
        self._trades = trade_service
        self._config = config_manager
        self._clock: Clock = clock or utc_now
        self.log = logger

        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event: Optional[asyncio.Event] = None
        self.last_report: Optional[SweepReport] = None

    @property
    def interval_seconds(self) -> float:
        return float(self._config.get("auction.settlement_interval_seconds", 10))

    @property
    def batch_size(self) -> int:
        return int(self._config.get("auction.settlement_batch_size", 100))

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ========================================================================
    # Sweep
    # ========================================================================

    async def sweep_once(self, now: Optional[datetime] = None) -> SweepReport:
        """
        Settle every due auction in one batch, then expire stale trades.

        Exceptions from individual settlements are contained here; an error
        loading the batch itself propagates.
        """
        now = now or self._clock()
        report = SweepReport()

        auction_ids = await self._auctions.find_expired_auction_ids(now=now, limit=self.batch_size)
        report.examined = len(auction_ids)

        for auction_id in auction_ids:
            try:
                outcome = await self._auctions.settle_auction(auction_id, now=now)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                report.record_failure(auction_id)
                self.log.error(
                    "Auction settlement failed; auction stays open",
                    extra={
                        "auction_id": auction_id,
                        "error_type": type(exc).__name__,
                        "error_message": str(exc),
                    },
                    exc_info=True,
                )
                continue
            report.record(outcome)

        try:
            report.trades_expired = await self._trades.expire_stale_trades(now)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.log.error(
                "Trade expiry sweep failed",
                extra={"error_type": type(exc).__name__, "error_message": str(exc)},
                exc_info=True,
            )

        level = self.log.info if (report.settled or report.failed or report.trades_expired) else self.log.debug
        level(
            "Settlement sweep complete",
            extra={
                "examined": report.examined,
                "sold": report.sold,
                "expired": report.expired,
                "skipped": report.skipped,
                "failed": report.failed,
                "trades_expired": report.trades_expired,
            },
        )
        self.last_report = report
        return report

    # ========================================================================
    # Loop
    # ========================================================================

    async def run_forever(self, *, stop_event: asyncio.Event) -> None:
        """Sweep, then wait for the interval or the stop signal, until stopped."""
        self.log.info(
            "AuctionSettlementScheduler started",
            extra={
                "interval_seconds": self.interval_seconds,
                "batch_size": self.batch_size,
            },
        )

        try:
            with LogContext(component="scheduler", operation="settlement_sweep"):
                while not stop_event.is_set():
                    try:
                        await self.sweep_once()
                    except asyncio.CancelledError:
                        raise
                    except Exception as exc:
                        # Batch query failed (database down); retry next tick
                        self.log.error(
                            "Settlement sweep aborted",
                            extra={"error_type": type(exc).__name__, "error_message": str(exc)},
                            exc_info=True,
                        )

                    try:
                        await asyncio.wait_for(stop_event.wait(), timeout=self.interval_seconds)
                    except asyncio.TimeoutError:
                        continue
        finally:
            self.log.info("AuctionSettlementScheduler stopped")

    def start(self) -> asyncio.Task[None]:
        """Run the loop as a background task on the current event loop."""
        if self._task is not None and not self._task.done():
            return self._task

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self.run_forever(stop_event=self._stop_event),
            name="auction-settlement-scheduler",
        )
        return self._task

    async def stop(self) -> None:
        """Signal the loop and wait for the in-flight sweep to finish."""
        if self._task is None or self._stop_event is None:
            return

        self._stop_event.set()
        try:
            await self._task
        finally:
            self._task = None
            self._stop_event = None

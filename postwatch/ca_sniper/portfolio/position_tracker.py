"""
Open-position tracker with a periodic revaluation loop.

The tracker owns the open-position list. The scheduler only appends to
it (through `add_position`, after a successful buy) and asks it to drop
the positions a liquidation just sold. Both are plain synchronous calls,
so neither can interleave with the revaluation loop mid-update.

The loop starts lazily on the first position and keeps running until
`stop()`; each tick waits for the previous one to finish.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Iterable

from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.portfolio.price_source import PriceSource
from postwatch.ca_sniper.signals.signal_schema import (
    Chain,
    ExecutionResult,
    PortfolioSummary,
    Position,
    TradeDirection,
)
from postwatch.ca_sniper.utils.logger import get_logger

logger = get_logger(__name__)

RenderCallback = Callable[[list[Position], "PortfolioSummary | None"], Awaitable[None]]


async def log_summary(positions: list[Position], summary: PortfolioSummary | None) -> None:
    if summary is None:
        return
    logger.info(
        f"Portfolio: {summary.total_positions} positions, P&L {summary.total_pnl:.4f} "
        f"({summary.total_pnl_pct:.2f}%)",
        extra={"data": summary.model_dump(mode="json")},
    )


class PositionTracker:
    def __init__(
        self,
        price_source: PriceSource,
        interval: float | None = None,
        render: RenderCallback | None = None,
    ):
        self.price_source = price_source
        self.interval = interval or config.tracker.interval
        self.render = render or log_summary
        self._positions: list[Position] = []
        self._tracking = False
        self._task: asyncio.Task | None = None
        self._wake: asyncio.Event | None = None

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    # ------------------------------------------------------------------
    # Position set
    # ------------------------------------------------------------------

    def add_position(self, result: ExecutionResult) -> Position:
        """Record a successful buy and start the valuation loop if idle."""
        if not result.success or result.direction is not TradeDirection.BUY:
            raise ValueError("Only successful buys can open a position")

        position = Position(
            chain=result.chain,
            asset_id=result.asset_id,
            venue=result.venue or "unknown",
            cost_basis=result.amount_spent or 0.0,
            quantity_received=result.proceeds or 0.0,
            opened_at=result.executed_at,
        )
        self._positions.append(position)
        logger.info(
            f"Tracking {position.chain.value} token {position.asset_id}",
            extra={"data": {"position_id": position.position_id, "venue": position.venue}},
        )

        if not self._tracking:
            self.start()
        return position

    def open_positions(self, chain: Chain | None = None) -> list[Position]:
        return [p for p in self._positions if chain is None or p.chain is chain]

    def close_positions(self, position_ids: Iterable[str]) -> list[Position]:
        """Drop the given positions; ids no longer tracked are ignored."""
        ids = set(position_ids)
        removed = [p for p in self._positions if p.position_id in ids]
        self._positions = [p for p in self._positions if p.position_id not in ids]
        if removed:
            logger.info(
                f"Closed {len(removed)} positions",
                extra={"data": {"closed": [p.asset_id for p in removed]}},
            )
        return removed

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------

    async def revalue(self) -> None:
        """Re-price every open position. A failed quote keeps the last values."""
        for position in list(self._positions):
            try:
                price = await self.price_source.quote(position.chain, position.asset_id)
            except Exception as e:
                logger.error(
                    f"Revaluation failed for {position.asset_id}: {e}",
                    extra={"data": {"position_id": position.position_id, "error": str(e)}},
                )
                continue
            if price is None:
                continue
            position.revalue(price)

    def summary(self) -> PortfolioSummary | None:
        if not self._positions:
            return None
        invested = sum(p.cost_basis for p in self._positions)
        current = sum(p.current_value for p in self._positions)
        pnl = current - invested
        return PortfolioSummary(
            total_positions=len(self._positions),
            total_invested=invested,
            total_current_value=current,
            total_pnl=pnl,
            total_pnl_pct=(pnl / invested * 100) if invested else 0.0,
        )

    async def tick(self) -> None:
        await self.revalue()
        try:
            await self.render(self.open_positions(), self.summary())
        except Exception as e:
            logger.error(f"Portfolio render failed: {e}", exc_info=True)

    # ------------------------------------------------------------------
    # Loop control
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._tracking:
            return
        self._tracking = True
        self._wake = asyncio.Event()
        self._task = asyncio.create_task(self._run(self._wake))
        logger.info("Started profit tracking", extra={"data": {"interval": self.interval}})

    async def _run(self, stopped: asyncio.Event) -> None:
        while not stopped.is_set():
            await self.tick()
            if stopped.is_set():
                break
            try:
                await asyncio.wait_for(stopped.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def stop(self) -> None:
        """Stop after any in-flight tick. Safe to call repeatedly."""
        if not self._tracking:
            return
        self._tracking = False
        if self._wake is not None:
            self._wake.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Stopped profit tracking")

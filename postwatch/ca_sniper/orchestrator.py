"""
Monitor scheduler for the contract-address sniper.

Coordinates the pipeline on a fixed period:
Fetch → Reverse (oldest first) → Dedup → Classify → Alert → Acquire → Track

Runs as an async loop: one immediate tick on start, then one tick per
CHECK_INTERVAL, each tick awaited to completion before the next wait.
Per-post and per-address failures are isolated; nothing in a tick can
stop the loop.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from postwatch.ca_sniper.analysis.address_detector import AddressDetector
from postwatch.ca_sniper.collectors.twitter_collector import FeedAuthError, TwitterCollector
from postwatch.ca_sniper.config import Config, config
from postwatch.ca_sniper.notifiers.webhook import WebhookNotifier
from postwatch.ca_sniper.portfolio.position_tracker import PositionTracker
from postwatch.ca_sniper.signals.signal_schema import (
    Alert,
    Chain,
    ExecutionResult,
    Post,
    SchedulerState,
)
from postwatch.ca_sniper.storage.alert_log import AlertLog
from postwatch.ca_sniper.storage.dedup_ledger import DedupLedger
from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.venues.router import VenueRouter

logger = get_logger(__name__)

AlertCallback = Callable[[Alert], Awaitable[None]]
TradeCallback = Callable[[ExecutionResult], Awaitable[None]]


class MonitorScheduler:
    """
    Main polling loop.

    Owns the dedup ledger and classifier; drives the venue router and
    feeds successful buys to the position tracker. Alerts and trade
    outcomes are handed to optional callbacks for presentation.
    """

    def __init__(
        self,
        feed: TwitterCollector,
        router: VenueRouter | None = None,
        tracker: PositionTracker | None = None,
        alert_callback: AlertCallback | None = None,
        trade_callback: TradeCallback | None = None,
        webhook: WebhookNotifier | None = None,
        alert_log: AlertLog | None = None,
        ledger: DedupLedger | None = None,
        cfg: Config | None = None,
    ):
        self.cfg = cfg or config
        self.feed = feed
        self.router = router
        self.tracker = tracker
        self.alert_callback = alert_callback
        self.trade_callback = trade_callback
        self.webhook = webhook
        self.alert_log = alert_log
        self.ledger = ledger or DedupLedger()
        self.detector = AddressDetector(self.cfg.monitor.watch_keywords)

        self.handle = self.cfg.monitor.target_username
        self.state = SchedulerState.STOPPED
        self._task: asyncio.Task | None = None
        self._wake: asyncio.Event | None = None
        self._liquidating: set[Chain] = set()
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        return self.state is SchedulerState.RUNNING

    @property
    def auto_execute(self) -> bool:
        return self.cfg.trading.auto_execute and self.router is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self, max_ticks: int | None = None) -> None:
        """Begin polling; with `max_ticks`, stop on its own after that many ticks."""
        if self.is_running:
            logger.warning("Monitor is already running")
            return

        self.state = SchedulerState.RUNNING
        # A stopped loop may still be finishing its last tick
        previous = self._task
        if previous is not None and not previous.done():
            await previous
            if not self.is_running:
                return

        self._wake = asyncio.Event()
        logger.info(
            f"Starting monitor for @{self.handle}",
            extra={"data": {
                "interval": self.cfg.monitor.check_interval,
                "auto_execute": self.auto_execute,
            }},
        )
        self._task = asyncio.create_task(self._run(self._wake, max_ticks))

    async def _run(self, stopped: asyncio.Event, max_ticks: int | None = None) -> None:
        ticks = 0
        while not stopped.is_set():
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Tick {self.tick_count} failed: {e}", exc_info=True)

            ticks += 1
            if max_ticks is not None and ticks >= max_ticks and not stopped.is_set():
                logger.info(f"Reached max ticks ({max_ticks}), stopping")
                self.state = SchedulerState.STOPPED
                stopped.set()

            if stopped.is_set():
                break
            try:
                await asyncio.wait_for(stopped.wait(), timeout=self.cfg.monitor.check_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Monitoring stopped")

    async def stop(self) -> None:
        """Cancel the next tick; an in-flight tick finishes. Idempotent."""
        if not self.is_running:
            return
        self.state = SchedulerState.STOPPED
        if self._wake is not None:
            self._wake.set()
        logger.info("Stop signal received")

    async def wait_closed(self) -> None:
        if self._task is not None:
            await self._task
            self._task = None

    # ------------------------------------------------------------------
    # One polling cycle
    # ------------------------------------------------------------------

    async def _relogin(self) -> None:
        logger.warning("Possible authentication issue, attempting re-login")
        ok = await self.feed.login(self.cfg.api_keys.twitter_bearer_token, probe_handle=self.handle)
        if not ok:
            logger.error("Re-login failed")

    async def tick(self) -> list[Alert]:
        """Fetch, dedup, classify and act on the latest posts. Returns the alerts emitted."""
        self.tick_count += 1
        alerts: list[Alert] = []

        try:
            posts = await self.feed.fetch_recent(self.handle, self.cfg.monitor.fetch_limit)
        except FeedAuthError as e:
            logger.error(f"Error fetching posts: {e}")
            await self._relogin()
            return alerts
        except Exception as e:
            logger.error(
                f"Error fetching posts: {e}",
                extra={"data": {"handle": self.handle, "error": str(e)}},
            )
            return alerts

        if not posts:
            logger.info("No posts retrieved")
            return alerts

        # Feed order is newest-first; act in real-world order
        for post in reversed(posts):
            if self.ledger.seen(post.post_id):
                continue
            self.ledger.mark(post.post_id)
            try:
                alert = await self.process_post(post)
            except Exception as e:
                logger.error(
                    f"Failed to process post {post.post_id}: {e}",
                    extra={"data": {"post_id": post.post_id, "error": str(e)}},
                    exc_info=True,
                )
                continue
            if alert is not None:
                alerts.append(alert)
                await asyncio.sleep(self.cfg.monitor.post_pacing_seconds)

        if alerts:
            logger.info(
                f"Found {len(alerts)} crypto-related post(s)",
                extra={"data": {"post_ids": [a.post_id for a in alerts]}},
            )
        else:
            logger.info("No new crypto-related posts")
        return alerts

    async def process_post(self, post: Post) -> Alert | None:
        finding = self.detector.classify(post.text)
        if not finding.has_signal:
            return None

        alert = Alert.from_post(post, finding)
        await self.emit_alert(alert)

        if self.auto_execute:
            await self.auto_acquire(alert)
        return alert

    async def emit_alert(self, alert: Alert) -> None:
        if self.alert_log is not None:
            self.alert_log.log_alert(alert)
        if self.alert_callback is not None:
            try:
                await self.alert_callback(alert)
            except Exception as e:
                logger.error(f"Alert callback failed: {e}")
        if self.webhook is not None and self.webhook.enabled:
            await self.webhook.send(alert)

    async def _record_trade(self, result: ExecutionResult) -> None:
        if self.alert_log is not None:
            self.alert_log.log_trade(result)
        if self.trade_callback is not None:
            try:
                await self.trade_callback(result)
            except Exception as e:
                logger.error(f"Trade callback failed: {e}")

    async def auto_acquire(self, alert: Alert) -> list[ExecutionResult]:
        """Buy every address in the alert, one at a time, paced."""
        results: list[ExecutionResult] = []
        targets = alert.analysis.addresses_by_chain()

        for index, (chain, address) in enumerate(targets):
            if index:
                await asyncio.sleep(self.cfg.trading.execution_pacing_seconds)
            logger.info(
                f"Auto-buying {chain.value} token {address}",
                extra={"data": {"chain": chain.value, "asset_id": address, "post_id": alert.post_id}},
            )
            try:
                result = await self.router.acquire(chain, address)
            except Exception as e:
                logger.error(
                    f"Auto-buy error for {address}: {e}",
                    extra={"data": {"chain": chain.value, "asset_id": address}},
                    exc_info=True,
                )
                continue

            results.append(result)
            await self._record_trade(result)
            if result.success and self.tracker is not None:
                self.tracker.add_position(result)
        return results

    # ------------------------------------------------------------------
    # Operator-triggered liquidation
    # ------------------------------------------------------------------

    async def liquidate_chain(self, chain: Chain) -> list[ExecutionResult]:
        """
        Sell every open position on `chain`, one at a time, paced.

        The positions in the snapshot are dropped from the tracker once the
        run completes, whether or not each sale went through. Positions
        opened while the run is in progress stay tracked.
        """
        if self.router is None or self.tracker is None:
            logger.warning("Liquidation requested but trading is not configured")
            return []
        if chain in self._liquidating:
            logger.warning(f"{chain.value} liquidation already in progress")
            return []

        self._liquidating.add(chain)
        results: list[ExecutionResult] = []
        try:
            positions = self.tracker.open_positions(chain)
            logger.info(
                f"Selling all {chain.value} holdings",
                extra={"data": {"chain": chain.value, "positions": len(positions)}},
            )
            for index, position in enumerate(positions):
                if index:
                    await asyncio.sleep(self.cfg.trading.execution_pacing_seconds)
                try:
                    result = await self.router.liquidate(
                        chain, position.asset_id, position.quantity_received
                    )
                except Exception as e:
                    logger.error(
                        f"Liquidation error for {position.asset_id}: {e}", exc_info=True
                    )
                    continue
                results.append(result)
                await self._record_trade(result)

            received = sum(r.proceeds or 0.0 for r in results if r.success)
            logger.info(
                f"Sell completed, received {received:.4f} {chain.native_symbol}",
                extra={"data": {
                    "chain": chain.value,
                    "sold": sum(1 for r in results if r.success),
                    "failed": sum(1 for r in results if not r.success),
                }},
            )
            self.tracker.close_positions(p.position_id for p in positions)
        finally:
            self._liquidating.discard(chain)
        return results

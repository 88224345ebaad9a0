"""
CLI entry point for the contract-address sniper.

Usage:
    python -m postwatch.ca_sniper.cli run              # Watch until interrupted
    python -m postwatch.ca_sniper.cli run --cycles 5   # Run 5 ticks then stop
    python -m postwatch.ca_sniper.cli status           # Show alert log stats

While running in a terminal:
    s  sell all Solana holdings
    b  sell all BSC holdings
    q  quit
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import termios
import tty
from typing import Callable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from postwatch.ca_sniper.chains.bsc_wallet import BscWallet
from postwatch.ca_sniper.chains.solana_wallet import SolanaWallet
from postwatch.ca_sniper.collectors.twitter_collector import TwitterCollector
from postwatch.ca_sniper.config import Config, ConfigError, check_config, config
from postwatch.ca_sniper.notifiers.webhook import WebhookNotifier
from postwatch.ca_sniper.orchestrator import MonitorScheduler
from postwatch.ca_sniper.portfolio.position_tracker import PositionTracker
from postwatch.ca_sniper.portfolio.price_source import PriceSource
from postwatch.ca_sniper.signals.signal_schema import (
    Alert,
    Chain,
    ExecutionResult,
    PortfolioSummary,
    Position,
    TradeDirection,
)
from postwatch.ca_sniper.storage.alert_log import AlertLog
from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.venues.bsc_venues import PancakeSwapVenue
from postwatch.ca_sniper.venues.jupiter import JupiterClient
from postwatch.ca_sniper.venues.router import build_venue_router

logger = get_logger(__name__)
console = Console()

EXIT_OK = 0
EXIT_STARTUP_FAILURE = 1


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

async def alert_printer(alert: Alert) -> None:
    """Pretty-print an alert to the terminal."""
    finding = alert.analysis
    table = Table(show_header=False, padding=(0, 1))
    table.add_column("Field", style="bold cyan")
    table.add_column("Value")
    table.add_row("Post", alert.url)
    table.add_row("Time", alert.timestamp.isoformat())
    table.add_row("Text", alert.text)
    if finding.solana_addresses:
        table.add_row("Solana", "\n".join(finding.solana_addresses))
    if finding.bsc_addresses:
        table.add_row("BSC", "\n".join(finding.bsc_addresses))
    if finding.keywords:
        table.add_row("Keywords", ", ".join(finding.keywords))
    if finding.links:
        table.add_row("Links", "\n".join(finding.links))

    has_address = bool(finding.solana_addresses or finding.bsc_addresses)
    console.print(
        Panel(
            table,
            title=f"Crypto post from @{alert.username}",
            border_style="green" if has_address else "yellow",
        )
    )


async def trade_printer(result: ExecutionResult) -> None:
    verb = "Bought" if result.direction is TradeDirection.BUY else "Sold"
    symbol = result.chain.native_symbol
    if result.success:
        detail = (
            f"{result.amount_spent:g} {symbol} -> {result.proceeds or 0:g} tokens"
            if result.direction is TradeDirection.BUY
            else f"received {result.proceeds or 0:.4f} {symbol}"
        )
        console.print(
            f"[bold green]{verb}[/] {result.asset_id} on {result.venue}: {detail}"
            f" [dim]{result.external_ref or ''}[/]"
        )
    else:
        console.print(
            f"[bold red]{result.direction.value.upper()} FAILED[/] {result.asset_id}"
            f" ({result.chain.value}): {result.error}"
        )


async def portfolio_printer(positions: list[Position], summary: PortfolioSummary | None) -> None:
    if summary is None:
        return

    table = Table(title="Open Positions")
    table.add_column("Chain", style="cyan")
    table.add_column("Token")
    table.add_column("Venue")
    table.add_column("Invested", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("P&L", justify="right")

    for p in positions:
        color = "green" if p.unrealized_pnl >= 0 else "red"
        table.add_row(
            p.chain.value,
            f"{p.asset_id[:6]}...{p.asset_id[-4:]}",
            p.venue,
            f"{p.cost_basis:.4f} {p.chain.native_symbol}",
            f"{p.current_value:.4f}" if p.last_price is not None else "[dim]n/a[/]",
            f"[{color}]{p.unrealized_pnl:+.4f} ({p.pnl_pct:+.2f}%)[/]",
        )

    color = "green" if summary.total_pnl >= 0 else "red"
    table.caption = (
        f"{summary.total_positions} positions | invested {summary.total_invested:.4f} | "
        f"value {summary.total_current_value:.4f} | "
        f"[{color}]P&L {summary.total_pnl:+.4f} ({summary.total_pnl_pct:+.2f}%)[/]"
    )
    console.print(table)


# ---------------------------------------------------------------------------
# Single-key control
# ---------------------------------------------------------------------------

class KeyboardControl:
    """
    Reads single keystrokes from a terminal without blocking the loop.

    The terminal is put in cbreak mode for the lifetime of the control
    and restored on `close()`.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, handlers: dict[str, Callable[[], None]]):
        self.loop = loop
        self.handlers = handlers
        self.fd = sys.stdin.fileno()
        self._saved_attrs = None

    @staticmethod
    def available() -> bool:
        return sys.stdin.isatty()

    def open(self) -> None:
        self._saved_attrs = termios.tcgetattr(self.fd)
        tty.setcbreak(self.fd)
        self.loop.add_reader(self.fd, self._on_key)

    def _on_key(self) -> None:
        key = sys.stdin.read(1).lower()
        handler = self.handlers.get(key)
        if handler is not None:
            handler()

    def close(self) -> None:
        if self._saved_attrs is None:
            return
        self.loop.remove_reader(self.fd)
        termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved_attrs)
        self._saved_attrs = None


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------

def build_wallets(cfg: Config) -> tuple[SolanaWallet | None, BscWallet | None]:
    """Wallets for every chain with a key configured. Raises on a bad key."""
    trading = cfg.trading
    solana_wallet = SolanaWallet(trading.solana_private_key) if trading.solana_private_key else None
    bsc_wallet = BscWallet(trading.bsc_private_key) if trading.bsc_private_key else None
    return solana_wallet, bsc_wallet


async def run_monitor(max_cycles: int | None = None, cfg: Config | None = None) -> int:
    """Start the monitor with terminal rendering. Returns the process exit code."""
    cfg = cfg or config

    try:
        check_config(cfg)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}", extra={"data": {"errors": e.errors}})
        console.print(Panel("\n".join(e.errors), title="Configuration errors", border_style="red"))
        return EXIT_STARTUP_FAILURE

    handle = cfg.monitor.target_username
    trading = cfg.trading
    console.print(
        Panel(
            "[bold]Contract-Address Sniper[/]\n"
            f"Monitoring: @{handle}\n"
            f"Check interval: {cfg.monitor.check_interval:g}s\n"
            f"Auto-execute: {'[bold red]ON[/]' if trading.auto_execute else 'off'}",
            title="Starting",
            border_style="blue",
        )
    )

    feed = TwitterCollector(cfg.api_keys.twitter_bearer_token)
    if not await feed.login(probe_handle=handle):
        console.print(f"[bold red]Could not log in or find @{handle}[/]")
        return EXIT_STARTUP_FAILURE

    router = None
    tracker = None
    solana_wallet = None
    if trading.auto_execute:
        try:
            solana_wallet, bsc_wallet = build_wallets(cfg)
        except Exception as e:
            logger.error(f"Wallet initialisation failed: {e}", exc_info=True)
            console.print(f"[bold red]Wallet initialisation failed:[/] {e}")
            return EXIT_STARTUP_FAILURE

        jupiter = JupiterClient()
        router = build_venue_router(cfg, solana_wallet, bsc_wallet, jupiter)
        price_source = PriceSource(
            jupiter=jupiter if solana_wallet is not None else None,
            pancakeswap=PancakeSwapVenue(bsc_wallet) if bsc_wallet is not None else None,
        )
        tracker = PositionTracker(price_source, cfg.tracker.interval, render=portfolio_printer)

    scheduler = MonitorScheduler(
        feed,
        router=router,
        tracker=tracker,
        alert_callback=alert_printer,
        trade_callback=trade_printer,
        webhook=WebhookNotifier(cfg.webhook.url),
        alert_log=AlertLog(cfg.storage.alert_log_path),
        cfg=cfg,
    )

    loop = asyncio.get_running_loop()
    shutdown = asyncio.Event()
    pending: set[asyncio.Task] = set()

    def request_liquidation(chain: Chain) -> None:
        console.print(f"[yellow]Selling all {chain.value} holdings...[/]")
        task = loop.create_task(scheduler.liquidate_chain(chain))
        pending.add(task)
        task.add_done_callback(pending.discard)

    def request_shutdown() -> None:
        if not shutdown.is_set():
            console.print("\n[yellow]Shutting down...[/]")
            shutdown.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, request_shutdown)

    keyboard = None
    if KeyboardControl.available():
        keyboard = KeyboardControl(
            loop,
            {
                "s": lambda: request_liquidation(Chain.SOLANA),
                "b": lambda: request_liquidation(Chain.BSC),
                "q": request_shutdown,
            },
        )
        keyboard.open()
        console.print("[dim]Keys: s = sell Solana, b = sell BSC, q = quit[/]")

    try:
        await scheduler.start(max_ticks=max_cycles)
        closed = asyncio.create_task(scheduler.wait_closed())
        stopper = asyncio.create_task(shutdown.wait())
        await asyncio.wait({closed, stopper}, return_when=asyncio.FIRST_COMPLETED)

        await scheduler.stop()
        await closed
        stopper.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
    finally:
        if keyboard is not None:
            keyboard.close()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        if tracker is not None:
            await tracker.stop()
        if solana_wallet is not None:
            await solana_wallet.close()

    console.print("[bold]Monitor stopped.[/]")
    return EXIT_OK


def show_status(cfg: Config | None = None) -> None:
    """Show alert log statistics."""
    cfg = cfg or config
    alert_log = AlertLog(cfg.storage.alert_log_path)
    count = alert_log.get_alert_count()
    recent = alert_log.read_alerts(limit=10)
    trades = alert_log.read_trades(limit=10)

    console.print(f"\n[bold]Total alerts logged:[/] {count}")

    if recent:
        table = Table(title="Recent Alerts")
        table.add_column("Post", style="cyan")
        table.add_column("Addresses")
        table.add_column("Keywords")
        table.add_column("Time")

        for alert in recent:
            analysis = alert.get("analysis", {})
            addresses = analysis.get("solana_addresses", []) + analysis.get("bsc_addresses", [])
            table.add_row(
                alert.get("post_id", "?"),
                "\n".join(addresses) or "[dim]-[/]",
                ", ".join(analysis.get("keywords", [])),
                str(alert.get("timestamp", "?"))[:19],
            )
        console.print(table)
    else:
        console.print("[dim]No alerts logged yet.[/]")

    if trades:
        table = Table(title="Recent Trades")
        table.add_column("Direction")
        table.add_column("Chain")
        table.add_column("Token", style="cyan")
        table.add_column("Venue")
        table.add_column("Result")

        for trade in trades:
            ok = trade.get("success", False)
            table.add_row(
                str(trade.get("direction", "?")).upper(),
                trade.get("chain", "?"),
                trade.get("asset_id", "?"),
                trade.get("venue") or "-",
                "[green]OK[/]" if ok else f"[red]{trade.get('error', 'failed')}[/]",
            )
        console.print(table)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Watch an account for contract addresses and optionally buy them"
    )
    subparsers = parser.add_subparsers(dest="command")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run the monitor")
    run_parser.add_argument(
        "--cycles",
        type=int,
        default=None,
        help="Max ticks to run (default: unlimited)",
    )

    # Status command
    subparsers.add_parser("status", help="Show alert log stats")

    args = parser.parse_args()

    if args.command == "run":
        sys.exit(asyncio.run(run_monitor(max_cycles=args.cycles)))
    elif args.command == "status":
        show_status()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()

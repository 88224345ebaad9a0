"""
Venue router: priority-ordered, fallback-chained trade execution.

For one (chain, direction) the router walks a fixed list of venues:

    probe V1 → unavailable/error → probe V2 → available → execute on V2

Probe failures only eliminate that venue. Once an execute has started,
its outcome is final for the call: a failed trade is never retried on
the next venue.

Buys spend the whole-unit floor of the chain's native balance, lowered
first by a per-chain cap when one is configured; anything under 1 unit
is never put at risk.
"""

from __future__ import annotations

import math
from typing import Protocol

from postwatch.ca_sniper.config import Config, config
from postwatch.ca_sniper.signals.signal_schema import (
    Chain,
    ExecutionResult,
    TradeDirection,
)
from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.venues.base import VenueAdapter
from postwatch.ca_sniper.venues.bsc_venues import PancakeSwapVenue
from postwatch.ca_sniper.venues.jupiter import JupiterClient
from postwatch.ca_sniper.venues.solana_venues import (
    PumpFunVenue,
    meteora_venue,
    raydium_venue,
)

logger = get_logger(__name__)

NOT_AVAILABLE_ERROR = "not available on any supported venue"
INSUFFICIENT_BALANCE_ERROR = "insufficient balance"
MIN_SPEND_UNITS = 1


class NativeBalanceSource(Protocol):
    async def native_balance(self) -> float: ...


VenueTable = dict[tuple[Chain, TradeDirection], list[VenueAdapter]]


def spendable_budget(balance: float) -> int:
    """Whole units of native asset that may be spent out of `balance`."""
    if balance <= 0:
        return 0
    return math.floor(balance)


class VenueRouter:
    def __init__(
        self,
        venues: VenueTable,
        wallets: dict[Chain, NativeBalanceSource] | None = None,
        buy_caps: dict[Chain, float] | None = None,
    ):
        self.venues = venues
        self.wallets = wallets or {}
        self.buy_caps = buy_caps or {}

    def venue_order(self, chain: Chain, direction: TradeDirection) -> list[str]:
        return [v.name for v in self.venues.get((chain, direction), [])]

    def _failure(
        self,
        chain: Chain,
        asset_id: str,
        direction: TradeDirection,
        error: str,
        venue: str | None = None,
        amount: float | None = None,
    ) -> ExecutionResult:
        logger.warning(
            f"{direction.value} {asset_id} on {chain.value} failed: {error}",
            extra={"data": {"chain": chain.value, "asset_id": asset_id, "venue": venue, "error": error}},
        )
        return ExecutionResult(
            success=False,
            chain=chain,
            asset_id=asset_id,
            direction=direction,
            venue=venue,
            amount_spent=amount if direction is TradeDirection.BUY else None,
            error=error,
        )

    async def acquire(
        self, chain: Chain, asset_id: str, budget: float | None = None
    ) -> ExecutionResult:
        """
        Buy `asset_id` with the spendable part of `budget`.

        When no budget is passed, the chain wallet's current native
        balance is used.
        """
        direction = TradeDirection.BUY
        if budget is None:
            wallet = self.wallets.get(chain)
            if wallet is None:
                return self._failure(chain, asset_id, direction, f"no {chain.value} wallet configured")
            try:
                budget = await wallet.native_balance()
            except Exception as e:
                return self._failure(chain, asset_id, direction, f"balance check failed: {e}")

        cap = self.buy_caps.get(chain)
        if cap is not None:
            budget = min(budget, cap)

        spend = spendable_budget(budget)
        if spend < MIN_SPEND_UNITS:
            return self._failure(
                chain, asset_id, direction,
                f"{INSUFFICIENT_BALANCE_ERROR}: {budget:.4f} {chain.native_symbol} "
                f"(need at least {MIN_SPEND_UNITS})",
            )

        logger.info(
            f"Buying {asset_id} on {chain.value} with {spend} {chain.native_symbol}",
            extra={"data": {"chain": chain.value, "asset_id": asset_id, "spend": spend, "budget": budget}},
        )
        return await self._route(chain, asset_id, float(spend), direction)

    async def liquidate(self, chain: Chain, asset_id: str, quantity: float) -> ExecutionResult:
        """Sell `quantity` raw units of `asset_id` back to the native asset."""
        direction = TradeDirection.SELL
        if quantity <= 0:
            return self._failure(chain, asset_id, direction, "nothing to sell")
        return await self._route(chain, asset_id, quantity, direction)

    async def _route(
        self, chain: Chain, asset_id: str, amount: float, direction: TradeDirection
    ) -> ExecutionResult:
        candidates = self.venues.get((chain, direction), [])
        if not candidates:
            return self._failure(chain, asset_id, direction, f"no venues configured for {chain.value}")

        for venue in candidates:
            try:
                probe = await venue.probe(asset_id)
            except Exception as e:
                logger.warning(
                    f"Probe failed on {venue.name}: {e}",
                    extra={"data": {"venue": venue.name, "asset_id": asset_id, "error": str(e)}},
                )
                continue

            if not probe.available:
                logger.info(
                    f"{asset_id} not available on {venue.name}",
                    extra={"data": {"venue": venue.name, "asset_id": asset_id}},
                )
                continue

            logger.info(
                f"{asset_id} available on {venue.name}, executing {direction.value}",
                extra={"data": {"venue": venue.name, "asset_id": asset_id, "probe": probe.metadata}},
            )
            try:
                receipt = await venue.execute(asset_id, amount, direction)
            except Exception as e:
                return self._failure(chain, asset_id, direction, str(e), venue=venue.name, amount=amount)

            if not receipt.success:
                return self._failure(
                    chain, asset_id, direction,
                    receipt.error or "trade rejected by venue",
                    venue=venue.name, amount=amount,
                )

            result = ExecutionResult(
                success=True,
                chain=chain,
                asset_id=asset_id,
                direction=direction,
                venue=venue.name,
                amount_spent=amount,
                proceeds=receipt.amount_out,
                external_ref=receipt.external_ref,
            )
            logger.info(
                f"{direction.value} {asset_id} succeeded on {venue.name}",
                extra={"data": result.model_dump(mode="json")},
            )
            return result

        return self._failure(chain, asset_id, direction, NOT_AVAILABLE_ERROR)


def build_venue_router(
    cfg: Config | None = None,
    solana_wallet=None,
    bsc_wallet=None,
    jupiter=None,
) -> VenueRouter:
    """
    Assemble the router from configured venue orders.

    Chains without a wallet get no venues, so every call on them fails
    fast with "no venues configured".
    """
    cfg = cfg or config
    trading = cfg.trading
    venues: VenueTable = {}
    wallets: dict[Chain, NativeBalanceSource] = {}

    if solana_wallet is not None:
        jupiter = jupiter or JupiterClient()
        solana_registry: dict[str, VenueAdapter] = {
            "pumpfun": PumpFunVenue(solana_wallet),
            "meteora": meteora_venue(jupiter, solana_wallet),
            "raydium": raydium_venue(jupiter, solana_wallet),
        }
        venues[(Chain.SOLANA, TradeDirection.BUY)] = [
            solana_registry[n] for n in trading.solana_buy_venues
        ]
        venues[(Chain.SOLANA, TradeDirection.SELL)] = [
            solana_registry[n] for n in trading.solana_sell_venues
        ]
        wallets[Chain.SOLANA] = solana_wallet

    if bsc_wallet is not None:
        bsc_registry: dict[str, VenueAdapter] = {"pancakeswap": PancakeSwapVenue(bsc_wallet)}
        venues[(Chain.BSC, TradeDirection.BUY)] = [bsc_registry[n] for n in trading.bsc_buy_venues]
        venues[(Chain.BSC, TradeDirection.SELL)] = [bsc_registry[n] for n in trading.bsc_sell_venues]
        wallets[Chain.BSC] = bsc_wallet

    caps = {Chain.SOLANA: trading.max_buy_amount_sol, Chain.BSC: trading.max_buy_amount_bnb}
    return VenueRouter(
        venues,
        wallets=wallets,
        buy_caps={chain: cap for chain, cap in caps.items() if cap is not None},
    )

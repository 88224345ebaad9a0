"""
Unit prices for held tokens, in the chain's native asset.

Price is derived from a small native-asset quote: how many raw token
units 0.1 SOL (Jupiter) or 0.1 BNB (PancakeSwap) buys right now.
"""

from __future__ import annotations

from postwatch.ca_sniper.chains.solana_wallet import LAMPORTS_PER_SOL, SOL_MINT
from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.signals.signal_schema import Chain, TradeDirection
from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.venues.bsc_venues import PancakeSwapVenue
from postwatch.ca_sniper.venues.jupiter import JupiterClient

logger = get_logger(__name__)


class PriceSource:
    def __init__(
        self,
        jupiter: JupiterClient | None = None,
        pancakeswap: PancakeSwapVenue | None = None,
        quote_amount: float | None = None,
    ):
        self.jupiter = jupiter
        self.pancakeswap = pancakeswap
        self.quote_amount = quote_amount or config.tracker.quote_amount_native

    async def _solana_price(self, mint: str) -> float | None:
        if self.jupiter is None:
            return None
        lamports = int(self.quote_amount * LAMPORTS_PER_SOL)
        quote = await self.jupiter.quote(SOL_MINT, mint, lamports)
        if quote is None:
            return None
        out = int(quote["outAmount"])
        return self.quote_amount / out if out else None

    async def _bsc_price(self, token: str) -> float | None:
        if self.pancakeswap is None:
            return None
        wei = int(self.quote_amount * 10**18)
        path = self.pancakeswap.swap_path(token, TradeDirection.BUY)
        out = await self.pancakeswap.amounts_out(wei, path)
        return self.quote_amount / out if out else None

    async def quote(self, chain: Chain, asset_id: str) -> float | None:
        """Native asset per raw token unit, or None if no price is available."""
        try:
            if chain is Chain.SOLANA:
                return await self._solana_price(asset_id)
            return await self._bsc_price(asset_id)
        except Exception as e:
            logger.error(
                f"Price lookup failed for {asset_id}: {e}",
                extra={"data": {"chain": chain.value, "asset_id": asset_id, "error": str(e)}},
            )
            return None

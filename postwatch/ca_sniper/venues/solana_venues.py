"""
Solana trading venues.

- Pump.fun: bonding-curve market, probed via the pump.fun frontend API
  and traded through PumpPortal's local-transaction endpoint.
- Meteora / Raydium: AMMs, probed and traded through Jupiter with
  routing restricted to the venue's own pools.

All transactions are built remotely and signed locally by SolanaWallet.
"""

from __future__ import annotations

import httpx

from postwatch.ca_sniper.chains.solana_wallet import LAMPORTS_PER_SOL, SOL_MINT, SolanaWallet
from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.signals.signal_schema import (
    Chain,
    ProbeResult,
    TradeDirection,
    TradeReceipt,
)
from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.venues.base import VenueAdapter
from postwatch.ca_sniper.venues.jupiter import JupiterClient

logger = get_logger(__name__)

PUMPFUN_API_BASE = "https://frontend-api-v3.pump.fun"
PUMPPORTAL_TRADE_URL = "https://pumpportal.fun/api/trade-local"
PUMPFUN_TOKEN_DECIMALS = 6

# Size of the routing probe against AMM venues: 0.01 SOL
AMM_PROBE_LAMPORTS = 10_000_000

METEORA_DEX_LABELS = ["Meteora DLMM", "Meteora", "Meteora DAMM v2"]
RAYDIUM_DEX_LABELS = ["Raydium", "Raydium CLMM", "Raydium CP"]


class PumpFunVenue(VenueAdapter):
    """Pump.fun bonding curve. Unavailable once the curve has completed (migrated)."""

    name = "Pump.fun"
    chain = Chain.SOLANA

    def __init__(
        self,
        wallet: SolanaWallet,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.wallet = wallet
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=config.rate_limit.http_timeout, transport=self._transport
        )

    async def probe(self, asset_id: str) -> ProbeResult:
        async with self._client() as client:
            resp = await client.get(f"{PUMPFUN_API_BASE}/coins/{asset_id}")
        if resp.status_code == 404:
            return ProbeResult(available=False)
        resp.raise_for_status()

        data = resp.json() or {}
        return ProbeResult(
            available=not data.get("complete", False),
            metadata={
                "name": data.get("name"),
                "symbol": data.get("symbol"),
                "market_cap": data.get("market_cap"),
                "virtual_sol_reserves": data.get("virtual_sol_reserves"),
            },
        )

    async def _build_trade(self, payload: dict) -> bytes:
        async with self._client() as client:
            resp = await client.post(PUMPPORTAL_TRADE_URL, data=payload)
            resp.raise_for_status()
            return resp.content

    async def execute(
        self, asset_id: str, amount: float, direction: TradeDirection
    ) -> TradeReceipt:
        payload = {
            "publicKey": self.wallet.address,
            "action": direction.value,
            "mint": asset_id,
            "slippage": config.trading.slippage_bps / 100,
            "priorityFee": config.trading.priority_fee_sol,
            "pool": "pump",
        }
        if direction is TradeDirection.BUY:
            payload.update(amount=amount, denominatedInSol="true")
            before = await self.wallet.token_balance(asset_id)
            signature = await self.wallet.sign_and_send(await self._build_trade(payload))
            received = await self.wallet.token_balance(asset_id) - before
        else:
            payload.update(amount=amount / 10**PUMPFUN_TOKEN_DECIMALS, denominatedInSol="false")
            before = await self.wallet.native_balance()
            signature = await self.wallet.sign_and_send(await self._build_trade(payload))
            received = await self.wallet.native_balance() - before

        return TradeReceipt(success=True, external_ref=signature, amount_out=received)


class JupiterVenue(VenueAdapter):
    """An AMM venue reached through Jupiter, restricted to the venue's DEX labels."""

    chain = Chain.SOLANA

    def __init__(
        self,
        name: str,
        dex_labels: list[str],
        jupiter: JupiterClient,
        wallet: SolanaWallet,
    ):
        self.name = name
        self.dex_labels = dex_labels
        self.jupiter = jupiter
        self.wallet = wallet

    async def probe(self, asset_id: str) -> ProbeResult:
        quote = await self.jupiter.quote(
            SOL_MINT, asset_id, AMM_PROBE_LAMPORTS, dexes=self.dex_labels
        )
        if quote is None:
            return ProbeResult(available=False)
        return ProbeResult(
            available=True,
            metadata={
                "out_amount": int(quote["outAmount"]),
                "price_impact_pct": quote.get("priceImpactPct"),
                "route": [
                    step.get("swapInfo", {}).get("label") for step in quote.get("routePlan", [])
                ],
            },
        )

    async def execute(
        self, asset_id: str, amount: float, direction: TradeDirection
    ) -> TradeReceipt:
        if direction is TradeDirection.BUY:
            input_mint, output_mint = SOL_MINT, asset_id
            raw_amount = int(amount * LAMPORTS_PER_SOL)
        else:
            input_mint, output_mint = asset_id, SOL_MINT
            raw_amount = int(amount)

        quote = await self.jupiter.quote(
            input_mint, output_mint, raw_amount, dexes=self.dex_labels
        )
        if quote is None:
            return TradeReceipt(success=False, error=f"No {self.name} route for {asset_id}")

        tx = await self.jupiter.swap_transaction(quote, self.wallet.address)
        signature = await self.wallet.sign_and_send(tx)

        out_amount = int(quote["outAmount"])
        if direction is TradeDirection.SELL:
            amount_out = out_amount / LAMPORTS_PER_SOL
        else:
            amount_out = float(out_amount)
        return TradeReceipt(success=True, external_ref=signature, amount_out=amount_out)


def meteora_venue(jupiter: JupiterClient, wallet: SolanaWallet) -> JupiterVenue:
    return JupiterVenue("Meteora", METEORA_DEX_LABELS, jupiter, wallet)


def raydium_venue(jupiter: JupiterClient, wallet: SolanaWallet) -> JupiterVenue:
    return JupiterVenue("Raydium", RAYDIUM_DEX_LABELS, jupiter, wallet)

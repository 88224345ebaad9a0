"""
Jupiter swap aggregator client (quote + swap transaction).

Used both as an execution path for AMM venues (restricting routing to
the venue's own DEX labels) and as the Solana price source.
"""

from __future__ import annotations

import base64
from typing import Any

import httpx

from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.utils.rate_limiter import RateLimiter

logger = get_logger(__name__)

JUPITER_API_BASE = "https://lite-api.jup.ag/swap/v1"


class JupiterClient:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.rate_limiter = RateLimiter(
            max_calls=config.rate_limit.jupiter_requests_per_minute,
            period_seconds=60,
        )
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=config.rate_limit.http_timeout, transport=self._transport
        )

    async def quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        slippage_bps: int | None = None,
        dexes: list[str] | None = None,
    ) -> dict[str, Any] | None:
        """
        Best route for `amount` raw units of `input_mint`.

        Returns None when Jupiter finds no route (HTTP 400); other HTTP
        failures raise.
        """
        await self.rate_limiter.acquire()

        params: dict[str, Any] = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": slippage_bps if slippage_bps is not None else config.trading.slippage_bps,
        }
        if dexes:
            params["dexes"] = ",".join(dexes)

        async with self._client() as client:
            resp = await client.get(f"{JUPITER_API_BASE}/quote", params=params)

        if resp.status_code == 400:
            logger.info(
                "No Jupiter route",
                extra={"data": {"output_mint": output_mint, "dexes": dexes, "body": resp.text[:200]}},
            )
            return None
        resp.raise_for_status()
        return resp.json()

    async def swap_transaction(self, quote: dict[str, Any], user_public_key: str) -> bytes:
        """Serialized unsigned versioned transaction for a quote."""
        await self.rate_limiter.acquire()

        payload = {
            "quoteResponse": quote,
            "userPublicKey": user_public_key,
            "wrapAndUnwrapSol": True,
            "dynamicComputeUnitLimit": True,
        }
        async with self._client() as client:
            resp = await client.post(f"{JUPITER_API_BASE}/swap", json=payload)
            resp.raise_for_status()
            data = resp.json()

        return base64.b64decode(data["swapTransaction"])

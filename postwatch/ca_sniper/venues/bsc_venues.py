"""
BNB Smart Chain trading venues.

PancakeSwap V2 router via web3.py. The fee-on-transfer-safe swap
variants are used because a large share of freshly launched BSC tokens
tax transfers.
"""

from __future__ import annotations

import time
from typing import Any

from web3 import AsyncWeb3

from postwatch.ca_sniper.chains.bsc_wallet import BscWallet
from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.signals.signal_schema import (
    Chain,
    ProbeResult,
    TradeDirection,
    TradeReceipt,
)
from postwatch.ca_sniper.utils.logger import get_logger
from postwatch.ca_sniper.venues.base import VenueAdapter

logger = get_logger(__name__)

PANCAKE_ROUTER_V2 = "0x10ED43C718714eb63d5aA57B78B54704E256024E"
WBNB = "0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c"

SWAP_DEADLINE_SECONDS = 20 * 60
PROBE_AMOUNT_WEI = AsyncWeb3.to_wei(0.1, "ether")

PANCAKE_ROUTER_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"name": "amountIn", "type": "uint256"},
            {"name": "path", "type": "address[]"},
        ],
        "name": "getAmountsOut",
        "outputs": [{"name": "amounts", "type": "uint256[]"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "amountOutMin", "type": "uint256"},
            {"name": "path", "type": "address[]"},
            {"name": "to", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "name": "swapExactETHForTokensSupportingFeeOnTransferTokens",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "amountIn", "type": "uint256"},
            {"name": "amountOutMin", "type": "uint256"},
            {"name": "path", "type": "address[]"},
            {"name": "to", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "name": "swapExactTokensForETHSupportingFeeOnTransferTokens",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


def min_amount_out(quoted: int, slippage_bps: int) -> int:
    return quoted * (10_000 - slippage_bps) // 10_000


class PancakeSwapVenue(VenueAdapter):
    name = "PancakeSwap"
    chain = Chain.BSC

    def __init__(self, wallet: BscWallet, router_address: str = PANCAKE_ROUTER_V2):
        self.wallet = wallet
        self.router_address = AsyncWeb3.to_checksum_address(router_address)
        self.router = wallet.w3.eth.contract(address=self.router_address, abi=PANCAKE_ROUTER_ABI)
        self.wbnb = AsyncWeb3.to_checksum_address(WBNB)

    def swap_path(self, asset_id: str, direction: TradeDirection) -> list[str]:
        token = AsyncWeb3.to_checksum_address(asset_id)
        return [self.wbnb, token] if direction is TradeDirection.BUY else [token, self.wbnb]

    async def amounts_out(self, amount_in: int, path: list[str]) -> int:
        amounts = await self.router.functions.getAmountsOut(amount_in, path).call()
        return int(amounts[-1])

    async def probe(self, asset_id: str) -> ProbeResult:
        out = await self.amounts_out(PROBE_AMOUNT_WEI, self.swap_path(asset_id, TradeDirection.BUY))
        return ProbeResult(available=out > 0, metadata={"tokens_per_0_1_bnb": out})

    async def execute(
        self, asset_id: str, amount: float, direction: TradeDirection
    ) -> TradeReceipt:
        path = self.swap_path(asset_id, direction)
        deadline = int(time.time()) + SWAP_DEADLINE_SECONDS
        slippage = config.trading.slippage_bps

        if direction is TradeDirection.BUY:
            value = AsyncWeb3.to_wei(amount, "ether")
            quoted = await self.amounts_out(value, path)
            fn = self.router.functions.swapExactETHForTokensSupportingFeeOnTransferTokens(
                min_amount_out(quoted, slippage), path, self.wallet.address, deadline
            )
            before = await self.wallet.token_balance(asset_id)
            tx_hash = await self.wallet.send_transaction(fn, value=value)
            received = await self.wallet.token_balance(asset_id) - before
            return TradeReceipt(success=True, external_ref=tx_hash, amount_out=float(received))

        quantity = int(amount)
        quoted = await self.amounts_out(quantity, path)
        await self.wallet.approve(asset_id, self.router_address, quantity)
        fn = self.router.functions.swapExactTokensForETHSupportingFeeOnTransferTokens(
            quantity, min_amount_out(quoted, slippage), path, self.wallet.address, deadline
        )
        tx_hash = await self.wallet.send_transaction(fn)
        return TradeReceipt(
            success=True,
            external_ref=tx_hash,
            amount_out=float(AsyncWeb3.from_wei(quoted, "ether")),
        )

"""
BNB Smart Chain wallet on web3.py's async provider.

Builds, signs and submits contract transactions and waits for a
successful receipt. Gas is estimated per call with a 20% buffer.
"""

from __future__ import annotations

from typing import Any

from eth_account import Account
from web3 import AsyncWeb3

from postwatch.ca_sniper.chains.errors import TradeError
from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.utils.logger import get_logger

logger = get_logger(__name__)

RECEIPT_TIMEOUT_SECONDS = 120

ERC20_ABI: list[dict[str, Any]] = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
]


class BscWallet:
    def __init__(self, private_key: str | None = None, rpc_url: str | None = None):
        key = private_key or config.trading.bsc_private_key
        self.account = Account.from_key("0x" + key.removeprefix("0x"))
        self.rpc_url = rpc_url or config.trading.bsc_rpc_url
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(self.rpc_url))
        logger.info(f"BSC wallet: {self.address}")

    @property
    def address(self) -> str:
        return self.account.address

    def token(self, token_address: str):
        return self.w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(token_address), abi=ERC20_ABI
        )

    async def native_balance(self) -> float:
        """Balance in BNB."""
        wei = await self.w3.eth.get_balance(self.address)
        return float(AsyncWeb3.from_wei(wei, "ether"))

    async def token_balance(self, token_address: str) -> int:
        return await self.token(token_address).functions.balanceOf(self.address).call()

    async def send_transaction(self, contract_fn, value: int = 0) -> str:
        """Build, sign and submit a contract call; returns the tx hash once mined."""
        params: dict[str, Any] = {
            "from": self.address,
            "value": value,
            "nonce": await self.w3.eth.get_transaction_count(self.address),
            "gasPrice": await self.w3.eth.gas_price,
        }
        gas = await contract_fn.estimate_gas(params)
        params["gas"] = gas * 120 // 100
        tx = await contract_fn.build_transaction(params)

        signed = self.account.sign_transaction(tx)
        tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)
        hex_hash = AsyncWeb3.to_hex(tx_hash)
        logger.info(f"Transaction sent: {hex_hash}", extra={"data": {"hash": hex_hash}})

        receipt = await self.w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=RECEIPT_TIMEOUT_SECONDS
        )
        if receipt["status"] != 1:
            raise TradeError(f"Transaction {hex_hash} reverted")
        return hex_hash

    async def approve(self, token_address: str, spender: str, amount: int) -> str:
        fn = self.token(token_address).functions.approve(
            AsyncWeb3.to_checksum_address(spender), amount
        )
        return await self.send_transaction(fn)

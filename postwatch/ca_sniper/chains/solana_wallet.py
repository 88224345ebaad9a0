"""
Solana wallet: native and SPL balances, signing and submission.

Venues hand us serialized, unsigned versioned transactions (built by
Jupiter or PumpPortal); the wallet signs them with the local keypair,
submits them, and waits for confirmation.
"""

from __future__ import annotations

import base58
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TokenAccountOpts, TxOpts
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from postwatch.ca_sniper.chains.errors import TradeError
from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.utils.logger import get_logger

logger = get_logger(__name__)

LAMPORTS_PER_SOL = 1_000_000_000
SOL_MINT = "So11111111111111111111111111111111111111112"


class SolanaWallet:
    def __init__(self, private_key: str | None = None, rpc_url: str | None = None):
        key = private_key or config.trading.solana_private_key
        self.keypair = Keypair.from_bytes(base58.b58decode(key))
        self.rpc_url = rpc_url or config.trading.solana_rpc_url
        self.client = AsyncClient(self.rpc_url, commitment=Confirmed)
        logger.info(f"Solana wallet: {self.address}")

    @property
    def public_key(self) -> Pubkey:
        return self.keypair.pubkey()

    @property
    def address(self) -> str:
        return str(self.public_key)

    async def native_balance(self) -> float:
        """Balance in SOL."""
        resp = await self.client.get_balance(self.public_key)
        return resp.value / LAMPORTS_PER_SOL

    async def token_balance(self, mint: str) -> int:
        """Raw units of `mint` held across all of our token accounts."""
        resp = await self.client.get_token_accounts_by_owner_json_parsed(
            self.public_key, TokenAccountOpts(mint=Pubkey.from_string(mint))
        )
        total = 0
        for keyed in resp.value:
            info = keyed.account.data.parsed["info"]
            total += int(info["tokenAmount"]["amount"])
        return total

    async def sign_and_send(self, serialized_tx: bytes) -> str:
        """Sign a serialized versioned transaction, submit it, and wait for confirmation."""
        unsigned = VersionedTransaction.from_bytes(serialized_tx)
        signed = VersionedTransaction(unsigned.message, [self.keypair])

        resp = await self.client.send_raw_transaction(
            bytes(signed), opts=TxOpts(preflight_commitment=Confirmed)
        )
        signature = resp.value
        logger.info(f"Transaction sent: {signature}", extra={"data": {"signature": str(signature)}})

        confirmation = await self.client.confirm_transaction(signature, commitment=Confirmed)
        statuses = confirmation.value
        if statuses and statuses[0] is not None and statuses[0].err is not None:
            raise TradeError(f"Transaction {signature} failed on-chain: {statuses[0].err}")
        return str(signature)

    async def close(self) -> None:
        await self.client.close()

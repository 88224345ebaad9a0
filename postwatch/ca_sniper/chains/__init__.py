from postwatch.ca_sniper.chains.errors import TradeError
from postwatch.ca_sniper.chains.solana_wallet import SolanaWallet
from postwatch.ca_sniper.chains.bsc_wallet import BscWallet

__all__ = ["TradeError", "SolanaWallet", "BscWallet"]

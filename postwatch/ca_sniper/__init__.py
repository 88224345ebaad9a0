"""
Contract-address sniper for a single social-media account.

Polls a target account's posts, detects Solana and BSC contract
addresses, optionally buys the tokens through a priority-ordered chain
of trading venues, and tracks the resulting positions' profit/loss.
"""

__version__ = "0.1.0"

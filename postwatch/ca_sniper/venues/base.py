"""
Venue adapter contract.

A venue is one trading counterparty on one chain. The router only ever
talks to venues through this interface: a read-only `probe` to ask
whether the asset can be traded there, and `execute` to actually trade.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from postwatch.ca_sniper.signals.signal_schema import (
    Chain,
    ProbeResult,
    TradeDirection,
    TradeReceipt,
)


class VenueAdapter(ABC):
    name: str
    chain: Chain

    @abstractmethod
    async def probe(self, asset_id: str) -> ProbeResult:
        """Read-only availability/liquidity check."""

    @abstractmethod
    async def execute(
        self, asset_id: str, amount: float, direction: TradeDirection
    ) -> TradeReceipt:
        """
        Trade `amount` of the input side: native units when buying,
        raw token units when selling.
        """

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name} ({self.chain.value})>"

"""
Pydantic models for all data flowing through the sniper pipeline.

Posts come in from the feed, findings and alerts come out of the
classifier, execution results come out of the venue router, and
positions are owned by the tracker.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Chain(str, Enum):
    SOLANA = "solana"
    BSC = "bsc"

    @property
    def native_symbol(self) -> str:
        return "SOL" if self is Chain.SOLANA else "BNB"


class TradeDirection(str, Enum):
    BUY = "buy"
    SELL = "sell"


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


# ---------------------------------------------------------------------------
# Feed models
# ---------------------------------------------------------------------------

class Post(BaseModel):
    """A single post fetched from the target account. Read-only."""
    model_config = ConfigDict(frozen=True)

    post_id: str
    author: str
    text: str = ""
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def url(self) -> str:
        return f"https://twitter.com/{self.author}/status/{self.post_id}"


# ---------------------------------------------------------------------------
# Classification models
# ---------------------------------------------------------------------------

class Finding(BaseModel):
    """Structured result of classifying one post's text."""
    has_signal: bool = False
    solana_addresses: list[str] = Field(default_factory=list)
    bsc_addresses: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list)
    analyzed_at: datetime = Field(default_factory=_utcnow)

    def addresses_by_chain(self) -> list[tuple[Chain, str]]:
        """All discovered addresses, Solana first, each in order of appearance."""
        return [(Chain.SOLANA, a) for a in self.solana_addresses] + [
            (Chain.BSC, a) for a in self.bsc_addresses
        ]


class Alert(BaseModel):
    """
    Alert record for a post with a positive classification.

    This is the document posted to the webhook and appended to the alert log.
    """
    post_id: str
    username: str
    text: str
    url: str
    timestamp: datetime
    analysis: Finding

    @classmethod
    def from_post(cls, post: Post, finding: Finding) -> "Alert":
        return cls(
            post_id=post.post_id,
            username=post.author,
            text=post.text,
            url=post.url,
            timestamp=post.created_at,
            analysis=finding,
        )


# ---------------------------------------------------------------------------
# Venue models
# ---------------------------------------------------------------------------

class ProbeResult(BaseModel):
    """Read-only availability check against a venue."""
    available: bool
    metadata: dict[str, Any] = Field(default_factory=dict)


class TradeReceipt(BaseModel):
    """What a venue adapter reports after submitting a trade."""
    success: bool
    external_ref: str | None = None             # tx signature / hash
    amount_out: float | None = None             # tokens (buy) or native asset (sell)
    error: str | None = None


class ExecutionResult(BaseModel):
    """
    Normalized outcome of one Venue Router call.

    `proceeds` is whatever the venue delivered: raw token units for a buy,
    native asset for a sell.
    """
    model_config = ConfigDict(frozen=True)

    success: bool
    chain: Chain
    asset_id: str
    direction: TradeDirection
    venue: str | None = None
    amount_spent: float | None = None
    proceeds: float | None = None
    external_ref: str | None = None
    error: str | None = None
    executed_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Portfolio models
# ---------------------------------------------------------------------------

class Position(BaseModel):
    """An open holding created from a successful buy. Owned by the tracker."""
    position_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    chain: Chain
    asset_id: str
    venue: str
    cost_basis: float                           # native asset spent
    quantity_received: float                    # raw token units
    opened_at: datetime = Field(default_factory=_utcnow)
    current_value: float = 0.0
    unrealized_pnl: float = 0.0
    last_price: float | None = None

    @property
    def pnl_pct(self) -> float:
        if not self.cost_basis:
            return 0.0
        return self.unrealized_pnl / self.cost_basis * 100

    def revalue(self, price: float) -> None:
        self.last_price = price
        self.current_value = self.quantity_received * price
        self.unrealized_pnl = self.current_value - self.cost_basis


class PortfolioSummary(BaseModel):
    """Aggregate valuation across all open positions (SOL and BNB summed)."""
    total_positions: int
    total_invested: float
    total_current_value: float
    total_pnl: float
    total_pnl_pct: float
    last_update: datetime = Field(default_factory=_utcnow)

from postwatch.ca_sniper.signals.signal_schema import (
    Alert,
    Chain,
    ExecutionResult,
    Finding,
    PortfolioSummary,
    Position,
    Post,
    ProbeResult,
    SchedulerState,
    TradeDirection,
    TradeReceipt,
)

__all__ = [
    "Alert",
    "Chain",
    "ExecutionResult",
    "Finding",
    "PortfolioSummary",
    "Position",
    "Post",
    "ProbeResult",
    "SchedulerState",
    "TradeDirection",
    "TradeReceipt",
]

class TradeError(Exception):
    """A trade was submitted and failed (revert, failed receipt, rejected tx)."""

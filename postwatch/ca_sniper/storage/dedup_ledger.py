"""
In-memory ledger of post identifiers that have already been processed.

The ledger is the only thing standing between two scheduler ticks and a
duplicate alert (or a duplicate buy) for the same post. It never evicts
and is not persisted: a restart re-processes the feed's latest window.
"""

from __future__ import annotations


class DedupLedger:
    """Process-lifetime set of seen post ids."""

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def seen(self, post_id: str) -> bool:
        return post_id in self._ids

    def mark(self, post_id: str) -> None:
        self._ids.add(post_id)

    def __contains__(self, post_id: object) -> bool:
        return post_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

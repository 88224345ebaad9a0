"""
Alert and trade log for post-session review.

Appends every alert and every venue router outcome to a JSONL file so a
session can be audited afterwards (which post triggered which buy, on
which venue, for how much).
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.signals.signal_schema import Alert, ExecutionResult
from postwatch.ca_sniper.utils.logger import get_logger

logger = get_logger(__name__)


class AlertLog:
    """
    Append-only JSONL log of alerts and trade events.

    Alert lines carry a `post_id`; trade lines carry `event_type: "trade"`.
    """

    def __init__(self, log_path: str | None = None):
        self.log_path = Path(log_path or config.storage.alert_log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def _append(self, record: dict[str, Any]) -> None:
        record["_logged_at"] = datetime.now(timezone.utc).isoformat()
        with open(self.log_path, "a") as f:
            f.write(json.dumps(record, default=str) + "\n")

    def log_alert(self, alert: Alert) -> None:
        """Append an alert to the log file."""
        try:
            self._append(alert.model_dump(mode="json"))
            logger.info(
                f"Logged alert for post {alert.post_id}",
                extra={"data": {"post_id": alert.post_id, "username": alert.username}},
            )
        except IOError as e:
            logger.error(f"Failed to log alert: {e}")

    def log_trade(self, result: ExecutionResult) -> None:
        """Append a venue router outcome (buy or sell, success or not)."""
        try:
            self._append({"event_type": "trade", **result.model_dump(mode="json")})
        except IOError as e:
            logger.error(f"Failed to log trade: {e}")

    def _read(self) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        if not self.log_path.exists():
            return records
        try:
            with open(self.log_path, "r") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        records.append(json.loads(line))
                    except json.JSONDecodeError:
                        continue
        except IOError as e:
            logger.error(f"Failed to read alert log: {e}")
        return records

    def read_alerts(self, limit: int = 100) -> list[dict[str, Any]]:
        """Most recent alerts, oldest first."""
        alerts = [r for r in self._read() if "post_id" in r and "event_type" not in r]
        return alerts[-limit:]

    def read_trades(self, limit: int = 100) -> list[dict[str, Any]]:
        trades = [r for r in self._read() if r.get("event_type") == "trade"]
        return trades[-limit:]

    def get_alert_count(self) -> int:
        return len(self.read_alerts(limit=10**9))

"""
Outbound webhook for alerts.

POSTs the alert record as JSON. Delivery is best-effort: failures are
logged and never retried, and never interrupt the scheduler tick.
"""

from __future__ import annotations

import httpx

from postwatch.ca_sniper.config import config
from postwatch.ca_sniper.signals.signal_schema import Alert
from postwatch.ca_sniper.utils.logger import get_logger

logger = get_logger(__name__)


class WebhookNotifier:
    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url if url is not None else config.webhook.url
        self.timeout = timeout or config.webhook.timeout
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    async def send(self, alert: Alert) -> bool:
        """Deliver one alert. Returns True on a 2xx response."""
        if not self.enabled:
            return False
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.url,
                    json=alert.model_dump(mode="json"),
                    headers={"Content-Type": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.error(
                f"Webhook error: {e}",
                extra={"data": {"post_id": alert.post_id, "error": str(e)}},
            )
            return False

        if resp.is_success:
            logger.info("Webhook notification sent", extra={"data": {"post_id": alert.post_id}})
            return True
        logger.error(
            f"Webhook rejected alert with HTTP {resp.status_code}",
            extra={"data": {"post_id": alert.post_id, "status": resp.status_code}},
        )
        return False

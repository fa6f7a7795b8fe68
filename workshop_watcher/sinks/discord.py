"""Discord webhook delivery, one embed per message."""

from __future__ import annotations

import httpx

from ..errors import DeliveryError
from ..models import NotificationMessage
from .base import BaseSink


class DiscordWebhookSink(BaseSink):
    def __init__(self, webhook_url: str, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._client = client or httpx.Client(timeout=timeout)

    def deliver(self, message: NotificationMessage) -> None:
        try:
            response = self._client.post(
                self.webhook_url,
                json={"embeds": [message.to_embed()]},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DeliveryError(f"Webhook delivery failed for {message.title!r}: {exc}") from exc

    def close(self) -> None:
        self._client.close()


__all__ = ["DiscordWebhookSink"]

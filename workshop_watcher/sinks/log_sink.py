"""Sink that writes messages to the application log instead of sending them."""

from __future__ import annotations

import structlog

from ..models import NotificationMessage
from .base import BaseSink


class LogSink(BaseSink):
    def __init__(self, logger: structlog.BoundLogger | None = None) -> None:
        self.logger = logger or structlog.get_logger("workshop_watcher").bind(component="log_sink")
        self.delivered = 0

    def deliver(self, message: NotificationMessage) -> None:
        self.delivered += 1
        self.logger.info(
            "notification_logged",
            kind=message.kind.value,
            item_id=message.item_id,
            title=message.title,
        )


__all__ = ["LogSink"]

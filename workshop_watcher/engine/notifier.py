"""Turn a change set into paced, independent outbound messages."""

from __future__ import annotations

import time
from typing import Callable, Mapping

import structlog

from ..errors import DeliveryError
from ..models import (
    ChangeKind,
    ChangeSet,
    ItemDetail,
    MessageField,
    NotificationMessage,
    NotificationReport,
)
from ..sinks import BaseSink
from .parser import page_url

KIND_COLORS = {
    ChangeKind.ADDED: 3066993,
    ChangeKind.UPDATED: 15844367,
    ChangeKind.REMOVED: 15158332,
}

UNKNOWN = "Unknown"


class Notifier:
    """Build one message per changed item and deliver them sequentially."""

    def __init__(
        self,
        sink: BaseSink,
        delay: float = 1.0,
        item_label: str = "Map",
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.sink = sink
        self.delay = delay
        self.item_label = item_label
        self._sleep = sleep
        self.logger = logger or structlog.get_logger("workshop_watcher").bind(component="notifier")

    def build_messages(
        self, changes: ChangeSet, prior_details: Mapping[str, ItemDetail]
    ) -> list[NotificationMessage]:
        messages = [self._detail_message(ChangeKind.ADDED, item) for item in changes.added]
        messages += [self._detail_message(ChangeKind.UPDATED, item) for item in changes.updated]
        messages += [self._removed_message(item_id, prior_details) for item_id in changes.removed]
        return messages

    def notify(
        self, changes: ChangeSet, prior_details: Mapping[str, ItemDetail]
    ) -> NotificationReport:
        report = NotificationReport()
        for index, message in enumerate(self.build_messages(changes, prior_details)):
            if index and self.delay:
                self._sleep(self.delay)
            try:
                self.sink.deliver(message)
            except DeliveryError as exc:
                report.failed += 1
                self.logger.error(
                    "notification_failed",
                    kind=message.kind.value,
                    item_id=message.item_id,
                    error=str(exc),
                )
                continue
            report.sent += 1
            self.logger.info("notification_sent", kind=message.kind.value, item_id=message.item_id)
        return report

    def _detail_message(self, kind: ChangeKind, item: ItemDetail) -> NotificationMessage:
        fields = [
            MessageField("File Size", item.file_size or UNKNOWN),
            MessageField("Posted Date", item.posted_date or UNKNOWN),
            MessageField("Updated Date", item.updated_date or UNKNOWN),
        ]
        if kind is ChangeKind.UPDATED and item.changelog_url:
            fields.append(
                MessageField("Changelog", f"[View Change Notes]({item.changelog_url})", inline=False)
            )
        return NotificationMessage(
            kind=kind,
            item_id=item.item_id,
            title=f"{kind.value.capitalize()} {self.item_label}: {item.title or UNKNOWN}",
            color=KIND_COLORS[kind],
            url=page_url(item.item_id),
            image_url=item.image_url,
            fields=fields,
        )

    def _removed_message(
        self, item_id: str, prior_details: Mapping[str, ItemDetail]
    ) -> NotificationMessage:
        prior = prior_details.get(item_id)
        title = prior.title if prior and prior.title else f"{UNKNOWN} {self.item_label}"
        return NotificationMessage(
            kind=ChangeKind.REMOVED,
            item_id=item_id,
            title=f"Removed {self.item_label}: {title}",
            color=KIND_COLORS[ChangeKind.REMOVED],
        )


__all__ = ["KIND_COLORS", "Notifier"]

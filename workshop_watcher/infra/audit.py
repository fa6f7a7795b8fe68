"""Append-only plain text history of detected changes."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

import structlog

from ..models import ChangeSet, ItemDetail, utc_now_iso


class AuditLog:
    """One timestamped block per cycle that changed the collection."""

    def __init__(
        self,
        path: Path,
        item_label: str = "Map",
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.path = Path(path)
        self.item_label = item_label
        self.logger = logger or structlog.get_logger("workshop_watcher").bind(component="audit")

    def format_block(
        self, changes: ChangeSet, prior_details: Mapping[str, ItemDetail], timestamp: str | None = None
    ) -> str:
        lines = [f"[{timestamp or utc_now_iso()}] Update Detected:"]
        if changes.added:
            lines.append(f"Added {self.item_label}s ({len(changes.added)}):")
            lines.extend(f" - {item.item_id}: {item.title}" for item in changes.added)
        if changes.updated:
            lines.append(f"Updated {self.item_label}s ({len(changes.updated)}):")
            lines.extend(f" - {item.item_id}: {item.title}" for item in changes.updated)
        if changes.removed:
            lines.append(f"Removed {self.item_label}s ({len(changes.removed)}):")
            for item_id in changes.removed:
                prior = prior_details.get(item_id)
                title = prior.title if prior and prior.title else "Unknown Title"
                lines.append(f" - {item_id}: {title}")
        return "\n".join(lines) + "\n"

    def append(self, changes: ChangeSet, prior_details: Mapping[str, ItemDetail]) -> bool:
        if changes.is_empty:
            return False
        block = self.format_block(changes, prior_details)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as stream:
                stream.write(block)
        except OSError as exc:
            self.logger.error("audit_append_failed", path=str(self.path), error=str(exc))
            return False
        return True


__all__ = ["AuditLog"]

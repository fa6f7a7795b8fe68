"""Runtime data structures flowing through the reconciliation pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping

ERROR_TITLE = "Error fetching data"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class CollectionSnapshot:
    """Point-in-time collection membership plus the raw upstream payload.

    ``raw`` is only ever compared for equality; nothing parses it after the
    collection source has extracted ``item_ids``.
    """

    item_ids: tuple[str, ...]
    raw: Any = None

    @classmethod
    def from_ids(cls, item_ids: Iterable[str], raw: Any = None) -> "CollectionSnapshot":
        seen: set[str] = set()
        unique: list[str] = []
        for item_id in item_ids:
            key = str(item_id)
            if key not in seen:
                seen.add(key)
                unique.append(key)
        return cls(item_ids=tuple(unique), raw=raw)

    def same_payload(self, other: "CollectionSnapshot | None") -> bool:
        return other is not None and self.raw == other.raw

    def __contains__(self, item_id: object) -> bool:
        return item_id in self.item_ids

    def __len__(self) -> int:
        return len(self.item_ids)


@dataclass(slots=True)
class ItemDetail:
    """Scraped metadata for one collection item."""

    item_id: str
    title: str | None
    file_size: str | None = None
    posted_date: str | None = None
    updated_date: str | None = None
    image_url: str | None = None
    changelog_url: str | None = None
    last_checked: str | None = None

    @classmethod
    def failed(cls, item_id: str) -> "ItemDetail":
        return cls(item_id=str(item_id), title=ERROR_TITLE, last_checked=utc_now_iso())

    @property
    def is_error(self) -> bool:
        return self.title == ERROR_TITLE

    def differs_from(self, stored: "ItemDetail") -> bool:
        """Return True when the fields that signal an upstream update changed."""

        return self.file_size != stored.file_size or self.updated_date != stored.updated_date

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ItemDetail":
        return cls(
            item_id=str(payload["item_id"]),
            title=payload.get("title"),
            file_size=payload.get("file_size"),
            posted_date=payload.get("posted_date"),
            updated_date=payload.get("updated_date"),
            image_url=payload.get("image_url"),
            changelog_url=payload.get("changelog_url"),
            last_checked=payload.get("last_checked"),
        )


class ChangeKind(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"


@dataclass(slots=True)
class ChangeSet:
    """Added, removed and updated items produced by one incremental cycle."""

    added: list[ItemDetail] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    updated: list[ItemDetail] = field(default_factory=list)

    def __post_init__(self) -> None:
        added = {item.item_id for item in self.added}
        updated = {item.item_id for item in self.updated}
        removed = set(self.removed)
        if added & updated or added & removed or updated & removed:
            raise ValueError("ChangeSet identifiers must be disjoint across added/removed/updated")

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.updated)

    def deltas(self) -> list[ItemDetail]:
        return [*self.added, *self.updated]

    def counts(self) -> dict[str, int]:
        return {
            ChangeKind.ADDED.value: len(self.added),
            ChangeKind.UPDATED.value: len(self.updated),
            ChangeKind.REMOVED.value: len(self.removed),
        }


@dataclass(slots=True)
class MessageField:
    name: str
    value: str
    inline: bool = True


@dataclass(slots=True)
class NotificationMessage:
    """One outbound message describing a single changed item."""

    kind: ChangeKind
    item_id: str
    title: str
    color: int
    url: str | None = None
    image_url: str | None = None
    fields: list[MessageField] = field(default_factory=list)

    def to_embed(self) -> dict[str, Any]:
        embed: dict[str, Any] = {"title": self.title, "color": self.color}
        if self.url:
            embed["url"] = self.url
        if self.image_url:
            embed["image"] = {"url": self.image_url}
        if self.fields:
            embed["fields"] = [
                {"name": item.name, "value": item.value, "inline": item.inline} for item in self.fields
            ]
        return embed


class CycleStatus(str, Enum):
    INITIALISED = "initialised"
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    SKIPPED_BUSY = "skipped_busy"
    NO_STATE = "no_state"
    STORE_UNAVAILABLE = "store_unavailable"
    COMMIT_FAILED = "commit_failed"
    REFRESHED = "refreshed"


@dataclass(slots=True)
class NotificationReport:
    sent: int = 0
    failed: int = 0


@dataclass(slots=True)
class CycleResult:
    """Outcome of one reconciliation run, incremental or full refresh."""

    kind: str
    status: CycleStatus
    changes: ChangeSet = field(default_factory=ChangeSet)
    notifications: NotificationReport = field(default_factory=NotificationReport)
    scraped: int = 0


__all__ = [
    "ERROR_TITLE",
    "ChangeKind",
    "ChangeSet",
    "CollectionSnapshot",
    "CycleResult",
    "CycleStatus",
    "ItemDetail",
    "MessageField",
    "NotificationMessage",
    "NotificationReport",
    "utc_now_iso",
]

"""Durable mirror of collection state: two whole-document JSON files."""

from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Iterable

from ..errors import StateStoreError
from ..models import CollectionSnapshot, ItemDetail, utc_now_iso

COLLECTION_DOCUMENT = "collection_data.json"
DETAILS_DOCUMENT = "workshop_items_details.json"


def atomic_write_json(path: Path, payload: Any) -> None:
    """Write JSON to a sibling temp file, fsync it, then rename over ``path``."""

    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as stream:
            json.dump(payload, stream, indent=2, ensure_ascii=False)
            stream.flush()
            os.fsync(stream.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise StateStoreError(f"Cannot read state document {path}: {exc}") from exc


@dataclass(slots=True)
class StoredState:
    """Last committed snapshot and the item detail map."""

    snapshot: CollectionSnapshot
    details: dict[str, ItemDetail] = field(default_factory=dict)
    last_updated: str | None = None


class StateStore:
    """Load and commit the collection snapshot and the item-detail map."""

    def __init__(self, data_dir: Path) -> None:
        self.data_dir = Path(data_dir)
        self.collection_path = self.data_dir / COLLECTION_DOCUMENT
        self.details_path = self.data_dir / DETAILS_DOCUMENT
        self._lock = Lock()

    def load(self) -> StoredState | None:
        """Return committed state, or ``None`` before the first commit."""

        with self._lock:
            return self._load_state()

    def _load_state(self) -> StoredState | None:
        if not self.collection_path.exists():
            return None
        document = _read_json(self.collection_path)
        details = self._load_details()
        try:
            snapshot = CollectionSnapshot.from_ids(document["item_ids"], raw=document.get("response"))
        except (KeyError, TypeError) as exc:
            raise StateStoreError(f"Malformed collection document {self.collection_path}") from exc
        return StoredState(snapshot=snapshot, details=details, last_updated=document.get("last_updated"))

    def _load_details(self) -> dict[str, ItemDetail]:
        if not self.details_path.exists():
            return {}
        document = _read_json(self.details_path)
        if not isinstance(document, dict):
            raise StateStoreError(f"Detail document must be a mapping: {self.details_path}")
        try:
            return {str(key): ItemDetail.from_dict(value) for key, value in document.items()}
        except (KeyError, TypeError, AttributeError) as exc:
            raise StateStoreError(f"Malformed detail document {self.details_path}") from exc

    def commit(
        self,
        snapshot: CollectionSnapshot,
        detail_deltas: Iterable[ItemDetail],
        removed_ids: Iterable[str],
    ) -> StoredState:
        """Merge deltas, drop removed ids and rewrite both documents in full.

        The detail map is written first: if the process dies before the
        snapshot lands, the next cycle still sees a changed payload and
        re-derives whatever was lost.
        """

        with self._lock:
            try:
                details = self._load_details()
                for detail in detail_deltas:
                    details[detail.item_id] = detail
                for item_id in removed_ids:
                    details.pop(str(item_id), None)
                timestamp = utc_now_iso()
                atomic_write_json(
                    self.details_path,
                    {item_id: detail.to_dict() for item_id, detail in details.items()},
                )
                self._write_snapshot(snapshot, timestamp)
            except (OSError, TypeError, ValueError) as exc:
                raise StateStoreError(f"Committing state to {self.data_dir} failed: {exc}") from exc
        return StoredState(snapshot=snapshot, details=details, last_updated=timestamp)

    def commit_refresh(self, refreshed: Iterable[ItemDetail]) -> StoredState | None:
        """Merge re-scraped details against whatever snapshot is on disk now.

        Details for ids that are no longer members are dropped, and the
        snapshot written back is the one read under the same lock, so a
        removal committed while the refresh was scraping stays removed.
        Returns ``None`` when there is no state to refresh.
        """

        with self._lock:
            current = self._load_state()
            if current is None:
                return None
            details = current.details
            for detail in refreshed:
                if detail.item_id in current.snapshot:
                    details[detail.item_id] = detail
            try:
                timestamp = utc_now_iso()
                atomic_write_json(
                    self.details_path,
                    {item_id: detail.to_dict() for item_id, detail in details.items()},
                )
                self._write_snapshot(current.snapshot, timestamp)
            except (OSError, TypeError, ValueError) as exc:
                raise StateStoreError(f"Committing refresh to {self.data_dir} failed: {exc}") from exc
        return StoredState(snapshot=current.snapshot, details=details, last_updated=timestamp)

    def touch_snapshot(self, snapshot: CollectionSnapshot) -> None:
        """Replace only the collection document, leaving details untouched."""

        with self._lock:
            try:
                self._write_snapshot(snapshot, utc_now_iso())
            except (OSError, TypeError, ValueError) as exc:
                raise StateStoreError(f"Writing snapshot to {self.data_dir} failed: {exc}") from exc

    def _write_snapshot(self, snapshot: CollectionSnapshot, timestamp: str) -> None:
        atomic_write_json(
            self.collection_path,
            {
                "item_ids": list(snapshot.item_ids),
                "response": snapshot.raw,
                "last_updated": timestamp,
            },
        )


__all__ = [
    "COLLECTION_DOCUMENT",
    "DETAILS_DOCUMENT",
    "StateStore",
    "StoredState",
    "atomic_write_json",
]

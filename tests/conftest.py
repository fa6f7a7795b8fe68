"""Shared fixtures: stub upstreams, a recording sink and a wired pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from workshop_watcher.config import ConfigLocator, ConfigRepository
from workshop_watcher.engine import Notifier, Reconciler, RunLock, ScrapeSequencer
from workshop_watcher.errors import DeliveryError
from workshop_watcher.infra import AuditLog, StateStore
from workshop_watcher.models import CollectionSnapshot, ItemDetail, NotificationMessage
from workshop_watcher.sinks import BaseSink


@pytest.fixture(autouse=True)
def watcher_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep config, data and log files of every test inside ``tmp_path``."""

    monkeypatch.setenv("WORKSHOP_WATCHER_HOME", str(tmp_path))
    for name in ("STEAM_API_KEY", "WORKSHOP_COLLECTION_ID", "DISCORD_WEBHOOK_URL"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def make_snapshot(item_ids: Iterable[str], revision: int = 0) -> CollectionSnapshot:
    ids = list(item_ids)
    raw = {"resultcount": 1, "collectiondetails": [{"children": ids, "revision": revision}]}
    return CollectionSnapshot.from_ids(ids, raw=raw)


def make_detail(item_id: str, **overrides: Any) -> ItemDetail:
    base: dict[str, Any] = {
        "item_id": item_id,
        "title": f"Map {item_id}",
        "file_size": "10.000 MB",
        "posted_date": "1 Jan, 2024 @ 9:00am",
        "updated_date": "2 Jan, 2024 @ 9:00am",
        "image_url": f"https://images.example/{item_id}.jpg",
        "changelog_url": f"https://steamcommunity.com/sharedfiles/filedetails/changelog/{item_id}",
        "last_checked": "2024-01-03T00:00:00Z",
    }
    base.update(overrides)
    return ItemDetail(**base)


class StubCollectionSource:
    def __init__(self, snapshot: CollectionSnapshot | None = None) -> None:
        self.snapshot = snapshot
        self.error: Exception | None = None
        self.calls = 0
        self.closed = False

    def fetch_collection(self) -> CollectionSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        assert self.snapshot is not None
        return self.snapshot

    def close(self) -> None:
        self.closed = True


class StubDetailSource:
    """Serve canned details; unknown ids come back as failed fetches."""

    def __init__(self, details: Iterable[ItemDetail] = ()) -> None:
        self.details = {detail.item_id: detail for detail in details}
        self.calls: list[str] = []
        self.closed = False

    def set(self, *details: ItemDetail) -> None:
        for detail in details:
            self.details[detail.item_id] = detail

    def fetch_item_detail(self, item_id: str) -> ItemDetail:
        self.calls.append(item_id)
        detail = self.details.get(item_id)
        if detail is None:
            return ItemDetail.failed(item_id)
        return replace(detail)

    def close(self) -> None:
        self.closed = True


class RecordingSink(BaseSink):
    def __init__(self, fail_for: Iterable[str] = ()) -> None:
        self.messages: list[NotificationMessage] = []
        self.fail_for = set(fail_for)

    def deliver(self, message: NotificationMessage) -> None:
        if message.item_id in self.fail_for:
            raise DeliveryError(f"refused {message.item_id}")
        self.messages.append(message)


@dataclass
class Pipeline:
    collection: StubCollectionSource
    details: StubDetailSource
    sink: RecordingSink
    store: StateStore
    audit: AuditLog
    run_lock: RunLock
    sequencer: ScrapeSequencer
    notifier: Notifier
    reconciler: Reconciler
    sleeps: list[float] = field(default_factory=list)


@pytest.fixture
def stub_collection() -> StubCollectionSource:
    return StubCollectionSource()


@pytest.fixture
def stub_details() -> StubDetailSource:
    return StubDetailSource()


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def state_store(tmp_path: Path) -> StateStore:
    return StateStore(tmp_path / "data")


@pytest.fixture
def pipeline(
    tmp_path: Path,
    stub_collection: StubCollectionSource,
    stub_details: StubDetailSource,
    recording_sink: RecordingSink,
    state_store: StateStore,
) -> Pipeline:
    sleeps: list[float] = []
    run_lock = RunLock()
    sequencer = ScrapeSequencer(stub_details, run_lock, delay=0.0, sleep=sleeps.append)
    notifier = Notifier(recording_sink, delay=0.0, sleep=sleeps.append)
    audit = AuditLog(tmp_path / "data" / "update_log.txt")
    reconciler = Reconciler(stub_collection, sequencer, state_store, notifier, audit)
    return Pipeline(
        collection=stub_collection,
        details=stub_details,
        sink=recording_sink,
        store=state_store,
        audit=audit,
        run_lock=run_lock,
        sequencer=sequencer,
        notifier=notifier,
        reconciler=reconciler,
        sleeps=sleeps,
    )


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def detail_factory() -> Callable[..., ItemDetail]:
    return make_detail


@pytest.fixture
def snapshot_factory() -> Callable[..., CollectionSnapshot]:
    return make_snapshot

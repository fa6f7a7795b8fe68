from __future__ import annotations

import pytest

from workshop_watcher.models import (
    ERROR_TITLE,
    ChangeKind,
    ChangeSet,
    CollectionSnapshot,
    ItemDetail,
    MessageField,
    NotificationMessage,
)


def test_snapshot_deduplicates_preserving_order() -> None:
    snapshot = CollectionSnapshot.from_ids(["3", "1", "3", 2], raw={"a": 1})
    assert snapshot.item_ids == ("3", "1", "2")
    assert "2" in snapshot
    assert len(snapshot) == 3


def test_snapshot_payload_comparison_uses_raw_only() -> None:
    first = CollectionSnapshot.from_ids(["1"], raw={"rev": 1})
    same = CollectionSnapshot.from_ids(["1"], raw={"rev": 1})
    other = CollectionSnapshot.from_ids(["1"], raw={"rev": 2})
    assert first.same_payload(same)
    assert not first.same_payload(other)
    assert not first.same_payload(None)


def test_failed_detail_carries_sentinel_title() -> None:
    detail = ItemDetail.failed(42)
    assert detail.item_id == "42"
    assert detail.title == ERROR_TITLE
    assert detail.is_error
    assert detail.file_size is None
    assert detail.last_checked.endswith("Z")


def test_differs_from_only_watches_size_and_update_date(detail_factory) -> None:
    stored = detail_factory("1")
    assert not detail_factory("1", title="Renamed", image_url=None).differs_from(stored)
    assert detail_factory("1", file_size="12.000 MB").differs_from(stored)
    assert detail_factory("1", updated_date=None).differs_from(stored)


def test_detail_dict_round_trip_keeps_missing_fields(detail_factory) -> None:
    detail = detail_factory("7", updated_date=None, image_url=None)
    assert ItemDetail.from_dict(detail.to_dict()) == detail

    partial = ItemDetail.from_dict({"item_id": 8, "title": "Only title"})
    assert partial.item_id == "8"
    assert partial.file_size is None
    assert partial.changelog_url is None


def test_change_set_rejects_overlapping_ids(detail_factory) -> None:
    with pytest.raises(ValueError):
        ChangeSet(added=[detail_factory("1")], updated=[detail_factory("1")])
    with pytest.raises(ValueError):
        ChangeSet(added=[detail_factory("1")], removed=["1"])
    with pytest.raises(ValueError):
        ChangeSet(updated=[detail_factory("2")], removed=["2"])


def test_change_set_helpers(detail_factory) -> None:
    changes = ChangeSet(added=[detail_factory("1")], removed=["3"], updated=[detail_factory("2")])
    assert not changes.is_empty
    assert [item.item_id for item in changes.deltas()] == ["1", "2"]
    assert changes.counts() == {"added": 1, "updated": 1, "removed": 1}
    assert ChangeSet().is_empty


def test_message_embed_omits_empty_parts() -> None:
    bare = NotificationMessage(kind=ChangeKind.REMOVED, item_id="1", title="Removed Map: X", color=15158332)
    assert bare.to_embed() == {"title": "Removed Map: X", "color": 15158332}

    full = NotificationMessage(
        kind=ChangeKind.ADDED,
        item_id="2",
        title="Added Map: Y",
        color=3066993,
        url="https://example.com/2",
        image_url="https://example.com/2.jpg",
        fields=[MessageField("File Size", "1 MB")],
    )
    embed = full.to_embed()
    assert embed["url"] == "https://example.com/2"
    assert embed["image"] == {"url": "https://example.com/2.jpg"}
    assert embed["fields"] == [{"name": "File Size", "value": "1 MB", "inline": True}]

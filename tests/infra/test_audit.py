from __future__ import annotations

from pathlib import Path

from workshop_watcher.infra.audit import AuditLog
from workshop_watcher.models import ChangeSet


def test_format_block_lists_every_section(tmp_path: Path, detail_factory) -> None:
    audit = AuditLog(tmp_path / "update_log.txt")
    changes = ChangeSet(
        added=[detail_factory("1", title="New Map")],
        removed=["3", "4"],
        updated=[detail_factory("2", title="Dust Arena")],
    )

    block = audit.format_block(changes, {"3": detail_factory("3", title="Old Fort")}, timestamp="2024-01-01T00:00:00Z")

    assert block == (
        "[2024-01-01T00:00:00Z] Update Detected:\n"
        "Added Maps (1):\n"
        " - 1: New Map\n"
        "Updated Maps (1):\n"
        " - 2: Dust Arena\n"
        "Removed Maps (2):\n"
        " - 3: Old Fort\n"
        " - 4: Unknown Title\n"
    )


def test_append_accumulates_blocks(tmp_path: Path, detail_factory) -> None:
    path = tmp_path / "nested" / "update_log.txt"
    audit = AuditLog(path, item_label="Mod")

    assert audit.append(ChangeSet(added=[detail_factory("1")]), {})
    assert audit.append(ChangeSet(removed=["1"]), {})

    content = path.read_text(encoding="utf-8")
    assert content.count("Update Detected:") == 2
    assert "Added Mods (1):" in content
    assert "Removed Mods (1):" in content


def test_append_skips_empty_change_set(tmp_path: Path) -> None:
    audit = AuditLog(tmp_path / "update_log.txt")
    assert audit.append(ChangeSet(), {}) is False
    assert not audit.path.exists()


def test_append_failure_is_logged_not_raised(tmp_path: Path, detail_factory) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    audit = AuditLog(blocker / "update_log.txt")
    assert audit.append(ChangeSet(added=[detail_factory("1")]), {}) is False

"""Decide what changed in the collection and keep the mirror consistent."""

from __future__ import annotations

from typing import Callable, Sequence

import structlog

from ..errors import CollectionUnavailable, StateStoreError
from ..infra import AuditLog, StateStore
from ..models import ChangeSet, CollectionSnapshot, CycleResult, CycleStatus, ItemDetail
from .collection import CollectionSource
from .notifier import Notifier
from .sequencer import ScrapeProgress, ScrapeSequencer

CHECK = "check"
REFRESH = "refresh"


class Reconciler:
    """Run incremental checks and full refreshes against the state store.

    The incremental check only re-scrapes existing members when the raw
    collection payload changed, which bounds scrape volume to real upstream
    activity. The full refresh re-scrapes everything and never classifies or
    notifies.
    """

    def __init__(
        self,
        collection_source: CollectionSource,
        sequencer: ScrapeSequencer,
        store: StateStore,
        notifier: Notifier,
        audit_log: AuditLog,
        progress_factory: Callable[[str], ScrapeProgress] | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.collection_source = collection_source
        self.sequencer = sequencer
        self.store = store
        self.notifier = notifier
        self.audit_log = audit_log
        self.progress_factory = progress_factory
        self.logger = logger or structlog.get_logger("workshop_watcher").bind(component="reconciler")

    # ------------------------------------------------------------------
    # Incremental check
    # ------------------------------------------------------------------
    def check_for_updates(self) -> CycleResult:
        try:
            snapshot = self.collection_source.fetch_collection()
        except CollectionUnavailable as exc:
            self.logger.warning("collection_fetch_failed", error=str(exc))
            return CycleResult(CHECK, CycleStatus.UPSTREAM_UNAVAILABLE)

        try:
            prior = self.store.load()
        except StateStoreError as exc:
            self.logger.error("state_load_failed", error=str(exc))
            return CycleResult(CHECK, CycleStatus.STORE_UNAVAILABLE)
        if prior is None:
            return self._initialise(snapshot)

        known = prior.details
        members = set(snapshot.item_ids)
        to_add = [item_id for item_id in snapshot.item_ids if item_id not in known]
        to_remove = [item_id for item_id in known if item_id not in members]

        added = self._scrape(to_add, "new")
        if added is None:
            return CycleResult(CHECK, CycleStatus.SKIPPED_BUSY)
        scraped = len(added)

        updated: list[ItemDetail] = []
        payload_changed = not snapshot.same_payload(prior.snapshot)
        if payload_changed:
            candidates = [item_id for item_id in snapshot.item_ids if item_id in known]
            if candidates:
                self.logger.info("collection_payload_changed", candidates=len(candidates))
            fresh = self._scrape(candidates, "updates")
            if fresh is None:
                return CycleResult(CHECK, CycleStatus.SKIPPED_BUSY, scraped=scraped)
            scraped += len(fresh)
            updated = [detail for detail in fresh if detail.differs_from(known[detail.item_id])]

        changes = ChangeSet(added=added, removed=to_remove, updated=updated)
        if changes.is_empty:
            if payload_changed:
                self._touch(snapshot)
            self.logger.info("no_changes_detected", payload_changed=payload_changed)
            return CycleResult(CHECK, CycleStatus.UNCHANGED, changes=changes, scraped=scraped)

        self.logger.info("collection_changed", **changes.counts())
        report = self.notifier.notify(changes, known)
        result = CycleResult(
            CHECK, CycleStatus.CHANGED, changes=changes, notifications=report, scraped=scraped
        )
        try:
            self.store.commit(snapshot, changes.deltas(), changes.removed)
        except StateStoreError as exc:
            self.logger.error("state_commit_failed", error=str(exc))
            result.status = CycleStatus.COMMIT_FAILED
            return result
        self.logger.info("state_committed", items=len(snapshot))
        self.audit_log.append(changes, known)
        return result

    def _initialise(self, snapshot: CollectionSnapshot) -> CycleResult:
        self.logger.info("initial_state_build", items=len(snapshot))
        details = self._scrape(snapshot.item_ids, "initial")
        if details is None:
            return CycleResult(CHECK, CycleStatus.SKIPPED_BUSY)
        try:
            self.store.commit(snapshot, details, [])
        except StateStoreError as exc:
            self.logger.error("state_commit_failed", error=str(exc))
            return CycleResult(CHECK, CycleStatus.COMMIT_FAILED, scraped=len(details))
        self.logger.info("state_committed", items=len(snapshot))
        return CycleResult(CHECK, CycleStatus.INITIALISED, scraped=len(details))

    # ------------------------------------------------------------------
    # Full refresh
    # ------------------------------------------------------------------
    def full_refresh(self) -> CycleResult:
        try:
            prior = self.store.load()
        except StateStoreError as exc:
            self.logger.error("state_load_failed", error=str(exc))
            return CycleResult(REFRESH, CycleStatus.STORE_UNAVAILABLE)
        if prior is None:
            self.logger.info("refresh_skipped_no_state")
            return CycleResult(REFRESH, CycleStatus.NO_STATE)

        self.logger.info("full_refresh_started", items=len(prior.snapshot))
        details = self._scrape(prior.snapshot.item_ids, "refresh")
        if details is None:
            return CycleResult(REFRESH, CycleStatus.SKIPPED_BUSY)

        # Membership may have changed while scraping; the store filters against disk.
        try:
            committed = self.store.commit_refresh(details)
        except StateStoreError as exc:
            self.logger.error("state_commit_failed", error=str(exc))
            return CycleResult(REFRESH, CycleStatus.COMMIT_FAILED, scraped=len(details))
        if committed is None:
            self.logger.info("refresh_skipped_no_state")
            return CycleResult(REFRESH, CycleStatus.NO_STATE, scraped=len(details))
        self.logger.info("full_refresh_completed", items=len(committed.snapshot))
        return CycleResult(REFRESH, CycleStatus.REFRESHED, scraped=len(details))

    # ------------------------------------------------------------------
    def _scrape(self, item_ids: Sequence[str], label: str) -> list[ItemDetail] | None:
        """Scrape ids through the sequencer; ``None`` when the batch was skipped."""

        if not item_ids:
            return []
        progress = self.progress_factory(label) if self.progress_factory else None
        details = self.sequencer.scrape(item_ids, progress=progress)
        if len(details) != len(item_ids):
            self.logger.info("cycle_aborted_scrape_busy", batch=label, requested=len(item_ids))
            return None
        return details

    def _touch(self, snapshot: CollectionSnapshot) -> None:
        try:
            self.store.touch_snapshot(snapshot)
        except StateStoreError as exc:
            self.logger.error("snapshot_write_failed", error=str(exc))


__all__ = ["CHECK", "REFRESH", "Reconciler"]

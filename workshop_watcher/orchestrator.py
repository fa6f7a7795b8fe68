"""Wire configuration into the reconciliation pipeline and its scheduler."""

from __future__ import annotations

import time
from typing import Callable

from .config import ConfigRepository, WatcherConfig
from .engine import (
    CollectionSource,
    DetailSource,
    Notifier,
    Reconciler,
    RunLock,
    ScrapeSequencer,
    SteamCollectionSource,
    build_detail_source,
)
from .errors import ConfigurationError
from .infra import AuditLog, StateStore, StoredState
from .logging_conf import component_logger
from .models import CycleResult
from .sinks import BaseSink, DiscordWebhookSink, LogSink
from .ui import ProgressReporter


class Orchestrator:
    """Central coordinator owning every pipeline component for one collection."""

    def __init__(
        self,
        config_repository: ConfigRepository,
        scheduler=None,
        *,
        collection_source: CollectionSource | None = None,
        detail_source: DetailSource | None = None,
        sink: BaseSink | None = None,
        run_lock: RunLock | None = None,
        sleep: Callable[[float], None] = time.sleep,
        progress_enabled: bool = False,
        dry_run: bool = False,
    ) -> None:
        self.config_repository = config_repository
        self.config: WatcherConfig = config_repository.load_config()
        self.scheduler = scheduler
        self.logger = component_logger("orchestrator")

        self.collection_source = collection_source or SteamCollectionSource(self.config.collection)
        self.detail_source = detail_source or build_detail_source(self.config)
        self.sink = sink or self._build_sink(dry_run)
        self.run_lock = run_lock or RunLock()
        self.store = StateStore(config_repository.data_dir(self.config))
        self.audit_log = AuditLog(
            config_repository.audit_log_path(self.config),
            item_label=self.config.notifications.item_label,
        )
        self.sequencer = ScrapeSequencer(
            self.detail_source,
            self.run_lock,
            delay=self.config.scrape.request_delay,
            sleep=sleep,
        )
        self.notifier = Notifier(
            self.sink,
            delay=self.config.notifications.delay,
            item_label=self.config.notifications.item_label,
            sleep=sleep,
        )
        progress_factory = (
            (lambda label: ProgressReporter(label=label)) if progress_enabled else None
        )
        self.reconciler = Reconciler(
            self.collection_source,
            self.sequencer,
            self.store,
            self.notifier,
            self.audit_log,
            progress_factory=progress_factory,
        )

    def _build_sink(self, dry_run: bool) -> BaseSink:
        webhook_url = self.config.notifications.webhook_url
        if dry_run or not webhook_url:
            if not dry_run:
                self.logger.warning("webhook_not_configured")
            return LogSink()
        return DiscordWebhookSink(webhook_url, timeout=self.config.notifications.timeout)

    def _require_collection(self) -> None:
        if not self.config.collection.collection_id:
            raise ConfigurationError(
                "collection.collection_id is not set; edit the config file or set WORKSHOP_COLLECTION_ID"
            )

    # ------------------------------------------------------------------
    def run_check(self, dry_run: bool = False) -> CycleResult:
        """Run one incremental check; ``dry_run`` routes messages to the log."""

        self._require_collection()
        sink = self.notifier.sink
        if dry_run:
            self.notifier.sink = LogSink()
        try:
            result = self.reconciler.check_for_updates()
        finally:
            self.notifier.sink = sink
        self._log_result(result)
        return result

    def run_refresh(self) -> CycleResult:
        self._require_collection()
        result = self.reconciler.full_refresh()
        self._log_result(result)
        return result

    def register_schedules(self) -> None:
        if self.scheduler is None:
            raise ConfigurationError("No scheduler attached to the orchestrator")
        self._require_collection()
        self.scheduler.schedule_jobs(self.config.schedule, self._check_job, self._refresh_job)
        self.scheduler.start()

    def _check_job(self) -> None:
        self._guarded(self.run_check, "check")

    def _refresh_job(self) -> None:
        self._guarded(self.run_refresh, "refresh")

    def _guarded(self, run: Callable[[], CycleResult], kind: str) -> None:
        # Jobs never propagate into the scheduler thread.
        try:
            run()
        except Exception:  # noqa: BLE001
            self.logger.exception("cycle_crashed", kind=kind)

    def _log_result(self, result: CycleResult) -> None:
        self.logger.info(
            "cycle_finished",
            kind=result.kind,
            status=result.status.value,
            scraped=result.scraped,
            notifications_sent=result.notifications.sent,
            notifications_failed=result.notifications.failed,
            **result.changes.counts(),
        )

    def stored_state(self) -> StoredState | None:
        return self.store.load()

    def close(self) -> None:
        if self.scheduler is not None:
            self.scheduler.shutdown()
        for resource in (self.collection_source, self.detail_source, self.sink):
            close = getattr(resource, "close", None)
            if close is not None:
                close()


__all__ = ["Orchestrator"]

"""Throttled, mutually exclusive scrape batches."""

from __future__ import annotations

import time
from contextlib import contextmanager
from threading import Lock
from typing import Callable, Iterator, Protocol, Sequence

import structlog

from ..models import ItemDetail
from .fetcher import DetailSource


class RunLock:
    """Process-wide guard allowing at most one active scrape batch.

    Callers that find the lock held skip their work; nothing ever waits on it.
    """

    def __init__(self) -> None:
        self._lock = Lock()

    def try_acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self) -> Iterator[bool]:
        acquired = self.try_acquire()
        try:
            yield acquired
        finally:
            if acquired:
                self.release()


class ScrapeProgress(Protocol):
    def start(self, total: int) -> None: ...

    def advance(self, item_id: str, failed: bool = False) -> None: ...

    def close(self) -> None: ...


class ScrapeSequencer:
    """Drive a detail source across ordered ids, one fetch at a time."""

    def __init__(
        self,
        source: DetailSource,
        run_lock: RunLock,
        delay: float = 7.0,
        sleep: Callable[[float], None] = time.sleep,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.source = source
        self.run_lock = run_lock
        self.delay = delay
        self._sleep = sleep
        self.logger = logger or structlog.get_logger("workshop_watcher").bind(component="sequencer")

    def scrape(
        self, item_ids: Sequence[str], progress: ScrapeProgress | None = None
    ) -> list[ItemDetail]:
        """Return one detail per id in input order, or ``[]`` if a batch is already running."""

        if not item_ids:
            return []
        with self.run_lock.hold() as acquired:
            if not acquired:
                self.logger.info("scrape_skipped_busy", requested=len(item_ids))
                return []
            self.logger.info("scrape_started", items=len(item_ids))
            if progress is not None:
                progress.start(len(item_ids))
            results: list[ItemDetail] = []
            try:
                for item_id in item_ids:
                    detail = self.source.fetch_item_detail(item_id)
                    results.append(detail)
                    if progress is not None:
                        progress.advance(item_id, failed=detail.is_error)
                    # Pause after every fetch while still holding the lock.
                    if self.delay:
                        self._sleep(self.delay)
            finally:
                if progress is not None:
                    progress.close()
            failed = sum(1 for detail in results if detail.is_error)
            self.logger.info("scrape_completed", items=len(results), failed=failed)
            return results


__all__ = ["RunLock", "ScrapeProgress", "ScrapeSequencer"]

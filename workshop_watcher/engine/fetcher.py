"""Item detail sources: one per content-access strategy.

Every source honours the same contract: ``fetch_item_detail`` never raises.
Network errors, timeouts, bad statuses and unparseable bodies are logged and
turned into ``ItemDetail.failed`` so a single bad item cannot abort a batch.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol

import httpx
import structlog

from ..config import DetailStrategy, WatcherConfig
from ..errors import DetailFetchError
from ..models import ItemDetail, utc_now_iso
from .parser import WorkshopPageParser, page_url, parse_published_file

PUBLISHED_FILE_ENDPOINT = "/ISteamRemoteStorage/GetPublishedFileDetails/v1/"


class DetailSource(Protocol):
    """Contract consumed by the scrape sequencer."""

    def fetch_item_detail(self, item_id: str) -> ItemDetail:
        """Return details for one item, encoding failure in the result."""

    def close(self) -> None:
        """Release underlying resources."""


class BaseDetailSource(ABC):
    """Shared failure capture around a strategy specific ``_fetch``."""

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str | None = None,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.timeout = timeout
        self.logger = logger or structlog.get_logger("workshop_watcher").bind(component="detail_source")
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": user_agent} if user_agent else None,
        )

    def fetch_item_detail(self, item_id: str) -> ItemDetail:
        item_id = str(item_id)
        self.logger.info("item_fetch_started", item_id=item_id)
        try:
            return self._fetch(item_id)
        except (httpx.HTTPError, DetailFetchError, ValueError, KeyError, TypeError, AttributeError) as exc:
            self.logger.warning(
                "detail_fetch_failed",
                item_id=item_id,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return ItemDetail.failed(item_id)

    @abstractmethod
    def _fetch(self, item_id: str) -> ItemDetail:
        """Fetch and parse one item; may raise on any failure."""

    def close(self) -> None:
        self._client.close()


class WorkshopPageDetailSource(BaseDetailSource):
    """Scrape the public workshop page of an item."""

    def __init__(self, *args, parser: WorkshopPageParser | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.parser = parser or WorkshopPageParser()

    def _fetch(self, item_id: str) -> ItemDetail:
        response = self._client.get(page_url(item_id), timeout=self.timeout)
        response.raise_for_status()
        return self.parser.parse(item_id, response.text, utc_now_iso())


class PublishedFileApiDetailSource(BaseDetailSource):
    """Query the Web API ``GetPublishedFileDetails`` endpoint."""

    def __init__(self, *args, api_base_url: str = "https://api.steampowered.com", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.api_base_url = api_base_url.rstrip("/")

    def _fetch(self, item_id: str) -> ItemDetail:
        response = self._client.post(
            f"{self.api_base_url}{PUBLISHED_FILE_ENDPOINT}",
            data={"itemcount": "1", "publishedfileids[0]": item_id},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return parse_published_file(item_id, response.json(), utc_now_iso())


def build_detail_source(config: WatcherConfig, client: httpx.Client | None = None) -> BaseDetailSource:
    scrape = config.scrape
    if scrape.detail_strategy is DetailStrategy.API:
        return PublishedFileApiDetailSource(
            timeout=scrape.fetch_timeout,
            user_agent=scrape.user_agent,
            client=client,
            api_base_url=config.collection.api_base_url,
        )
    return WorkshopPageDetailSource(
        timeout=scrape.fetch_timeout,
        user_agent=scrape.user_agent,
        client=client,
    )


__all__ = [
    "BaseDetailSource",
    "DetailSource",
    "PublishedFileApiDetailSource",
    "WorkshopPageDetailSource",
    "build_detail_source",
]

"""Upstream collection listing."""

from __future__ import annotations

from typing import Any, Protocol

import httpx
import structlog

from ..config import CollectionConfig
from ..errors import CollectionUnavailable
from ..models import CollectionSnapshot

COLLECTION_ENDPOINT = "/ISteamRemoteStorage/GetCollectionDetails/v1/"


class CollectionSource(Protocol):
    def fetch_collection(self) -> CollectionSnapshot:
        """Return current membership or raise ``CollectionUnavailable``."""

    def close(self) -> None:
        """Release underlying resources."""


class SteamCollectionSource:
    """Read collection membership through ``GetCollectionDetails``."""

    def __init__(
        self,
        config: CollectionConfig,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("workshop_watcher").bind(component="collection")
        self._client = client or httpx.Client(follow_redirects=True, timeout=config.timeout)

    @property
    def url(self) -> str:
        return f"{self.config.api_base_url.rstrip('/')}{COLLECTION_ENDPOINT}"

    def fetch_collection(self) -> CollectionSnapshot:
        params = {
            "key": self.config.api_key,
            "collectioncount": "1",
            "publishedfileids[0]": self.config.collection_id,
        }
        try:
            response = self._client.post(self.url, data=params, timeout=self.config.timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise CollectionUnavailable(
                f"Fetching collection {self.config.collection_id} failed: {exc}"
            ) from exc
        return self.parse(payload)

    def parse(self, payload: Any) -> CollectionSnapshot:
        try:
            raw = payload["response"]
            details = raw["collectiondetails"][0]
            result = details.get("result", 1)
            item_ids = [child["publishedfileid"] for child in details.get("children", [])]
        except (KeyError, IndexError, TypeError, AttributeError) as exc:
            raise CollectionUnavailable(
                f"Unexpected collection payload for {self.config.collection_id}"
            ) from exc
        # A failed lookup has no children; reading it as empty would remove every item.
        if result != 1:
            raise CollectionUnavailable(
                f"Collection {self.config.collection_id} lookup returned result {result}"
            )
        snapshot = CollectionSnapshot.from_ids(item_ids, raw=raw)
        self.logger.debug("collection_fetched", items=len(snapshot))
        return snapshot

    def close(self) -> None:
        self._client.close()


__all__ = ["CollectionSource", "SteamCollectionSource"]

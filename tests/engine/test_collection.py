from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from workshop_watcher.config import CollectionConfig
from workshop_watcher.engine.collection import SteamCollectionSource
from workshop_watcher.errors import CollectionUnavailable


def _payload(*ids: str, result: int = 1) -> dict:
    return {
        "response": {
            "result": 1,
            "resultcount": 1,
            "collectiondetails": [
                {
                    "publishedfileid": "999",
                    "result": result,
                    "children": [
                        {"publishedfileid": item_id, "sortorder": index, "filetype": 0}
                        for index, item_id in enumerate(ids)
                    ],
                }
            ],
        }
    }


def _source(handler) -> SteamCollectionSource:
    config = CollectionConfig(collection_id="999", api_key="secret", api_base_url="https://api.example")
    return SteamCollectionSource(config, client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_fetch_collection_posts_lookup_and_reads_children() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json=_payload("10", "20", "10"))

    source = _source(handler)
    snapshot = source.fetch_collection()
    source.close()

    assert captured["url"] == "https://api.example/ISteamRemoteStorage/GetCollectionDetails/v1/"
    assert captured["form"] == {
        "key": ["secret"],
        "collectioncount": ["1"],
        "publishedfileids[0]": ["999"],
    }
    assert snapshot.item_ids == ("10", "20")
    assert snapshot.raw == _payload("10", "20", "10")["response"]


def test_empty_collection_is_valid() -> None:
    payload = _payload()
    del payload["response"]["collectiondetails"][0]["children"]
    snapshot = _source(lambda request: httpx.Response(200, json=payload)).fetch_collection()
    assert snapshot.item_ids == ()


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(200, text="<html>maintenance</html>"),
        httpx.Response(200, json={"response": {}}),
        httpx.Response(200, json=_payload(result=9)),
    ],
)
def test_failures_raise_collection_unavailable(response: httpx.Response) -> None:
    with pytest.raises(CollectionUnavailable):
        _source(lambda request: response).fetch_collection()


def test_network_error_raises_collection_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(CollectionUnavailable):
        _source(handler).fetch_collection()

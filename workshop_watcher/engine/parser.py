"""HTML and JSON parsing for workshop item details."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from selectolax.parser import HTMLParser

from ..errors import DetailFetchError
from ..models import ItemDetail

WORKSHOP_PAGE_URL = "https://steamcommunity.com/sharedfiles/filedetails/?id={item_id}"
CHANGELOG_URL = "https://steamcommunity.com/sharedfiles/filedetails/changelog/{item_id}"


def page_url(item_id: str) -> str:
    return WORKSHOP_PAGE_URL.format(item_id=item_id)


class WorkshopPageParser:
    """Extract item metadata from a rendered workshop page."""

    title_selector = ".workshopItemTitle"
    image_selector = 'meta[property="og:image"]'
    stats_selector = ".detailsStatsContainerRight .detailsStatRight"
    tab_links_selector = ".tabsLinks a"

    def parse(self, item_id: str, html: str, checked_at: str) -> ItemDetail:
        tree = HTMLParser(html)
        title_node = tree.css_first(self.title_selector)
        title = title_node.text(strip=True) if title_node else ""
        if not title:
            raise DetailFetchError(f"No workshop title found for item {item_id}")

        # File size, posted date and updated date, in page order. Items never
        # updated only show the first two.
        stats = [node.text(strip=True) or None for node in tree.css(self.stats_selector)]
        stats += [None] * (3 - len(stats))

        image_node = tree.css_first(self.image_selector)
        image_url = image_node.attributes.get("content") if image_node else None

        return ItemDetail(
            item_id=item_id,
            title=title,
            file_size=stats[0],
            posted_date=stats[1],
            updated_date=stats[2],
            image_url=image_url or None,
            changelog_url=self._changelog_url(tree, item_id),
            last_checked=checked_at,
        )

    def _changelog_url(self, tree: HTMLParser, item_id: str) -> str:
        for node in tree.css(self.tab_links_selector):
            if "Change Notes" in node.text(strip=True):
                href = (node.attributes.get("href") or "").strip()
                if href:
                    return href
        return f"{page_url(item_id)}&section=changelog"


def _format_size(size: Any) -> str | None:
    try:
        size_bytes = int(size)
    except (TypeError, ValueError):
        return None
    return f"{size_bytes / 1_000_000:,.3f} MB"


def _format_timestamp(value: Any) -> str | None:
    try:
        moment = datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None
    # Same shape as the page rendering, e.g. "5 Mar, 2024 @ 3:07pm"
    hour = moment.hour % 12 or 12
    meridiem = "am" if moment.hour < 12 else "pm"
    return f"{moment.day} {moment:%b}, {moment.year} @ {hour}:{moment:%M}{meridiem}"


def parse_published_file(item_id: str, payload: Mapping[str, Any], checked_at: str) -> ItemDetail:
    """Map a ``GetPublishedFileDetails`` response onto an ItemDetail."""

    try:
        details = payload["response"]["publishedfiledetails"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise DetailFetchError(f"Malformed published file payload for item {item_id}") from exc
    if not isinstance(details, Mapping):
        raise DetailFetchError(f"Published file entry for item {item_id} is not an object")
    if details.get("result") != 1 or not details.get("title"):
        raise DetailFetchError(f"Published file lookup failed for item {item_id}")
    updated = details.get("time_updated")
    created = details.get("time_created")
    return ItemDetail(
        item_id=item_id,
        title=str(details["title"]).strip(),
        file_size=_format_size(details.get("file_size")),
        posted_date=_format_timestamp(created),
        updated_date=_format_timestamp(updated) if updated and updated != created else None,
        image_url=details.get("preview_url") or None,
        changelog_url=CHANGELOG_URL.format(item_id=item_id),
        last_checked=checked_at,
    )


__all__ = [
    "WorkshopPageParser",
    "page_url",
    "parse_published_file",
]

"""Engine components: collection listing → throttled scrape → reconcile → notify."""

from .collection import CollectionSource, SteamCollectionSource
from .fetcher import (
    BaseDetailSource,
    DetailSource,
    PublishedFileApiDetailSource,
    WorkshopPageDetailSource,
    build_detail_source,
)
from .notifier import Notifier
from .parser import WorkshopPageParser
from .reconciler import Reconciler
from .sequencer import RunLock, ScrapeSequencer

__all__ = [
    "BaseDetailSource",
    "CollectionSource",
    "DetailSource",
    "Notifier",
    "PublishedFileApiDetailSource",
    "Reconciler",
    "RunLock",
    "ScrapeSequencer",
    "SteamCollectionSource",
    "WorkshopPageDetailSource",
    "WorkshopPageParser",
    "build_detail_source",
]

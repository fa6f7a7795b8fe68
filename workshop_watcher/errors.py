"""Exception hierarchy shared across the watcher."""

from __future__ import annotations


class WatcherError(Exception):
    """Base class for all watcher failures."""


class ConfigurationError(WatcherError):
    """Raised when the configuration cannot drive a cycle."""


class CollectionUnavailable(WatcherError):
    """The upstream collection listing could not be fetched or read."""


class DetailFetchError(WatcherError):
    """A single item detail could not be fetched or parsed."""


class DeliveryError(WatcherError):
    """A notification sink failed to deliver one message."""


class StateStoreError(WatcherError):
    """Reading or writing the durable state documents failed."""


__all__ = [
    "CollectionUnavailable",
    "ConfigurationError",
    "DeliveryError",
    "DetailFetchError",
    "StateStoreError",
    "WatcherError",
]

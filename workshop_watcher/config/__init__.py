"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    CollectionConfig,
    DetailStrategy,
    NotificationConfig,
    ScheduleConfig,
    ScheduleType,
    SchedulesConfig,
    ScrapeConfig,
    WatcherConfig,
)

__all__ = [
    "CollectionConfig",
    "ConfigLocator",
    "ConfigRepository",
    "DetailStrategy",
    "NotificationConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SchedulesConfig",
    "ScrapeConfig",
    "WatcherConfig",
]

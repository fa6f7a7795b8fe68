"""Pydantic models describing the watcher configuration file."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class ScheduleType(str, Enum):
    """Trigger kinds supported by the scheduler adapter."""

    CRON = "cron"
    INTERVAL = "interval"


class DetailStrategy(str, Enum):
    """How item details are obtained from upstream."""

    PAGE = "page"
    API = "api"


class ScheduleConfig(BaseModel):
    """When one periodic job should fire."""

    type: ScheduleType = Field(default=ScheduleType.INTERVAL)
    value: Any = Field(
        default=60,
        description="Cron expression, interval seconds or IntervalTrigger kwargs, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL:
            if isinstance(self.value, bool) or not isinstance(self.value, (int, float, dict)):
                raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
            if isinstance(self.value, (int, float)) and self.value <= 0:
                raise ValueError("Interval seconds must be positive")
        return self


class SchedulesConfig(BaseModel):
    """The incremental check and full refresh triggers."""

    check: ScheduleConfig = Field(default_factory=lambda: ScheduleConfig(value=60))
    refresh: ScheduleConfig = Field(default_factory=lambda: ScheduleConfig(value={"hours": 6}))
    run_at_startup: bool = True


class CollectionConfig(BaseModel):
    """Upstream collection identity and Web API access."""

    collection_id: str = ""
    api_key: str = ""
    api_base_url: str = "https://api.steampowered.com"
    timeout: float = 15.0

    @field_validator("collection_id", "api_key", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()


class ScrapeConfig(BaseModel):
    """Per-item detail fetching and throttling."""

    detail_strategy: DetailStrategy = DetailStrategy.PAGE
    request_delay: float = 7.0
    fetch_timeout: float = 10.0
    user_agent: str | None = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )

    @field_validator("request_delay")
    @classmethod
    def _non_negative_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("request_delay must be >= 0")
        return value

    @field_validator("fetch_timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("fetch_timeout must be > 0")
        return value


class NotificationConfig(BaseModel):
    """Outbound webhook delivery."""

    webhook_url: str | None = None
    delay: float = 1.0
    item_label: str = "Map"
    timeout: float = 10.0

    @field_validator("delay")
    @classmethod
    def _non_negative_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("delay must be >= 0")
        return value

    @field_validator("webhook_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> str | None:
        if value is None or not str(value).strip():
            return None
        return str(value).strip()


class WatcherConfig(BaseModel):
    """Root configuration document."""

    collection: CollectionConfig = Field(default_factory=CollectionConfig)
    scrape: ScrapeConfig = Field(default_factory=ScrapeConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    schedule: SchedulesConfig = Field(default_factory=SchedulesConfig)
    data_dir: Path = Field(default=Path("data"))
    audit_log: Path = Field(default=Path("update_log.txt"))

    @field_validator("data_dir", "audit_log", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    def resolved_data_dir(self, base_dir: Path) -> Path:
        if not self.data_dir.is_absolute():
            return (base_dir / self.data_dir).resolve()
        return self.data_dir

    def resolved_audit_log(self, base_dir: Path) -> Path:
        """Audit log paths are relative to the data directory."""

        if not self.audit_log.is_absolute():
            return (self.resolved_data_dir(base_dir) / self.audit_log).resolve()
        return self.audit_log


__all__ = [
    "CollectionConfig",
    "DetailStrategy",
    "NotificationConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SchedulesConfig",
    "ScrapeConfig",
    "WatcherConfig",
]

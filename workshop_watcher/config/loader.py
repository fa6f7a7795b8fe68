"""Configuration loading helpers for the workshop watcher."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml

from ..errors import ConfigurationError
from .models import WatcherConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "watcher_config.yaml"
HOME_ENV = "WORKSHOP_WATCHER_HOME"

# Secrets are usually injected by the host rather than committed to the file.
ENV_OVERRIDES = {
    "STEAM_API_KEY": ("collection", "api_key"),
    "WORKSHOP_COLLECTION_ID": ("collection", "collection_id"),
    "DISCORD_WEBHOOK_URL": ("notifications", "webhook_url"),
}


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


def _apply_env_overrides(payload: dict) -> dict:
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            payload.setdefault(section, {})[key] = value
    return payload


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV)
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.project_root, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        for extension in CONFIG_EXTENSIONS:
            candidate = self.project_root / f"watcher_config{extension}"
            if candidate.exists():
                return candidate
        return self.project_root / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: WatcherConfig | None = None

    def load_config(self) -> WatcherConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        try:
            if path.exists():
                payload = _read_file(path)
            else:
                self.save_config(WatcherConfig())
                payload = {}
            config = WatcherConfig.model_validate(_apply_env_overrides(payload))
        except (ValueError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Invalid configuration in {path}: {exc}") from exc
        self._cache = config
        return config

    def save_config(self, config: WatcherConfig) -> Path:
        path = self.locator.config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = None
        return path

    def data_dir(self, config: WatcherConfig | None = None) -> Path:
        config = config or self.load_config()
        path = config.resolved_data_dir(self.locator.project_root)
        path.mkdir(parents=True, exist_ok=True)
        return path

    def audit_log_path(self, config: WatcherConfig | None = None) -> Path:
        config = config or self.load_config()
        return config.resolved_audit_log(self.locator.project_root)


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS", "CONFIG_FILENAME"]

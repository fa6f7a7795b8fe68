from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from workshop_watcher.config import ConfigLocator, ConfigRepository, DetailStrategy, WatcherConfig
from workshop_watcher.errors import ConfigurationError


def test_locator_uses_env_home_and_creates_directories(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "watcher-home"
    monkeypatch.setenv("WORKSHOP_WATCHER_HOME", str(home))
    locator = ConfigLocator()
    assert locator.project_root == home.resolve()
    assert locator.logs_dir.exists()
    assert locator.config_path() == home.resolve() / "watcher_config.yaml"


def test_locator_prefers_existing_json_config(tmp_path: Path) -> None:
    (tmp_path / "watcher_config.json").write_text("{}", encoding="utf-8")
    assert ConfigLocator(project_root=tmp_path).config_path().name == "watcher_config.json"


def test_missing_config_writes_defaults(temp_config_repository: ConfigRepository) -> None:
    config = temp_config_repository.load_config()
    path = temp_config_repository.locator.config_path()
    assert path.exists()
    assert config == WatcherConfig()
    stored = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert stored["scrape"]["request_delay"] == 7.0


def test_save_and_reload_round_trip(temp_config_repository: ConfigRepository) -> None:
    config = WatcherConfig.model_validate(
        {
            "collection": {"collection_id": "12345"},
            "scrape": {"detail_strategy": "api", "request_delay": 2},
            "notifications": {"webhook_url": "https://discord.example/hook"},
        }
    )
    temp_config_repository.save_config(config)
    loaded = temp_config_repository.load_config()
    assert loaded == config
    assert loaded.scrape.detail_strategy is DetailStrategy.API


def test_load_config_is_cached(temp_config_repository: ConfigRepository) -> None:
    assert temp_config_repository.load_config() is temp_config_repository.load_config()


def test_env_overrides_secrets(temp_config_repository: ConfigRepository, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STEAM_API_KEY", "k-123")
    monkeypatch.setenv("WORKSHOP_COLLECTION_ID", "777")
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", "https://discord.example/hook")
    config = temp_config_repository.load_config()
    assert config.collection.api_key == "k-123"
    assert config.collection.collection_id == "777"
    assert config.notifications.webhook_url == "https://discord.example/hook"


def test_invalid_config_raises_configuration_error(temp_config_repository: ConfigRepository) -> None:
    temp_config_repository.locator.config_path().write_text(
        "scrape:\n  request_delay: -1\n", encoding="utf-8"
    )
    with pytest.raises(ConfigurationError):
        temp_config_repository.load_config()


def test_paths_resolve_against_project_root(temp_config_repository: ConfigRepository, tmp_path: Path) -> None:
    data_dir = temp_config_repository.data_dir()
    assert data_dir == (tmp_path / "data").resolve()
    assert data_dir.exists()
    assert temp_config_repository.audit_log_path() == data_dir / "update_log.txt"

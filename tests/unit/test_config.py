"""Tests for config.py: TOML config with environment overrides."""

from __future__ import annotations

from pathlib import Path

import pytest

from studbook_sync.config import (
    TEMPLATE_REMOTE_URL,
    RemoteConfig,
    StoreConfig,
    StudbookConfig,
    get_studbook_dir,
)


class TestRemoteConfig:
    """Tests for RemoteConfig."""

    def test_defaults(self) -> None:
        config = RemoteConfig()
        assert config.base_url == ""
        assert config.max_retries == 3
        assert config.initial_backoff == 0.5
        assert config.is_configured is False

    @pytest.mark.parametrize(
        "url",
        ["", "   ", TEMPLATE_REMOTE_URL, "https://placeholder.example.org"],
    )
    def test_not_configured(self, url: str) -> None:
        assert RemoteConfig(base_url=url).is_configured is False

    def test_configured_without_api_key(self) -> None:
        assert RemoteConfig(base_url="https://abc.supabase.co").is_configured is True

    def test_from_dict_clamps(self) -> None:
        config = RemoteConfig.from_dict(
            {"max_retries": 99, "timeout": 0, "initial_backoff": -1, "base_url": "http://x/"}
        )
        assert config.max_retries == 10
        assert config.timeout == 1.0
        assert config.initial_backoff == 0.0
        assert config.base_url == "http://x"

    def test_from_dict_bad_types(self) -> None:
        config = RemoteConfig.from_dict({"max_retries": "many", "timeout": "slow"})
        assert config.max_retries == 3
        assert config.timeout == 30.0

    def test_round_trip(self) -> None:
        config = RemoteConfig(base_url="https://db.example.org", api_key="k", max_retries=5)
        assert RemoteConfig.from_dict(config.to_dict()) == config


class TestStoreConfig:
    def test_unknown_backend_falls_back(self) -> None:
        assert StoreConfig.from_dict({"backend": "redis"}).backend == "sqlite"

    def test_memory_backend(self) -> None:
        assert StoreConfig.from_dict({"backend": "MEMORY"}).backend == "memory"


class TestStudbookConfig:
    """Tests for load/save and environment overrides."""

    def test_studbook_dir_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STUDBOOK_DIR", str(tmp_path))
        assert get_studbook_dir() == tmp_path

    def test_load_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = StudbookConfig.load(tmp_path / "config.toml")
        assert config.data_dir == tmp_path
        assert config.remote.is_configured is False
        assert config.store.backend == "sqlite"
        assert config.store_path == tmp_path / "studbook.db"

    def test_save_and_load(self, tmp_path: Path) -> None:
        config = StudbookConfig(
            data_dir=tmp_path,
            remote=RemoteConfig(base_url="https://db.example.org", api_key="anon", timeout=12.0),
            store=StoreConfig(backend="memory"),
        )
        config.save()

        loaded = StudbookConfig.load(tmp_path / "config.toml")
        assert loaded.remote == config.remote
        assert loaded.store == config.store
        assert not list(tmp_path.glob("*.tmp"))

    def test_save_rejects_quotes(self, tmp_path: Path) -> None:
        config = StudbookConfig(data_dir=tmp_path, remote=RemoteConfig(api_key='bad"key'))
        with pytest.raises(ValueError, match="api_key"):
            config.save()
        assert not (tmp_path / "config.toml").exists()

    def test_corrupt_file_ignored(self, tmp_path: Path) -> None:
        (tmp_path / "config.toml").write_text("this is [not toml", encoding="utf-8")
        config = StudbookConfig.load(tmp_path / "config.toml")
        assert config.remote.base_url == ""

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        StudbookConfig(
            data_dir=tmp_path, remote=RemoteConfig(base_url="https://file.example.org")
        ).save()
        monkeypatch.setenv("STUDBOOK_REMOTE_URL", "https://env.example.org")
        monkeypatch.setenv("STUDBOOK_MAX_RETRIES", "1")

        config = StudbookConfig.load(tmp_path / "config.toml")

        assert config.remote.base_url == "https://env.example.org"
        assert config.remote.max_retries == 1

    def test_with_env_overrides_explicit_mapping(self, tmp_path: Path) -> None:
        config = StudbookConfig(data_dir=tmp_path).with_env_overrides(
            {
                "STUDBOOK_API_KEY": "from-env",
                "STUDBOOK_STORE_BACKEND": "memory",
                "STUDBOOK_STORE_PATH": str(tmp_path / "other.db"),
            }
        )
        assert config.remote.api_key == "from-env"
        assert config.store.backend == "memory"
        assert config.store_path == tmp_path / "other.db"

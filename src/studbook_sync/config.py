"""Configuration for studbook-sync.

Configuration is stored in ~/.studbook/config.toml (or $STUDBOOK_DIR).
Environment variables override whatever the file says, so a deployment can
point the CLI at a remote store without editing the file.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TEMPLATE_REMOTE_URL = "https://your-project-id.supabase.co"

_STORE_BACKENDS = frozenset({"sqlite", "memory"})

# Characters allowed inside a quoted TOML string we write ourselves
_SAFE_VALUE_PATTERN = re.compile(r'^[^"\\\n\r]*$')


def get_studbook_dir() -> Path:
    """Get the studbook data directory.

    Priority:
    1. STUDBOOK_DIR environment variable
    2. ~/.studbook/
    """
    env_dir = os.environ.get("STUDBOOK_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".studbook"


def _toml_str(value: str, name: str) -> str:
    if not _SAFE_VALUE_PATTERN.match(value):
        raise ValueError(f"Invalid characters in {name} for config save")
    return f'"{value}"'


@dataclass(frozen=True)
class RemoteConfig:
    """Where the remote store lives and how hard to try reaching it."""

    base_url: str = ""
    api_key: str = ""
    timeout: float = 30.0
    max_retries: int = 3
    initial_backoff: float = 0.5

    @property
    def is_configured(self) -> bool:
        """False for an empty URL, the template URL, or a placeholder."""
        url = self.base_url.strip()
        return bool(url) and url != TEMPLATE_REMOTE_URL and "placeholder" not in url

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "api_key": self.api_key,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
            "initial_backoff": self.initial_backoff,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteConfig:
        try:
            max_retries = max(0, min(int(data.get("max_retries", 3)), 10))
        except (ValueError, TypeError):
            max_retries = 3
        try:
            timeout = max(1.0, float(data.get("timeout", 30.0)))
        except (ValueError, TypeError):
            timeout = 30.0
        try:
            initial_backoff = max(0.0, float(data.get("initial_backoff", 0.5)))
        except (ValueError, TypeError):
            initial_backoff = 0.5
        return cls(
            base_url=str(data.get("base_url", "")).rstrip("/"),
            api_key=str(data.get("api_key", "")),
            timeout=timeout,
            max_retries=max_retries,
            initial_backoff=initial_backoff,
        )


@dataclass(frozen=True)
class StoreConfig:
    """Which local backend to use, and where its file lives."""

    backend: str = "sqlite"
    path: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"backend": self.backend, "path": self.path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoreConfig:
        backend = str(data.get("backend", "sqlite")).lower()
        if backend not in _STORE_BACKENDS:
            logger.warning("Unknown store backend %r, falling back to sqlite", backend)
            backend = "sqlite"
        return cls(backend=backend, path=str(data.get("path", "")))


@dataclass
class StudbookConfig:
    """Top-level configuration.

    Storage location: ~/.studbook/config.toml
    Local cache: ~/.studbook/studbook.db (SQLite) unless ``store.path`` says otherwise
    """

    data_dir: Path = field(default_factory=get_studbook_dir)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    version: str = "1.0"

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.toml"

    @property
    def store_path(self) -> Path:
        """Path of the SQLite cache file."""
        if self.store.path:
            return Path(self.store.path).expanduser()
        return self.data_dir / "studbook.db"

    @classmethod
    def load(cls, config_path: Path | None = None) -> StudbookConfig:
        """Load configuration from file (defaults if absent), then apply env overrides."""
        if config_path is None:
            data_dir = get_studbook_dir()
            config_path = data_dir / "config.toml"
        else:
            data_dir = config_path.parent

        data: dict[str, Any] = {}
        if config_path.exists():
            try:
                with open(config_path, "rb") as f:
                    data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                logger.warning("Ignoring unreadable config %s: %s", config_path, e)

        config = cls(
            data_dir=data_dir,
            remote=RemoteConfig.from_dict(data.get("remote", {})),
            store=StoreConfig.from_dict(data.get("store", {})),
            version=str(data.get("version", "1.0")),
        )
        return config.with_env_overrides()

    def with_env_overrides(self, environ: dict[str, str] | None = None) -> StudbookConfig:
        """Return a copy with STUDBOOK_* environment variables applied."""
        env = os.environ if environ is None else environ

        remote_data = self.remote.to_dict()
        store_data = self.store.to_dict()
        if "STUDBOOK_REMOTE_URL" in env:
            remote_data["base_url"] = env["STUDBOOK_REMOTE_URL"]
        if "STUDBOOK_API_KEY" in env:
            remote_data["api_key"] = env["STUDBOOK_API_KEY"]
        if "STUDBOOK_TIMEOUT" in env:
            remote_data["timeout"] = env["STUDBOOK_TIMEOUT"]
        if "STUDBOOK_MAX_RETRIES" in env:
            remote_data["max_retries"] = env["STUDBOOK_MAX_RETRIES"]
        if "STUDBOOK_STORE_BACKEND" in env:
            store_data["backend"] = env["STUDBOOK_STORE_BACKEND"]
        if "STUDBOOK_STORE_PATH" in env:
            store_data["path"] = env["STUDBOOK_STORE_PATH"]

        return replace(
            self,
            remote=RemoteConfig.from_dict(remote_data),
            store=StoreConfig.from_dict(store_data),
        )

    def save(self) -> None:
        """Save configuration to TOML file (atomic write via temp+rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Build TOML content manually (tomllib is read-only)
        lines = [
            "# studbook-sync configuration",
            "",
            f"version = {_toml_str(self.version, 'version')}",
            "",
            "# Remote store",
            "[remote]",
            f"base_url = {_toml_str(self.remote.base_url, 'base_url')}",
            f"api_key = {_toml_str(self.remote.api_key, 'api_key')}",
            f"timeout = {float(self.remote.timeout)}",
            f"max_retries = {int(self.remote.max_retries)}",
            f"initial_backoff = {float(self.remote.initial_backoff)}",
            "",
            "# Local cache",
            "[store]",
            f"backend = {_toml_str(self.store.backend, 'backend')}",
            f"path = {_toml_str(self.store.path, 'path')}",
        ]

        content = "\n".join(lines) + "\n"
        fd, tmp_path = tempfile.mkstemp(dir=str(self.data_dir), suffix=".toml.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(tmp_path).replace(self.config_path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

"""Backend factory for creating the local cache based on configuration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from studbook_sync.storage.memory_backend import InMemoryBackend
from studbook_sync.storage.sqlite_backend import SQLiteBackend

if TYPE_CHECKING:
    from studbook_sync.config import StudbookConfig
    from studbook_sync.storage.base import KeyValueBackend

logger = logging.getLogger(__name__)


def create_backend(config: StudbookConfig) -> KeyValueBackend:
    """
    Create a key-value backend based on configuration.

    Args:
        config: Loaded configuration

    Returns:
        Ready-to-use backend

    Examples:
        # Durable cache in ~/.studbook/studbook.db
        backend = create_backend(StudbookConfig.load())

        # Ephemeral cache
        config = StudbookConfig(store=StoreConfig(backend="memory"))
        backend = create_backend(config)
    """
    if config.store.backend == "memory":
        logger.debug("Using in-memory local store")
        return InMemoryBackend()

    backend = SQLiteBackend(config.store_path)
    backend.initialize()
    logger.debug("Using SQLite local store at %s", backend.db_path)
    return backend

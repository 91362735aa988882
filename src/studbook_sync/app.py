"""Application context: builds and wires every component once."""

from __future__ import annotations

import logging
from typing import Any

from studbook_sync.config import StudbookConfig
from studbook_sync.services.credentials import HttpCredentialService
from studbook_sync.storage.base import KeyValueBackend
from studbook_sync.storage.factory import create_backend
from studbook_sync.storage.record_store import LocalRecordStore
from studbook_sync.sync.background import BackgroundTasks
from studbook_sync.sync.orchestrator import SyncOrchestrator
from studbook_sync.sync.reconcile import SyncService
from studbook_sync.sync.transport import RemoteTransport

logger = logging.getLogger(__name__)


class StudbookContext:
    """
    Owns the store, transport, orchestrator and sync service for one session.

    Usage:
        async with StudbookContext(StudbookConfig.load()) as ctx:
            ctx.store.save_species(species)
            await ctx.sync.sync()

    Leaving the context waits for background pushes, then closes the
    transport and the backend.
    """

    def __init__(
        self,
        config: StudbookConfig | None = None,
        *,
        backend: KeyValueBackend | None = None,
        transport: RemoteTransport | None = None,
    ) -> None:
        self.config = config if config is not None else StudbookConfig.load()
        self.backend = backend if backend is not None else create_backend(self.config)

        remote = self.config.remote
        if transport is None and remote.is_configured:
            transport = RemoteTransport(
                remote.base_url,
                api_key=remote.api_key,
                timeout=remote.timeout,
                max_retries=remote.max_retries,
                initial_backoff=remote.initial_backoff,
            )
        if transport is None:
            logger.info("No remote store configured, running local only")
        self.transport = transport

        self.tasks = BackgroundTasks()
        self.orchestrator = SyncOrchestrator(transport, configured=transport is not None)
        self.store = LocalRecordStore(self.backend, pusher=self.orchestrator, tasks=self.tasks)
        self.sync = SyncService(self.store, self.orchestrator)
        self.credentials = (
            HttpCredentialService(transport, self.store) if transport is not None else None
        )

        token = self.store.get_token()
        if transport is not None and token:
            transport.set_token(token)

    @property
    def is_remote_configured(self) -> bool:
        return self.orchestrator.is_configured

    async def close(self) -> None:
        await self.tasks.drain()
        if self.transport is not None:
            await self.transport.close()
        self.backend.close()

    async def __aenter__(self) -> StudbookContext:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

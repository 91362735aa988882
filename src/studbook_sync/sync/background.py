"""Registry for fire-and-forget push tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from studbook_sync.errors import RemoteUnavailableError

logger = logging.getLogger(__name__)

FailureListener = Callable[[str, BaseException], None]


class BackgroundTasks:
    """Keeps strong references to background tasks and logs their failures.

    Nothing awaits a fire-and-forget push, so every task gets a done-callback
    that reports its exception. ``drain()`` waits for whatever is still in
    flight, which is what shutdown and tests need.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()
        self._listeners: list[FailureListener] = []

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def add_failure_listener(self, listener: FailureListener) -> None:
        self._listeners.append(listener)

    def spawn(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        name: str,
    ) -> asyncio.Task[Any] | None:
        """Schedule ``coro`` on the running loop.

        Returns None (and closes the coroutine) when no loop is running.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.info("No running event loop, %s not scheduled", name)
            return None

        task = loop.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return

        name = task.get_name()
        if isinstance(exc, RemoteUnavailableError):
            logger.warning("Background %s failed, remote unreachable: %s", name, exc)
        else:
            logger.error("Background %s raised: %s", name, exc, exc_info=exc)

        for listener in self._listeners:
            try:
                listener(name, exc)
            except Exception:
                logger.exception("Failure listener for %s raised", name)

    async def drain(self) -> None:
        """Wait until no background task is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

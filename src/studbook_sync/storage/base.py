"""Abstract base class for local key-value backends."""

from __future__ import annotations

from abc import ABC, abstractmethod


class KeyValueBackend(ABC):
    """
    Durable string-to-string map holding one entry per collection.

    Implementations are synchronous: a write has completed when the call
    returns. Failures are raised as ``BackendError``.
    """

    @abstractmethod
    def read(self, key: str) -> str | None:
        """Return the stored string, or None if the key is absent."""
        ...

    @abstractmethod
    def write(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous entry."""
        ...

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``. Absent keys are ignored."""
        ...

    @abstractmethod
    def keys(self) -> list[str]:
        """All stored keys, sorted."""
        ...

    def close(self) -> None:  # noqa: B027
        """Release resources. No-op by default."""

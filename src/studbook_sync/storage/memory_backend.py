"""In-memory key-value backend."""

from __future__ import annotations

from studbook_sync.storage.base import KeyValueBackend


class InMemoryBackend(KeyValueBackend):
    """Dict-backed backend for tests and throwaway sessions.

    Data is lost when the process exits.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._entries: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self._entries.get(key)

    def write(self, key: str, value: str) -> None:
        self._entries[key] = value

    def remove(self, key: str) -> None:
        self._entries.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._entries)

"""In-process key-value store."""

from __future__ import annotations


class MemoryKeyValueStore:
    """Dictionary-backed :class:`~crake_wallet.storage.base.KeyValueStore`.

    Nothing survives the process; used for tests and throwaway sessions.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        pass

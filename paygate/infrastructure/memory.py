"""In-process key-value store for development and tests."""

from __future__ import annotations


class MemoryKeyValueStore:
    """Dictionary-backed store; data lives as long as the process."""

    def __init__(self) -> None:
        self._data: dict[tuple[str, str], str] = {}

    async def get(self, namespace: str, key: str) -> str | None:
        return self._data.get((namespace, key))

    async def put(self, namespace: str, key: str, value: str) -> None:
        self._data[(namespace, key)] = value

    async def insert(self, namespace: str, key: str, value: str) -> bool:
        if (namespace, key) in self._data:
            return False
        self._data[(namespace, key)] = value
        return True

    async def replace(self, namespace: str, key: str, expected: str, value: str) -> bool:
        if self._data.get((namespace, key)) != expected:
            return False
        self._data[(namespace, key)] = value
        return True

    async def delete(self, namespace: str, key: str) -> bool:
        return self._data.pop((namespace, key), None) is not None

    async def scan(self, namespace: str, prefix: str = "") -> list[tuple[str, str]]:
        return sorted(
            (key, value)
            for (space, key), value in self._data.items()
            if space == namespace and key.startswith(prefix)
        )

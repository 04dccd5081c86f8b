"""Persistence capability shared by the order ledger and the session store."""

from __future__ import annotations

from typing import Protocol


class StorageError(Exception):
    """Raised when the underlying store cannot complete an operation."""


class KeyValueStore(Protocol):
    """Namespaced key-value storage with atomic insert and compare-and-swap.

    Values are opaque strings; callers own serialization. Every mutating call
    is durable once it returns.
    """

    async def get(self, namespace: str, key: str) -> str | None:
        ...

    async def put(self, namespace: str, key: str, value: str) -> None:
        ...

    async def insert(self, namespace: str, key: str, value: str) -> bool:
        """Store ``value`` only if ``key`` is absent. Returns ``False`` otherwise."""
        ...

    async def replace(self, namespace: str, key: str, expected: str, value: str) -> bool:
        """Swap the stored value only if it still equals ``expected``."""
        ...

    async def delete(self, namespace: str, key: str) -> bool:
        ...

    async def scan(self, namespace: str, prefix: str = "") -> list[tuple[str, str]]:
        ...

"""SQLAlchemy implementation of the key-value persistence capability."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from paygate.domain.common import StorageError
from paygate.infrastructure.database.models import KeyValueEntry


class SqlKeyValueStore:
    """Each call runs in its own committed transaction.

    The store outlives any single request (lifecycle timers write long after
    the request that started them returned), so it owns a session factory
    instead of borrowing a request-scoped session.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise StorageError(str(exc)) from exc

    async def get(self, namespace: str, key: str) -> str | None:
        async with self._transaction() as session:
            stmt = select(KeyValueEntry.value).where(
                KeyValueEntry.namespace == namespace,
                KeyValueEntry.key == key,
            )
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def put(self, namespace: str, key: str, value: str) -> None:
        async with self._transaction() as session:
            entry = await session.get(KeyValueEntry, (namespace, key))
            if entry is None:
                session.add(KeyValueEntry(namespace=namespace, key=key, value=value))
            else:
                entry.value = value

    async def insert(self, namespace: str, key: str, value: str) -> bool:
        try:
            async with self._transaction() as session:
                session.add(KeyValueEntry(namespace=namespace, key=key, value=value))
        except IntegrityError:
            return False
        return True

    async def replace(self, namespace: str, key: str, expected: str, value: str) -> bool:
        async with self._transaction() as session:
            stmt = (
                update(KeyValueEntry)
                .where(
                    KeyValueEntry.namespace == namespace,
                    KeyValueEntry.key == key,
                    KeyValueEntry.value == expected,
                )
                .values(value=value)
                .execution_options(synchronize_session=False)
            )
            result = await session.execute(stmt)
            return result.rowcount == 1

    async def delete(self, namespace: str, key: str) -> bool:
        async with self._transaction() as session:
            stmt = delete(KeyValueEntry).where(
                KeyValueEntry.namespace == namespace,
                KeyValueEntry.key == key,
            )
            result = await session.execute(stmt)
            return result.rowcount > 0

    async def scan(self, namespace: str, prefix: str = "") -> list[tuple[str, str]]:
        async with self._transaction() as session:
            stmt = select(KeyValueEntry.key, KeyValueEntry.value).where(KeyValueEntry.namespace == namespace)
            if prefix:
                stmt = stmt.where(KeyValueEntry.key.startswith(prefix, autoescape=True))
            result = await session.execute(stmt.order_by(KeyValueEntry.key))
            return [(row.key, row.value) for row in result.all()]

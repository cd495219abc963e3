"""String-keyed persisted store used for small serialized values."""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Protocol

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mapsearch.db.models.core import KeyValueEntry

SessionProvider = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class KeyValueStore(Protocol):
    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...


class SqlKeyValueStore:
    """Stores JSON values in the ``key_value_entries`` table, one row per key."""

    def __init__(self, session_provider: SessionProvider) -> None:
        self._session_provider = session_provider

    async def get(self, key: str) -> Any | None:
        async with self._session_provider() as session:
            entry = await self._find(session, key)
            return entry.value if entry is not None else None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self._write(key, value)
        except IntegrityError:
            # Another writer inserted the row between our lookup and insert.
            await self._write(key, value)

    async def _write(self, key: str, value: Any) -> None:
        async with self._session_provider() as session:
            entry = await self._find(session, key)
            if entry is None:
                session.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
            await session.commit()

    @staticmethod
    async def _find(session: AsyncSession, key: str) -> KeyValueEntry | None:
        stmt = select(KeyValueEntry).where(KeyValueEntry.key == key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()


__all__ = ["KeyValueStore", "SessionProvider", "SqlKeyValueStore"]

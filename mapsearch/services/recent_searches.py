"""Bounded most-recent-first list of past search queries."""

from __future__ import annotations

import asyncio
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from mapsearch.config import RecentSearchSettings
from mapsearch.logging import logger
from mapsearch.services.key_value import KeyValueStore


class RecentSearchesService:
    """Keeps recent queries de-duplicated, bounded and persisted after every change.

    The in-memory list is authoritative: a failed write is logged and the
    process keeps serving the list it has.
    """

    def __init__(
        self,
        store: KeyValueStore,
        settings: RecentSearchSettings | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or RecentSearchSettings()
        self._searches: list[str] = []
        self._save_lock = asyncio.Lock()

    @property
    def searches(self) -> tuple[str, ...]:
        return tuple(self._searches)

    @property
    def max_count(self) -> int:
        return self._settings.max_count

    def __len__(self) -> int:
        return len(self._searches)

    def __contains__(self, text: object) -> bool:
        return text in self._searches

    async def load(self) -> tuple[str, ...]:
        """Replace the in-memory list with the persisted one."""

        try:
            raw = await self._store.get(self._settings.storage_key)
        except SQLAlchemyError:
            logger.warning(
                "recent_searches_load_failed",
                key=self._settings.storage_key,
                exc_info=True,
            )
            raw = None
        self._searches = self._normalize(raw)
        logger.debug("recent_searches_loaded", count=len(self._searches))
        return self.searches

    async def add(self, text: str) -> None:
        if text in self._searches:
            if self._settings.duplicate_policy == "ignore":
                return
            self._searches.remove(text)

        if len(self._searches) >= self.max_count:
            self._searches.pop()

        self._searches.insert(0, text)
        await self._save()

    async def delete(self, index: int) -> None:
        if index < 0 or index >= len(self._searches):
            return
        del self._searches[index]
        await self._save()

    async def clear(self) -> None:
        self._searches = []
        await self._save()

    async def update_recent(self, text: str) -> None:
        """Move an existing entry to the front; unknown text is ignored."""

        if text not in self._searches:
            return
        self._searches.remove(text)
        await self.add(text)

    def _normalize(self, raw: Any) -> list[str]:
        if not isinstance(raw, list):
            return []
        seen: set[str] = set()
        searches: list[str] = []
        for item in raw:
            if not isinstance(item, str) or item in seen:
                continue
            seen.add(item)
            searches.append(item)
        return searches[: self.max_count]

    async def _save(self) -> None:
        # Writes are serialized and each one takes the list as it is when it
        # gets the lock, so the last write always holds the newest state.
        async with self._save_lock:
            searches = list(self._searches)
            try:
                await self._store.set(self._settings.storage_key, searches)
            except SQLAlchemyError:
                logger.warning(
                    "recent_searches_persist_failed",
                    key=self._settings.storage_key,
                    count=len(searches),
                    exc_info=True,
                )


__all__ = ["RecentSearchesService"]

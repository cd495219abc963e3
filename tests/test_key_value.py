"""Tests for the SQL-backed key-value store."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import select

from mapsearch.config import RecentSearchSettings
from mapsearch.db.models import KeyValueEntry
from mapsearch.services.key_value import SqlKeyValueStore
from mapsearch.services.recent_searches import RecentSearchesService


@pytest.mark.asyncio
async def test_get_missing_key_returns_none(session_provider):
    store = SqlKeyValueStore(session_provider)

    assert await store.get("RecentSearches") is None


@pytest.mark.asyncio
async def test_set_inserts_then_updates_single_row(session_provider):
    store = SqlKeyValueStore(session_provider)

    await store.set("RecentSearches", ["a"])
    await store.set("RecentSearches", ["b", "a"])

    assert await store.get("RecentSearches") == ["b", "a"]
    async with session_provider() as session:
        rows = (await session.execute(select(KeyValueEntry))).scalars().all()
    assert len(rows) == 1
    assert rows[0].updated_at is not None


@pytest.mark.asyncio
async def test_recent_searches_survive_reload(session_provider):
    settings = RecentSearchSettings(max_count=5)
    first = RecentSearchesService(SqlKeyValueStore(session_provider), settings)
    await first.add("coffee")
    await first.add("museum")
    await first.update_recent("coffee")

    second = RecentSearchesService(SqlKeyValueStore(session_provider), settings)
    loaded = await second.load()

    assert loaded == ("coffee", "museum")


@pytest.mark.asyncio
async def test_set_updates_row_inserted_by_concurrent_writer(session_provider, monkeypatch):
    store = SqlKeyValueStore(session_provider)
    await store.set("RecentSearches", ["a"])

    real_find = SqlKeyValueStore._find
    lookups = {"count": 0}

    async def stale_find(session, key):
        # the first lookup misses the row another writer already committed
        lookups["count"] += 1
        if lookups["count"] == 1:
            return None
        return await real_find(session, key)

    monkeypatch.setattr(SqlKeyValueStore, "_find", staticmethod(stale_find))

    await store.set("RecentSearches", ["b", "a"])

    assert await store.get("RecentSearches") == ["b", "a"]
    async with session_provider() as session:
        rows = (await session.execute(select(KeyValueEntry))).scalars().all()
    assert len(rows) == 1


@pytest.mark.asyncio
async def test_concurrent_adds_survive_reload(session_provider):
    settings = RecentSearchSettings(max_count=10)
    first = RecentSearchesService(SqlKeyValueStore(session_provider), settings)
    await first.add("seed")

    await asyncio.gather(*(first.add(text) for text in "abcdef"))

    second = RecentSearchesService(SqlKeyValueStore(session_provider), settings)
    assert await second.load() == first.searches == ("f", "e", "d", "c", "b", "a", "seed")

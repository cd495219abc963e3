"""Shared pytest fixtures and test doubles."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mapsearch.db.base import Base
from mapsearch.db.models import KeyValueEntry  # noqa: F401
from mapsearch.domain.models import (
    Coordinate,
    LookAroundScene,
    MapItem,
    SearchCompletion,
    SearchRegion,
)
from mapsearch.services.exceptions import BackendUnavailable, SceneUnavailable


class _AsyncSessionWrapper:
    def __init__(self, sync_session) -> None:
        self._sync = sync_session

    async def execute(self, *args, **kwargs):
        return self._sync.execute(*args, **kwargs)

    def add(self, obj) -> None:
        self._sync.add(obj)

    async def flush(self) -> None:
        self._sync.flush()

    async def commit(self) -> None:
        self._sync.commit()

    async def rollback(self) -> None:
        self._sync.rollback()

    async def close(self) -> None:
        self._sync.close()


@pytest_asyncio.fixture
async def session_provider():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

    @asynccontextmanager
    async def _provider():
        sync_session = SessionLocal()
        try:
            yield _AsyncSessionWrapper(sync_session)
        except Exception:
            sync_session.rollback()
            raise
        finally:
            sync_session.close()

    try:
        yield _provider
    finally:
        engine.dispose()


class MemoryKeyValueStore:
    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = dict(initial or {})
        self.writes: list[tuple[str, Any]] = []
        self.fail_with: Exception | None = None

    async def get(self, key: str) -> Any | None:
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append((key, value))
        self.data[key] = value


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCompletionBackend:
    """Returns canned suggestions; ``gate`` lets a test hold a response back."""

    def __init__(self, results: dict[str, list[SearchCompletion]] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, SearchRegion, str]] = []
        self.gate: asyncio.Event | None = None
        self.fail = False

    async def complete(self, fragment, region, result_types):
        self.calls.append((fragment, region, result_types))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise BackendUnavailable("completion backend down")
        return list(self.results.get(fragment, []))


class FakeSearchBackend:
    def __init__(self, results: dict[str, list[MapItem]] | None = None) -> None:
        self.results = results or {}
        self.calls: list[tuple[str, SearchRegion, str]] = []
        self.fail = False

    async def search(self, query, region, result_types):
        self.calls.append((query, region, result_types))
        if self.fail:
            raise BackendUnavailable("search backend down")
        return list(self.results.get(query, []))


class FakeSceneBackend:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.calls: list[Coordinate] = []

    async def fetch_scene(self, coordinate):
        self.calls.append(coordinate)
        if not self.available:
            raise SceneUnavailable("no imagery here")
        return LookAroundScene(scene_id=f"scene-{len(self.calls)}", coordinate=coordinate)


def make_item(name: str, latitude: float, longitude: float) -> MapItem:
    return MapItem(name=name, coordinate=Coordinate(latitude=latitude, longitude=longitude))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()

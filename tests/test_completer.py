"""Tests for the debounced query completer."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeCompletionBackend
from mapsearch.domain.models import HighlightRange, SearchCompletion, SearchRegion
from mapsearch.services.completer import LocalSearchCompleter, highlight_ranges


class StubbornBackend:
    """Keeps answering after its request was cancelled, like a late network reply."""

    def __init__(self, results: list[SearchCompletion]) -> None:
        self.results = results
        self.gate = asyncio.Event()
        self.started = asyncio.Event()
        self.returned = asyncio.Event()
        self.calls: list[tuple[str, SearchRegion]] = []

    async def complete(self, fragment, region, result_types):
        self.calls.append((fragment, region))
        self.started.set()
        try:
            await self.gate.wait()
        except asyncio.CancelledError:
            pass
        self.returned.set()
        return list(self.results)


def test_highlight_ranges_marks_word_prefixes():
    ranges = highlight_ranges("Blue Bottle Coffee", "blu cof")

    assert ranges == (
        HighlightRange(location=0, length=3),
        HighlightRange(location=12, length=3),
    )


def test_highlight_ranges_empty_query():
    assert highlight_ranges("Blue Bottle", "  ") == ()


@pytest.mark.asyncio
async def test_only_latest_fragment_reaches_backend():
    backend = FakeCompletionBackend({"cof": [SearchCompletion(title="Coffee Lab")]})
    completer = LocalSearchCompleter(backend, debounce_seconds=0.05)
    received: list[list[SearchCompletion]] = []
    completer.listener = received.append

    completer.query_fragment = "c"
    completer.query_fragment = "co"
    completer.query_fragment = "cof"
    await completer.wait()

    assert [call[0] for call in backend.calls] == ["cof"]
    assert len(received) == 1
    assert received[0][0].title == "Coffee Lab"
    assert received[0][0].title_highlights == (HighlightRange(location=0, length=3),)


@pytest.mark.asyncio
async def test_empty_fragment_schedules_nothing():
    backend = FakeCompletionBackend()
    completer = LocalSearchCompleter(backend, debounce_seconds=0)

    completer.query_fragment = "   "

    assert not completer.is_pending
    await completer.wait()
    assert backend.calls == []


@pytest.mark.asyncio
async def test_cancel_discards_late_response():
    backend = StubbornBackend([SearchCompletion(title="Late")])
    completer = LocalSearchCompleter(backend, debounce_seconds=0)
    received: list[list[SearchCompletion]] = []
    completer.listener = received.append

    completer.query_fragment = "la"
    await backend.started.wait()
    completer.cancel()
    backend.gate.set()
    await backend.returned.wait()
    await asyncio.sleep(0)

    assert received == []


@pytest.mark.asyncio
async def test_backend_failure_is_dropped():
    backend = FakeCompletionBackend()
    backend.fail = True
    completer = LocalSearchCompleter(backend, debounce_seconds=0)
    received: list[list[SearchCompletion]] = []
    completer.listener = received.append

    completer.query_fragment = "museum"
    await completer.wait()

    assert received == []
    assert len(backend.calls) == 1


@pytest.mark.asyncio
async def test_requests_use_current_region():
    backend = FakeCompletionBackend()
    region = SearchRegion.around(
        SearchRegion.world().center, latitude_delta=1.0, longitude_delta=1.0
    )
    completer = LocalSearchCompleter(backend, debounce_seconds=0, result_types="all")
    completer.region = region

    completer.query_fragment = "park"
    await completer.wait()

    assert backend.calls == [("park", region, "all")]


@pytest.mark.asyncio
async def test_refresh_reissues_current_fragment():
    backend = FakeCompletionBackend()
    completer = LocalSearchCompleter(backend, debounce_seconds=0)
    completer.query_fragment = "bar"
    await completer.wait()

    generation = completer.generation
    completer.refresh()
    await completer.wait()

    assert completer.generation == generation + 1
    assert [call[0] for call in backend.calls] == ["bar", "bar"]


@pytest.mark.asyncio
async def test_unexpected_backend_error_is_logged_and_dropped():
    class BrokenBackend(FakeCompletionBackend):
        async def complete(self, fragment, region, result_types):
            self.calls.append((fragment, region, result_types))
            raise RuntimeError("boom")

    backend = BrokenBackend()
    completer = LocalSearchCompleter(backend, debounce_seconds=0)
    received: list[list[SearchCompletion]] = []
    completer.listener = received.append

    completer.query_fragment = "museum"
    await completer.wait()

    assert received == []
    assert len(backend.calls) == 1
    assert not completer.is_pending

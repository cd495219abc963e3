"""Cached, rate-limited local search on top of a completion and search backend."""

from __future__ import annotations

from typing import Callable

from cachetools import LRUCache

from mapsearch.config import LocalSearchSettings
from mapsearch.domain.models import MapItem, SearchCompletion, SearchRegion
from mapsearch.logging import logger
from mapsearch.services.completer import LocalSearchCompleter
from mapsearch.services.exceptions import BackendUnavailable
from mapsearch.services.places import CompletionBackend, SearchBackend
from mapsearch.utils.clock import Clock, monotonic
from mapsearch.utils.events import Publisher


class LocalSearchService:
    """Publishes suggestions for the current query and resolves them to places.

    Resolutions are cached per natural-language query. Search region updates
    are accepted at most once per ``region_update_interval_seconds``.
    """

    def __init__(
        self,
        completion_backend: CompletionBackend,
        search_backend: SearchBackend,
        settings: LocalSearchSettings | None = None,
        *,
        clock: Clock = monotonic,
        completer: LocalSearchCompleter | None = None,
    ) -> None:
        self._settings = settings or LocalSearchSettings()
        self._search_backend = search_backend
        self._clock = clock
        self._search_region = SearchRegion.world()
        self._last_region_update: float | None = None
        self._cache: LRUCache[str, list[MapItem]] = LRUCache(
            maxsize=self._settings.cache_max_entries
        )
        self._results: Publisher[list[SearchCompletion]] = Publisher(
            [], name="search_completion_results"
        )
        self._completer = completer or LocalSearchCompleter(
            completion_backend,
            debounce_seconds=self._settings.debounce_seconds,
            result_types=self._settings.result_types,
        )
        self._completer.region = self._search_region
        self._completer.listener = self._completer_did_update_results

    @property
    def query_fragment(self) -> str:
        return self._completer.query_fragment

    @property
    def search_region(self) -> SearchRegion:
        return self._search_region

    @property
    def completion_results(self) -> list[SearchCompletion]:
        return self._results.value

    @property
    def completer(self) -> LocalSearchCompleter:
        return self._completer

    def subscribe(
        self, callback: Callable[[list[SearchCompletion]], None]
    ) -> Callable[[], None]:
        return self._results.subscribe(callback)

    def complete_query(self, text: str) -> None:
        if not text.strip():
            self._completer.cancel()
            self._results.emit([])
        self._completer.query_fragment = text

    async def resolve(self, candidate: SearchCompletion) -> list[MapItem]:
        query = candidate.natural_language_query
        if not query:
            logger.debug("resolve_skipped_without_query", title=candidate.title)
            return []

        cached = self._cache.get(query)
        if cached is not None:
            logger.debug("search_cache_hit", query=query)
            return cached

        try:
            items = list(
                await self._search_backend.search(
                    query, self._search_region, self._settings.result_types
                )
            )
        except BackendUnavailable:
            logger.warning("search_failed", query=query)
            raise

        if not items:
            logger.info("search_no_result", query=query)
        self._cache[query] = items
        return items

    def set_search_region(self, region: SearchRegion) -> bool:
        now = self._clock()
        if self._last_region_update is not None:
            elapsed = now - self._last_region_update
            if elapsed < self._settings.region_update_interval_seconds:
                return False

        self._completer.cancel()
        self._search_region = region
        self._completer.region = region
        self._last_region_update = now
        if self._completer.query_fragment.strip():
            self._completer.refresh()
        logger.debug(
            "search_region_updated",
            latitude=region.center.latitude,
            longitude=region.center.longitude,
        )
        return True

    def _completer_did_update_results(self, results: list[SearchCompletion]) -> None:
        self._results.emit(results)


__all__ = ["LocalSearchService"]

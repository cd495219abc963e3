"""Map screen state: annotations, search-this-area, recents and look-around."""

from __future__ import annotations

import asyncio
from typing import Coroutine, Iterable

from mapsearch.config import MapSettings
from mapsearch.domain.models import (
    Alert,
    Annotation,
    Coordinate,
    LookAroundScene,
    SearchCompletion,
    SearchRegion,
)
from mapsearch.logging import logger
from mapsearch.services.error_presenter import ErrorPresenter
from mapsearch.services.exceptions import (
    BackendUnavailable,
    NoResultFound,
    SceneUnavailable,
    SearchError,
)
from mapsearch.services.local_search import LocalSearchService
from mapsearch.services.look_around import LookAroundService
from mapsearch.services.recent_searches import RecentSearchesService
from mapsearch.utils.events import Publisher

# Keeps a single annotation from collapsing the fitted region to a point.
MIN_FIT_SPAN_DEGREES = 0.01


class MapSearchSession:
    """Single-owner state for one map screen.

    All methods must run on the event loop that owns the session. Suggestion
    updates from ``LocalSearchService`` arrive through its subscription and,
    while auto-annotation is on, start background annotation tasks;
    ``wait_idle()`` waits for those.
    """

    def __init__(
        self,
        search: LocalSearchService,
        recents: RecentSearchesService,
        look_around: LookAroundService,
        presenter: ErrorPresenter | None = None,
        *,
        map_settings: MapSettings | None = None,
        initial_region: SearchRegion | None = None,
    ) -> None:
        self._search = search
        self._recents = recents
        self._look_around = look_around
        self._presenter = presenter or ErrorPresenter()
        self._map_settings = map_settings or MapSettings()

        self.map_region = initial_region or SearchRegion.world()
        self.focus_region: SearchRegion | None = None
        self.selected_annotation: Annotation | None = None
        self.scene: LookAroundScene | None = None
        self.search_area_visible = False
        self.is_searching = False
        self.alerts: Publisher[Alert | None] = Publisher(None, name="alerts")

        self._annotations: list[Annotation] = []
        self._auto_annotate = False
        self._epoch = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._unsubscribe = search.subscribe(self._completions_updated)

    @property
    def annotations(self) -> tuple[Annotation, ...]:
        return tuple(self._annotations)

    @property
    def auto_annotate(self) -> bool:
        return self._auto_annotate

    def text_changed(self, text: str) -> None:
        self._set_auto_annotate(False)
        self.search_area_visible = False
        self._search.set_search_region(self.map_region)
        self._search.complete_query(text)

    async def search_submitted(self, text: str) -> None:
        self._set_auto_annotate(True)
        if text.strip():
            await self._recents.add(text)

    async def recent_selected(self, text: str) -> None:
        await self._recents.update_recent(text)
        self.text_changed(text)

    async def completion_selected(self, candidate: SearchCompletion) -> Annotation | None:
        try:
            annotation = await self._add_annotation(candidate)
        except SearchError as exc:
            self._alert(exc, query=candidate.natural_language_query)
            return None
        await self.select_annotation(annotation)
        return annotation

    def map_region_changed(self, region: SearchRegion) -> None:
        self.map_region = region
        self.search_area_visible = True

    def search_area_requested(self) -> None:
        # Turning auto-annotation on already annotates the current suggestions.
        if not self._auto_annotate:
            self._set_auto_annotate(True)
        self._search.set_search_region(self.map_region)
        self.search_area_visible = False

    def location_updated(self, coordinate: Coordinate) -> None:
        self.map_region = SearchRegion.around(
            coordinate,
            latitude_delta=self._map_settings.latitude_delta,
            longitude_delta=self._map_settings.longitude_delta,
        )
        self._search.set_search_region(self.map_region)

    async def select_annotation(self, annotation: Annotation) -> None:
        self.selected_annotation = annotation
        try:
            self.scene = await self._look_around.scene_for(annotation.coordinate)
        except SceneUnavailable as exc:
            self._alert(exc)

    def deselect_annotation(self) -> None:
        self.selected_annotation = None
        self.scene = None

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        self._unsubscribe()
        for task in list(self._tasks):
            task.cancel()

    def _set_auto_annotate(self, enabled: bool) -> None:
        self._auto_annotate = enabled
        if not enabled:
            self._epoch += 1
            self._annotations.clear()
            self.focus_region = None
            self.is_searching = False
            return
        self._spawn(self._annotate_all(self._search.completion_results, fit=True))

    def _completions_updated(self, results: list[SearchCompletion]) -> None:
        if self._auto_annotate:
            self._spawn(self._annotate_all(results, fit=False))

    def _spawn(self, coro: Coroutine[object, object, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _annotate_all(self, completions: Iterable[SearchCompletion], *, fit: bool) -> None:
        epoch = self._epoch
        self.is_searching = True
        try:
            for completion in list(completions):
                try:
                    await self._add_annotation(completion, epoch=epoch)
                except NoResultFound:
                    logger.debug("annotation_skipped", query=completion.natural_language_query)
                except BackendUnavailable as exc:
                    self._alert(exc, query=completion.natural_language_query)
                if epoch != self._epoch:
                    logger.debug("annotation_batch_discarded", epoch=epoch)
                    return
            if fit:
                self.focus_region = self.fit_region()
        finally:
            if epoch == self._epoch:
                self.is_searching = False

    async def _add_annotation(
        self, candidate: SearchCompletion, *, epoch: int | None = None
    ) -> Annotation:
        """Resolve ``candidate`` and return its annotation, reusing one at the same spot."""

        items = await self._search.resolve(candidate)
        if not items:
            raise NoResultFound(f"No place found for {candidate.natural_language_query!r}.")
        item = items[-1]

        for existing in self._annotations:
            if existing.coordinate == item.coordinate:
                return existing

        annotation = Annotation(
            coordinate=item.coordinate,
            title=item.name,
            subtitle=candidate.subtitle or item.address,
        )
        if epoch is None or epoch == self._epoch:
            self._annotations.append(annotation)
        return annotation

    def fit_region(self) -> SearchRegion | None:
        """Smallest region showing every annotation."""

        if not self._annotations:
            return None
        latitudes = [a.coordinate.latitude for a in self._annotations]
        longitudes = [a.coordinate.longitude for a in self._annotations]
        center = Coordinate(
            latitude=(min(latitudes) + max(latitudes)) / 2,
            longitude=(min(longitudes) + max(longitudes)) / 2,
        )
        return SearchRegion.around(
            center,
            latitude_delta=min(max(max(latitudes) - min(latitudes), MIN_FIT_SPAN_DEGREES), 180.0),
            longitude_delta=min(
                max(max(longitudes) - min(longitudes), MIN_FIT_SPAN_DEGREES), 360.0
            ),
        )

    def _alert(self, exc: BaseException, **context) -> None:
        self.alerts.emit(self._presenter.present(exc, **context))


__all__ = ["MapSearchSession"]

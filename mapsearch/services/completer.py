"""Debounced query completer that pushes suggestion updates to a listener."""

from __future__ import annotations

import asyncio
import re
from typing import Callable, Sequence

from mapsearch.config import ResultTypes
from mapsearch.domain.models import HighlightRange, SearchCompletion, SearchRegion
from mapsearch.logging import logger
from mapsearch.services.exceptions import SearchError
from mapsearch.services.places import CompletionBackend

ResultsListener = Callable[[list[SearchCompletion]], None]

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)


def highlight_ranges(text: str, query: str) -> tuple[HighlightRange, ...]:
    """Ranges of ``text`` where a word starts with one of the query tokens."""

    tokens = {token.casefold() for token in _TOKEN_RE.findall(query)}
    if not tokens or not text:
        return ()
    ranges: list[HighlightRange] = []
    for match in _TOKEN_RE.finditer(text):
        word = match.group().casefold()
        best = max((len(token) for token in tokens if word.startswith(token)), default=0)
        if best:
            ranges.append(HighlightRange(location=match.start(), length=best))
    return tuple(ranges)


class LocalSearchCompleter:
    """Turns a changing query fragment into suggestion updates.

    Setting ``query_fragment`` (re)schedules a request after ``debounce_seconds``.
    Each request carries the generation it was issued under; ``cancel()`` and
    newer fragments bump the generation, so responses that arrive late are
    dropped instead of overwriting newer state.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        *,
        debounce_seconds: float = 0.3,
        result_types: ResultTypes = "point_of_interest",
        region: SearchRegion | None = None,
    ) -> None:
        self._backend = backend
        self.debounce_seconds = debounce_seconds
        self.result_types = result_types
        self.region = region or SearchRegion.world()
        self.listener: ResultsListener | None = None
        self._query_fragment = ""
        self._generation = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def query_fragment(self) -> str:
        return self._query_fragment

    @query_fragment.setter
    def query_fragment(self, value: str) -> None:
        self._query_fragment = value
        self._cancel_pending()
        self._generation += 1
        if not value.strip():
            return
        self._task = asyncio.get_running_loop().create_task(
            self._complete(value, self._generation)
        )

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def refresh(self) -> None:
        """Re-issue the current fragment, e.g. after the region changed."""

        self.query_fragment = self._query_fragment

    def cancel(self) -> None:
        """Drop any scheduled or in-flight request."""

        self._cancel_pending()
        self._generation += 1

    async def wait(self) -> None:
        """Wait for the current request, if any, to finish or be cancelled."""

        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _complete(self, fragment: str, generation: int) -> None:
        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
        region = self.region
        try:
            completions = await self._backend.complete(fragment, region, self.result_types)
        except SearchError as exc:
            logger.warning("completion_failed", query=fragment, error=str(exc))
            return
        except Exception:
            logger.exception("completion_crashed", query=fragment)
            return

        if generation != self._generation:
            logger.debug(
                "completion_discarded",
                query=fragment,
                generation=generation,
                current_generation=self._generation,
            )
            return

        results = self._with_highlights(completions, fragment)
        logger.debug("completion_updated", query=fragment, count=len(results))
        if self.listener is not None:
            self.listener(results)

    @staticmethod
    def _with_highlights(
        completions: Sequence[SearchCompletion], fragment: str
    ) -> list[SearchCompletion]:
        return [
            completion.model_copy(
                update={
                    "title_highlights": completion.title_highlights
                    or highlight_ranges(completion.title, fragment),
                    "subtitle_highlights": completion.subtitle_highlights
                    or highlight_ranges(completion.subtitle, fragment),
                }
            )
            for completion in completions
        ]


__all__ = ["LocalSearchCompleter", "ResultsListener", "highlight_ranges"]

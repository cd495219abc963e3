"""Street-level scene lookup for a map coordinate."""

from __future__ import annotations

from cachetools import LRUCache

from mapsearch.domain.models import Coordinate, LookAroundScene
from mapsearch.logging import logger
from mapsearch.services.exceptions import SceneUnavailable
from mapsearch.services.places import SceneBackend


class LookAroundService:
    def __init__(self, backend: SceneBackend, *, cache_size: int = 32) -> None:
        self._backend = backend
        self._scenes: LRUCache[Coordinate, LookAroundScene] = LRUCache(maxsize=cache_size)

    async def scene_for(self, coordinate: Coordinate) -> LookAroundScene:
        scene = self._scenes.get(coordinate)
        if scene is not None:
            return scene
        try:
            scene = await self._backend.fetch_scene(coordinate)
        except SceneUnavailable as exc:
            logger.info(
                "look_around_unavailable",
                latitude=coordinate.latitude,
                longitude=coordinate.longitude,
                reason=str(exc),
            )
            raise
        self._scenes[coordinate] = scene
        return scene


__all__ = ["LookAroundService"]

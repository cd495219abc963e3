"""HTTP backends for place completion, place search and street-level scenes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Protocol, Sequence

import httpx

from mapsearch.config import PlacesBackendSettings, ResultTypes
from mapsearch.domain.models import (
    Coordinate,
    LookAroundScene,
    MapItem,
    SearchCompletion,
    SearchRegion,
    region_around,
)
from mapsearch.logging import logger
from mapsearch.services.exceptions import BackendUnavailable, SceneUnavailable, ServiceError

MAPILLARY_IMAGE_FIELDS = "id,thumb_1024_url,computed_geometry,geometry,captured_at,compass_angle"


class CompletionBackend(Protocol):
    async def complete(
        self, fragment: str, region: SearchRegion, result_types: ResultTypes
    ) -> Sequence[SearchCompletion]: ...


class SearchBackend(Protocol):
    async def search(
        self, query: str, region: SearchRegion, result_types: ResultTypes
    ) -> Sequence[MapItem]: ...


class SceneBackend(Protocol):
    async def fetch_scene(self, coordinate: Coordinate) -> LookAroundScene: ...


class _BaseHttpBackend:
    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: PlacesBackendSettings | None = None,
    ) -> None:
        self._client = http_client
        self._settings = settings or PlacesBackendSettings()

    @staticmethod
    def _read_secret(secret: Any) -> str | None:
        if not secret:
            return None
        try:
            return secret.get_secret_value()
        except AttributeError:
            return str(secret)

    async def _get_json(
        self,
        name: str,
        url: str,
        params: list[tuple[str, str]],
        error_cls: type[ServiceError],
    ) -> Any:
        try:
            response = await self._client.get(
                url,
                params=params,
                timeout=self._settings.request_timeout_seconds,
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text[:500] if exc.response is not None else str(exc)
            status_code = exc.response.status_code if exc.response is not None else "unknown"
            logger.warning("backend_request_failed", backend=name, status_code=status_code)
            raise error_cls(f"{name} request failed ({status_code}): {detail}") from exc
        except httpx.RequestError as exc:
            logger.warning("backend_request_failed", backend=name, error=str(exc))
            raise error_cls(f"{name} request failed: {exc}") from exc
        except ValueError as exc:
            raise error_cls(f"{name} returned malformed JSON.") from exc


class PhotonPlacesBackend(_BaseHttpBackend):
    """Completion and search over a Photon geocoder (GeoJSON feature collections)."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: PlacesBackendSettings | None = None,
        *,
        limit: int = 10,
    ) -> None:
        super().__init__(http_client, settings)
        self._limit = limit

    async def complete(
        self, fragment: str, region: SearchRegion, result_types: ResultTypes
    ) -> list[SearchCompletion]:
        fragment = fragment.strip()
        if not fragment:
            return []
        completions: list[SearchCompletion] = []
        seen: set[tuple[str, str]] = set()
        for feature in await self._features(fragment, region, result_types):
            properties = feature.get("properties") or {}
            title = _feature_title(properties)
            if not title:
                continue
            subtitle = _feature_subtitle(properties, exclude=title)
            if (title, subtitle) in seen:
                continue
            seen.add((title, subtitle))
            completions.append(SearchCompletion(title=title, subtitle=subtitle))
        return completions

    async def search(
        self, query: str, region: SearchRegion, result_types: ResultTypes
    ) -> list[MapItem]:
        query = query.strip()
        if not query:
            return []
        items: list[MapItem] = []
        for feature in await self._features(query, region, result_types):
            coordinate = _feature_coordinate(feature)
            properties = feature.get("properties") or {}
            name = _feature_title(properties)
            if coordinate is None or not name:
                continue
            osm_key = properties.get("osm_key")
            osm_value = properties.get("osm_value")
            items.append(
                MapItem(
                    name=name,
                    coordinate=coordinate,
                    category=f"{osm_key}:{osm_value}" if osm_key and osm_value else None,
                    address=_feature_subtitle(properties, exclude=name) or None,
                )
            )
        return items

    async def _features(
        self, query: str, region: SearchRegion, result_types: ResultTypes
    ) -> list[dict[str, Any]]:
        payload = await self._get_json(
            "photon",
            f"{str(self._settings.photon_base_url).rstrip('/')}/api",
            self._params(query, region, result_types),
            BackendUnavailable,
        )
        features = payload.get("features") if isinstance(payload, dict) else None
        return [feature for feature in features or [] if isinstance(feature, dict)]

    def _params(
        self, query: str, region: SearchRegion, result_types: ResultTypes
    ) -> list[tuple[str, str]]:
        params = [("q", query), ("limit", str(self._limit))]
        if not region.is_world:
            min_lon, min_lat, max_lon, max_lat = region.bounding_box()
            params.append(("bbox", f"{min_lon},{min_lat},{max_lon},{max_lat}"))
            params.append(("lat", str(region.center.latitude)))
            params.append(("lon", str(region.center.longitude)))
        if self._settings.language:
            params.append(("lang", self._settings.language))
        if result_types == "point_of_interest":
            params.extend(("osm_tag", tag) for tag in self._settings.poi_osm_tags)
        elif result_types == "address":
            params.extend([("layer", "house"), ("layer", "street")])
        return params


class MapillarySceneBackend(_BaseHttpBackend):
    """Street-level imagery lookup over the Mapillary Graph API."""

    async def fetch_scene(self, coordinate: Coordinate) -> LookAroundScene:
        token = self._read_secret(self._settings.mapillary_access_token)
        if not token:
            raise SceneUnavailable("Mapillary access token is not configured.")

        min_lon, min_lat, max_lon, max_lat = region_around(
            coordinate, self._settings.scene_search_radius_meters
        ).bounding_box()
        params = [
            ("access_token", token),
            ("fields", MAPILLARY_IMAGE_FIELDS),
            ("bbox", f"{min_lon},{min_lat},{max_lon},{max_lat}"),
            ("limit", "1"),
        ]
        payload = await self._get_json(
            "mapillary",
            f"{str(self._settings.mapillary_base_url).rstrip('/')}/images",
            params,
            SceneUnavailable,
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            raise SceneUnavailable(
                f"No street-level imagery near {coordinate.latitude},{coordinate.longitude}."
            )

        image = data[0]
        geometry = image.get("computed_geometry") or image.get("geometry") or {}
        return LookAroundScene(
            scene_id=str(image.get("id")),
            coordinate=_geometry_coordinate(geometry) or coordinate,
            image_url=image.get("thumb_1024_url"),
            captured_at=_epoch_millis(image.get("captured_at")),
            heading=image.get("compass_angle"),
        )


def _feature_title(properties: dict[str, Any]) -> str:
    name = (properties.get("name") or "").strip()
    if name:
        return name
    street = (properties.get("street") or "").strip()
    number = (properties.get("housenumber") or "").strip()
    return " ".join(part for part in (street, number) if part)


def _feature_subtitle(properties: dict[str, Any], *, exclude: str) -> str:
    parts: list[str] = []
    for field in ("street", "city", "state", "country"):
        value = (properties.get(field) or "").strip()
        if value and value != exclude and value not in parts:
            parts.append(value)
    return ", ".join(parts)


def _feature_coordinate(feature: dict[str, Any]) -> Coordinate | None:
    return _geometry_coordinate(feature.get("geometry") or {})


def _geometry_coordinate(geometry: dict[str, Any]) -> Coordinate | None:
    coordinates = geometry.get("coordinates")
    if not isinstance(coordinates, (list, tuple)) or len(coordinates) < 2:
        return None
    try:
        return Coordinate(latitude=float(coordinates[1]), longitude=float(coordinates[0]))
    except (TypeError, ValueError):
        return None


def _epoch_millis(value: Any) -> datetime | None:
    if not isinstance(value, (int, float)):
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


__all__ = [
    "CompletionBackend",
    "MapillarySceneBackend",
    "PhotonPlacesBackend",
    "SceneBackend",
    "SearchBackend",
]

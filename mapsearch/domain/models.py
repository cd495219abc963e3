"""Pydantic models shared across service and application layers."""

from __future__ import annotations

import math
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

METERS_PER_DEGREE_LATITUDE = 111_320.0


class Coordinate(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class CoordinateSpan(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude_delta: float = Field(ge=0, le=180)
    longitude_delta: float = Field(ge=0, le=360)


class SearchRegion(BaseModel):
    """Geographic area (center + span) used to scope suggestions and searches."""

    model_config = ConfigDict(frozen=True)

    center: Coordinate
    span: CoordinateSpan

    @classmethod
    def world(cls) -> "SearchRegion":
        return cls(
            center=Coordinate(latitude=0.0, longitude=0.0),
            span=CoordinateSpan(latitude_delta=180.0, longitude_delta=360.0),
        )

    @classmethod
    def around(
        cls, center: Coordinate, *, latitude_delta: float, longitude_delta: float
    ) -> "SearchRegion":
        return cls(
            center=center,
            span=CoordinateSpan(latitude_delta=latitude_delta, longitude_delta=longitude_delta),
        )

    @property
    def is_world(self) -> bool:
        return self.span.latitude_delta >= 180.0 and self.span.longitude_delta >= 360.0

    def bounding_box(self) -> tuple[float, float, float, float]:
        """Return ``(min_lon, min_lat, max_lon, max_lat)`` clamped to valid degrees."""

        half_lat = self.span.latitude_delta / 2
        half_lon = self.span.longitude_delta / 2
        return (
            max(self.center.longitude - half_lon, -180.0),
            max(self.center.latitude - half_lat, -90.0),
            min(self.center.longitude + half_lon, 180.0),
            min(self.center.latitude + half_lat, 90.0),
        )


def region_around(coordinate: Coordinate, radius_meters: float) -> SearchRegion:
    """Square region of ``2 * radius_meters`` per side centred on ``coordinate``."""

    lat_delta = 2 * radius_meters / METERS_PER_DEGREE_LATITUDE
    cos_lat = max(math.cos(math.radians(coordinate.latitude)), 1e-6)
    lon_delta = min(lat_delta / cos_lat, 360.0)
    return SearchRegion.around(
        coordinate, latitude_delta=min(lat_delta, 180.0), longitude_delta=lon_delta
    )


class HighlightRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: int = Field(ge=0)
    length: int = Field(ge=1)


class SearchCompletion(BaseModel):
    """A ranked autocomplete suggestion, not yet resolved to a coordinate."""

    model_config = ConfigDict(frozen=True)

    title: str
    subtitle: str = ""
    title_highlights: tuple[HighlightRange, ...] = ()
    subtitle_highlights: tuple[HighlightRange, ...] = ()

    @property
    def natural_language_query(self) -> str | None:
        parts = [part.strip() for part in (self.title, self.subtitle) if part and part.strip()]
        if not parts:
            return None
        return ", ".join(parts)


class MapItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    coordinate: Coordinate
    category: str | None = None
    address: str | None = None


class Annotation(BaseModel):
    model_config = ConfigDict(frozen=True)

    coordinate: Coordinate
    title: str
    subtitle: str | None = None


class LookAroundScene(BaseModel):
    model_config = ConfigDict(frozen=True)

    scene_id: str
    coordinate: Coordinate
    image_url: str | None = None
    captured_at: datetime | None = None
    heading: float | None = None


class Alert(BaseModel):
    title: str
    message: str
    dismiss_label: str


__all__ = [
    "Alert",
    "Annotation",
    "Coordinate",
    "CoordinateSpan",
    "HighlightRange",
    "LookAroundScene",
    "MapItem",
    "SearchCompletion",
    "SearchRegion",
    "region_around",
]

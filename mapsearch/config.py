"""Runtime configuration based on environment variables."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AnyHttpUrl, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ResultTypes = Literal["point_of_interest", "address", "all"]


class DatabaseSettings(BaseModel):
    dsn: str = Field(
        default="sqlite+aiosqlite:///./mapsearch.db",
        description="SQLAlchemy async DSN for the key-value store.",
    )
    echo: bool = False
    pool_pre_ping: bool = Field(default=True)


class RecentSearchSettings(BaseModel):
    max_count: int = Field(default=10, ge=1, le=1000)
    storage_key: str = Field(default="RecentSearches", min_length=1)
    duplicate_policy: Literal["promote", "ignore"] = Field(
        default="promote",
        description="What add() does with a query that is already stored.",
    )


class LocalSearchSettings(BaseModel):
    region_update_interval_seconds: float = Field(default=3.0, ge=0)
    debounce_seconds: float = Field(default=0.3, ge=0)
    cache_max_entries: int = Field(default=256, ge=1)
    result_types: ResultTypes = "point_of_interest"
    suggestion_limit: int = Field(default=10, ge=1, le=50)


class PlacesBackendSettings(BaseModel):
    photon_base_url: AnyHttpUrl = Field(default="https://photon.komoot.io/")
    mapillary_base_url: AnyHttpUrl = Field(default="https://graph.mapillary.com/")
    mapillary_access_token: SecretStr | None = None
    language: str | None = Field(default=None, description="Preferred result language, e.g. 'en'.")
    poi_osm_tags: list[str] = Field(
        default_factory=lambda: ["amenity", "shop", "tourism", "leisure", "historic"]
    )
    scene_search_radius_meters: float = Field(default=50.0, gt=0, le=1000)
    request_timeout_seconds: int = Field(default=10, ge=1, le=60)

    @field_validator("language", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class MapSettings(BaseModel):
    latitude_delta: float = Field(default=0.05, gt=0, le=180)
    longitude_delta: float = Field(default=0.05, gt=0, le=360)


class MapSearchSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MAPSEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__"
    )

    environment: Literal["dev", "staging", "prod"] = "dev"
    default_language: str = "en"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    recent_searches: RecentSearchSettings = Field(default_factory=RecentSearchSettings)
    local_search: LocalSearchSettings = Field(default_factory=LocalSearchSettings)
    places: PlacesBackendSettings = Field(default_factory=PlacesBackendSettings)
    map: MapSettings = Field(default_factory=MapSettings)


@lru_cache
def get_settings() -> MapSearchSettings:
    """Return cached settings instance."""

    return MapSearchSettings()


__all__ = [
    "DatabaseSettings",
    "LocalSearchSettings",
    "MapSearchSettings",
    "MapSettings",
    "PlacesBackendSettings",
    "RecentSearchSettings",
    "ResultTypes",
    "get_settings",
]

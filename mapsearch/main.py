"""Application entrypoint: one search round-trip from the command line."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Sequence

import httpx

from mapsearch.config import MapSearchSettings, get_settings
from mapsearch.db.session import Database
from mapsearch.domain.models import Alert, Coordinate
from mapsearch.i18n import I18nService
from mapsearch.logging import configure_logging, logger
from mapsearch.services.error_presenter import ErrorPresenter
from mapsearch.services.key_value import SqlKeyValueStore
from mapsearch.services.local_search import LocalSearchService
from mapsearch.services.look_around import LookAroundService
from mapsearch.services.map_session import MapSearchSession
from mapsearch.services.places import MapillarySceneBackend, PhotonPlacesBackend
from mapsearch.services.recent_searches import RecentSearchesService


def parse_coordinate(value: str) -> Coordinate:
    try:
        latitude, longitude = (float(part) for part in value.split(","))
        return Coordinate(latitude=latitude, longitude=longitude)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected LAT,LON, got {value!r}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mapsearch", description="Search places on the map.")
    parser.add_argument("query", nargs="?", help="Search text; omit to only show recents.")
    parser.add_argument("--near", type=parse_coordinate, help="Center the search on LAT,LON.")
    parser.add_argument("--look-around", action="store_true", help="Fetch a scene for the first place.")
    parser.add_argument("--recent", action="store_true", help="Print recent searches.")
    parser.add_argument("--clear-recent", action="store_true", help="Forget recent searches first.")
    return parser


def _emit(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def run(args: argparse.Namespace, settings: MapSearchSettings) -> int:
    database = Database(settings=settings)
    await database.create_all()
    try:
        recents = RecentSearchesService(SqlKeyValueStore(database.session), settings.recent_searches)
        await recents.load()
        if args.clear_recent:
            await recents.clear()

        exit_code = 0
        if args.query:
            exit_code = await _search(args, settings, recents)

        if args.recent or not args.query:
            _emit({"recent_searches": list(recents.searches)})
        return exit_code
    finally:
        await database.dispose()


async def _search(
    args: argparse.Namespace, settings: MapSearchSettings, recents: RecentSearchesService
) -> int:
    alerts: list[Alert] = []
    async with httpx.AsyncClient() as client:
        places = PhotonPlacesBackend(
            client, settings.places, limit=settings.local_search.suggestion_limit
        )
        search = LocalSearchService(places, places, settings.local_search)
        session = MapSearchSession(
            search,
            recents,
            LookAroundService(MapillarySceneBackend(client, settings.places)),
            ErrorPresenter(I18nService(default_locale=settings.default_language)),
            map_settings=settings.map,
        )
        session.alerts.subscribe(lambda alert: alerts.append(alert) if alert else None)
        try:
            if args.near is not None:
                session.location_updated(args.near)

            session.text_changed(args.query)
            await search.completer.wait()
            await session.search_submitted(args.query)
            await session.wait_idle()

            if args.look_around and session.annotations:
                await session.select_annotation(session.annotations[0])
        finally:
            session.close()

        _emit(
            {
                "query": args.query,
                "suggestions": [c.model_dump(mode="json") for c in search.completion_results],
                "places": [a.model_dump(mode="json") for a in session.annotations],
                "scene": session.scene.model_dump(mode="json") if session.scene else None,
                "alerts": [a.model_dump(mode="json") for a in alerts],
            }
        )
    return 1 if alerts and not session.annotations else 0


async def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(
        settings.log_level, json_output=settings.environment != "dev", stream=sys.stderr
    )
    logger.info("mapsearch_starting", environment=settings.environment, query=args.query)
    return await run(args, settings)


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()

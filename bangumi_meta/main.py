"""Command line entry point for bangumi-meta."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from .archive.data import ArchiveData
from .archive.fallback import ArchiveBackedApi
from .bangumi_api import BangumiApi
from .config import Settings
from .providers.assembler import MetadataResult
from .providers.episode_provider import EpisodeProvider
from .providers.library import (
    EpisodeInfo,
    FolderLibrary,
    SeasonInfo,
    season_index_from_folder,
)
from .providers.season_provider import SeasonProvider
from .title_extractor import extract_series_name

logger = logging.getLogger(__name__)


def _print_result(result: MetadataResult) -> None:
    print(
        json.dumps(
            {
                "has_metadata": result.has_metadata,
                "item": asdict(result.item) if result.item else None,
                "people": [asdict(person) for person in result.people],
            },
            ensure_ascii=False,
            indent=2,
            default=str,
        )
    )


async def run_season(
    settings: Settings, path: str, index: int | None, year: int | None
):
    season_path = Path(path)
    if index is None:
        index = season_index_from_folder(season_path.name)

    info = SeasonInfo(path=str(season_path), index_number=index, year=year)
    archive = ArchiveData(settings.archive_path)

    async with BangumiApi(settings) as api:
        provider = SeasonProvider(
            ArchiveBackedApi(api, archive, settings), FolderLibrary(), settings
        )
        _print_result(await provider.get_metadata(info))


async def run_episode(
    settings: Settings, path: str, index: int | None, season: int | None
):
    episode_path = Path(path)
    if season is None:
        season = season_index_from_folder(episode_path.parent.name)

    info = EpisodeInfo(
        path=str(episode_path), index_number=index, parent_index_number=season
    )
    archive = ArchiveData(settings.archive_path)

    async with BangumiApi(settings) as api:
        provider = EpisodeProvider(
            ArchiveBackedApi(api, archive, settings), FolderLibrary(), settings
        )
        _print_result(await provider.get_metadata(info))


def show_archive(settings: Settings) -> None:
    archive = ArchiveData(settings.archive_path)
    logger.info(f"Archive: {archive.base_path}")
    for store in archive.stores:
        print(f"{store.path.name}: {len(store.load_all())} records")


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Resolve anime folders and files against Bangumi"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    title_parser = subparsers.add_parser(
        "title", help="Print the series name guessed from folder names"
    )
    title_parser.add_argument("names", nargs="+", help="Folder or file names")

    season_parser = subparsers.add_parser("season", help="Resolve a season folder")
    season_parser.add_argument("path", help="Season folder path")
    season_parser.add_argument("--index", type=int, help="Season number")
    season_parser.add_argument("--year", type=int, help="Production year")

    episode_parser = subparsers.add_parser("episode", help="Resolve an episode file")
    episode_parser.add_argument("path", help="Episode file path")
    episode_parser.add_argument("--index", type=int, help="Episode number")
    episode_parser.add_argument("--season", type=int, help="Season number")

    subparsers.add_parser("archive", help="Show archive record counts")

    args = parser.parse_args()
    settings = Settings()

    # Configure logging
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        if args.command == "title":
            for name in args.names:
                print(extract_series_name(name))
        elif args.command == "season":
            asyncio.run(run_season(settings, args.path, args.index, args.year))
        elif args.command == "episode":
            asyncio.run(run_episode(settings, args.path, args.index, args.season))
        elif args.command == "archive":
            show_archive(settings)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
        sys.exit(130)


if __name__ == "__main__":
    main()

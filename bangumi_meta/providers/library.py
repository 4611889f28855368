"""The slice of the host media library the providers consume."""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from ..title_extractor import extract_series_name, get_attribute_value

PROVIDER_NAME = "Bangumi"

SEASON_FOLDER_PATTERNS = [
    re.compile(r"^(?:Season|S)\s*(\d+)", re.IGNORECASE),
    re.compile(r"第\s*(\d+)\s*季"),
]
SPECIALS_FOLDER_PATTERN = re.compile(r"^(?:Specials?|SPs?)$", re.IGNORECASE)


def parse_provider_id(value: str | None) -> int:
    """Parse a stored provider id, treating anything invalid as 0."""
    if value is None:
        return 0
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


@dataclass
class SeasonRef:
    """A season already known to the library."""

    path: str
    index_number: int | None = None
    provider_ids: dict[str, str] = field(default_factory=dict)

    @property
    def provider_id(self) -> int:
        return parse_provider_id(self.provider_ids.get(PROVIDER_NAME))


@dataclass
class SeriesInfo:
    name: str
    path: str
    provider_ids: dict[str, str] = field(default_factory=dict)
    seasons: list[SeasonRef] = field(default_factory=list)


@dataclass
class ParentItem:
    """The library item directly containing an episode file."""

    path: str
    is_season: bool = False
    index_number: int | None = None
    provider_ids: dict[str, str] = field(default_factory=dict)


@dataclass
class SeasonInfo:
    path: str
    index_number: int | None = None
    year: int | None = None
    provider_ids: dict[str, str] = field(default_factory=dict)
    series_provider_ids: dict[str, str] = field(default_factory=dict)


@dataclass
class EpisodeInfo:
    path: str
    index_number: int | None = None
    parent_index_number: int | None = None
    provider_ids: dict[str, str] = field(default_factory=dict)
    series_provider_ids: dict[str, str] = field(default_factory=dict)


class Library(Protocol):
    def find_series(self, path: str) -> SeriesInfo | None: ...

    def find_parent(self, path: str) -> ParentItem | None: ...

    def remember_season(self, path: str, subject_id: int) -> None: ...


def season_index_from_folder(name: str) -> int | None:
    """Read a season number from a folder name like ``Season 2``."""
    if SPECIALS_FOLDER_PATTERN.match(name.strip()):
        return 0
    for pattern in SEASON_FOLDER_PATTERNS:
        match = pattern.search(name)
        if match:
            return int(match.group(1))
    return None


def _attribute_provider_ids(name: str) -> dict[str, str]:
    value = get_attribute_value(name, "bangumi")
    return {PROVIDER_NAME: value} if value else {}


class FolderLibrary:
    """Library view built from the directory layout alone.

    A series is a folder whose subfolders are seasons; provider ids come from
    ``[bangumi-<id>]`` markers in folder names. Episode parents also pick up
    the ids of seasons resolved earlier through this instance.
    """

    def __init__(self):
        self._resolved: dict[str, int] = {}

    def remember_season(self, path: str, subject_id: int) -> None:
        """Record the id a season folder resolved to for its episodes."""
        if subject_id > 0:
            self._resolved[os.path.normpath(str(path))] = subject_id

    def _provider_ids(self, folder: Path) -> dict[str, str]:
        provider_ids = _attribute_provider_ids(folder.name)
        if not provider_ids:
            subject_id = self._resolved.get(os.path.normpath(str(folder)))
            if subject_id:
                provider_ids = {PROVIDER_NAME: str(subject_id)}
        return provider_ids

    def find_series(self, path: str) -> SeriesInfo | None:
        """Find the series containing a season folder."""
        series_path = Path(path).parent
        if not series_path.is_dir() or series_path == series_path.parent:
            return None

        seasons = [
            SeasonRef(
                path=str(child),
                index_number=season_index_from_folder(child.name),
                provider_ids=_attribute_provider_ids(child.name),
            )
            for child in sorted(series_path.iterdir())
            if child.is_dir()
        ]
        return SeriesInfo(
            name=extract_series_name(series_path.name),
            path=str(series_path),
            provider_ids=_attribute_provider_ids(series_path.name),
            seasons=seasons,
        )

    def find_parent(self, path: str) -> ParentItem | None:
        """Find the folder holding an episode file."""
        parent_path = Path(path).parent
        if not parent_path.is_dir():
            return None

        index_number = season_index_from_folder(parent_path.name)
        return ParentItem(
            path=str(parent_path),
            is_season=index_number is not None,
            index_number=index_number,
            provider_ids=self._provider_ids(parent_path),
        )

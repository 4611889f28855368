"""Season identity resolution against the Bangumi catalog."""

import logging
import os
from dataclasses import dataclass
from typing import Protocol

from ..config import Settings
from ..local_config import LocalOverride
from ..models import SUBJECT_TYPE_ANIME, SearchCandidate, Subject
from ..title_extractor import extract_series_name, get_attribute_value
from .fuzzy_matcher import FuzzyAcceptor
from .library import (
    PROVIDER_NAME,
    SeasonInfo,
    SeasonRef,
    SeriesInfo,
    parse_provider_id,
)

logger = logging.getLogger(__name__)

CHINESE_ORDINALS = {
    1: "一",
    2: "二",
    3: "三",
    4: "四",
    5: "五",
    6: "六",
    7: "七",
    8: "八",
    9: "九",
    10: "十",
}


class CatalogClient(Protocol):
    async def get_subject(self, subject_id: int) -> Subject | None: ...

    async def search_subjects_ranked(
        self, keyword: str, subject_type: int = SUBJECT_TYPE_ANIME
    ) -> list[SearchCandidate]: ...

    async def get_next_subject(self, previous_id: int) -> Subject | None: ...


@dataclass(frozen=True)
class SeasonResolution:
    """Result of resolving a season to a catalog subject."""

    subject_id: int
    subject: Subject | None = None
    # "local_override" | "attribute" | "provider_id" | "series_provider_id" |
    # "folder_name" | "season_name" | "previous_season" | "unresolved"
    method: str = "unresolved"

    @property
    def resolved(self) -> bool:
        return self.subject_id > 0


UNRESOLVED = SeasonResolution(subject_id=0)


def season_search_names(series_name: str, index_number: int | None) -> list[str]:
    """Literal catalog queries for one season of a series."""
    index = index_number if index_number is not None else 1
    ordinal = CHINESE_ORDINALS.get(index, str(index))
    return [f"{series_name} 第{ordinal}季", f"{series_name} Season {index}"]


class IdentityResolver:
    """Resolves a season to a catalog id by trying weaker signals in turn.

    The resolver holds no state between calls.
    """

    def __init__(self, api: CatalogClient, settings: Settings):
        self.api = api
        self.settings = settings
        self.acceptor = FuzzyAcceptor()

    async def resolve_season_id(
        self,
        info: SeasonInfo,
        local_override: LocalOverride,
        series: SeriesInfo | None,
    ) -> SeasonResolution:
        """Resolve the catalog id of a season.

        Args:
            info: The season being resolved
            local_override: Overrides from the season's ``bangumi.ini``
            series: The containing series with its sibling seasons, if any

        Returns:
            The resolution; ``subject_id`` is 0 when nothing matched
        """
        folder_name = os.path.basename(info.path.rstrip("/\\"))

        if local_override.id > 0:
            return SeasonResolution(local_override.id, method="local_override")

        subject_id = parse_provider_id(get_attribute_value(folder_name, "bangumi"))
        if subject_id > 0:
            return SeasonResolution(subject_id, method="attribute")

        subject_id = parse_provider_id(info.provider_ids.get(PROVIDER_NAME))
        if subject_id > 0:
            return SeasonResolution(subject_id, method="provider_id")

        if info.index_number == 1:
            subject_id = parse_provider_id(info.series_provider_ids.get(PROVIDER_NAME))
            if subject_id > 0:
                return SeasonResolution(subject_id, method="series_provider_id")

        if series is None:
            return UNRESOLVED

        logger.info(f"Guessing season id by folder name: {folder_name}")
        subject = await self.search_by_folder_name(folder_name)
        if subject is not None:
            logger.info(f"Guessed result: {subject.name} (#{subject.id})")
            return SeasonResolution(subject.id, subject, method="folder_name")

        return await self.guess_from_lineage(info, series)

    async def search_by_folder_name(self, folder_name: str) -> Subject | None:
        """Search the catalog for the series name hidden in a folder name."""
        search_name = extract_series_name(folder_name)
        if not search_name:
            return None

        candidates = await self.api.search_subjects_ranked(
            search_name, SUBJECT_TYPE_ANIME
        )
        if self.settings.skip_nsfw:
            candidates = [c for c in candidates if not c.subject.nsfw]
        return self.acceptor.accept(candidates)

    async def guess_from_lineage(
        self, info: SeasonInfo, series: SeriesInfo
    ) -> SeasonResolution:
        """Guess a season from its siblings.

        The anchor is the sibling for this or the previous season number with
        the highest known id. When the anchor is this season itself, the
        season is searched by name; when the anchor has an id, its sequel is
        asked for. A later guess overwrites an earlier one.
        """
        resolution = UNRESOLVED
        anchor = self._find_anchor(info, series)
        if anchor is None:
            return resolution

        if os.path.normpath(anchor.path) == os.path.normpath(info.path):
            subject_id = await self._search_by_season_name(info, series)
            if subject_id > 0:
                resolution = SeasonResolution(subject_id, method="season_name")

        previous_id = anchor.provider_id
        if previous_id > 0:
            logger.info(f"Guessing season id from previous season #{previous_id}")
            subject = await self.api.get_next_subject(previous_id)
            if subject is not None:
                logger.info(f"Guessed result: {subject.name} (#{subject.id})")
                resolution = SeasonResolution(
                    subject.id, subject, method="previous_season"
                )

        return resolution

    def _find_anchor(self, info: SeasonInfo, series: SeriesInfo) -> SeasonRef | None:
        if info.index_number is None:
            candidates = [s for s in series.seasons if s.index_number is None]
        else:
            candidates = [
                s
                for s in series.seasons
                if s.index_number in (info.index_number - 1, info.index_number)
            ]
        if not candidates:
            return None
        return max(candidates, key=lambda s: s.provider_id)

    async def _search_by_season_name(self, info: SeasonInfo, series: SeriesInfo) -> int:
        parent_id = parse_provider_id(series.provider_ids.get(PROVIDER_NAME)) or (
            parse_provider_id(info.series_provider_ids.get(PROVIDER_NAME))
        )

        subject_id = 0
        for search_name in season_search_names(series.name, info.index_number):
            logger.info(f"Guessing season id by name: {search_name}")
            candidates = await self.api.search_subjects_ranked(
                search_name, SUBJECT_TYPE_ANIME
            )
            subjects = [c.subject for c in candidates]
            if parent_id > 0:
                subjects = [s for s in subjects if s.id != parent_id]
            if info.year is not None:
                subjects = [
                    s
                    for s in subjects
                    if s.production_year is None or s.production_year == str(info.year)
                ]
            if subjects:
                subject_id = subjects[0].id
                logger.info(f"Guessed result: {subjects[0].name} (#{subject_id})")

        return subject_id

"""Season placement of episodes: normal, special, before/after a season."""

import logging
from dataclasses import dataclass, replace
from pathlib import Path

from ..config import Settings, match_sp_exclude_regexes
from ..models import Episode, EpisodeType, Subject
from .library import ParentItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EpisodeClassification:
    season_number: int
    # Classification is final; no subject lookup is needed
    complete: bool = False
    airs_before_season_number: int | None = None
    airs_after_season_number: int | None = None

    @property
    def is_special(self) -> bool:
        return self.season_number == 0


def is_special_file(
    path: str, settings: Settings, parent: ParentItem | None = None
) -> bool:
    """Decide from the file location alone whether it is a special.

    A file is special when it lives in a season 0 folder, or when one of the
    configured exclusion patterns matches its full path, its folder name or
    its file name.
    """
    if parent is not None and parent.is_season and parent.index_number == 0:
        return True

    def report(pattern: str, error: Exception) -> None:
        logger.warning(f"Invalid special file pattern '{pattern}': {error}")

    file_path = Path(path)
    return (
        match_sp_exclude_regexes(settings.sp_exclude_regex_full_path, path, report)
        or match_sp_exclude_regexes(
            settings.sp_exclude_regex_folder_name, file_path.parent.name, report
        )
        or match_sp_exclude_regexes(
            settings.sp_exclude_regex_file_name, file_path.name, report
        )
    )


def classify_episode(
    episode: Episode,
    special_file: bool,
    requested_season_number: int | None,
    parent: ParentItem | None,
) -> EpisodeClassification:
    """Pick the season number of an episode.

    Args:
        episode: Catalog episode
        special_file: Result of the folder-based special file heuristic
        requested_season_number: Season number the library asked for
        parent: Item containing the episode file

    Returns:
        Classification; when ``complete`` is False the episode is a special
        that still has to be placed with ``place_special``
    """
    season_number = (
        requested_season_number if requested_season_number is not None else 1
    )

    if (
        special_file
        or episode.type == EpisodeType.SPECIAL
        or requested_season_number == 0
    ):
        season_number = 0
    elif parent is not None and parent.is_season and parent.index_number is not None:
        season_number = parent.index_number

    if episode.type == EpisodeType.NORMAL and season_number > 0:
        return EpisodeClassification(season_number=season_number, complete=True)

    return EpisodeClassification(season_number=0)


def place_special(
    classification: EpisodeClassification,
    episode: Episode,
    subject: Subject,
    parent: ParentItem | None,
) -> EpisodeClassification:
    """Place a special before or after the season it belongs to.

    Air dates are compared as strings; an episode airing strictly before its
    subject goes before the season, anything else after it.
    """
    if classification.complete:
        return classification

    if parent is not None and parent.is_season:
        season_number = parent.index_number
    else:
        season_number = 1

    if episode.airdate and episode.airdate < (subject.date or ""):
        return replace(
            classification,
            complete=True,
            airs_before_season_number=season_number,
        )

    return replace(
        classification,
        complete=True,
        airs_after_season_number=season_number,
    )

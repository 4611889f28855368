"""Episode lookup strategies: regex heuristics or guessit."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..config import Settings
from ..guessit_utils import parse_guessit_safe
from ..local_config import LocalOverride
from ..models import Episode, EpisodeType
from .library import PROVIDER_NAME, EpisodeInfo, ParentItem, parse_provider_id

logger = logging.getLogger(__name__)

_NUMBER = r"(\d+(?:\.\d+)?)"

EPISODE_NUMBER_PATTERNS = [
    re.compile(r"第\s*" + _NUMBER + r"\s*[话話集]"),
    re.compile(r"\bS\d+E" + _NUMBER, re.IGNORECASE),
    re.compile(r"\b(?:EP|E|Episode)\s*" + _NUMBER + r"(?:v\d)?\b", re.IGNORECASE),
    re.compile(r"\s-\s" + _NUMBER + r"(?:v\d)?\b"),
    re.compile(r"[\[【]" + _NUMBER + r"(?:v\d)?(?:END)?[\]】]", re.IGNORECASE),
]

# Bracket groups that only carry release noise and never an episode number
NOISE_PATTERN = re.compile(
    r"\d{3,4}[pP]|[xXhH]\.?26[45]|\b(?:10|8)-?bit\b|\bv\d\b", re.IGNORECASE
)


@dataclass
class EpisodeParserContext:
    api: "EpisodeCatalog"
    info: EpisodeInfo
    settings: Settings
    local_override: LocalOverride
    parent: ParentItem | None
    special_file: bool


class EpisodeCatalog(Protocol):
    async def get_episode(self, episode_id: int) -> Episode | None: ...

    async def get_subject_episodes(
        self, subject_id: int, episode_type: EpisodeType | None = None
    ) -> list[Episode]: ...


class EpisodeParser(Protocol):
    async def get_episode(self) -> Episode | None: ...


def extract_episode_number(file_name: str) -> float | None:
    """Read an episode number from a file name using common release patterns."""
    stem = Path(file_name).stem
    cleaned = NOISE_PATTERN.sub(" ", stem)
    for pattern in EPISODE_NUMBER_PATTERNS:
        match = pattern.search(cleaned)
        if match:
            return float(match.group(1))
    return None


def resolve_subject_id(context: EpisodeParserContext) -> int:
    """Find the subject an episode file belongs to.

    The folder override wins, then the containing season's id, then the
    series id.
    """
    if context.local_override.id > 0:
        return context.local_override.id

    if context.parent is not None:
        subject_id = parse_provider_id(context.parent.provider_ids.get(PROVIDER_NAME))
        if subject_id > 0:
            return subject_id

    return parse_provider_id(context.info.series_provider_ids.get(PROVIDER_NAME))


def _wanted_type(context: EpisodeParserContext) -> EpisodeType:
    if context.local_override.type is not None:
        return context.local_override.type
    if context.special_file:
        return EpisodeType.SPECIAL
    return EpisodeType.NORMAL


async def find_episode(
    context: EpisodeParserContext, number: float | None
) -> Episode | None:
    """Look up an episode of the resolved subject by number."""
    episode_id = parse_provider_id(context.info.provider_ids.get(PROVIDER_NAME))
    if episode_id > 0:
        episode = await context.api.get_episode(episode_id)
        if episode is not None:
            return episode

    if number is None:
        number = context.info.index_number
    if number is None:
        logger.debug(f"No episode number found for {context.info.path}")
        return None

    subject_id = resolve_subject_id(context)
    if subject_id <= 0:
        logger.debug(f"No subject id found for {context.info.path}")
        return None

    episodes = await context.api.get_subject_episodes(subject_id)
    wanted_type = _wanted_type(context)
    same_type = [e for e in episodes if e.type == wanted_type]

    if wanted_type == EpisodeType.NORMAL:
        for episode in same_type:
            if episode.ep == number:
                return episode

    for pool in (same_type, episodes):
        for episode in pool:
            if episode.sort == number:
                return episode

    return None


class BasicEpisodeParser:
    """Finds the episode number with release-name regexes."""

    def __init__(self, context: EpisodeParserContext):
        self.context = context

    async def get_episode(self) -> Episode | None:
        file_name = Path(self.context.info.path).name
        number = extract_episode_number(file_name)
        return await find_episode(self.context, number)


class GuessitEpisodeParser:
    """Finds the episode number with guessit."""

    def __init__(self, context: EpisodeParserContext):
        self.context = context

    async def get_episode(self) -> Episode | None:
        file_name = Path(self.context.info.path).name
        guess = parse_guessit_safe(file_name)
        number = float(guess.episode) if guess.episode is not None else None
        return await find_episode(self.context, number)


def create_episode_parser(context: EpisodeParserContext) -> EpisodeParser:
    """Select the parser for one request from configuration."""
    if context.settings.always_get_episode_by_guessit:
        return GuessitEpisodeParser(context)
    return BasicEpisodeParser(context)

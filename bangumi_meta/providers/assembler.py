"""Mapping of catalog records into library metadata."""

from dataclasses import dataclass, field

from whenever import Date

from ..config import Settings
from ..local_config import LocalOverride
from ..models import Character, Episode, Person, Subject, parse_date
from .classifier import EpisodeClassification
from .library import PROVIDER_NAME

RESULT_LANGUAGE = "zh-CN"

# Staff relations kept as people, by library person type
STAFF_TYPES = {
    "导演": "Director",
    "原作": "Writer",
    "脚本": "Writer",
    "系列构成": "Writer",
    "音乐": "Composer",
    "制片人": "Producer",
    "人物设定": "Producer",
}


@dataclass
class PersonInfo:
    name: str
    type: str
    role: str | None = None
    image_url: str | None = None
    provider_ids: dict[str, str] = field(default_factory=dict)


@dataclass
class SeasonMetadata:
    provider_ids: dict[str, str] = field(default_factory=dict)
    name: str | None = None
    original_title: str | None = None
    overview: str | None = None
    community_rating: float | None = None
    tags: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    premiere_date: Date | None = None
    production_year: int | None = None
    end_date: Date | None = None
    home_page_url: str | None = None
    official_rating: str | None = None


@dataclass
class EpisodeMetadata:
    provider_ids: dict[str, str] = field(default_factory=dict)
    name: str | None = None
    original_title: str | None = None
    overview: str | None = None
    index_number: int | None = None
    parent_index_number: int | None = None
    premiere_date: Date | None = None
    production_year: int | None = None
    airs_before_season_number: int | None = None
    airs_after_season_number: int | None = None


@dataclass
class MetadataResult:
    """Metadata handed back to the library; empty when nothing matched."""

    item: SeasonMetadata | EpisodeMetadata | None = None
    people: list[PersonInfo] = field(default_factory=list)
    result_language: str = RESULT_LANGUAGE

    @property
    def has_metadata(self) -> bool:
        return self.item is not None


def _image_url(images: dict[str, str | None] | None) -> str | None:
    if not images:
        return None
    return images.get("large") or images.get("medium") or None


def assemble_season(subject: Subject, settings: Settings) -> SeasonMetadata:
    season = SeasonMetadata(provider_ids={PROVIDER_NAME: str(subject.id)})

    if subject.rating is not None:
        season.community_rating = subject.rating.score
    if settings.use_bangumi_season_title:
        season.name = subject.display_name(settings.translation_preference)
        season.original_title = subject.name

    season.overview = subject.summary or None
    season.tags = subject.popular_tags
    season.genres = subject.genre_tags

    air_date = subject.air_date
    if air_date is not None:
        season.premiere_date = air_date
        season.production_year = air_date.year
    if subject.production_year is not None:
        season.production_year = int(subject.production_year)

    season.home_page_url = subject.official_website
    season.end_date = subject.end_date

    if subject.nsfw:
        season.official_rating = "X"

    return season


def assemble_people(
    persons: list[Person], characters: list[Character], settings: Settings
) -> list[PersonInfo]:
    """Build the people list from staff and character casts.

    Staff without a known person type are left out. Every voice actor of a
    character becomes an actor playing that character.
    """
    preference = settings.person_translation_preference
    people = []

    for person in persons:
        person_type = STAFF_TYPES.get(person.relation)
        if person_type is None:
            continue
        people.append(
            PersonInfo(
                name=person.display_name(preference),
                type=person_type,
                role=person.relation,
                image_url=_image_url(person.images),
                provider_ids={PROVIDER_NAME: str(person.id)},
            )
        )

    for character in characters:
        for actor in character.actors:
            people.append(
                PersonInfo(
                    name=actor.display_name(preference),
                    type="Actor",
                    role=character.display_name(preference),
                    image_url=_image_url(character.images),
                    provider_ids={PROVIDER_NAME: str(actor.id)},
                )
            )

    return people


def assemble_episode(
    episode: Episode, local_override: LocalOverride, settings: Settings
) -> EpisodeMetadata:
    """Map an episode; the season placement is applied separately."""
    metadata = EpisodeMetadata(provider_ids={PROVIDER_NAME: str(episode.id)})

    metadata.premiere_date = parse_date(episode.airdate)
    if len(episode.airdate) == 4 and episode.airdate.isdigit():
        metadata.production_year = int(episode.airdate)

    metadata.name = episode.display_name(settings.translation_preference) or None
    metadata.original_title = episode.name or None
    metadata.overview = episode.desc or None
    # Fractional orders (.5 recaps) are truncated, the folder offset is added
    metadata.index_number = int(episode.order) + local_override.offset

    return metadata


def apply_classification(
    metadata: EpisodeMetadata, classification: EpisodeClassification
) -> EpisodeMetadata:
    metadata.parent_index_number = classification.season_number
    metadata.airs_before_season_number = classification.airs_before_season_number
    metadata.airs_after_season_number = classification.airs_after_season_number
    return metadata


def fill_from_subject(
    metadata: EpisodeMetadata, subject: Subject, settings: Settings
) -> EpisodeMetadata:
    """Use the subject's title and summary where the episode has none."""
    if not metadata.name:
        metadata.name = subject.display_name(settings.translation_preference) or None
    if not metadata.original_title:
        metadata.original_title = subject.name or None
    if not metadata.overview:
        metadata.overview = subject.summary or None
    return metadata

"""Pydantic models for Bangumi catalog records."""

import re
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from whenever import Date

from .config import TranslationPreference

SUBJECT_TYPE_ANIME = 2

_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")


def parse_date(value: str | None) -> Date | None:
    """Parse a full ``YYYY-MM-DD`` date, ignoring partial or invalid values."""
    if not value:
        return None

    match = _DATE_RE.match(value.strip())
    if not match:
        return None

    try:
        return Date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def _infobox_value(infobox: list[dict[str, Any]], *keys: str) -> str | None:
    """Read a value from a Bangumi infobox, flattening list values."""
    for item in infobox:
        if item.get("key") not in keys:
            continue
        value = item.get("value")
        if isinstance(value, list):
            values = [v.get("v") for v in value if isinstance(v, dict) and v.get("v")]
            return values[0] if values else None
        if value:
            return str(value)
    return None


def _pick_name(
    original: str, translated: str | None, preference: TranslationPreference
) -> str:
    if preference == TranslationPreference.CHINESE and translated:
        return translated
    return original


class Tag(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    count: int = 0


class Rating(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: float | None = None
    total: int = 0
    rank: int | None = None


class Subject(BaseModel):
    """A catalog-level work (series or season)."""

    model_config = ConfigDict(extra="ignore")

    id: int
    type: int = SUBJECT_TYPE_ANIME
    name: str = ""
    name_cn: str = ""
    summary: str = ""
    date: str | None = None
    platform: str | None = None
    nsfw: bool = False
    rating: Rating | None = None
    tags: list[Tag] = Field(default_factory=list)
    meta_tags: list[str] = Field(default_factory=list)
    infobox: list[dict[str, Any]] = Field(default_factory=list)
    total_episodes: int | None = None
    # Unix timestamp stamped when the record was written to the archive
    archived_at: int | None = None

    def display_name(self, preference: TranslationPreference) -> str:
        return _pick_name(self.name, self.name_cn, preference)

    @property
    def air_date(self) -> Date | None:
        return parse_date(self.date)

    @property
    def production_year(self) -> str | None:
        if self.date and len(self.date) >= 4 and self.date[:4].isdigit():
            return self.date[:4]
        return None

    @property
    def end_date(self) -> Date | None:
        return parse_date(_infobox_value(self.infobox, "播放结束", "放送结束"))

    @property
    def official_website(self) -> str | None:
        return _infobox_value(self.infobox, "官方网站")

    @property
    def popular_tags(self) -> list[str]:
        """Tags voted by at least a quarter as many users as the top tag."""
        if not self.tags:
            return []
        top = max(tag.count for tag in self.tags)
        return [tag.name for tag in self.tags if tag.count * 4 >= top]

    @property
    def genre_tags(self) -> list[str]:
        return list(self.meta_tags)


class EpisodeType(IntEnum):
    NORMAL = 0
    SPECIAL = 1
    OPENING = 2
    ENDING = 3
    PREVIEW = 4
    MAD = 5
    OTHER = 6


class Episode(BaseModel):
    """A single catalog episode belonging to one subject."""

    model_config = ConfigDict(extra="ignore")

    id: int
    subject_id: int
    type: EpisodeType = EpisodeType.NORMAL
    sort: float = 0
    ep: float | None = None
    name: str = ""
    name_cn: str = ""
    airdate: str = ""
    desc: str = ""

    @property
    def order(self) -> float:
        return self.sort

    def display_name(self, preference: TranslationPreference) -> str:
        return _pick_name(self.name, self.name_cn, preference)


class Person(BaseModel):
    """A person associated with a subject (staff, cast)."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    type: int = 1
    career: list[str] = Field(default_factory=list)
    relation: str = ""
    images: dict[str, str | None] | None = None
    infobox: list[dict[str, Any]] = Field(default_factory=list)

    def display_name(self, preference: TranslationPreference) -> str:
        return _pick_name(
            self.name, _infobox_value(self.infobox, "简体中文名"), preference
        )


class Character(BaseModel):
    """A character of a subject together with its voice actors."""

    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    type: int = 1
    relation: str = ""
    images: dict[str, str | None] | None = None
    actors: list[Person] = Field(default_factory=list)
    infobox: list[dict[str, Any]] = Field(default_factory=list)

    def display_name(self, preference: TranslationPreference) -> str:
        return _pick_name(
            self.name, _infobox_value(self.infobox, "简体中文名"), preference
        )


class RelatedSubject(BaseModel):
    """An entry of ``/v0/subjects/{id}/subjects``."""

    model_config = ConfigDict(extra="ignore")

    id: int
    type: int = SUBJECT_TYPE_ANIME
    name: str = ""
    name_cn: str = ""
    relation: str = ""


class SearchCandidate(BaseModel):
    """A search result paired with its similarity score (0-100)."""

    subject: Subject
    score: int


class GuessitData(BaseModel):
    """Guessit metadata for a media file name."""

    model_config = ConfigDict(extra="allow")

    title: str | None = None
    alternative_title: str | None = None
    episode_title: str | None = None
    episode: int | None = None
    season: int | None = None
    year: int | None = None
    release_group: str | None = None
    screen_size: str | None = None
    container: str | None = None
    # Additional fields are allowed due to extra="allow"

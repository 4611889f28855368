"""Catalog access backed by the local archive."""

import logging
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel
from whenever import Instant, hours

from ..bangumi_api import SEARCH_LIMIT, SEQUEL_RELATION, BangumiApi, BangumiApiError
from ..config import Settings
from ..models import (
    SUBJECT_TYPE_ANIME,
    Character,
    Episode,
    EpisodeType,
    Person,
    SearchCandidate,
    Subject,
)
from ..providers.fuzzy_matcher import rank_subjects
from .data import ArchiveData
from .store import ArchiveStore, RelationStore

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class ArchiveBackedApi:
    """Same interface as BangumiApi, with the archive as cache and fallback.

    - Subjects that aired long enough ago are served from the archive.
    - Everything fetched from the catalog is written to the archive.
    - When the catalog is unreachable, archived records are returned.
    """

    def __init__(
        self,
        api: BangumiApi,
        archive: ArchiveData,
        settings: Settings,
        now_func: Callable[[], Instant] = Instant.now,
    ):
        self.api = api
        self.archive = archive
        self.settings = settings
        self.now_func = now_func

    def should_use_archived(self, subject: Subject) -> bool:
        """Check whether an archived subject can be served without the catalog."""
        air_date = subject.air_date
        if air_date is None:
            return False

        now = self.now_func()
        aired = Instant.from_utc(air_date.year, air_date.month, air_date.day)
        if now - aired < hours(24 * self.settings.days_before_using_archive_data):
            return False

        refresh = self.settings.refresh_rating_when_archive_update
        if refresh and self._rating_stale(subject):
            return False

        return True

    def _rating_stale(self, subject: Subject) -> bool:
        """Check whether an archived subject is due for a rating refresh."""
        if subject.archived_at is None:
            return True
        archived = Instant.from_timestamp(subject.archived_at)
        interval = hours(24 * self.settings.rating_update_min_interval)
        return self.now_func() - archived >= interval

    def _archive_subject(self, subject: Subject) -> None:
        """Archive a fetched subject unless the archived copy is still current.

        The archive stamp alone never counts as a change, except when ratings
        are refreshed and the stamp is older than the refresh interval.
        """
        archived = self.archive.subject.get(subject.id)
        if archived is not None:
            unstamped = {"archived_at": None}
            unchanged = archived.model_copy(update=unstamped) == subject.model_copy(
                update=unstamped
            )
            restamp = (
                self.settings.refresh_rating_when_archive_update
                and self._rating_stale(archived)
            )
            if unchanged and not restamp:
                return

        stamped = subject.model_copy(
            update={"archived_at": int(self.now_func().timestamp())}
        )
        self.archive.subject.append(stamped)

    def _archive_changed(self, store: ArchiveStore[T], records: list[T]) -> None:
        """Append the records that differ from their archived version."""
        archived = {record.id: record for record in store.load_all()}
        latest = {record.id: record for record in records}
        changed = [r for r in latest.values() if archived.get(r.id) != r]
        if changed:
            store.append_many(changed)

    def _link_new(
        self, relations: RelationStore, subject_id: int, related: list[tuple[int, str]]
    ) -> None:
        known = {(r.related_id, r.relation) for r in relations.relations(subject_id)}
        new = [item for item in related if item not in known]
        if new:
            relations.link_many(subject_id, new)

    async def get_subject(self, subject_id: int) -> Subject | None:
        if subject_id <= 0:
            return None

        archived = self.archive.subject.get(subject_id)
        if archived is not None and self.should_use_archived(archived):
            logger.debug(f"Using archived subject #{subject_id}")
            return archived

        try:
            subject = await self.api.get_subject(subject_id)
        except BangumiApiError as e:
            logger.warning(f"Bangumi unavailable, using archive for #{subject_id}: {e}")
            return archived

        if subject is not None:
            self._archive_subject(subject)
        return subject

    async def search_subjects_ranked(
        self, keyword: str, subject_type: int = SUBJECT_TYPE_ANIME
    ) -> list[SearchCandidate]:
        try:
            return await self.api.search_subjects_ranked(keyword, subject_type)
        except BangumiApiError as e:
            logger.warning(f"Bangumi search unavailable, searching archive: {e}")

        subjects = [
            s for s in self.archive.subject.load_all() if s.type == subject_type
        ]
        candidates = rank_subjects(keyword, subjects, sort_by_score=True)
        return [c for c in candidates if c.score > 0][:SEARCH_LIMIT]

    async def get_next_subject(self, previous_id: int) -> Subject | None:
        try:
            subject = await self.api.get_next_subject(previous_id)
        except BangumiApiError as e:
            logger.warning(
                f"Bangumi unavailable, using archived sequel of #{previous_id}: {e}"
            )
            for related_id in sorted(
                self.archive.subject_relations.related_ids(previous_id, SEQUEL_RELATION)
            ):
                subject = self.archive.subject.get(related_id)
                if subject is not None:
                    return subject
            return None

        if subject is not None:
            self._archive_subject(subject)
            self._link_new(
                self.archive.subject_relations,
                previous_id,
                [(subject.id, SEQUEL_RELATION)],
            )
        return subject

    async def get_subject_persons(self, subject_id: int) -> list[Person]:
        try:
            persons = await self.api.get_subject_persons(subject_id)
        except BangumiApiError as e:
            logger.warning(
                f"Bangumi unavailable, using archived persons of #{subject_id}: {e}"
            )
            return self._archived_related(
                self.archive.subject_persons, self.archive.person, subject_id
            )

        self._archive_changed(self.archive.person, persons)
        self._link_new(
            self.archive.subject_persons,
            subject_id,
            [(p.id, p.relation) for p in persons],
        )
        return persons

    async def get_subject_characters(self, subject_id: int) -> list[Character]:
        try:
            characters = await self.api.get_subject_characters(subject_id)
        except BangumiApiError as e:
            logger.warning(
                f"Bangumi unavailable, using archived characters of #{subject_id}: {e}"
            )
            return self._archived_related(
                self.archive.subject_characters, self.archive.character, subject_id
            )

        self._archive_changed(self.archive.character, characters)
        self._link_new(
            self.archive.subject_characters,
            subject_id,
            [(c.id, c.relation) for c in characters],
        )
        return characters

    def _archived_related(
        self, relations: RelationStore, store: ArchiveStore[T], subject_id: int
    ) -> list[T]:
        """Rebuild a subject's person or character list from the archive."""
        records = {record.id: record for record in store.load_all()}
        related = []
        for relation in relations.relations(subject_id):
            record = records.get(relation.related_id)
            if record is not None:
                related.append(
                    record.model_copy(update={"relation": relation.relation})
                )
        return related

    async def get_subject_episodes(
        self, subject_id: int, episode_type: EpisodeType | None = None
    ) -> list[Episode]:
        try:
            episodes = await self.api.get_subject_episodes(subject_id, episode_type)
        except BangumiApiError as e:
            logger.warning(
                f"Bangumi unavailable, using archived episodes of #{subject_id}: {e}"
            )
            episode_ids = self.archive.subject_episodes.related_ids(subject_id)
            episodes = [
                episode
                for episode in self.archive.episode.load_all()
                if episode.id in episode_ids
                and (episode_type is None or episode.type == episode_type)
            ]
            return sorted(episodes, key=lambda episode: (episode.type, episode.sort))

        self._archive_changed(self.archive.episode, episodes)
        self._link_new(
            self.archive.subject_episodes, subject_id, [(e.id, "") for e in episodes]
        )
        return episodes

    async def get_episode(self, episode_id: int) -> Episode | None:
        try:
            episode = await self.api.get_episode(episode_id)
        except BangumiApiError as e:
            logger.warning(
                f"Bangumi unavailable, using archived episode #{episode_id}: {e}"
            )
            return self.archive.episode.get(episode_id)

        if episode is not None:
            self._archive_changed(self.archive.episode, [episode])
        return episode

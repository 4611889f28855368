from unittest.mock import AsyncMock

import pytest
from whenever import Instant

from bangumi_meta.archive.data import ArchiveData
from bangumi_meta.config import Settings
from bangumi_meta.models import Episode, EpisodeType, SearchCandidate, Subject


@pytest.fixture
def fixed_time():
    """Provide a fixed time for testing."""
    return Instant.from_utc(2025, 1, 1, 12, 0, 0)


@pytest.fixture
def settings(tmp_path):
    """Settings with the archive under a temporary directory."""
    return Settings(archive_path=str(tmp_path / "archive"))


@pytest.fixture
def archive(settings):
    """Create an empty archive for testing."""
    return ArchiveData(settings.archive_path)


@pytest.fixture
def fake_api():
    """Catalog double answering every lookup with nothing found."""
    api = AsyncMock()
    api.get_subject.return_value = None
    api.search_subjects_ranked.return_value = []
    api.get_next_subject.return_value = None
    api.get_subject_persons.return_value = []
    api.get_subject_characters.return_value = []
    api.get_subject_episodes.return_value = []
    api.get_episode.return_value = None
    return api


def make_subject(subject_id: int, name: str = "", **kwargs) -> Subject:
    return Subject(id=subject_id, name=name or f"Subject {subject_id}", **kwargs)


def make_episode(
    episode_id: int,
    subject_id: int,
    sort: float,
    episode_type: EpisodeType = EpisodeType.NORMAL,
    **kwargs,
) -> Episode:
    return Episode(
        id=episode_id, subject_id=subject_id, type=episode_type, sort=sort, **kwargs
    )


def candidate(subject: Subject, score: int) -> SearchCandidate:
    return SearchCandidate(subject=subject, score=score)

"""Bangumi (bgm.tv) v0 REST API client."""

import logging
from typing import Any

import httpx

from .config import Settings
from .models import (
    SUBJECT_TYPE_ANIME,
    Character,
    Episode,
    EpisodeType,
    Person,
    RelatedSubject,
    SearchCandidate,
    Subject,
)
from .providers.fuzzy_matcher import rank_subjects

logger = logging.getLogger(__name__)

SEQUEL_RELATION = "续集"

# Sequels on these platforms are not seasons and are hopped over
SKIPPED_SEQUEL_PLATFORMS = {"剧场版"}

EPISODE_PAGE_SIZE = 100
SEARCH_LIMIT = 10
USER_AGENT = "bangumi-meta/0.1.0"


class BangumiApiError(Exception):
    """Base error for catalog failures."""


class CatalogUnavailableError(BangumiApiError):
    """Raised when the catalog cannot be reached (network, timeout, 5xx)."""


class BangumiApi:
    """Async client for the Bangumi catalog.

    Lookups of missing records return None. Transport failures raise
    CatalogUnavailableError and are never retried here.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None):
        """Initialize Bangumi client.

        Args:
            settings: Configuration providing URL, token and timeout
            client: Optional preconfigured HTTP client (owned by the caller)
        """
        self.settings = settings
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self):
        """Async context manager entry."""
        if self._client is None:
            headers = {"User-Agent": USER_AGENT}
            if self.settings.access_token:
                headers["Authorization"] = f"Bearer {self.settings.access_token}"
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_server_url,
                timeout=self.settings.request_timeout / 1000,
                headers=headers,
                follow_redirects=True,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self._client and self._owns_client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("BangumiApi must be used as an async context manager")
        return self._client

    async def _request(
        self, method: str, path: str, **kwargs: Any
    ) -> Any | None:
        """Send a request and decode its JSON body.

        Returns:
            Decoded JSON, or None for 404 responses

        Raises:
            CatalogUnavailableError: On network errors, timeouts and 429/5xx
            BangumiApiError: On other error statuses or undecodable bodies
        """
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code == 404:
                return None
            if status_code == 429 or status_code >= 500:
                raise CatalogUnavailableError(
                    f"Bangumi {method} {path} failed: {status_code}"
                ) from e
            raise BangumiApiError(
                f"Bangumi {method} {path} failed: {status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise CatalogUnavailableError(f"Bangumi {method} {path} timed out") from e
        except httpx.TransportError as e:
            raise CatalogUnavailableError(
                f"Bangumi {method} {path} failed: {e}"
            ) from e
        except ValueError as e:
            raise BangumiApiError(
                f"Bangumi {method} {path} returned invalid JSON"
            ) from e

    async def get_subject(self, subject_id: int) -> Subject | None:
        if subject_id <= 0:
            return None
        data = await self._request("GET", f"/v0/subjects/{subject_id}")
        return Subject.model_validate(data) if data else None

    async def search_subjects(
        self, keyword: str, subject_type: int = SUBJECT_TYPE_ANIME
    ) -> list[Subject]:
        """Search subjects by keyword in the catalog's own order."""
        if not keyword:
            return []

        logger.debug(f"Searching Bangumi for '{keyword}'")
        data = await self._request(
            "POST",
            "/v0/search/subjects",
            params={"limit": SEARCH_LIMIT},
            json={"keyword": keyword, "filter": {"type": [subject_type]}},
        )
        if not data:
            return []
        return [Subject.model_validate(item) for item in data.get("data", [])]

    async def search_subjects_ranked(
        self, keyword: str, subject_type: int = SUBJECT_TYPE_ANIME
    ) -> list[SearchCandidate]:
        """Search subjects and pair every result with its similarity score."""
        subjects = await self.search_subjects(keyword, subject_type)
        return rank_subjects(
            keyword, subjects, sort_by_score=self.settings.sort_by_fuzz_score
        )

    async def get_related_subjects(self, subject_id: int) -> list[RelatedSubject]:
        data = await self._request("GET", f"/v0/subjects/{subject_id}/subjects")
        return [RelatedSubject.model_validate(item) for item in data or []]

    async def get_next_subject(self, previous_id: int) -> Subject | None:
        """Find the season that follows a subject.

        Follows the sequel relation, hopping over movies, at most
        ``season_guess_max_search_count`` times.
        """
        current_id = previous_id
        for _ in range(max(self.settings.season_guess_max_search_count, 1)):
            related = await self.get_related_subjects(current_id)
            sequel = next(
                (
                    r
                    for r in related
                    if r.relation == SEQUEL_RELATION and r.type == SUBJECT_TYPE_ANIME
                ),
                None,
            )
            if sequel is None:
                return None

            subject = await self.get_subject(sequel.id)
            if subject is None:
                return None
            if subject.platform not in SKIPPED_SEQUEL_PLATFORMS:
                return subject

            logger.debug(
                f"Skipping sequel #{subject.id} on platform {subject.platform}"
            )
            current_id = subject.id

        return None

    async def get_subject_persons(self, subject_id: int) -> list[Person]:
        data = await self._request("GET", f"/v0/subjects/{subject_id}/persons")
        return [Person.model_validate(item) for item in data or []]

    async def get_subject_characters(self, subject_id: int) -> list[Character]:
        data = await self._request("GET", f"/v0/subjects/{subject_id}/characters")
        return [Character.model_validate(item) for item in data or []]

    async def get_subject_episodes(
        self, subject_id: int, episode_type: EpisodeType | None = None
    ) -> list[Episode]:
        """Fetch all episodes of a subject, page by page."""
        episodes = []
        offset = 0

        while True:
            params: dict[str, Any] = {
                "subject_id": subject_id,
                "limit": EPISODE_PAGE_SIZE,
                "offset": offset,
            }
            if episode_type is not None:
                params["type"] = int(episode_type)

            data = await self._request("GET", "/v0/episodes", params=params)
            if not data:
                break

            page = data.get("data", [])
            episodes.extend(self._parse_episode(item, subject_id) for item in page)

            offset += len(page)
            if not page or offset >= data.get("total", 0):
                break

        return episodes

    async def get_episode(self, episode_id: int) -> Episode | None:
        data = await self._request("GET", f"/v0/episodes/{episode_id}")
        return self._parse_episode(data, data.get("subject_id", 0)) if data else None

    def _parse_episode(self, item: dict, subject_id: int) -> Episode:
        """Parse an episode, filling the parent id the list endpoint omits."""
        item = dict(item)
        item.setdefault("subject_id", subject_id)
        return Episode.model_validate(item)

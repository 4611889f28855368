"""Tests for the Bangumi API client."""

import json

import httpx
import pytest

from bangumi_meta.bangumi_api import (
    BangumiApi,
    BangumiApiError,
    CatalogUnavailableError,
)
from bangumi_meta.models import EpisodeType


def make_api(settings, handler) -> BangumiApi:
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://api.bgm.tv"
    )
    return BangumiApi(settings, client=client)


def subject_json(subject_id: int, **kwargs) -> dict:
    return {"id": subject_id, "type": 2, "name": f"Subject {subject_id}", **kwargs}


class TestRequests:
    """Test request building and response parsing."""

    @pytest.mark.asyncio
    async def test_get_subject(self, settings):
        def handler(request):
            assert request.url.path == "/v0/subjects/1"
            return httpx.Response(
                200,
                json=subject_json(
                    1,
                    name_cn="中文",
                    date="2020-04-01",
                    rating={"score": 7.5, "total": 100},
                    tags=[{"name": "TV", "count": 10}],
                ),
            )

        async with make_api(settings, handler) as api:
            subject = await api.get_subject(1)

        assert subject.name_cn == "中文"
        assert subject.rating.score == 7.5
        assert subject.production_year == "2020"

    @pytest.mark.asyncio
    async def test_search_subjects(self, settings):
        def handler(request):
            assert request.method == "POST"
            assert request.url.path == "/v0/search/subjects"
            body = json.loads(request.content)
            assert body == {"keyword": "Show Name", "filter": {"type": [2]}}
            return httpx.Response(
                200,
                json={
                    "data": [
                        subject_json(1, name="Other"),
                        subject_json(2, name="Show Name"),
                    ]
                },
            )

        settings.sort_by_fuzz_score = True
        async with make_api(settings, handler) as api:
            candidates = await api.search_subjects_ranked("Show Name")

        assert [c.subject.id for c in candidates] == [2, 1]
        assert candidates[0].score == 100

    @pytest.mark.asyncio
    async def test_episode_pagination(self, settings):
        pages = {
            0: [{"id": i, "type": 0, "sort": i, "ep": i} for i in range(1, 101)],
            100: [{"id": 101, "type": 0, "sort": 101, "ep": 101}],
        }

        def handler(request):
            assert request.url.params["subject_id"] == "5"
            assert request.url.params["type"] == "0"
            offset = int(request.url.params["offset"])
            return httpx.Response(200, json={"data": pages[offset], "total": 101})

        async with make_api(settings, handler) as api:
            episodes = await api.get_subject_episodes(5, EpisodeType.NORMAL)

        assert len(episodes) == 101
        assert all(e.subject_id == 5 for e in episodes)

    @pytest.mark.asyncio
    async def test_next_subject_skips_movies(self, settings):
        related = {
            1: [
                {"id": 9, "type": 2, "relation": "前传"},
                {"id": 2, "type": 2, "relation": "续集"},
            ],
            2: [{"id": 3, "type": 2, "relation": "续集"}],
        }
        subjects = {
            2: subject_json(2, platform="剧场版"),
            3: subject_json(3, platform="TV"),
        }

        def handler(request):
            parts = request.url.path.split("/")
            subject_id = int(parts[3])
            if request.url.path.endswith("/subjects"):
                return httpx.Response(200, json=related.get(subject_id, []))
            return httpx.Response(200, json=subjects[subject_id])

        async with make_api(settings, handler) as api:
            subject = await api.get_next_subject(1)

        assert subject.id == 3

    @pytest.mark.asyncio
    async def test_next_subject_hop_limit(self, settings):
        settings.season_guess_max_search_count = 1

        def handler(request):
            if request.url.path.endswith("/subjects"):
                return httpx.Response(
                    200, json=[{"id": 2, "type": 2, "relation": "续集"}]
                )
            return httpx.Response(200, json=subject_json(2, platform="剧场版"))

        async with make_api(settings, handler) as api:
            assert await api.get_next_subject(1) is None

    @pytest.mark.asyncio
    async def test_persons_and_characters(self, settings):
        def handler(request):
            if request.url.path.endswith("/persons"):
                return httpx.Response(
                    200, json=[{"id": 10, "name": "Director", "relation": "导演"}]
                )
            return httpx.Response(
                200,
                json=[
                    {
                        "id": 20,
                        "name": "Hero",
                        "relation": "主角",
                        "actors": [{"id": 30, "name": "Voice"}],
                    }
                ],
            )

        async with make_api(settings, handler) as api:
            [person] = await api.get_subject_persons(1)
            [character] = await api.get_subject_characters(1)

        assert person.relation == "导演"
        assert character.actors[0].id == 30


class TestErrors:
    """Test mapping of HTTP failures."""

    @pytest.mark.asyncio
    async def test_not_found_is_none(self, settings):
        async with make_api(settings, lambda request: httpx.Response(404)) as api:
            assert await api.get_subject(1) is None
            assert await api.get_episode(1) is None

    @pytest.mark.asyncio
    async def test_non_positive_id(self, settings):
        def handler(request):
            raise AssertionError("no request expected")

        async with make_api(settings, handler) as api:
            assert await api.get_subject(0) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [429, 500, 503])
    async def test_unavailable_statuses(self, settings, status_code):
        async with make_api(
            settings, lambda request: httpx.Response(status_code)
        ) as api:
            with pytest.raises(CatalogUnavailableError):
                await api.get_subject(1)

    @pytest.mark.asyncio
    async def test_client_error(self, settings):
        async with make_api(settings, lambda request: httpx.Response(400)) as api:
            with pytest.raises(BangumiApiError) as exc_info:
                await api.get_subject(1)

        assert not isinstance(exc_info.value, CatalogUnavailableError)

    @pytest.mark.asyncio
    async def test_timeout(self, settings):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        async with make_api(settings, handler) as api:
            with pytest.raises(CatalogUnavailableError):
                await api.get_subject(1)

    @pytest.mark.asyncio
    async def test_connection_error(self, settings):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_api(settings, handler) as api:
            with pytest.raises(CatalogUnavailableError):
                await api.get_subject(1)

    @pytest.mark.asyncio
    async def test_invalid_json(self, settings):
        async with make_api(
            settings, lambda request: httpx.Response(200, content=b"<html>")
        ) as api:
            with pytest.raises(BangumiApiError):
                await api.get_subject(1)

    @pytest.mark.asyncio
    async def test_requires_context_manager(self, settings):
        api = BangumiApi(settings)
        with pytest.raises(RuntimeError):
            await api.get_subject(1)


@pytest.mark.asyncio
async def test_client_headers(settings):
    settings.access_token = "secret"

    async with BangumiApi(settings) as api:
        headers = api.client.headers
        assert headers["authorization"] == "Bearer secret"
        assert headers["user-agent"].startswith("bangumi-meta/")
        assert api.client.timeout.read == 5.0

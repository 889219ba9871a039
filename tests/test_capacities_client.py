"""Tests for the typed Capacities operations."""

import json

import httpx
import pytest
import respx

from capgate.app.client.capacities import CapacitiesClient
from capgate.app.client.gateway import RequestGateway
from capgate.app.client.models import SearchResult, Space, SpaceInfo
from capgate.app.client.rate_budget import RateCategory
from capgate.app.core.config import Settings
from capgate.app.exceptions import (
    AuthenticationFailedError,
    RateLimitExceededError,
    UnexpectedResponseError,
    UpstreamError,
)

BASE_URL = "https://api.capacities.test"
TOKEN = "cap-test-token"
SPACE_ID = "3f6b2a1e-8c4d-4e5f-9a0b-1c2d3e4f5a6b"

SPACES_PAYLOAD = {
    "spaces": [
        {
            "id": SPACE_ID,
            "title": "Research",
            "icon": {"type": "emoji", "val": "📚", "colorHex": "#ffaa00"},
        },
        {"id": "s2", "title": "Work", "icon": {"type": "iconify", "val": "mdi:briefcase"}},
    ]
}

SPACE_INFO_PAYLOAD = {
    "structures": [
        {
            "id": "RootPage",
            "title": "Page",
            "pluralName": "Pages",
            "propertyDefinitions": [
                {"id": "title", "type": "text", "dataType": "string", "name": "Title"}
            ],
            "labelColor": "blue",
            "collections": [{"id": "c1", "title": "Reading list"}],
        }
    ]
}

SEARCH_PAYLOAD = {
    "results": [
        {
            "id": "o1",
            "spaceId": SPACE_ID,
            "structureId": "RootPage",
            "title": "Fixed windows",
            "highlights": [
                {"context": {"field": "title"}, "snippets": ["fixed", "window"], "score": 0.9}
            ],
        }
    ]
}


@pytest.fixture
def client():
    return CapacitiesClient(RequestGateway(base_url=BASE_URL, api_token=TOKEN))


def sent_body(route) -> dict:
    return json.loads(route.calls.last.request.content)


class TestListSpaces:
    """Tests for list_spaces."""

    @pytest.mark.asyncio
    async def test_unwraps_envelope(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/spaces").mock(return_value=httpx.Response(200, json=SPACES_PAYLOAD))
            spaces = await client.list_spaces()

        assert [s.id for s in spaces] == [SPACE_ID, "s2"]
        assert all(isinstance(s, Space) for s in spaces)
        assert spaces[0].icon.color_hex == "#ffaa00"
        assert spaces[1].icon.color is None

    @pytest.mark.asyncio
    async def test_empty_body_is_unexpected(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/spaces").mock(return_value=httpx.Response(200))
            with pytest.raises(UnexpectedResponseError) as exc_info:
                await client.list_spaces()

        assert "spaces" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_item_is_unexpected(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/spaces").mock(
                return_value=httpx.Response(200, json={"spaces": [{"title": "no id"}]})
            )
            with pytest.raises(UnexpectedResponseError):
                await client.list_spaces()

    @pytest.mark.asyncio
    async def test_errors_propagate_unchanged(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/spaces").mock(return_value=httpx.Response(429))
            with pytest.raises(RateLimitExceededError):
                await client.list_spaces()


class TestGetSpaceInfo:
    """Tests for get_space_info."""

    @pytest.mark.asyncio
    async def test_sends_space_id_query_param(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/space-info").mock(
                return_value=httpx.Response(200, json=SPACE_INFO_PAYLOAD)
            )
            info = await client.get_space_info(SPACE_ID)

        assert route.calls.last.request.url.params["spaceid"] == SPACE_ID
        assert isinstance(info, SpaceInfo)
        structure = info.structures[0]
        assert structure.plural_name == "Pages"
        assert structure.property_definitions[0].data_type == "string"
        assert structure.collections[0].title == "Reading list"

    @pytest.mark.asyncio
    async def test_space_id_not_validated(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.get("/space-info").mock(
                return_value=httpx.Response(200, json={"structures": []})
            )
            info = await client.get_space_info("not-a-uuid")

        assert route.calls.last.request.url.params["spaceid"] == "not-a-uuid"
        assert info.structures == []

    @pytest.mark.asyncio
    async def test_auth_failure_propagates(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            router.get("/space-info").mock(return_value=httpx.Response(401))
            with pytest.raises(AuthenticationFailedError):
                await client.get_space_info(SPACE_ID)


class TestSearchContent:
    """Tests for search_content."""

    @pytest.mark.asyncio
    async def test_default_mode_body(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.post("/search").mock(
                return_value=httpx.Response(200, json={"results": []})
            )
            results = await client.search_content("x", ["s1"])

        assert results == []
        assert sent_body(route) == {"searchTerm": "x", "spaceIds": ["s1"], "mode": "fullText"}

    @pytest.mark.asyncio
    async def test_structure_filter_and_mode(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.post("/search").mock(
                return_value=httpx.Response(200, json=SEARCH_PAYLOAD)
            )
            results = await client.search_content(
                "fixed", ("s1", "s2"), mode="title", structure_ids=["RootPage"]
            )

        assert sent_body(route) == {
            "searchTerm": "fixed",
            "spaceIds": ["s1", "s2"],
            "mode": "title",
            "filterStructureIds": ["RootPage"],
        }
        assert isinstance(results[0], SearchResult)
        assert results[0].structure_id == "RootPage"
        assert results[0].highlights[0].snippets == ["fixed", "window"]
        assert results[0].highlights[0].score == 0.9

    @pytest.mark.asyncio
    async def test_empty_success_body_is_unexpected(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            router.post("/search").mock(return_value=httpx.Response(200, text="OK"))
            with pytest.raises(UnexpectedResponseError) as exc_info:
                await client.search_content("x", ["s1"])

        assert exc_info.value.status_code == 200
        assert "/search" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_search_draws_from_search_budget(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            router.post("/search").mock(return_value=httpx.Response(200, json={"results": []}))
            await client.search_content("x", ["s1"])

        assert client.gateway.tracker.remaining(RateCategory.SEARCH) == 119


class TestSaveWeblink:
    """Tests for save_weblink."""

    @pytest.mark.asyncio
    async def test_tags_default_to_empty_list(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.post("/save-weblink").mock(return_value=httpx.Response(200))
            result = await client.save_weblink(SPACE_ID, "https://example.com")

        assert result == {"success": True}
        assert sent_body(route) == {
            "spaceId": SPACE_ID,
            "url": "https://example.com",
            "tags": [],
        }

    @pytest.mark.asyncio
    async def test_maps_optional_fields(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.post("/save-weblink").mock(
                return_value=httpx.Response(200, json={"id": "w1", "title": "Example"})
            )
            result = await client.save_weblink(
                SPACE_ID,
                "https://example.com",
                title="Example",
                description="A site",
                tags=["ref", "web"],
                notes="# Notes",
            )

        assert result == {"id": "w1", "title": "Example"}
        assert sent_body(route) == {
            "spaceId": SPACE_ID,
            "url": "https://example.com",
            "titleOverwrite": "Example",
            "descriptionOverwrite": "A site",
            "tags": ["ref", "web"],
            "mdText": "# Notes",
        }

    @pytest.mark.asyncio
    async def test_server_error_propagates(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            router.post("/save-weblink").mock(return_value=httpx.Response(503))
            with pytest.raises(UpstreamError) as exc_info:
                await client.save_weblink(SPACE_ID, "https://example.com")

        assert exc_info.value.status_code == 503


class TestSaveToDailyNote:
    """Tests for save_to_daily_note."""

    @pytest.mark.asyncio
    async def test_default_timestamp_flag(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.post("/save-to-daily-note").mock(
                return_value=httpx.Response(200, headers={"content-length": "0"})
            )
            result = await client.save_to_daily_note(SPACE_ID, "- did a thing")

        assert result == {"success": True}
        assert sent_body(route) == {
            "spaceId": SPACE_ID,
            "mdText": "- did a thing",
            "noTimeStamp": False,
        }

    @pytest.mark.asyncio
    async def test_no_timestamp(self, client):
        with respx.mock(base_url=BASE_URL) as router:
            route = router.post("/save-to-daily-note").mock(return_value=httpx.Response(200))
            await client.save_to_daily_note(SPACE_ID, "text", no_timestamp=True)

        assert sent_body(route)["noTimeStamp"] is True


class TestFromSettings:
    """Tests for building a client from configuration."""

    def test_requires_token(self):
        config = Settings(_env_file=None, CAPACITIES_API_TOKEN="")
        with pytest.raises(ValueError, match="CAPACITIES_API_TOKEN"):
            CapacitiesClient.from_settings(config)

    @pytest.mark.asyncio
    async def test_builds_gateway_from_settings(self):
        config = Settings(
            _env_file=None,
            CAPACITIES_API_TOKEN="tok",
            CAPACITIES_API_BASE_URL="https://example.test/api/",
            lenient_json_decode=False,
        )
        client = CapacitiesClient.from_settings(config)
        try:
            assert client.gateway.base_url == "https://example.test/api"
            assert client.gateway.lenient_decode is False
            assert client.gateway.http_client is not None
        finally:
            await client.aclose()

        assert client.gateway.http_client.is_closed

    @pytest.mark.asyncio
    async def test_does_not_close_external_client(self):
        config = Settings(_env_file=None, CAPACITIES_API_TOKEN="tok")
        async with httpx.AsyncClient() as shared:
            async with CapacitiesClient.from_settings(config, http_client=shared) as client:
                assert client.gateway.http_client is shared
            assert not shared.is_closed

"""Typed operations on the Capacities API.

``CapacitiesClient`` is the only place that knows upstream field names
(``searchTerm``, ``titleOverwrite``, ``mdText``, ``noTimeStamp`` ...). Each
method builds one ``OutboundRequest`` and hands it to the gateway; errors
propagate unchanged.
"""

from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from capgate.app.client.gateway import RequestGateway
from capgate.app.client.models import (
    OutboundRequest,
    SearchMode,
    SearchResult,
    Space,
    SpaceInfo,
)
from capgate.app.client.rate_budget import RateBudgetTracker
from capgate.app.core.config import Settings, settings as default_settings
from capgate.app.core.http_client import create_http_client
from capgate.app.exceptions import UnexpectedResponseError


SPACES_PATH = "/spaces"
SPACE_INFO_PATH = "/space-info"
SEARCH_PATH = "/search"
SAVE_WEBLINK_PATH = "/save-weblink"
SAVE_TO_DAILY_NOTE_PATH = "/save-to-daily-note"


def _envelope(payload: Any, key: str, path: str) -> Any:
    if not isinstance(payload, dict) or key not in payload:
        raise UnexpectedResponseError(
            200, f"Unexpected response from {path}: missing '{key}'"
        )
    return payload[key]


def _parse(model, data: Any, path: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise UnexpectedResponseError(
            200,
            f"Unexpected response from {path}: {e.error_count()} invalid field(s)",
            details=e.errors(include_url=False, include_context=False),
        ) from e


class CapacitiesClient:
    """High-level Capacities API client.

    Example:
        >>> async with CapacitiesClient.from_settings() as client:
        ...     spaces = await client.list_spaces()
    """

    def __init__(self, gateway: RequestGateway, owns_http_client: bool = False):
        self.gateway = gateway
        self._owns_http_client = owns_http_client

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        tracker: Optional[RateBudgetTracker] = None,
    ) -> "CapacitiesClient":
        """Build a client from configuration.

        If ``http_client`` is omitted a pooled client is created and closed
        by ``aclose()``.

        Raises:
            ValueError: no API token is configured
        """
        config = config or default_settings
        if not config.capacities_api_token:
            raise ValueError("CAPACITIES_API_TOKEN environment variable is required")

        owns = http_client is None
        if owns:
            http_client = create_http_client(config)
        gateway = RequestGateway(
            base_url=config.capacities_api_base_url,
            api_token=config.capacities_api_token,
            http_client=http_client,
            tracker=tracker,
            lenient_decode=config.lenient_json_decode,
        )
        return cls(gateway, owns_http_client=owns)

    async def aclose(self) -> None:
        client = self.gateway.http_client
        if self._owns_http_client and client is not None:
            await client.aclose()

    async def __aenter__(self) -> "CapacitiesClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def list_spaces(self) -> List[Space]:
        payload = await self.gateway.dispatch(OutboundRequest("GET", SPACES_PATH))
        spaces = _envelope(payload, "spaces", SPACES_PATH)
        if not isinstance(spaces, list):
            raise UnexpectedResponseError(
                200, f"Unexpected response from {SPACES_PATH}: 'spaces' is not a list"
            )
        return [_parse(Space, item, SPACES_PATH) for item in spaces]

    async def get_space_info(self, space_id: str) -> SpaceInfo:
        """Structures (object types) and collections of one space."""
        payload = await self.gateway.dispatch(
            OutboundRequest("GET", SPACE_INFO_PATH, params={"spaceid": space_id})
        )
        _envelope(payload, "structures", SPACE_INFO_PATH)
        return _parse(SpaceInfo, payload, SPACE_INFO_PATH)

    async def search_content(
        self,
        query: str,
        space_ids: Sequence[str],
        mode: SearchMode = "fullText",
        structure_ids: Optional[Sequence[str]] = None,
    ) -> List[SearchResult]:
        """Full-text or title search across ``space_ids``.

        A search always returns a ``results`` envelope, so an empty or
        non-JSON success body is reported as ``UnexpectedResponseError``
        rather than an empty result list.
        """
        body: Dict[str, Any] = {
            "searchTerm": query,
            "spaceIds": list(space_ids),
            "mode": mode or "fullText",
        }
        if structure_ids is not None:
            body["filterStructureIds"] = list(structure_ids)

        payload = await self.gateway.dispatch(
            OutboundRequest("POST", SEARCH_PATH, json_body=body)
        )
        results = _envelope(payload, "results", SEARCH_PATH)
        if not isinstance(results, list):
            raise UnexpectedResponseError(
                200, f"Unexpected response from {SEARCH_PATH}: 'results' is not a list"
            )
        return [_parse(SearchResult, item, SEARCH_PATH) for item in results]

    async def save_weblink(
        self,
        space_id: str,
        url: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        notes: Optional[str] = None,
    ) -> Any:
        """Save ``url`` as a weblink object. Upstream may answer with no body."""
        body: Dict[str, Any] = {
            "spaceId": space_id,
            "url": url,
            "tags": list(tags) if tags is not None else [],
        }
        if title is not None:
            body["titleOverwrite"] = title
        if description is not None:
            body["descriptionOverwrite"] = description
        if notes is not None:
            body["mdText"] = notes

        return await self.gateway.dispatch(
            OutboundRequest("POST", SAVE_WEBLINK_PATH, json_body=body)
        )

    async def save_to_daily_note(
        self,
        space_id: str,
        content: str,
        no_timestamp: bool = False,
    ) -> Any:
        """Append markdown ``content`` to today's daily note."""
        body = {
            "spaceId": space_id,
            "mdText": content,
            "noTimeStamp": bool(no_timestamp),
        }
        return await self.gateway.dispatch(
            OutboundRequest("POST", SAVE_TO_DAILY_NOTE_PATH, json_body=body)
        )

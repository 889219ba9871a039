"""MCP tools and resources backed by the Capacities client.

``CapacitiesTools`` holds the tool implementations as plain async methods so
they can be called directly; ``build_server`` registers the bound methods on
a FastMCP server. Tools validate their input (raising ``ValueError``, which
FastMCP reports as a tool error), call the client, and render the result as
text. A ``GatewayError`` is rendered as a failed-operation message instead
of being raised; the spaces resource re-raises it as ``ResourceError``.
"""

import asyncio
import json
from typing import List, Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ResourceError

from capgate.app.client.capacities import CapacitiesClient
from capgate.app.client.models import SearchResult, Space, SpaceInfo, is_success_marker
from capgate.app.core.logging import get_logger
from capgate.app.core.validation import validate_url, validate_uuid
from capgate.app.exceptions import GatewayError
from capgate.app.tools.analysis import AnalysisType, TimeRange, format_analysis

logger = get_logger(__name__)

SERVER_NAME = "capacities-mcp-server"
SPACES_RESOURCE_URI = "capacities://spaces"


def format_spaces(spaces: List[Space]) -> str:
    if not spaces:
        return "No Capacities spaces found."
    entries = []
    for space in spaces:
        icon = space.icon.val if space.icon is not None else ""
        entries.append(f"**{space.title}**\nID: {space.id}\nIcon: {icon}")
    return "Your Capacities Spaces:\n\n" + "\n\n".join(entries)


def format_space_info(info: SpaceInfo) -> str:
    if not info.structures:
        return "Space Information:\n\nNo object types defined."
    blocks = []
    for structure in info.structures:
        properties = "\n".join(
            f"- {prop.name} ({prop.data_type})" for prop in structure.property_definitions
        )
        collections = "\n".join(f"- {col.title}" for col in structure.collections)
        blocks.append(
            f"**{structure.title}** ({structure.plural_name})\n"
            f"ID: {structure.id}\n\n"
            f"Properties:\n{properties}\n\n"
            f"Collections:\n{collections}"
        )
    return "Space Information:\n\n" + "\n\n---\n\n".join(blocks)


def format_search_results(query: str, results: List[SearchResult]) -> str:
    if not results:
        return f'No results found for "{query}"'
    blocks = []
    for result in results:
        highlights = "\n".join(" ".join(h.snippets) for h in result.highlights)
        blocks.append(
            f"**{result.title}**\nID: {result.id}\nType: {result.structure_id}\n\n"
            f"Highlights:\n{highlights}\n"
        )
    return f'Found {len(results)} results for "{query}":\n\n' + "\n---\n".join(blocks)


def _failure(operation: str, error: GatewayError) -> str:
    logger.warning(f"{operation} failed: {error.kind.value}: {error.message}")
    return f"{operation} failed: {error.message}"


def _require_space_id(space_id: str) -> None:
    if not validate_uuid(space_id):
        raise ValueError(f"Invalid space ID: {space_id}")


class CapacitiesTools:
    """Tool implementations exposed over MCP."""

    def __init__(self, client: CapacitiesClient):
        self.client = client

    async def list_spaces(self) -> str:
        """Get a list of all your Capacities spaces with their IDs."""
        try:
            spaces = await self.client.list_spaces()
        except GatewayError as e:
            return _failure("Retrieving spaces", e)
        return format_spaces(spaces)

    async def get_space_info(self, space_id: str) -> str:
        """Get the object types (structures), their properties and collections
        for a specific Capacities space.

        Args:
            space_id: The ID of the space (a UUID, see list_spaces).
        """
        _require_space_id(space_id)
        try:
            info = await self.client.get_space_info(space_id)
        except GatewayError as e:
            return _failure("Getting space info", e)
        return format_space_info(info)

    async def search_content(
        self,
        query: str,
        space_id: Optional[str] = None,
        mode: Literal["fullText", "title"] = "fullText",
        object_types: Optional[List[str]] = None,
    ) -> str:
        """Search for content across your Capacities spaces using keywords.

        Args:
            query: Search query or keywords.
            space_id: Restrict the search to one space. Searches all spaces if omitted.
            mode: "fullText" searches content, "title" searches titles only.
            object_types: Structure IDs to filter results by.
        """
        if not query or not query.strip():
            raise ValueError("Query is required and must be a non-empty string")
        if space_id is not None:
            _require_space_id(space_id)

        try:
            if space_id is not None:
                space_ids = [space_id]
            else:
                space_ids = [space.id for space in await self.client.list_spaces()]
            results = await self.client.search_content(
                query, space_ids, mode=mode, structure_ids=object_types
            )
        except GatewayError as e:
            return _failure("Search", e)
        return format_search_results(query, results)

    async def save_weblink(
        self,
        space_id: str,
        url: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        notes: Optional[str] = None,
    ) -> str:
        """Save a URL as a weblink object in a Capacities space.

        Args:
            space_id: The space to save the weblink in.
            url: The URL to save.
            title: Custom title for the weblink.
            description: Custom description.
            tags: Tags to apply to the weblink.
            notes: Additional notes in markdown format.
        """
        _require_space_id(space_id)
        if not validate_url(url):
            raise ValueError(f"Invalid URL: {url}")

        try:
            result = await self.client.save_weblink(
                space_id, url, title=title, description=description, tags=tags, notes=notes
            )
        except GatewayError as e:
            return _failure("Saving weblink", e)

        lines = ["Successfully saved weblink!", "", f"**URL:** {url}"]
        if isinstance(result, dict) and not is_success_marker(result):
            if result.get("title"):
                lines.append(f"**Title:** {result['title']}")
            if result.get("id"):
                lines.append(f"**ID:** {result['id']}")
        elif title:
            lines.append(f"**Title:** {title}")
        lines.append(f"**Tags:** {', '.join(tags) if tags else 'None'}")
        return "\n".join(lines)

    async def save_to_daily_note(
        self,
        space_id: str,
        content: str,
        no_timestamp: bool = False,
    ) -> str:
        """Add markdown content to today's daily note in a Capacities space.

        Args:
            space_id: The space containing the daily note.
            content: Content to add (supports markdown).
            no_timestamp: Skip adding a timestamp to the entry.
        """
        _require_space_id(space_id)
        if not content or not content.strip():
            raise ValueError("Content is required and must be a non-empty string")

        try:
            await self.client.save_to_daily_note(space_id, content, no_timestamp=no_timestamp)
        except GatewayError as e:
            return _failure("Adding to daily note", e)

        timestamp = "" if no_timestamp else " with timestamp"
        return (
            f"Successfully added content to today's daily note{timestamp}!\n\n"
            f"Content added:\n{content}"
        )

    async def analyze_content_patterns(
        self,
        space_id: Optional[str] = None,
        analysis_type: AnalysisType = "overview",
        time_range: TimeRange = "month",
    ) -> str:
        """Analyze patterns in your Capacities content.

        Args:
            space_id: Space to analyze. Analyzes all spaces if omitted.
            analysis_type: "overview" (structure counts), "types" (properties and
                collections per object type), "tags" or "activity".
            time_range: Period to analyze: week, month, quarter or year.
        """
        if space_id is not None:
            _require_space_id(space_id)

        try:
            if space_id is not None:
                space_ids = [space_id]
            else:
                space_ids = [space.id for space in await self.client.list_spaces()]
            # Fan-out is throttled by the gateway's general budget
            infos = await asyncio.gather(
                *(self.client.get_space_info(sid) for sid in space_ids)
            )
        except GatewayError as e:
            return _failure("Analysis", e)

        logger.debug(f"Analyzed {len(space_ids)} space(s) over {time_range}")
        return format_analysis(analysis_type, len(space_ids), infos)

    async def spaces_resource(self) -> str:
        """List of all your Capacities spaces as JSON."""
        try:
            spaces = await self.client.list_spaces()
        except GatewayError as e:
            raise ResourceError(f"Failed to fetch spaces: {e.message}") from e
        return json.dumps(
            [space.model_dump(by_alias=True, exclude_none=True) for space in spaces],
            indent=2,
        )


def build_server(client: CapacitiesClient) -> FastMCP:
    """Create a FastMCP server exposing the Capacities tools and resources."""
    tools = CapacitiesTools(client)
    mcp = FastMCP(SERVER_NAME)

    mcp.tool(name="list_spaces")(tools.list_spaces)
    mcp.tool(name="get_space_info")(tools.get_space_info)
    mcp.tool(name="search_content")(tools.search_content)
    mcp.tool(name="save_weblink")(tools.save_weblink)
    mcp.tool(name="save_to_daily_note")(tools.save_to_daily_note)
    mcp.tool(name="analyze_content_patterns")(tools.analyze_content_patterns)
    mcp.resource(
        SPACES_RESOURCE_URI,
        name="Capacities Spaces",
        description="List of all your Capacities spaces",
        mime_type="application/json",
    )(tools.spaces_resource)

    return mcp

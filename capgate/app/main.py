"""Process entrypoint: run the Capacities MCP server over stdio."""

import asyncio
import sys
from typing import Optional

from capgate.app.client.capacities import CapacitiesClient
from capgate.app.core.config import Settings, settings
from capgate.app.core.http_client import init_http_client
from capgate.app.core.logging import get_logger, setup_logging
from capgate.app.tools.server import build_server


async def serve(config: Optional[Settings] = None) -> None:
    """Open the shared HTTP client, build the server and serve stdio until EOF."""
    config = config or settings
    logger = get_logger(__name__)

    async with init_http_client(config) as http_client:
        client = CapacitiesClient.from_settings(config, http_client=http_client)
        mcp = build_server(client)
        logger.info(
            f"Capacities MCP server running on stdio (base_url={config.capacities_api_base_url})"
        )
        await mcp.run_async(transport="stdio")


def main() -> int:
    setup_logging()
    logger = get_logger(__name__)

    if not settings.capacities_api_token:
        logger.error("CAPACITIES_API_TOKEN environment variable is required")
        return 1

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())

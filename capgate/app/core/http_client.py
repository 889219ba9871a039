"""Shared HTTP client management for connection pooling.

The tool server opens one ``httpx.AsyncClient`` at startup and hands it to
the request gateway, so every upstream call reuses pooled connections.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import httpx

from capgate.app.core.config import Settings, settings as default_settings


def build_timeout(config: Optional[Settings] = None) -> httpx.Timeout:
    """Granular timeouts from configuration.

    - connect: Time to establish socket connection
    - read: Time to read response data
    - write: Time to send request data
    - pool: Time to acquire connection from pool
    """
    config = config or default_settings
    return httpx.Timeout(
        connect=config.httpx_connect_timeout,
        read=config.httpx_read_timeout,
        write=config.httpx_write_timeout,
        pool=config.httpx_pool_timeout,
    )


def build_limits(config: Optional[Settings] = None) -> httpx.Limits:
    config = config or default_settings
    return httpx.Limits(
        max_connections=config.httpx_max_connections,
        max_keepalive_connections=config.httpx_max_keepalive_connections,
        keepalive_expiry=config.httpx_keepalive_expiry,
    )


def create_http_client(config: Optional[Settings] = None, **kwargs) -> httpx.AsyncClient:
    """Create a new HTTP client with default settings.

    The returned client should be closed when done:

        async with create_http_client() as client:
            ...

    Args:
        config: Settings to read pool and timeout values from.
        **kwargs: Overrides. ``timeout`` replaces all granular timeouts;
            anything else is passed to ``httpx.AsyncClient`` unchanged.

    Returns:
        A new httpx.AsyncClient instance.
    """
    timeout_override = kwargs.pop("timeout", None)
    if timeout_override is not None:
        timeout = httpx.Timeout(timeout_override)
    else:
        timeout = build_timeout(config)

    kwargs.setdefault("limits", build_limits(config))
    return httpx.AsyncClient(timeout=timeout, **kwargs)


@asynccontextmanager
async def init_http_client(
    config: Optional[Settings] = None,
) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Open a pooled client for the lifetime of the server and close it after.

        async with init_http_client() as http_client:
            client = CapacitiesClient.from_settings(http_client=http_client)
            ...
    """
    client = create_http_client(config)
    try:
        yield client
    finally:
        await client.aclose()

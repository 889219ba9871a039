import httpx
import pytest

from capgate.app.core.config import Settings
from capgate.app.core.http_client import (
    build_limits,
    build_timeout,
    create_http_client,
    init_http_client,
)


@pytest.fixture
def config() -> Settings:
    return Settings(
        _env_file=None,
        httpx_connect_timeout=2.0,
        httpx_read_timeout=30.0,
        httpx_write_timeout=5.0,
        httpx_pool_timeout=1.0,
        httpx_max_connections=7,
        httpx_max_keepalive_connections=3,
    )


def test_build_timeout(config: Settings) -> None:
    timeout = build_timeout(config)
    assert timeout.connect == 2.0
    assert timeout.read == 30.0
    assert timeout.write == 5.0
    assert timeout.pool == 1.0


def test_build_limits(config: Settings) -> None:
    limits = build_limits(config)
    assert limits.max_connections == 7
    assert limits.max_keepalive_connections == 3


@pytest.mark.asyncio
async def test_create_http_client_uses_settings(config: Settings) -> None:
    async with create_http_client(config) as client:
        assert isinstance(client, httpx.AsyncClient)
        assert client.timeout.read == 30.0
        assert client.timeout.connect == 2.0


@pytest.mark.asyncio
async def test_timeout_override_replaces_granular_values(config: Settings) -> None:
    async with create_http_client(config, timeout=9.0) as client:
        assert client.timeout.connect == 9.0
        assert client.timeout.read == 9.0


@pytest.mark.asyncio
async def test_init_http_client_closes_on_exit(config: Settings) -> None:
    async with init_http_client(config) as client:
        assert not client.is_closed

    assert client.is_closed

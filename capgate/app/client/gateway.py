"""Single choke point for every outbound Capacities API call.

``RequestGateway.dispatch`` classifies the request into a rate category,
waits for a slot in that category, sends it with bearer authentication and
maps the outcome to a decoded payload or a ``GatewayError``. There are no
retries: every failure surfaces to the caller as-is.
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import httpx

from capgate.app.client.models import OutboundRequest
from capgate.app.client.normalizer import normalize_response, normalize_undecodable
from capgate.app.client.rate_budget import RateBudgetTracker, RateCategory
from capgate.app.core.logging import get_log_context, get_logger
from capgate.app.exceptions import (
    AuthenticationFailedError,
    RateLimitExceededError,
    TransportError,
    UpstreamError,
)

logger = get_logger(__name__)

SEARCH_MARKER = "/search"
LINK_SAVE_MARKER = "/save-weblink"

# Longest slice of an error body kept in GatewayError.details
_MAX_ERROR_DETAIL_CHARS = 500


def classify_path(path: str) -> RateCategory:
    """Map an endpoint path to the budget it draws from.

    Search takes precedence over link saving; everything else is general.
    """
    if SEARCH_MARKER in path:
        return RateCategory.SEARCH
    if LINK_SAVE_MARKER in path:
        return RateCategory.LINK_SAVE
    return RateCategory.GENERAL


class RequestGateway:
    """Authenticated, rate-limited HTTP access to the Capacities API.

    Accepts an external httpx.AsyncClient for connection pooling, or opens
    a client per request if none is provided.

    Args:
        base_url: API base URL, e.g. ``https://api.capacities.io``
        api_token: Bearer token sent on every request
        http_client: Optional shared HTTP client
        tracker: Rate budget tracker owned by this gateway
        timeout: Per-request timeout when no shared client is given
        lenient_decode: Treat malformed JSON on 2xx responses as success
    """

    def __init__(
        self,
        base_url: str,
        api_token: str,
        http_client: Optional[httpx.AsyncClient] = None,
        tracker: Optional[RateBudgetTracker] = None,
        timeout: float = 60.0,
        lenient_decode: bool = True,
    ):
        if not api_token:
            raise ValueError("api_token is required")
        self.base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._http_client = http_client
        self.tracker = tracker or RateBudgetTracker()
        self.timeout = timeout
        self.lenient_decode = lenient_decode

    @property
    def http_client(self) -> Optional[httpx.AsyncClient]:
        """Get the HTTP client, if one was provided."""
        return self._http_client

    def __repr__(self) -> str:
        # Token deliberately absent
        return f"RequestGateway(base_url={self.base_url!r})"

    def _build_headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        headers = dict(extra or {})
        headers["Authorization"] = f"Bearer {self._api_token}"
        headers["Content-Type"] = "application/json"
        return headers

    def _get_endpoint_url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    @asynccontextmanager
    async def _client_context(self) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Yield the shared client, or a per-request client closed afterwards."""
        if self._http_client is not None:
            yield self._http_client
            return
        client = httpx.AsyncClient(timeout=self.timeout)
        try:
            yield client
        finally:
            await client.aclose()

    async def dispatch(self, request: OutboundRequest) -> Any:
        """Send ``request`` and return its normalized payload.

        Returns:
            The decoded JSON body, or ``{"success": True}`` for a 2xx
            response without a usable JSON body.

        Raises:
            RateLimitExceededError: upstream answered 429
            AuthenticationFailedError: upstream answered 401
            UpstreamError: any other non-2xx status
            TransportError: no HTTP response was received

        A 2xx body that fails content decoding (e.g. corrupt gzip) is
        handled like malformed JSON; on an error status it only loses the
        error details.
        """
        category = classify_path(request.path)
        request_id = uuid.uuid4().hex[:12]
        context = get_log_context(
            request_id=request_id,
            category=category.value,
            method=request.method,
            path=request.path,
        )

        await self.tracker.acquire_slot(category)

        start = time.perf_counter()
        decode_error: Optional[httpx.DecodingError] = None
        try:
            async with self._client_context() as client:
                http_request = client.build_request(
                    request.method,
                    self._get_endpoint_url(request.path),
                    params=request.params,
                    json=request.json_body,
                    headers=self._build_headers(request.headers),
                )
                # Content-decoding failures surface from aread(), not send()
                response = await client.send(http_request, stream=True)
                try:
                    await response.aread()
                except httpx.DecodingError as e:
                    decode_error = e
                finally:
                    await response.aclose()
        except httpx.TransportError as e:
            logger.warning(
                f"Transport failure calling {request.method} {request.path}: "
                f"{type(e).__name__}",
                extra=context,
            )
            raise TransportError(
                f"Transport failure calling {request.path}: {type(e).__name__}",
                details={"error": type(e).__name__},
            ) from e

        duration_ms = round((time.perf_counter() - start) * 1000, 1)
        logger.info(
            f"{request.method} {request.path} -> {response.status_code}",
            extra={**context, "status_code": response.status_code, "duration_ms": duration_ms},
        )

        if decode_error is not None:
            self._raise_for_status(response, body_readable=False)
            return normalize_undecodable(response, decode_error, lenient=self.lenient_decode)

        self._raise_for_status(response)
        return normalize_response(response, lenient=self.lenient_decode)

    @staticmethod
    def _raise_for_status(response: httpx.Response, body_readable: bool = True) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        if status == 429:
            raise RateLimitExceededError()
        if status == 401:
            raise AuthenticationFailedError()
        details = None
        if body_readable:
            details = response.text[:_MAX_ERROR_DETAIL_CHARS] or None
        raise UpstreamError(status, details=details)

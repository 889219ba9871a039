"""Interpretation of successful (2xx) upstream responses.

Several Capacities write endpoints answer with an empty or non-JSON body.
A 2xx status is trusted as the outcome, and the JSON body is enrichment:
when there is nothing usable to decode the caller receives the synthetic
``{"success": True}`` marker instead of an error.

Treating an unparseable JSON body as success is a leniency for an unstable
upstream beta API; it can be switched off with ``lenient=False``
(``CAPGATE_LENIENT_JSON_DECODE=false``), in which case the decode failure
is raised as ``ResponseDecodeError``.
"""

import json
from typing import Any, Optional

import httpx

from capgate.app.client.models import success_marker
from capgate.app.core.logging import get_log_context, get_logger
from capgate.app.exceptions import ResponseDecodeError

logger = get_logger(__name__)


def _has_json_body(response: httpx.Response) -> bool:
    if response.headers.get("content-length", "").strip() == "0":
        return False
    content_type = response.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        return False
    return bool(response.content)


def _request_path(response: httpx.Response) -> Optional[str]:
    try:
        return response.request.url.path
    except RuntimeError:
        return None


def normalize_response(response: httpx.Response, *, lenient: bool = True) -> Any:
    """Turn a 2xx response into its decoded payload or the success marker.

    The decoded value is not validated; the operation that issued the
    request knows the shape it expects.

    Raises:
        ResponseDecodeError: body declared as JSON could not be parsed and
            ``lenient`` is False.
    """
    path = _request_path(response)

    if not _has_json_body(response):
        logger.debug(
            "Empty or non-JSON success response, returning success marker",
            extra=get_log_context(path=path, status_code=response.status_code),
        )
        return success_marker()

    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        if not lenient:
            raise ResponseDecodeError(
                response.status_code,
                f"Malformed JSON in {response.status_code} response",
                details={"error": type(e).__name__},
            ) from e
        logger.warning(
            f"Malformed JSON in {response.status_code} response, "
            "treating as success",
            extra=get_log_context(path=path, status_code=response.status_code),
        )
        return success_marker()


def normalize_undecodable(
    response: httpx.Response, error: httpx.DecodingError, *, lenient: bool = True
) -> Any:
    """Handle a 2xx response whose body failed content decoding.

    Same policy as malformed JSON: the status is trusted unless ``lenient``
    is False.

    Raises:
        ResponseDecodeError: ``lenient`` is False.
    """
    if not lenient:
        raise ResponseDecodeError(
            response.status_code,
            f"Undecodable body in {response.status_code} response",
            details={"error": type(error).__name__},
        ) from error
    logger.warning(
        f"Undecodable body in {response.status_code} response, treating as success",
        extra=get_log_context(path=_request_path(response), status_code=response.status_code),
    )
    return success_marker()

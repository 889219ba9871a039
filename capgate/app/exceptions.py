"""Custom exceptions for the Capacities gateway.

Every failure surfaced by the request gateway is a ``GatewayError``. The set
of kinds is closed (``GatewayErrorKind``) and each concrete class pins exactly
one kind, so callers can either ``except`` a specific class or ``match`` on
``error.kind``.

Messages are safe to display: they never contain the bearer token.
"""

from enum import Enum
from typing import Any, Dict, Optional


class GatewayErrorKind(str, Enum):
    """Closed set of failure kinds produced by the gateway."""

    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    AUTHENTICATION_FAILED = "authentication_failed"
    UPSTREAM_ERROR = "upstream_error"
    TRANSPORT_ERROR = "transport_error"


class GatewayException(Exception):
    """Base class for gateway exceptions with an HTTP status code.

    ``status_code`` is the upstream status when one was received, ``None``
    for failures that never produced an HTTP response.
    """

    status_code: Optional[int] = None

    def __init__(self, message: str = "Gateway error"):
        self.message = message
        super().__init__(message)


class GatewayError(GatewayException):
    """A classified failure of an outbound Capacities API call."""

    kind: GatewayErrorKind = GatewayErrorKind.UPSTREAM_ERROR

    def __init__(self, message: str, details: Any = None):
        self.details = details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view used by the tool layer and logs."""
        data: Dict[str, Any] = {
            "error": self.kind.value,
            "message": self.message,
        }
        if self.status_code is not None:
            data["status_code"] = self.status_code
        if self.details is not None:
            data["details"] = self.details
        return data


class RateLimitExceededError(GatewayError):
    """Upstream rejected the call with 429 despite local throttling."""

    kind = GatewayErrorKind.RATE_LIMIT_EXCEEDED
    status_code = 429

    def __init__(self, message: str = "Rate limit exceeded", details: Any = None):
        super().__init__(message, details)


class AuthenticationFailedError(GatewayError):
    """Upstream rejected the bearer token (401)."""

    kind = GatewayErrorKind.AUTHENTICATION_FAILED
    status_code = 401

    def __init__(self, message: str = "Invalid API token", details: Any = None):
        super().__init__(message, details)


class UpstreamError(GatewayError):
    """Any other non-success HTTP status returned by the upstream API."""

    kind = GatewayErrorKind.UPSTREAM_ERROR

    def __init__(
        self,
        status_code: Optional[int],
        message: Optional[str] = None,
        details: Any = None,
    ):
        self.status_code = status_code
        super().__init__(message or f"API error: {status_code}", details)


class ResponseDecodeError(UpstreamError):
    """A 2xx JSON response whose body could not be parsed.

    Only raised when lenient decoding is switched off; by default such
    responses are normalized to the success marker.
    """


class UnexpectedResponseError(UpstreamError):
    """A 2xx response that lacks the envelope the endpoint always returns."""


class TransportError(GatewayError):
    """The request never produced an HTTP response (connect, timeout, protocol)."""

    kind = GatewayErrorKind.TRANSPORT_ERROR

    def __init__(self, message: str = "Transport failure", details: Any = None):
        super().__init__(message, details)

"""Capacities API client package.

This package provides:
- Rate budget tracking per endpoint category (RateBudgetTracker, RateCategory)
- The request gateway every call goes through (RequestGateway)
- Success-response normalization (normalize_response)
- Typed operations on the API (CapacitiesClient)
"""

from capgate.app.client.capacities import CapacitiesClient
from capgate.app.client.gateway import RequestGateway, classify_path
from capgate.app.client.models import (
    OutboundRequest,
    SearchHighlight,
    SearchResult,
    Space,
    SpaceIcon,
    SpaceInfo,
    Structure,
    is_success_marker,
    success_marker,
)
from capgate.app.client.normalizer import normalize_response
from capgate.app.client.rate_budget import (
    DEFAULT_RATE_LIMITS,
    RateBudgetTracker,
    RateCategory,
    RateLimit,
    RateWindow,
)

__all__ = [
    # Rate budgets
    "DEFAULT_RATE_LIMITS",
    "RateBudgetTracker",
    "RateCategory",
    "RateLimit",
    "RateWindow",
    # Gateway
    "RequestGateway",
    "classify_path",
    "normalize_response",
    # Operations
    "CapacitiesClient",
    # Models
    "OutboundRequest",
    "SearchHighlight",
    "SearchResult",
    "Space",
    "SpaceIcon",
    "SpaceInfo",
    "Structure",
    "is_success_marker",
    "success_marker",
]

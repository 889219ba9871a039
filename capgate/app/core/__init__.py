"""Core utilities for the Capacities gateway."""

from capgate.app.core.config import Settings, settings
from capgate.app.core.http_client import create_http_client, init_http_client
from capgate.app.core.logging import get_log_context, get_logger, setup_logging
from capgate.app.core.validation import validate_url, validate_uuid

__all__ = [
    "Settings",
    "settings",
    "create_http_client",
    "init_http_client",
    "get_logger",
    "get_log_context",
    "setup_logging",
    "validate_url",
    "validate_uuid",
]

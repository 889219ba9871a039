"""Input checks applied by the tool layer before calling the API."""

import re
from typing import Optional
from urllib.parse import urlparse

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def validate_uuid(value: Optional[str]) -> bool:
    """Return True if ``value`` is an RFC 4122 UUID (versions 1-5)."""
    if not value or not isinstance(value, str):
        return False
    return bool(_UUID_RE.match(value))


def validate_url(value: Optional[str]) -> bool:
    """Return True if ``value`` is an absolute URL with a scheme and host."""
    if not value or not isinstance(value, str):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)

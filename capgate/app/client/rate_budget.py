"""Per-category request budgets for outbound Capacities API calls.

The Capacities API enforces its own fixed-window limits per endpoint group.
``RateBudgetTracker`` mirrors those windows locally so the gateway waits
instead of burning requests on certain 429s. Local throttling is advisory:
the upstream window boundaries are not observable, so 429 handling in the
gateway stays mandatory.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Awaitable, Callable, Dict, Mapping, Optional

from capgate.app.core.logging import get_logger

logger = get_logger(__name__)


class RateCategory(str, Enum):
    """Budget a request draws from, decided once from its path."""

    GENERAL = "general"
    SEARCH = "search"
    LINK_SAVE = "link_save"


@dataclass(frozen=True)
class RateLimit:
    """Maximum number of requests allowed to start within one window."""
    max_requests: int
    window_seconds: float


DEFAULT_RATE_LIMITS: Mapping[RateCategory, RateLimit] = MappingProxyType(
    {
        RateCategory.GENERAL: RateLimit(max_requests=5, window_seconds=60.0),
        RateCategory.SEARCH: RateLimit(max_requests=120, window_seconds=60.0),
        RateCategory.LINK_SAVE: RateLimit(max_requests=10, window_seconds=60.0),
    }
)


@dataclass
class RateWindow:
    """Fixed-window counter state for one category."""
    requests_used: int
    reset_at: float


class RateBudgetTracker:
    """Fixed-window admission control, one window per ``RateCategory``.

    A window is created lazily by the first request in its category and
    replaced by a fresh one (with that request counted) once the clock passes
    ``reset_at``. Callers that find the window exhausted sleep until it
    resets and then re-check; waiters are not queued in order and race for
    the next window.

    The check-and-update step never awaits while holding the lock, so a
    sleeping caller does not block admission in other categories. A caller
    whose task is cancelled during the wait takes no slot; a caller that is
    merely abandoned still dispatches once it wakes.

    Args:
        limits: Budget per category. Every ``RateCategory`` must be present.
        clock: Monotonic time source in seconds.
        sleep: Coroutine used to wait; injectable for tests.
    """

    def __init__(
        self,
        limits: Optional[Mapping[RateCategory, RateLimit]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        limits = dict(limits if limits is not None else DEFAULT_RATE_LIMITS)
        missing = [c.value for c in RateCategory if c not in limits]
        if missing:
            raise ValueError(f"Missing rate limits for categories: {missing}")
        for category, limit in limits.items():
            if limit.max_requests < 1 or limit.window_seconds <= 0:
                raise ValueError(f"Invalid rate limit for {category.value}: {limit}")

        self._limits: Mapping[RateCategory, RateLimit] = MappingProxyType(limits)
        self._windows: Dict[RateCategory, RateWindow] = {}
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def limits(self) -> Mapping[RateCategory, RateLimit]:
        return self._limits

    async def acquire_slot(self, category: RateCategory) -> None:
        """Wait until a request in ``category`` may start, then count it."""
        while True:
            async with self._lock:
                wait = self._try_acquire(category)
            if wait is None:
                return
            logger.debug(
                f"Rate budget for {category.value} exhausted, waiting {wait:.2f}s"
            )
            await self._sleep(wait)

    def _try_acquire(self, category: RateCategory) -> Optional[float]:
        """Take a slot if one is free.

        Returns:
            None when the slot was granted, otherwise seconds until the
            current window resets.
        """
        limit = self._limits[category]
        now = self._clock()
        window = self._windows.get(category)

        if window is None or now >= window.reset_at:
            self._windows[category] = RateWindow(
                requests_used=1, reset_at=now + limit.window_seconds
            )
            return None

        if window.requests_used < limit.max_requests:
            window.requests_used += 1
            return None

        return window.reset_at - now

    def remaining(self, category: RateCategory) -> int:
        """Slots still free in the current window of ``category``."""
        limit = self._limits[category]
        window = self._windows.get(category)
        if window is None or self._clock() >= window.reset_at:
            return limit.max_requests
        return max(0, limit.max_requests - window.requests_used)

    def get_window(self, category: RateCategory) -> Optional[RateWindow]:
        """Copy of the current window state, or None before the first request."""
        window = self._windows.get(category)
        if window is None:
            return None
        return RateWindow(requests_used=window.requests_used, reset_at=window.reset_at)

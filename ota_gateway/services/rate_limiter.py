"""
SlidingWindowRateLimiter - Per-partner request budget over rolling windows.

Each partner keeps two windows of request timestamps:
- minute window: requests in the last 60 seconds
- hour window: requests in the last 3600 seconds

A check prunes both windows, rejects if either is full, and only then
reserves a slot. Rejected requests never consume budget.
"""

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from ota_gateway.services.errors import RateLimitExceededError
from ota_gateway.settings import PartnerConfig

MINUTE_WINDOW = 60.0
HOUR_WINDOW = 3600.0


@dataclass
class RateLimiterState:
    """Request timestamps for one partner."""

    minute_requests: deque[float] = field(default_factory=deque)
    hour_requests: deque[float] = field(default_factory=deque)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def prune(self, now: float) -> None:
        while self.minute_requests and now - self.minute_requests[0] >= MINUTE_WINDOW:
            self.minute_requests.popleft()
        while self.hour_requests and now - self.hour_requests[0] >= HOUR_WINDOW:
            self.hour_requests.popleft()


class SlidingWindowRateLimiter:
    """
    Sliding window rate limiter keyed by partner name.

    Usage:
        limiter = SlidingWindowRateLimiter()
        limiter.check_and_record(partner_config)  # raises RateLimitExceededError
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._states: dict[str, RateLimiterState] = {}
        self._registry_lock = threading.Lock()

    def _get_state(self, partner: str) -> RateLimiterState:
        with self._registry_lock:
            state = self._states.get(partner)
            if state is None:
                state = RateLimiterState()
                self._states[partner] = state
            return state

    def check_and_record(self, config: PartnerConfig) -> None:
        """Reserve a slot for one request or raise RateLimitExceededError."""
        state = self._get_state(config.name)
        limits = config.rate_limits

        with state.lock:
            now = self._clock()
            state.prune(now)

            if len(state.minute_requests) >= limits.requests_per_minute:
                logger.warning(
                    f"Rate limit hit for {config.name}: "
                    f"{limits.requests_per_minute}/minute"
                )
                raise RateLimitExceededError(
                    config.name, "minute", limits.requests_per_minute
                )

            if len(state.hour_requests) >= limits.requests_per_hour:
                logger.warning(
                    f"Rate limit hit for {config.name}: "
                    f"{limits.requests_per_hour}/hour"
                )
                raise RateLimitExceededError(
                    config.name, "hour", limits.requests_per_hour
                )

            state.minute_requests.append(now)
            state.hour_requests.append(now)

    def get_usage(self, partner: str) -> dict[str, int]:
        """Current window sizes for a partner (after pruning)."""
        state = self._states.get(partner)
        if state is None:
            return {"minute": 0, "hour": 0}

        with state.lock:
            state.prune(self._clock())
            return {
                "minute": len(state.minute_requests),
                "hour": len(state.hour_requests),
            }

    def get_all_usage(self) -> dict[str, dict[str, Any]]:
        return {partner: self.get_usage(partner) for partner in list(self._states)}

    def reset(self, partner: str | None = None) -> None:
        """Clear recorded requests for one partner, or all of them."""
        with self._registry_lock:
            if partner is None:
                self._states.clear()
            else:
                self._states.pop(partner, None)

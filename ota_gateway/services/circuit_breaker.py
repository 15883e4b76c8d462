"""
CircuitBreaker - Stops calling a failing partner for a cool-down period.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Partner is failing, requests are blocked
- HALF_OPEN: One trial request is allowed through

Transitions:
- CLOSED → OPEN: When failure_threshold is reached
- OPEN → HALF_OPEN: On the first admission after next_attempt_time
- HALF_OPEN → CLOSED: On successful request
- HALF_OPEN → OPEN: On failed request (failure count is still above threshold)

The open duration is base_timeout × failure_count. The failure count is
only reset by a success, so repeated trips open for longer each time.
Set max_open_time to bound it.
"""

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from loguru import logger

from ota_gateway.services.errors import CircuitOpenError


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Blocking requests
    HALF_OPEN = "HALF_OPEN"  # Testing recovery


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker."""

    failure_threshold: int = 5  # Failures before opening
    base_timeout: float = 60.0  # Seconds per accumulated failure
    max_open_time: float | None = None  # Cap on a single open period
    single_trial: bool = True  # Only one in-flight request while HALF_OPEN


def _to_iso(timestamp: float | None) -> str | None:
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class CircuitBreaker:
    """
    Circuit breaker for a single partner.

    Usage:
        cb = CircuitBreaker("booking")

        cb.admit()  # raises CircuitOpenError
        try:
            result = await make_request()
            cb.record_success()
            return result
        except ServiceError:
            cb.record_failure()
            raise
    """

    def __init__(
        self,
        service_id: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.service_id = service_id
        self.config = config or CircuitBreakerConfig()
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float | None = None
        self._next_attempt_time: float | None = None
        self._trial_in_flight = False
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def last_failure_time(self) -> float | None:
        return self._last_failure_time

    @property
    def next_attempt_time(self) -> float | None:
        return self._next_attempt_time

    def admit(self) -> None:
        """Allow the request through or raise CircuitOpenError."""
        with self._lock:
            now = self._clock()

            if self._state == CircuitState.OPEN:
                if self._next_attempt_time is not None and now < self._next_attempt_time:
                    raise CircuitOpenError(
                        self.service_id, self._next_attempt_time - now
                    )
                self._state = CircuitState.HALF_OPEN
                self._trial_in_flight = self.config.single_trial
                logger.info(
                    f"Circuit breaker '{self.service_id}' transitioned to HALF_OPEN"
                )
                return

            if self._state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    raise CircuitOpenError(self.service_id, 0.0)
                self._trial_in_flight = self.config.single_trial

    def record_success(self) -> None:
        """Record a successful request."""
        with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info(f"Circuit breaker '{self.service_id}' CLOSED (recovered)")
            self._failure_count = 0
            self._state = CircuitState.CLOSED
            self._next_attempt_time = None
            self._trial_in_flight = False

    def record_failure(self) -> None:
        """Record a failed request."""
        with self._lock:
            now = self._clock()
            self._failure_count += 1
            self._last_failure_time = now
            self._trial_in_flight = False

            if self._failure_count >= self.config.failure_threshold:
                self._open(now)

    def _open(self, now: float) -> None:
        """Transition to OPEN state."""
        open_for = self.config.base_timeout * self._failure_count
        if self.config.max_open_time is not None:
            open_for = min(open_for, self.config.max_open_time)

        self._state = CircuitState.OPEN
        self._next_attempt_time = now + open_for
        logger.warning(
            f"Circuit breaker '{self.service_id}' OPENED after "
            f"{self._failure_count} failures, next attempt in {open_for:.0f}s"
        )

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._last_failure_time = None
            self._next_attempt_time = None
            self._trial_in_flight = False
        logger.info(f"Circuit breaker '{self.service_id}' manually reset")

    def get_time_until_retry(self) -> float | None:
        """Get seconds until the breaker admits a trial request."""
        if self._state != CircuitState.OPEN or self._next_attempt_time is None:
            return None
        return max(0.0, self._next_attempt_time - self._clock())

    def get_status(self) -> dict[str, Any]:
        """Get current status as dictionary."""
        return {
            "state": self._state.value,
            "failures": self._failure_count,
            "last_failure": _to_iso(self._last_failure_time),
            "next_attempt": _to_iso(self._next_attempt_time),
            "time_until_retry": self.get_time_until_retry(),
        }


class CircuitBreakerRegistry:
    """
    One circuit breaker per partner.

    Usage:
        registry = CircuitBreakerRegistry(["booking", "expedia"])
        cb = registry.get("booking")
    """

    def __init__(
        self,
        service_ids: Iterable[str] = (),
        default_config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._default_config = default_config or CircuitBreakerConfig()
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}
        for service_id in service_ids:
            self.get(service_id)

    def get(self, service_id: str) -> CircuitBreaker:
        """Get or create a circuit breaker for a partner."""
        if service_id not in self._breakers:
            self._breakers[service_id] = CircuitBreaker(
                service_id, self._default_config, clock=self._clock
            )
        return self._breakers[service_id]

    def get_all_status(self) -> dict[str, dict[str, Any]]:
        """Get status of all circuit breakers."""
        return {
            service_id: cb.get_status() for service_id, cb in self._breakers.items()
        }

    def reset(self, service_id: str) -> bool:
        """Reset a specific circuit breaker."""
        if service_id in self._breakers:
            self._breakers[service_id].reset()
            return True
        return False

    def reset_all(self) -> None:
        """Reset all circuit breakers."""
        for cb in self._breakers.values():
            cb.reset()
        logger.info(f"Reset {len(self._breakers)} circuit breakers")

    def get_open_circuits(self) -> list[str]:
        """Get list of partners with open circuits."""
        return [
            service_id
            for service_id, cb in self._breakers.items()
            if cb.state == CircuitState.OPEN
        ]

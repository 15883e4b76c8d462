import pytest

from ota_gateway.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from ota_gateway.services.errors import CircuitOpenError


@pytest.fixture
def breaker(clock):
    return CircuitBreaker(
        "booking",
        CircuitBreakerConfig(failure_threshold=5, base_timeout=60.0),
        clock=clock,
    )


def trip(breaker, times=5):
    for _ in range(times):
        breaker.record_failure()


def test_closed_breaker_admits(breaker):
    breaker.admit()
    assert breaker.state == CircuitState.CLOSED


def test_opens_after_threshold(breaker, clock):
    trip(breaker, 4)
    assert breaker.state == CircuitState.CLOSED

    breaker.record_failure()

    assert breaker.state == CircuitState.OPEN
    assert breaker.failure_count == 5
    assert breaker.last_failure_time == clock.now
    # 60s per accumulated failure
    assert breaker.next_attempt_time == clock.now + 300


def test_open_breaker_fails_fast(breaker, clock):
    trip(breaker)
    clock.advance(100)

    with pytest.raises(CircuitOpenError) as exc_info:
        breaker.admit()

    assert exc_info.value.retry_after == pytest.approx(200)
    assert breaker.state == CircuitState.OPEN


def test_half_open_after_cooldown_then_success_closes(breaker, clock):
    trip(breaker)
    clock.advance(300)

    breaker.admit()
    assert breaker.state == CircuitState.HALF_OPEN

    breaker.record_success()
    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0
    breaker.admit()


def test_half_open_allows_single_trial(breaker, clock):
    trip(breaker)
    clock.advance(300)
    breaker.admit()

    with pytest.raises(CircuitOpenError) as exc_info:
        breaker.admit()
    assert exc_info.value.retry_after == 0


def test_half_open_without_trial_guard_admits_concurrently(clock):
    breaker = CircuitBreaker(
        "booking",
        CircuitBreakerConfig(failure_threshold=1, single_trial=False),
        clock=clock,
    )
    breaker.record_failure()
    clock.advance(60)

    breaker.admit()
    breaker.admit()
    assert breaker.state == CircuitState.HALF_OPEN


def test_failed_trial_reopens_with_longer_backoff(breaker, clock):
    trip(breaker)
    clock.advance(300)
    breaker.admit()

    breaker.record_failure()

    assert breaker.state == CircuitState.OPEN
    assert breaker.failure_count == 6
    assert breaker.next_attempt_time == clock.now + 360


def test_max_open_time_caps_backoff(clock):
    breaker = CircuitBreaker(
        "booking",
        CircuitBreakerConfig(failure_threshold=5, max_open_time=120.0),
        clock=clock,
    )
    trip(breaker, 20)

    assert breaker.next_attempt_time == clock.now + 120
    assert breaker.get_time_until_retry() == pytest.approx(120)


def test_status_reports_state(breaker):
    trip(breaker)
    status = breaker.get_status()

    assert status["state"] == "OPEN"
    assert status["failures"] == 5
    assert status["last_failure"] is not None
    assert status["next_attempt"] is not None


def test_reset(breaker):
    trip(breaker)
    breaker.reset()

    assert breaker.state == CircuitState.CLOSED
    assert breaker.failure_count == 0
    assert breaker.get_status()["last_failure"] is None


def test_registry_initializes_known_partners(clock):
    registry = CircuitBreakerRegistry(
        ["booking", "expedia"], CircuitBreakerConfig(failure_threshold=1), clock=clock
    )

    statuses = registry.get_all_status()
    assert set(statuses) == {"booking", "expedia"}
    assert all(s["state"] == "CLOSED" and s["failures"] == 0 for s in statuses.values())

    registry.get("expedia").record_failure()
    assert registry.get_open_circuits() == ["expedia"]
    assert registry.reset("expedia") is True
    assert registry.reset("unknown") is False
    assert registry.get_open_circuits() == []

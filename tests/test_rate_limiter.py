import pytest

from conftest import FakeClock, make_partner
from ota_gateway.services.errors import RateLimitExceededError
from ota_gateway.services.rate_limiter import SlidingWindowRateLimiter
from ota_gateway.settings import RateLimits


@pytest.fixture
def partner():
    return make_partner(
        rate_limits=RateLimits(requests_per_minute=3, requests_per_hour=5)
    )


def test_rejects_request_over_minute_limit(partner, clock):
    limiter = SlidingWindowRateLimiter(clock=clock)
    for _ in range(3):
        limiter.check_and_record(partner)

    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.check_and_record(partner)

    assert exc_info.value.scope == "minute"
    assert exc_info.value.limit == 3
    assert exc_info.value.service_id == "booking"
    # Rejected request does not consume budget
    assert limiter.get_usage("booking") == {"minute": 3, "hour": 3}


def test_minute_window_slides(partner, clock):
    limiter = SlidingWindowRateLimiter(clock=clock)
    for _ in range(3):
        limiter.check_and_record(partner)

    clock.advance(59)
    with pytest.raises(RateLimitExceededError):
        limiter.check_and_record(partner)

    clock.advance(1)
    limiter.check_and_record(partner)
    assert limiter.get_usage("booking") == {"minute": 1, "hour": 4}


def test_rejects_request_over_hour_limit(partner, clock):
    limiter = SlidingWindowRateLimiter(clock=clock)
    for _ in range(5):
        limiter.check_and_record(partner)
        clock.advance(61)

    with pytest.raises(RateLimitExceededError) as exc_info:
        limiter.check_and_record(partner)

    assert exc_info.value.scope == "hour"
    assert exc_info.value.limit == 5

    clock.advance(3600)
    limiter.check_and_record(partner)
    assert limiter.get_usage("booking")["hour"] == 1


def test_partners_have_independent_windows(clock):
    limits = RateLimits(requests_per_minute=1, requests_per_hour=10)
    booking = make_partner("booking", rate_limits=limits)
    expedia = make_partner("expedia", rate_limits=limits)
    limiter = SlidingWindowRateLimiter(clock=clock)

    limiter.check_and_record(booking)
    limiter.check_and_record(expedia)

    with pytest.raises(RateLimitExceededError):
        limiter.check_and_record(booking)


def test_window_never_exceeds_limit(clock):
    partner = make_partner(
        rate_limits=RateLimits(requests_per_minute=10, requests_per_hour=1000)
    )
    limiter = SlidingWindowRateLimiter(clock=clock)
    rejected = 0
    for _ in range(11):
        try:
            limiter.check_and_record(partner)
        except RateLimitExceededError:
            rejected += 1
        clock.advance(1)

    assert rejected == 1
    assert limiter.get_usage("booking")["minute"] == 10


def test_reset_clears_state(partner):
    limiter = SlidingWindowRateLimiter(clock=FakeClock())
    limiter.check_and_record(partner)
    limiter.reset("booking")

    assert limiter.get_usage("booking") == {"minute": 0, "hour": 0}
    assert limiter.get_all_usage() == {}

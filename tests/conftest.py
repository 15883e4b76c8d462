import pytest
import httpx

from ota_gateway.services.client import OTAClient
from ota_gateway.settings import (
    IntegrationConfig,
    OTASettings,
    PartnerConfig,
    RateLimits,
)


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every delay."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_partner(name: str = "booking", **overrides) -> PartnerConfig:
    values = {
        "name": name,
        "base_url": f"https://api.{name}.test/v1",
        "api_key": f"{name}-key",
        "timeout": 5.0,
        "rate_limits": RateLimits(requests_per_minute=100, requests_per_hour=5000),
    }
    values.update(overrides)
    return PartnerConfig(**values)


def make_settings(**overrides) -> OTASettings:
    values = {
        "partners": {
            "booking": make_partner("booking", api_secret="booking-secret"),
            "expedia": make_partner("expedia"),
            "airbnb": make_partner("airbnb"),
        },
        "enable_ota_integration": True,
        "enable_stub_responses": True,
        "integration": IntegrationConfig(
            retry_attempts=3, retry_delay=2.0, circuit_breaker_threshold=5
        ),
    }
    values.update(overrides)
    return OTASettings(**values)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def captured_requests():
    return []


@pytest.fixture
def make_http_client(captured_requests):
    """Build an AsyncClient backed by a handler function."""
    def _make(handler):
        def _record(request: httpx.Request) -> httpx.Response:
            captured_requests.append(request)
            return handler(request)

        return httpx.AsyncClient(transport=httpx.MockTransport(_record))

    return _make


@pytest.fixture
def make_client(settings, clock, sleep, make_http_client):
    """Build an OTAClient with fake time and a mocked transport."""

    def _make(handler=None, ota_settings=None, **kwargs):
        if handler is None:
            handler = lambda request: httpx.Response(200, json={"ok": True})
        return OTAClient(
            ota_settings or settings,
            http_client=make_http_client(handler),
            clock=clock,
            monotonic=clock,
            timer=clock,
            sleep=sleep,
            **kwargs,
        )

    return _make

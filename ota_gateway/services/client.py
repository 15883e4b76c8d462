"""
OTAClient - Resilient outbound client for OTA partner APIs.

Combines:
- SlidingWindowRateLimiter for per-partner request budgets
- CircuitBreakerRegistry for failure protection
- RequestExecutor for partner auth and response normalization
- MetricsAggregator for request statistics
- Stub fallback responses when every attempt fails

Each attempt runs three stages in order: admission (rate limit, then
circuit breaker), execution, and outcome recording.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger

from ota_gateway.services.circuit_breaker import (
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
)
from ota_gateway.services.errors import PartnerUnconfiguredError, ServiceError
from ota_gateway.services.executor import RequestExecutor
from ota_gateway.services.fallback import build_fallback_response
from ota_gateway.services.metrics import MetricsAggregator
from ota_gateway.services.models import StandardResponse
from ota_gateway.services.partners import get_adapter
from ota_gateway.services.rate_limiter import SlidingWindowRateLimiter
from ota_gateway.settings import OTASettings, PartnerConfig, global_settings

HEALTH_ENDPOINT = "/health"


class OTAClient:
    """
    Partner client with rate limiting, circuit breaking, retries and fallback.

    Usage:
        async with OTAClient(settings) as client:
            response = await client.request(
                "booking", "/hotels", {"city": "Amsterdam"}
            )
            if response.is_fallback:
                ...
    """

    def __init__(
        self,
        settings: OTASettings,
        executor: RequestExecutor | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
        monotonic: Callable[[], float] = time.monotonic,
        timer: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.settings = settings
        self._timer = timer
        self._sleep = sleep

        integration = settings.integration
        self._rate_limiter = SlidingWindowRateLimiter(clock=monotonic)
        self._circuit_breakers = CircuitBreakerRegistry(
            settings.partners,
            CircuitBreakerConfig(
                failure_threshold=integration.circuit_breaker_threshold,
                base_timeout=integration.circuit_breaker_base_timeout,
                max_open_time=integration.circuit_breaker_max_open_time,
            ),
            clock=clock,
        )
        self._executor = executor or RequestExecutor(
            source_tag=settings.source_tag,
            http_client=http_client,
            wall_clock=clock,
        )
        self._metrics = MetricsAggregator()

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter:
        return self._rate_limiter

    @property
    def circuit_breakers(self) -> CircuitBreakerRegistry:
        return self._circuit_breakers

    @property
    def metrics(self) -> MetricsAggregator:
        return self._metrics

    def _get_partner_config(self, partner: str) -> PartnerConfig:
        config = self.settings.partners.get(partner)
        if config is None or not config.is_configured or get_adapter(partner) is None:
            raise PartnerUnconfiguredError(partner)
        return config

    async def request(
        self,
        partner: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
    ) -> StandardResponse:
        """
        Make a partner request with resilience patterns.

        Args:
            partner: Partner name (booking, expedia, airbnb)
            endpoint: Path appended to the partner base URL
            params: Query parameters for GET, JSON body otherwise
            method: HTTP method
            headers: Extra headers, applied before partner auth

        Returns:
            A live StandardResponse, or a fallback one when integration is
            disabled or every attempt failed

        Raises:
            PartnerUnconfiguredError: Partner is unknown or has no API key
            ServiceError: Last attempt error, when stub responses are disabled
        """
        if not self.settings.enable_ota_integration:
            return build_fallback_response(
                partner, endpoint, params, reason="OTA integration disabled"
            )

        config = self._get_partner_config(partner)
        attempts = self.settings.integration.retry_attempts
        last_error: ServiceError | None = None

        for attempt in range(1, attempts + 1):
            try:
                return await self._attempt(config, endpoint, params, method, headers)
            except ServiceError as e:
                last_error = e
                logger.warning(
                    f"OTA request failed (attempt {attempt}/{attempts}): "
                    f"{partner}{endpoint} - {e}"
                )

            if attempt < attempts:
                await self._sleep(self.settings.integration.retry_delay * attempt)

        if self.settings.enable_stub_responses:
            return build_fallback_response(
                partner, endpoint, params, reason="All retry attempts failed"
            )

        if last_error is None:
            raise ServiceError(f"No attempts made for {partner}", service_id=partner)
        raise last_error

    async def _attempt(
        self,
        config: PartnerConfig,
        endpoint: str,
        params: dict[str, Any] | None,
        method: str,
        headers: dict[str, str] | None,
    ) -> StandardResponse:
        """Run one admission → execution → outcome pass."""
        breaker = self._circuit_breakers.get(config.name)
        started = self._timer()

        try:
            self._rate_limiter.check_and_record(config)
            breaker.admit()
            response = await self._executor.execute(
                config, endpoint, params, method=method, headers=headers
            )
        except Exception:
            breaker.record_failure()
            self._metrics.record(config.name, self._elapsed_ms(started), False)
            raise

        elapsed_ms = self._elapsed_ms(started)
        breaker.record_success()
        self._metrics.record(config.name, elapsed_ms, True)
        logger.info(
            f"OTA request successful: {config.name}{endpoint} ({elapsed_ms:.2f}ms)"
        )
        return response

    def _elapsed_ms(self, started: float) -> float:
        return (self._timer() - started) * 1000

    async def health_check(self) -> dict[str, Any]:
        """Probe every partner and report aggregated status."""
        results: dict[str, dict[str, Any]] = {}

        for partner in self.settings.partners:
            started = self._timer()
            try:
                response = await self.request(partner, HEALTH_ENDPOINT, {})
            except Exception as e:
                results[partner] = {
                    "status": "unhealthy",
                    "error": str(e),
                    "last_checked": datetime.now(timezone.utc).isoformat(),
                }
                continue

            results[partner] = {
                "status": "fallback" if response.is_fallback else "healthy",
                "response_time": round(self._elapsed_ms(started)),
                "last_checked": datetime.now(timezone.utc).isoformat(),
            }

        overall = (
            "healthy"
            if all(r["status"] == "healthy" for r in results.values())
            else "degraded"
        )
        return {
            "overall": overall,
            "partners": results,
            "metrics": self.get_metrics(),
        }

    def get_metrics(self) -> dict[str, Any]:
        """Metrics snapshot with circuit breaker and rate limit state."""
        return {
            **self._metrics.snapshot(),
            "circuit_breakers": self._circuit_breakers.get_all_status(),
            "rate_limits": self._rate_limiter.get_all_usage(),
        }

    async def close(self) -> None:
        """Close the HTTP client and cleanup resources."""
        await self._executor.close()
        logger.debug("OTAClient closed")

    async def __aenter__(self) -> "OTAClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


# Global client instance
_global_client: OTAClient | None = None


def get_ota_client() -> OTAClient:
    """Get the global OTA client instance."""
    global _global_client
    if _global_client is None:
        _global_client = OTAClient(global_settings.to_ota_settings())
    return _global_client


async def close_ota_client() -> None:
    """Close the global OTA client."""
    global _global_client
    if _global_client:
        await _global_client.close()
        _global_client = None

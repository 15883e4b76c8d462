"""
Partner integration layer - resilience patterns for OTA partner APIs.

Provides:
- SlidingWindowRateLimiter: Per-partner minute/hour request budgets
- CircuitBreaker: Stops calling failing partners for a cool-down period
- RequestExecutor: Partner auth and response normalization
- MetricsAggregator: Request counters and response-time averages
- OTAClient: Unified client combining all patterns with retry and fallback
"""

from ota_gateway.services.errors import (
    ServiceError,
    RateLimitExceededError,
    CircuitOpenError,
    PartnerUnconfiguredError,
    TransportError,
    RequestTimeoutError,
)
from ota_gateway.services.models import ResponseMetadata, StandardResponse
from ota_gateway.services.rate_limiter import SlidingWindowRateLimiter
from ota_gateway.services.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
)
from ota_gateway.services.partners import PARTNER_ADAPTERS, PartnerAdapter
from ota_gateway.services.executor import RequestExecutor
from ota_gateway.services.fallback import build_fallback_response
from ota_gateway.services.metrics import MetricsAggregator
from ota_gateway.services.client import OTAClient, close_ota_client, get_ota_client

__all__ = [
    # Errors
    "ServiceError",
    "RateLimitExceededError",
    "CircuitOpenError",
    "PartnerUnconfiguredError",
    "TransportError",
    "RequestTimeoutError",
    # Models
    "ResponseMetadata",
    "StandardResponse",
    # Rate Limiter
    "SlidingWindowRateLimiter",
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    # Partners
    "PARTNER_ADAPTERS",
    "PartnerAdapter",
    "RequestExecutor",
    # Fallback / Metrics
    "build_fallback_response",
    "MetricsAggregator",
    # Client
    "OTAClient",
    "get_ota_client",
    "close_ota_client",
]

"""
Partner client exceptions.
"""


class ServiceError(Exception):
    """Base exception for partner client errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class RateLimitExceededError(ServiceError):
    """Local rate limit window is full, request was not sent."""

    def __init__(self, service_id: str, scope: str, limit: int):
        self.scope = scope  # 'minute' | 'hour'
        self.limit = limit
        super().__init__(
            f"Rate limit exceeded for {service_id}: {limit}/{scope}",
            service_id=service_id,
        )


class CircuitOpenError(ServiceError):
    """Circuit breaker is open, request blocked."""

    def __init__(self, service_id: str, retry_after: float):
        self.retry_after = retry_after
        super().__init__(
            f"Circuit breaker OPEN for {service_id}, "
            f"retry after {retry_after:.1f}s",
            service_id=service_id,
        )


class PartnerUnconfiguredError(ServiceError):
    """Partner is unknown or has no API key. Never retried."""

    def __init__(self, service_id: str):
        super().__init__(
            f"Partner {service_id} not configured or missing API key",
            service_id=service_id,
        )


class TransportError(ServiceError):
    """The partner call failed at the HTTP level."""

    def __init__(
        self,
        message: str,
        service_id: str | None = None,
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, service_id=service_id)


class RequestTimeoutError(TransportError):
    """Request timed out."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to partner '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )

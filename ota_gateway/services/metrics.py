"""
MetricsAggregator - Running request counters and response-time averages.
"""

import threading
from dataclasses import dataclass, field
from typing import Any


@dataclass
class PartnerMetrics:
    """Counters for a single partner."""

    requests: int = 0
    successes: int = 0
    failures: int = 0
    average_response_time: float = 0.0  # milliseconds

    def record(self, elapsed_ms: float, success: bool) -> None:
        self.requests += 1
        if success:
            self.successes += 1
        else:
            self.failures += 1
        n = self.requests
        self.average_response_time = (
            (self.average_response_time * (n - 1)) + elapsed_ms
        ) / n

    def to_dict(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "successes": self.successes,
            "failures": self.failures,
            "average_response_time": self.average_response_time,
        }


@dataclass
class RequestMetrics:
    """Global counters plus a per-partner breakdown."""

    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0  # milliseconds
    partner_metrics: dict[str, PartnerMetrics] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "average_response_time": self.average_response_time,
            "success_rate": f"{self.success_rate:.2%}",
            "partner_metrics": {
                partner: metrics.to_dict()
                for partner, metrics in self.partner_metrics.items()
            },
        }


class MetricsAggregator:
    """
    Records the outcome of every attempt.

    Usage:
        metrics = MetricsAggregator()
        metrics.record("booking", elapsed_ms=120.5, success=True)
        metrics.snapshot()["total_requests"]  # 1
    """

    def __init__(self):
        self._metrics = RequestMetrics()
        self._lock = threading.Lock()

    def record(self, partner: str, elapsed_ms: float, success: bool) -> None:
        """Update global and per-partner counters for one attempt."""
        with self._lock:
            m = self._metrics
            m.total_requests += 1
            n = m.total_requests
            m.average_response_time = (
                (m.average_response_time * (n - 1)) + elapsed_ms
            ) / n
            if success:
                m.successful_requests += 1
            else:
                m.failed_requests += 1

            partner_metrics = m.partner_metrics.get(partner)
            if partner_metrics is None:
                partner_metrics = PartnerMetrics()
                m.partner_metrics[partner] = partner_metrics
            partner_metrics.record(elapsed_ms, success)

    def get_partner(self, partner: str) -> PartnerMetrics | None:
        return self._metrics.partner_metrics.get(partner)

    def snapshot(self) -> dict[str, Any]:
        """Point-in-time copy of all counters."""
        with self._lock:
            return self._metrics.to_dict()

    def reset(self) -> None:
        with self._lock:
            self._metrics = RequestMetrics()

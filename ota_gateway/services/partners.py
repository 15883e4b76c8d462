"""
Partner adapters - per-partner authentication and response transforms.

The partner set is fixed: booking, expedia, airbnb. Each adapter adds its
own auth headers on top of the common bearer header and reshapes the
partner payload into the standard format.
"""

import hashlib
import hmac
from abc import ABC, abstractmethod
from typing import Any

from ota_gateway.services.models import StandardResponse
from ota_gateway.settings import PartnerConfig


class PartnerAdapter(ABC):
    """
    Base class for partner adapters.

    Adapters are stateless; one instance serves every request.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Partner name, matching the settings key."""
        ...

    @abstractmethod
    def authenticate(
        self,
        config: PartnerConfig,
        method: str,
        url: str,
        headers: dict[str, str],
        timestamp_ms: int,
    ) -> None:
        """Add partner-specific auth headers in place."""
        ...

    def transform(self, response: StandardResponse) -> StandardResponse:
        """Reshape partner data. Pass-through unless overridden."""
        return response


class BookingAdapter(PartnerAdapter):
    """Booking.com: API key header plus optional HMAC request signature."""

    @property
    def name(self) -> str:
        return "booking"

    def authenticate(
        self,
        config: PartnerConfig,
        method: str,
        url: str,
        headers: dict[str, str],
        timestamp_ms: int,
    ) -> None:
        headers["X-Booking-API-Key"] = config.api_key or ""
        if config.api_secret:
            timestamp = str(timestamp_ms)
            headers["X-Booking-Timestamp"] = timestamp
            headers["X-Booking-Signature"] = sign_request(
                config.api_secret, timestamp, method, url
            )

    def transform(self, response: StandardResponse) -> StandardResponse:
        if not isinstance(response.data, dict) or not response.data.get("hotels"):
            return response

        hotels = response.data["hotels"]

        data = {k: v for k, v in response.data.items() if k != "hotels"}
        data["properties"] = [_booking_hotel_to_property(h) for h in hotels]
        return response.model_copy(update={"data": data})


class ApiKeyAdapter(PartnerAdapter):
    """Partners that only need an API key header."""

    def __init__(self, name: str, header: str):
        self._name = name
        self._header = header

    @property
    def name(self) -> str:
        return self._name

    def authenticate(
        self,
        config: PartnerConfig,
        method: str,
        url: str,
        headers: dict[str, str],
        timestamp_ms: int,
    ) -> None:
        headers[self._header] = config.api_key or ""


def sign_request(secret: str, timestamp: str, method: str, url: str) -> str:
    """Hex HMAC-SHA256 of timestamp + method + url."""
    message = f"{timestamp}{method}{url}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def _booking_hotel_to_property(hotel: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": hotel.get("hotel_id"),
        "name": hotel.get("hotel_name"),
        "location": hotel.get("city"),
        "rating": hotel.get("class"),
        "price": hotel.get("min_total_price"),
        "currency": hotel.get("currency_code"),
    }


PARTNER_ADAPTERS: dict[str, PartnerAdapter] = {
    adapter.name: adapter
    for adapter in (
        BookingAdapter(),
        ApiKeyAdapter("expedia", "X-Expedia-API-Key"),
        ApiKeyAdapter("airbnb", "X-Airbnb-API-Key"),
    )
}


def get_adapter(partner: str) -> PartnerAdapter | None:
    return PARTNER_ADAPTERS.get(partner)

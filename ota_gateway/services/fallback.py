"""
Stub responses served when a partner cannot be reached.
"""

from typing import Any

from loguru import logger

from ota_gateway.services.models import ResponseMetadata, StandardResponse

DEFAULT_FALLBACK_REASON = "Integration unavailable"


def build_fallback_response(
    partner: str,
    endpoint: str,
    params: dict[str, Any] | None = None,
    reason: str = DEFAULT_FALLBACK_REASON,
) -> StandardResponse:
    """Build a synthetic response with a single placeholder property."""
    logger.info(f"Serving fallback response for {partner}{endpoint}: {reason}")

    return StandardResponse(
        partner=partner,
        data={
            "properties": [
                {
                    "id": f"{partner}_stub_001",
                    "name": f"Sample Hotel - {partner}",
                    "location": "Sample City",
                    "rating": 4,
                    "price": 150.00,
                    "currency": "USD",
                    "availability": True,
                }
            ],
            "total": 1,
            "message": "This is a fallback response",
        },
        metadata=ResponseMetadata(source="fallback", cached=False, reason=reason),
    )

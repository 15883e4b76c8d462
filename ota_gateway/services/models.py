"""
Standardized partner response models.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResponseMetadata(BaseModel):
    """Where a response came from."""

    source: Literal["live", "fallback"]
    cached: bool = False
    reason: str | None = None


class StandardResponse(BaseModel):
    """Partner response normalized to a common shape."""

    partner: str
    timestamp: datetime = Field(default_factory=utc_now)
    data: Any = Field(default_factory=dict)
    metadata: ResponseMetadata

    @property
    def is_fallback(self) -> bool:
        return self.metadata.source == "fallback"


import os
from collections.abc import Mapping

from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class RateLimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    requests_per_minute: int = Field(gt=0)
    requests_per_hour: int = Field(gt=0)


class PartnerConfig(BaseModel):
    """Static configuration for one OTA partner."""

    model_config = ConfigDict(frozen=True)

    name: str
    base_url: str
    api_key: str | None = None
    api_secret: str | None = None
    timeout: float = 30.0  # seconds
    rate_limits: RateLimits

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class IntegrationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=2.0, ge=0)  # seconds, multiplied by attempt
    circuit_breaker_threshold: int = Field(default=5, ge=1)
    circuit_breaker_base_timeout: float = 60.0  # seconds, multiplied by failures
    # None keeps the open duration uncapped
    circuit_breaker_max_open_time: float | None = None


class OTASettings(BaseModel):
    """Everything OTAClient needs, already resolved from the environment."""

    model_config = ConfigDict(frozen=True)

    partners: dict[str, PartnerConfig]
    enable_ota_integration: bool = False
    enable_stub_responses: bool = True
    source_tag: str = "actyme-staging"
    integration: IntegrationConfig = IntegrationConfig()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Feature Flags
    enable_ota_integration: bool = Field(
        default=False, alias="ENABLE_OTA_INTEGRATION"
    )
    enable_stub_responses: bool = Field(default=True, alias="ENABLE_STUB_RESPONSES")

    # Booking.com
    booking_api_key: str | None = Field(default=None, alias="BOOKING_API_KEY")
    booking_api_secret: str | None = Field(default=None, alias="BOOKING_API_SECRET")
    booking_base_url: str = Field(
        default="https://api.booking.com/v1", alias="BOOKING_BASE_URL"
    )
    booking_timeout: float = Field(default=30.0, alias="BOOKING_TIMEOUT")

    # Expedia
    expedia_api_key: str | None = Field(default=None, alias="EXPEDIA_API_KEY")
    expedia_api_secret: str | None = Field(default=None, alias="EXPEDIA_API_SECRET")
    expedia_base_url: str = Field(
        default="https://api.expedia.com/v3", alias="EXPEDIA_BASE_URL"
    )
    expedia_timeout: float = Field(default=30.0, alias="EXPEDIA_TIMEOUT")

    # Airbnb
    airbnb_api_key: str | None = Field(default=None, alias="AIRBNB_API_KEY")
    airbnb_api_secret: str | None = Field(default=None, alias="AIRBNB_API_SECRET")
    airbnb_base_url: str = Field(
        default="https://api.airbnb.com/v2", alias="AIRBNB_BASE_URL"
    )
    airbnb_timeout: float = Field(default=25.0, alias="AIRBNB_TIMEOUT")

    # Integration Settings
    retry_attempts: int = Field(default=3, alias="OTA_RETRY_ATTEMPTS")
    retry_delay: float = Field(default=2.0, alias="OTA_RETRY_DELAY")
    circuit_breaker_threshold: int = Field(
        default=5, alias="OTA_CIRCUIT_BREAKER_THRESHOLD"
    )
    circuit_breaker_max_open_time: float | None = Field(
        default=None, alias="OTA_CIRCUIT_BREAKER_MAX_OPEN"
    )
    source_tag: str = Field(default="actyme-staging", alias="OTA_SOURCE_TAG")

    def to_ota_settings(self) -> OTASettings:
        partners = {
            "booking": PartnerConfig(
                name="booking",
                base_url=self.booking_base_url,
                api_key=self.booking_api_key or None,
                api_secret=self.booking_api_secret or None,
                timeout=self.booking_timeout,
                rate_limits=RateLimits(requests_per_minute=100, requests_per_hour=5000),
            ),
            "expedia": PartnerConfig(
                name="expedia",
                base_url=self.expedia_base_url,
                api_key=self.expedia_api_key or None,
                api_secret=self.expedia_api_secret or None,
                timeout=self.expedia_timeout,
                rate_limits=RateLimits(requests_per_minute=120, requests_per_hour=6000),
            ),
            "airbnb": PartnerConfig(
                name="airbnb",
                base_url=self.airbnb_base_url,
                api_key=self.airbnb_api_key or None,
                api_secret=self.airbnb_api_secret or None,
                timeout=self.airbnb_timeout,
                rate_limits=RateLimits(requests_per_minute=80, requests_per_hour=4000),
            ),
        }
        return OTASettings(
            partners=partners,
            enable_ota_integration=self.enable_ota_integration,
            enable_stub_responses=self.enable_stub_responses,
            source_tag=self.source_tag,
            integration=IntegrationConfig(
                retry_attempts=self.retry_attempts,
                retry_delay=self.retry_delay,
                circuit_breaker_threshold=self.circuit_breaker_threshold,
                circuit_breaker_max_open_time=self.circuit_breaker_max_open_time,
            ),
        )


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from an env mapping (defaults to os.environ)."""
    source = os.environ if env is None else env
    # Empty strings mean "unset" for optional values
    return Settings.model_validate({k: v for k, v in source.items() if v != ""})


def warn_missing_credentials(settings: OTASettings) -> list[str]:
    """Log partners lacking an API key while integration is enabled."""
    if not settings.enable_ota_integration:
        return []

    missing = [
        name for name, partner in settings.partners.items() if not partner.is_configured
    ]
    if missing:
        logger.warning(
            f"OTA integration enabled but missing credentials: {', '.join(missing)}"
        )
    return missing


global_settings = load_settings()

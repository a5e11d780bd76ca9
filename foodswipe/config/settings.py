"""Application settings using Pydantic."""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Client settings loaded from environment variables.

    This uses Pydantic to:
    1. Load values from .env file
    2. Validate data types
    3. Provide defaults
    """

    # Project
    PROJECT_NAME: str = "FoodSwipe"
    VERSION: str = "1.0.0"

    # Environment & Logging
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"
    LOG_TO_FILE: bool = False

    # Backend REST API
    API_URL: str = "http://localhost:5000"
    API_TIMEOUT_SECONDS: float = 30.0

    # Real-time pub/sub
    REDIS_URL: str = "redis://localhost:6379"
    REALTIME_CHANNEL_PREFIX: str = "foodswipe:"

    # Local session storage
    SESSION_FILE: str = ".foodswipe_session.json"
    SESSION_KEY: str = "userInfo"

    # Delivery fee (currency-agnostic units)
    DELIVERY_FEE_BASE: float = 40
    DELIVERY_FEE_PER_KM: float = 20
    DELIVERY_FEE_MAX: float = 100
    # Anything beyond this is a coordinate bug, not a delivery
    MAX_SANE_DISTANCE_KM: float = 1000
    SERVICE_FEE: float = 0
    TAX_ENABLED: bool = False
    TAX_RATE: float = 8

    # Rider earnings
    RIDER_BASE_PAY: float = 40
    RIDER_PER_KM_RATE: float = 20
    MIN_PAYOUT_AMOUNT: float = 500

    # Timers (seconds)
    INCOMING_ORDER_COUNTDOWN_SECONDS: float = 60
    FALLBACK_POLL_SECONDS: float = 60
    ADDRESS_DEBOUNCE_SECONDS: float = 0.3

    # Address autocomplete (Photon-compatible geocoder)
    GEOCODER_URL: str = "https://photon.komoot.io/api/"
    GEOCODER_BIAS_LAT: float = 31.5204
    GEOCODER_BIAS_LNG: float = 74.3587
    # min_lng, min_lat, max_lng, max_lat
    GEOCODER_BBOX: List[float] = [60.87, 23.69, 77.84, 37.08]
    GEOCODER_LIMIT: int = 10
    GEOCODER_LANG: Optional[str] = "en"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_file_encoding='utf-8',
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance.
    """
    return Settings()


# Create a single instance for easy importing
settings = get_settings()

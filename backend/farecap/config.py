"""Configuration for the PearlCard fare engine."""

from typing import List
import os
from dotenv import load_dotenv

from farecap.models import FareConfig

load_dotenv()


def default_fare_config(cap_precedence: str = "cap_value") -> FareConfig:
    """
    Build the standard two-zone fare table (amounts in pence).

    A new value is returned on every call; nothing in the engine reads it
    implicitly, callers pass it in.
    """
    return FareConfig(
        base_fares={
            "1-1": {"peak": 30, "off-peak": 25},
            "1-2": {"peak": 35, "off-peak": 30},
            "2-1": {"peak": 35, "off-peak": 30},
            "2-2": {"peak": 25, "off-peak": 20},
        },
        daily_caps={
            "1-1": 100,
            "1-2": 120,
            "2-1": 120,
            "2-2": 80,
        },
        weekly_caps={
            "1-1": 500,
            "1-2": 600,
            "2-1": 600,
            "2-2": 400,
        },
        cap_precedence=cap_precedence,
    )


class Settings:
    """Application settings."""

    # API Settings
    API_TITLE = "PearlCard Fare Calculator"
    API_VERSION = "2.0.0"
    API_DESCRIPTION = (
        "Contactless fare engine with peak pricing and daily/weekly caps"
    )

    # Database Settings
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./pearlcard_fare_tables.db")

    # Cache Settings
    REDIS_URL = os.getenv("REDIS_URL") or None
    CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # CORS Settings
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]

    # System Constraints
    MAX_JOURNEYS_PER_REQUEST = int(os.getenv("MAX_JOURNEYS_PER_REQUEST", "200"))
    CAP_PRECEDENCE = os.getenv("CAP_PRECEDENCE", "cap_value")

    @classmethod
    def get_fare_config(cls) -> FareConfig:
        """
        Get the fare table, served from the cache and loaded from the
        database on a miss.
        """
        from farecap.cache import get_fare_config_with_cache

        return get_fare_config_with_cache()

    @classmethod
    def reload_fare_config(cls) -> FareConfig:
        """Drop cached fare tables and load them again from the database."""
        from farecap.cache import get_fare_config_cache

        get_fare_config_cache().invalidate()
        return cls.get_fare_config()

    @classmethod
    def get_max_journeys_per_request(cls) -> int:
        """Journey limit per request, as stored in the database."""
        from farecap.database import get_db_manager

        max_journeys = get_db_manager().get_config_value("max_journeys_per_request")
        return int(max_journeys) if max_journeys else cls.MAX_JOURNEYS_PER_REQUEST

    @classmethod
    def get_available_zones(cls) -> List[int]:
        """Get list of zones covered by the current fare table."""
        return cls.get_fare_config().zones()

    @classmethod
    def is_valid_zone(cls, zone: int) -> bool:
        """Check if a zone number is covered by the fare table."""
        return zone in cls.get_available_zones()


settings = Settings()

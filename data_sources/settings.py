"""
Runtime settings for the Area Profile API
Read once from the environment (and a local .env file) into a frozen dataclass.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import FrozenSet

from dotenv import load_dotenv

load_dotenv()

DEFAULT_REQUEST_TIMEOUT = 5.0
DEFAULT_CACHE_TTL = 24 * 3600
DEFAULT_USER_AGENT = "AreaProfile/1.0 (+https://github.com/area-profile)"

# Event Duration Monitoring returns for storm overflows (England), published as an ArcGIS layer
DEFAULT_SEWAGE_OVERFLOW_SERVICE_URL = (
    "https://services-eu1.arcgis.com/O0ZrVdmZhDAFNTxm/arcgis/rest/services/"
    "Storm_Overflow_EDM_Annual_Returns/FeatureServer/0"
)
DEFAULT_CLIMATE_MODEL = "EC_Earth3P_HR"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_set(name: str) -> FrozenSet[str]:
    raw = os.getenv(name, "")
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Configuration shared by the adapters, cache and API."""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    cache_ttl: int = DEFAULT_CACHE_TTL
    user_agent: str = DEFAULT_USER_AGENT
    redis_url: str = ""
    log_level: str = "INFO"
    log_json: bool = True
    disabled_sources: FrozenSet[str] = field(default_factory=frozenset)
    sewage_overflow_service_url: str = DEFAULT_SEWAGE_OVERFLOW_SERVICE_URL
    climate_model: str = DEFAULT_CLIMATE_MODEL

    def __post_init__(self):
        """Validate configuration."""
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.cache_ttl < 0:
            raise ValueError("cache_ttl must be >= 0")


def load_settings() -> Settings:
    """Build Settings from environment variables."""
    return Settings(
        request_timeout=_env_float("AREA_PROFILE_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT),
        cache_ttl=int(_env_float("AREA_PROFILE_CACHE_TTL", DEFAULT_CACHE_TTL)),
        user_agent=os.getenv("AREA_PROFILE_USER_AGENT", DEFAULT_USER_AGENT),
        redis_url=os.getenv("REDIS_URL", ""),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_env_bool("LOG_JSON", True),
        disabled_sources=_env_set("AREA_PROFILE_DISABLED_SOURCES"),
        sewage_overflow_service_url=os.getenv(
            "SEWAGE_OVERFLOW_SERVICE_URL", DEFAULT_SEWAGE_OVERFLOW_SERVICE_URL
        ),
        climate_model=os.getenv("CLIMATE_MODEL", DEFAULT_CLIMATE_MODEL),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded on first use."""
    return load_settings()

"""
Settings for the trip planner store, read from the environment and .env files.

Each collaborator has its own group with its own variable prefix
(STORAGE_, REDIS_, PHOTO_SEARCH_, FLIGHT_LOOKUP_).
"""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Where the store is running"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(str, Enum):
    """Durable key-value backends the trip store can persist to"""
    MEMORY = "memory"
    REDIS = "redis"


class StorageSettings(BaseSettings):
    """Durable storage and write-back configuration"""

    backend: StorageBackend = Field(default=StorageBackend.MEMORY)
    namespace_prefix: str = Field(
        default="tripplanner:data",
        min_length=1,
        description="Prefix of the per-user trip data key"
    )
    auth_key: str = Field(
        default="tripplanner:auth:phone",
        description="Key holding the signed-in phone number"
    )
    persist_max_attempts: int = Field(default=3, ge=1, le=10)
    persist_backoff_seconds: float = Field(default=0.2, ge=0.0, le=30.0)

    @field_validator("namespace_prefix")
    @classmethod
    def strip_trailing_separator(cls, v: str) -> str:
        # keys are built as "<prefix>:<user>"
        return v.rstrip(":")

    model_config = {"env_prefix": "STORAGE_", "extra": "ignore"}


class RedisSettings(BaseSettings):
    """Connection to the Redis instance backing durable storage"""

    host: str = Field(default="localhost")
    port: int = Field(default=6379, ge=1, le=65535)
    db: int = Field(default=0, ge=0, le=15)
    password: Optional[str] = Field(default=None)
    use_tls: bool = Field(default=False)
    socket_timeout: int = Field(default=5, ge=1, le=30)
    max_connect_attempts: int = Field(default=3, ge=1, le=10)

    @property
    def url(self) -> str:
        scheme = "rediss" if self.use_tls else "redis"
        credentials = f":{self.password}@" if self.password else ""
        return f"{scheme}://{credentials}{self.host}:{self.port}/{self.db}"

    model_config = {"env_prefix": "REDIS_", "extra": "ignore"}


class PhotoSearchSettings(BaseSettings):
    """Destination photo search (Pexels API) configuration"""

    api_key: Optional[str] = Field(
        default=None,
        description="Pexels API key sent in the Authorization header"
    )
    api_url: str = Field(default="https://api.pexels.com/v1")
    per_page: int = Field(default=15, ge=1, le=80)
    max_page: int = Field(default=3, ge=1, le=10)
    timeout_seconds: int = Field(default=10, ge=1, le=60)
    cache_ttl_seconds: int = Field(default=60 * 60 * 24 * 7, ge=60)

    model_config = {
        "env_prefix": "PHOTO_SEARCH_",
        "env_file": ".env",
        "extra": "ignore",
    }


class FlightLookupSettings(BaseSettings):
    """Flight schedule lookup (FlightAPI) configuration"""

    api_key: Optional[str] = Field(default=None, description="FlightAPI key, part of the request path")
    api_url: str = Field(default="https://api.flightapi.io")
    timeout_seconds: int = Field(default=15, ge=1, le=60)

    model_config = {
        "env_prefix": "FLIGHT_LOOKUP_",
        "env_file": ".env",
        "extra": "ignore",
    }


class Settings(BaseSettings):
    """Top-level settings; collaborator groups are nested"""

    app_name: str = Field(default="Trip Planner Store")
    environment: Environment = Field(default=Environment.DEVELOPMENT)
    debug: bool = Field(default=False)

    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: str = Field(default="json", pattern="^(json|text)$")

    storage: StorageSettings = Field(default_factory=StorageSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    photo_search: PhotoSearchSettings = Field(default_factory=PhotoSearchSettings)
    flight_lookup: FlightLookupSettings = Field(default_factory=FlightLookupSettings)

    @field_validator("environment", "log_level", mode="before")
    @classmethod
    def normalize_case(cls, v, info):
        if not isinstance(v, str):
            return v
        return v.lower() if info.field_name == "environment" else v.upper()

    @model_validator(mode="after")
    def require_durable_storage_in_production(self) -> "Settings":
        if self.is_production() and self.storage.backend is StorageBackend.MEMORY:
            raise ValueError("STORAGE_BACKEND=memory loses every trip on restart; use redis in production")
        return self

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Process-wide settings, built by the first get_settings() call
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Re-read the environment, e.g. after tests change variables."""
    global _settings
    _settings = None
    return get_settings()

"""Application configuration management."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = "wthr.lol/1.0 (contact@wthr.lol)"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Server settings
    app_host: str = Field(default="0.0.0.0", description="Server bind host")
    app_port: int = Field(default=8080, description="Server bind port")

    # Upstream API settings
    nws_user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent sent to weather.gov and Nominatim",
    )
    upstream_timeout_seconds: float = Field(
        default=10.0,
        description="Upstream request timeout in seconds",
        ge=0.1,
        le=60.0,
    )

    # Storage settings
    database_url: str = Field(
        default="sqlite:///wthr.db",
        description="SQLAlchemy URL of the cache and places database",
    )
    cache_ttl_seconds: int = Field(
        default=3600,
        description=(
            "Weather snapshot TTL in seconds. Snapshots stay fresh for one hour; "
            "overriding this is meant for tests and local debugging only"
        ),
        ge=1,
    )
    geocode_cache_size: int = Field(
        default=1024,
        description="Maximum memoized free-text geocoding results",
        ge=1,
    )

    # Importer settings
    geo_data_dir: str = Field(
        default="data",
        description="Directory for downloaded gazetteer archives",
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="json",
        description="Log format (json or text)",
    )

    @field_validator("nws_user_agent")
    @classmethod
    def _default_blank_user_agent(cls, value: str) -> str:
        """Treat an empty NWS_USER_AGENT the same as an unset one."""
        return value.strip() or DEFAULT_USER_AGENT


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()

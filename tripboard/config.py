"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Tree store (None selects the in-memory store)
    database_url: str | None = None

    # File storage (None selects in-memory storage)
    storage_dir: str | None = None
    public_base_url: str = "http://localhost:8000"

    # External APIs
    google_maps_api_key: str = ""
    openweather_api_key: str = ""
    weather_lang: str = "fr"
    weather_units: str = "metric"
    nominatim_user_agent: str = "tripboard/0.1"
    http_timeout_s: float = 4.0

    # Geocoding enrichment
    geocode_batch_size: int = 5
    geocode_batch_delay_s: float = 0.5
    geocode_on_load: bool = True

    # Budget
    default_budget_total: float = 2000.0

    # Auth
    auth_secret: str = "dev-secret-change-me-0123456789abcdef"
    auth_token_ttl_minutes: int = 12 * 60
    auth_users: dict[str, str] = {}  # email -> argon2 hash
    lockout_threshold: int = 5
    lockout_window_seconds: int = 300

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class HubSpotConfig(BaseModel):
    """Connection parameters handed to the HubSpot transport at construction."""

    access_token: str
    portal_id: str = ""
    base_url: str = "https://api.hubapi.com"
    timeout_seconds: float = 30.0


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    # HubSpot CRM
    HUBSPOT_ACCESS_TOKEN: str = ""
    HUBSPOT_PORTAL_ID: str = ""
    HUBSPOT_BASE_URL: str = "https://api.hubapi.com"
    HUBSPOT_TIMEOUT_SECONDS: float = 30.0

    # SerpAPI lead search
    SERPAPI_API_KEY: str = ""
    SERPAPI_BASE_URL: str = "https://serpapi.com/search.json"
    SERPAPI_RESULT_COUNT: int = 20

    # Sync pacing (seconds between leads in a bulk run)
    BULK_SYNC_DELAY_SECONDS: float = 0.5

    # Permit search cache
    PERMIT_CACHE_TTL_SECONDS: int = 300
    PERMIT_DATA_FILE: str = ""  # JSON list of permit records served in development

    def hubspot_config(self) -> HubSpotConfig | None:
        """Return the HubSpot connection config, or None when no token is set."""
        if not self.HUBSPOT_ACCESS_TOKEN:
            return None
        return HubSpotConfig(
            access_token=self.HUBSPOT_ACCESS_TOKEN,
            portal_id=self.HUBSPOT_PORTAL_ID,
            base_url=self.HUBSPOT_BASE_URL,
            timeout_seconds=self.HUBSPOT_TIMEOUT_SECONDS,
        )


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()

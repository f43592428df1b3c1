"""Application configuration."""

import logging
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from stoma_tracker.domain.foods import ProviderId

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    openai_api_key: str | None = None
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    extraction_timeout_seconds: float = 20.0
    fdc_api_key: str = "DEMO_KEY"
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    off_base_url: str = "https://world.openfoodfacts.org/api/v2"
    spoonacular_api_key: str | None = None
    spoonacular_base_url: str = "https://api.spoonacular.com"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    default_providers: str = "crowd,government"
    grounding_providers: str = ""
    provider_timeout_seconds: float = 10.0
    similarity_threshold: float = 0.7
    search_cache_ttl_seconds: int = 600
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_provider_ids(raw: str | None) -> frozenset[ProviderId]:
    """Parse a comma-separated provider list, skipping unknown names."""
    if raw is None:
        return frozenset()
    ids: set[ProviderId] = set()
    for chunk in raw.split(","):
        value = chunk.strip().casefold()
        if not value:
            continue
        try:
            ids.add(ProviderId(value))
        except ValueError:
            _logger.warning("Ignoring unknown provider name: %s", value)
    return frozenset(ids)

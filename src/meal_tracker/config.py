"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    api_token: str
    allowed_reply_hosts: str | None = None
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = None
    openai_store: bool = False
    openai_embedding_model: str = "text-embedding-3-small"
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    fatsecret_client_id: str | None = None
    fatsecret_client_secret: str | None = None
    similarity_threshold: float = 0.85
    semantic_top_k: int = 3
    retry_attempts: int = 3
    retry_initial_delay_seconds: float = 0.5
    reference_cache_ttl_seconds: int = 300
    lookup_cache_ttl_seconds: int = 86400
    sync_batch_size: int = 100
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def fatsecret_enabled(self) -> bool:
        """Whether both FatSecret credentials are configured."""
        return bool(self.fatsecret_client_id and self.fatsecret_client_secret)


def parse_allowed_reply_hosts(raw: str | None) -> set[str] | None:
    """Parse the comma-separated reply host allow-list from env."""
    if raw is None:
        return None
    hosts = {host.strip().lower() for host in raw.split(",") if host.strip()}
    return hosts or None

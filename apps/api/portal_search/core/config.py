from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env from apps/api so it works regardless of CWD
_env_file = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_env_file, extra="ignore")

    database_url: str = "postgresql://localhost/portal"
    jwt_secret: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"

    # Embeddings (OpenAI-compatible; dimension must match document_chunks.embedding)
    embed_api_base_url: str | None = None
    embed_api_key: str | None = None
    embed_model: str = "text-embedding-3-large"
    embed_dimension: int = 1536
    embed_timeout_seconds: float = 15.0

    # Vector store and document lookups
    search_backend_timeout_seconds: float = 15.0

    # Search defaults (request body overrides)
    search_default_match_threshold: float = 0.5
    search_default_match_count: int = 10
    listing_default_limit: int = 20

    # Rate limiting (per-user when key_func uses user id)
    search_rate_limit: str = "30/minute"
    rate_limit_enabled: bool = True

    # Search analytics (document_search_logs)
    search_log_enabled: bool = True
    search_log_disable_on_failure: bool = True

    # Client side (orchestrator talking to a running API)
    api_base_url: str = "http://localhost:8000"
    api_token: str | None = None
    client_request_timeout_seconds: float = 15.0
    search_debounce_ms: int = 500
    log_debounce_ms: int = 2000

    # CORS (comma-separated origins; * allows all)
    cors_origins: str = "*"

    log_level: str = "INFO"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parsed CORS origins for middleware."""
        raw = self.cors_origins.strip()
        return ["*"] if not raw else [o.strip() for o in raw.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()

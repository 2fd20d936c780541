# ============================================================================
# Intake Dossier - Application Configuration
# ============================================================================
"""
Application configuration module using Pydantic Settings.

This module defines all configuration parameters for the Intake Dossier
backend, including:
- API/CORS settings
- Public link generation for admin views
- Persistence (database URL, store backend, token entropy)
- OpenAI/LLM configuration for the prospect analysis
- Background scheduling (in-process or Celery)

Environment Variables:
    Every field can be overridden by its upper-case environment variable
    (e.g. DATABASE_URL, OPENAI_API_KEY, USE_CELERY) or from a .env file.

Usage:
    from dossier.config import settings
    timeout = settings.analysis_timeout
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # API SETTINGS
    # =========================================================================
    api_title: str = "Intake Dossier API"
    api_version: str = "1.0.0"
    debug: bool = Field(default=False, description="Include raw error text in 500 responses")
    log_level: str = Field(default="INFO", description="Root log level for the dossier loggers")

    # =========================================================================
    # CORS SETTINGS
    # =========================================================================
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed origins for CORS",
    )

    # =========================================================================
    # PUBLIC LINKS
    # =========================================================================
    public_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL of the frontend; admin links are {base}/admin/{token}",
    )

    # =========================================================================
    # PERSISTENCE
    # =========================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/dossier.db",
        description="Async SQLAlchemy database URL",
    )
    storage_backend: str = Field(default="database", description="database | memory")
    token_bytes: int = Field(default=32, ge=16, description="Random bytes per access token")

    # =========================================================================
    # OPENAI/LLM CONFIGURATION
    # =========================================================================
    openai_api_key: Optional[str] = Field(default=None, description="LLM API key")
    openai_model: str = Field(default="gpt-4o-mini", description="LLM model name")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="LLM base URL")
    openai_verify_ssl: bool = Field(default=True, description="Verify SSL for LLM requests")
    openai_temperature: float = Field(default=0.3, description="Sampling temperature for the analysis")
    analysis_timeout: float = Field(default=90.0, gt=0, description="Timeout (s) for one analysis call")

    # =========================================================================
    # SCHEDULING
    # =========================================================================
    use_celery: bool = Field(default=False, description="Dispatch analyses to Celery workers")
    celery_broker_url: str = Field(default="redis://redis:6379/0")
    celery_result_backend: str = Field(default="redis://redis:6379/1")
    celery_queue: str = Field(default="analysis")
    analysis_max_concurrency: int = Field(default=4, ge=1, description="In-process concurrent analyses")
    recover_pending_on_startup: bool = Field(default=True, description="Re-dispatch pending records at startup")

    # =========================================================================
    # STATUS PUSH CHANNEL
    # =========================================================================
    status_stream_interval: float = Field(default=2.0, gt=0, description="Seconds between websocket store checks")
    status_stream_max_wait: float = Field(default=300.0, gt=0, description="Max lifetime (s) of a status stream")

    # -------- Helpers --------
    @property
    def llm_configured(self) -> bool:
        return bool(self.openai_api_key)

    def admin_url(self, token: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/admin/{token}"


# Global settings instance (imported elsewhere)
settings = Settings()

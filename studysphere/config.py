"""
StudySphere — Application Configuration

Loads all configuration from environment variables (and an optional .env file)
using Pydantic Settings.  A cached ``get_settings()`` helper is provided so that
FastAPI dependency-injection (and any other call-site) always receives the same
validated instance without re-parsing the environment on every request.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the StudySphere backend."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------ #
    # Gemini LLM (study plan generation)
    # ------------------------------------------------------------------ #
    GEMINI_API_KEY: str
    GEMINI_MODEL_PRIMARY: str = "gemini-2.5-flash"
    GEMINI_MODEL_FALLBACK: str = "gemini-2.0-flash"
    GEMINI_MAX_OUTPUT_TOKENS: int = 4096

    # ------------------------------------------------------------------ #
    # Database – Cloud SQL via Unix socket or private IP
    # ------------------------------------------------------------------ #
    DATABASE_URL: str
    DB_USER: str = "studysphere_user"
    DB_PASSWORD: str = ""
    DB_NAME: str = "studysphere"

    # ------------------------------------------------------------------ #
    # Redis – match cache and anonymous sessions
    # ------------------------------------------------------------------ #
    REDIS_URL: str
    MATCH_CACHE_TTL_SECONDS: int = 300
    SESSION_TTL_SECONDS: int = 60 * 60 * 24

    # ------------------------------------------------------------------ #
    # Partner matching points
    # ------------------------------------------------------------------ #
    PARTNER_CAN_HELP_POINTS: int = 10    # candidate offers what I need
    PARTNER_NEEDS_HELP_POINTS: int = 5   # I offer what the candidate needs
    SHARED_SLOT_POINTS: int = 2          # per shared availability slot
    SHARED_METHOD_POINTS: int = 1        # per shared study method

    # ------------------------------------------------------------------ #
    # Security
    # ------------------------------------------------------------------ #
    FERNET_KEY: str  # Signs anonymous session tokens

    # ------------------------------------------------------------------ #
    # Runtime environment
    # ------------------------------------------------------------------ #
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # ------------------------------------------------------------------ #
    # Google Cloud Platform
    # ------------------------------------------------------------------ #
    GCP_PROJECT_ID: str = ""
    GCP_REGION: str = "asia-south1"
    GCS_BUCKET_NAME: str = ""
    GCS_WHITEBOARD_PREFIX: str = "whiteboards/"
    CLOUD_SQL_INSTANCE_CONNECTION: str = ""
    CLOUD_SQL_USE_UNIX_SOCKET: bool = True

    # ------------------------------------------------------------------ #
    # CORS
    # ------------------------------------------------------------------ #
    ALLOWED_ORIGINS: str = "*"

    # ------------------------------------------------------------------ #
    # Derived helpers
    # ------------------------------------------------------------------ #
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list split on commas."""
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @field_validator(
        "PARTNER_CAN_HELP_POINTS",
        "PARTNER_NEEDS_HELP_POINTS",
        "SHARED_SLOT_POINTS",
        "SHARED_METHOD_POINTS",
    )
    @classmethod
    def _points_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Match points must be non-negative, got {v}")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached, validated ``Settings`` instance.

    Using ``@lru_cache`` guarantees the .env file is read and validated
    exactly once per process lifetime.  Import this function anywhere you
    need access to configuration::

        from studysphere.config import get_settings
        settings = get_settings()
    """
    return Settings()  # type: ignore[call-arg]

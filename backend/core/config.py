"""
ScriptSentries Configuration Module
===================================
Centralized configuration management using Pydantic Settings.
All environment variables are validated and typed.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses Pydantic v2 settings management for type safety and validation.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # === LLM (any OpenAI-compatible endpoint) ===
    openai_api_key: str = Field(default="", description="API key for the model endpoint")
    llm_base_url: str | None = Field(
        default=None,
        description="Override for OpenAI-compatible providers, e.g. https://api.groq.com/openai/v1"
    )
    llm_model: str = Field(
        default="gpt-4o-mini",
        description="Model identifier"
    )
    llm_temperature: float = Field(default=0.1, description="Sampling temperature")
    llm_timeout_seconds: float = Field(default=120.0, description="Per-request timeout")
    llm_max_tokens: int = Field(default=4000, description="Completion token limit per page")

    # === Analysis ===
    max_concurrent_pages: int = Field(
        default=8,
        ge=1,
        description="Upper bound on in-flight page classifications per document"
    )

    # === Scratch storage (zero retention) ===
    scratch_dir: Path | None = Field(
        default=None,
        description="Directory for transient upload copies; system temp dir when unset"
    )
    max_file_size_mb: int = Field(default=50, description="Maximum file size in MB")
    scratch_stale_after_seconds: float = Field(
        default=3600,
        description="Scratch copies older than this are erased at startup"
    )

    # === Server Configuration ===
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Debug mode")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # === Logging ===
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("scratch_dir", mode="before")
    @classmethod
    def ensure_scratch_dir(cls, v: str | Path | None) -> Path | None:
        """Ensure the scratch directory exists when one is configured."""
        if v in (None, ""):
            return None
        path = Path(v)
        path.mkdir(parents=True, exist_ok=True)
        return path

    @property
    def max_file_size_bytes(self) -> int:
        """Get max file size in bytes."""
        return self.max_file_size_mb * 1024 * 1024

    def validate_llm_config(self) -> None:
        """Validate that the required API key is set."""
        if not self.openai_api_key:
            raise ValueError("OPENAI_API_KEY is required")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    settings = Settings()
    return settings


# Marker written in place of sensitive fields in exports
REDACTED_MARKER = "[REDACTED]"

# Snippets longer than this are truncated with "..."
SNIPPET_MAX_LENGTH = 500

# Export colors (RGB hex) keyed by severity
SEVERITY_COLORS = {
    "HIGH": "DC3545",
    "MEDIUM": "FFC107",
    "LOW": "198754",
}

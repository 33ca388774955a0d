"""
Configuration Management for FinTrack

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration (card intelligence and SMS parsing)."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    enrichment_model: str = Field(
        default="gemini-1.5-pro",
        description="Model used for grounded card benefit lookups"
    )
    parsing_model: str = Field(
        default="gemini-1.5-flash",
        description="Model used to parse pasted transaction messages"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class StorageSettings(BaseSettings):
    """On-device persistence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path.home() / ".fintrack",
        description="Directory holding the persisted collections"
    )

    # Slot names within the key-value medium
    cards_key: str = Field(
        default="fintrack_cards",
        description="Key holding the serialized card collection"
    )
    transactions_key: str = Field(
        default="fintrack_transactions",
        description="Key holding the serialized transaction collection"
    )

    write_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many times a failed write is attempted"
    )

    @field_validator("cards_key", "transactions_key")
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Keys become file names, so keep them to a safe alphabet."""
        if not v or not all(ch.isalnum() or ch in "-_" for ch in v):
            raise ValueError(f"Invalid storage key: {v!r}")
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Capture assist
    capture_min_text_length: int = Field(
        default=10,
        ge=1,
        description="Shortest pasted text worth sending to the parser"
    )
    capture_reset_delay_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="How long success/error stays visible before going idle"
    )

    # Enrichment
    sync_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Mark a card failed if enrichment takes longer (unset = wait forever)"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gemini", "storage", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results

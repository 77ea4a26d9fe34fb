# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is invalid or a pipeline request is incomplete."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === PROVIDER KEYS ===
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    meshy_api_key: str = ""
    meshy_base_url: str = "https://api.meshy.ai"

    # Public base URL serving temp images; used to promote data URIs
    image_server_url: str = ""

    # === PROMPT ENHANCEMENT ===
    prompt_llm_provider: str = "openai"
    prompt_llm_model: str = "gpt-4"
    prompt_llm_temperature: float = 0.7
    prompt_llm_max_tokens: int = 200

    # === IMAGE GENERATION ===
    image_model: str = "gpt-image-1"
    image_size: str = "1024x1024"
    # Applied when a request sets no style; empty leaves it to the synthesizer
    default_style: str = "runescape2007"

    # === ASSETS ===
    assets_root: Path = Path("gdd-assets")
    temp_images_dir: Path = Path("temp-images")

    # === POLLING ===
    poll_interval_s: float = 5.0
    poll_max_attempts: int = 60
    poll_backoff_factor: float = 1.0
    poll_max_interval_s: float | None = None
    retexture_max_attempts: int = 60
    rigging_max_attempts: int = 60

    # === REGISTRY ===
    pipeline_retention_s: float = 3600.0
    sweep_interval_s: float = 300.0

    # === NORMALIZATION ===
    default_character_height: float = 1.83
    default_rig_height: float = 1.7

    # === HTTP ===
    http_timeout_s: float = 60.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Reject non-positive intervals and out-of-range tuning values."""
        errors: list[str] = []

        if self.poll_interval_s <= 0:
            errors.append("POLL_INTERVAL_S must be > 0")
        for name in ("poll_max_attempts", "retexture_max_attempts", "rigging_max_attempts"):
            if getattr(self, name) < 1:
                errors.append(f"{name.upper()} must be >= 1")
        if self.poll_backoff_factor < 1.0:
            errors.append("POLL_BACKOFF_FACTOR must be >= 1")
        if self.poll_max_interval_s is not None and self.poll_max_interval_s < self.poll_interval_s:
            errors.append("POLL_MAX_INTERVAL_S must be >= POLL_INTERVAL_S")

        if self.pipeline_retention_s <= 0:
            errors.append("PIPELINE_RETENTION_S must be > 0")
        if self.sweep_interval_s <= 0:
            errors.append("SWEEP_INTERVAL_S must be > 0")

        if not 0.0 <= self.prompt_llm_temperature <= 2.0:
            errors.append("PROMPT_LLM_TEMPERATURE must be within [0, 2]")
        if self.prompt_llm_max_tokens < 1:
            errors.append("PROMPT_LLM_MAX_TOKENS must be >= 1")

        if self.default_character_height <= 0 or self.default_rig_height <= 0:
            errors.append("Default heights must be > 0")
        if self.http_timeout_s <= 0:
            errors.append("HTTP_TIMEOUT_S must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def image_server_base(self) -> str:
        """Image server URL without trailing slash ('' when unset)."""
        return self.image_server_url.rstrip("/")


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-deployment config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If a value has the wrong type or the configuration
            is internally inconsistent.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc

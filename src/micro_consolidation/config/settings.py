"""Application configuration settings.

This module provides the AppConfig class and settings singleton.
"""

from pathlib import Path

import structlog
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from micro_consolidation.config.env_loader import Environment, get_environment, load_env_files
from micro_consolidation.config.validators import (
    resolve_path,
    validate_log_format,
    validate_log_level,
)

log = structlog.get_logger(__name__)


class AppConfig(BaseSettings):
    """Unified application configuration.

    Loads configuration from environment variables (``AGENT_`` prefix),
    .env files and defaults. Validates all values using Pydantic.
    """

    model_config = SettingsConfigDict(
        # .env files are loaded manually via env_loader for priority ordering
        env_prefix="AGENT_",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Environment = Field(
        default_factory=get_environment, description="Current environment"
    )

    # Telemetry
    log_dir: Path = Field(default=Path("telemetry/logs"), description="Log directory path")
    log_level: str = Field(
        default="INFO",
        alias="APP_LOG_LEVEL",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="console",
        alias="APP_LOG_FORMAT",
        description="Console log format (console or json); the log file is always JSON",
    )

    # LLM Client
    llm_base_url: str = Field(
        default="http://localhost:8000/v1",
        description="Base URL for an OpenAI-compatible completion API",
    )
    llm_api_key: str | None = Field(default=None, description="Bearer token for the LLM API")
    llm_timeout_seconds: int = Field(default=60, ge=1, description="Request timeout")
    llm_max_retries: int = Field(
        default=2, ge=0, description="Retries for callers that do not pin max_attempts"
    )

    # Forever mode / knowledge log
    forever_mode: bool = Field(
        default=False, description="Enable background micro-consolidation after each turn"
    )
    knowledge_dir: Path = Field(
        default=Path("memory/knowledge"),
        description="Directory holding the knowledge log (hippocampus.md)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        return validate_log_level(v)

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        return validate_log_format(v)

    @field_validator("log_dir", "knowledge_dir", mode="before")
    @classmethod
    def resolve_paths(cls, v: Path | str) -> Path:
        """Resolve relative paths to absolute."""
        return resolve_path(v)


_settings: AppConfig | None = None


def load_app_config() -> AppConfig:
    """Load and validate application configuration.

    This function:
    1. Loads .env files in priority order (via env_loader)
    2. Creates an AppConfig instance (reads environment variables)
    3. Validates all values using Pydantic

    Returns:
        Validated AppConfig instance.

    Raises:
        ValidationError: If configuration validation fails.
    """
    log.info("loading_app_config", environment=get_environment().value)

    load_env_files()

    try:
        config = AppConfig()
        log.info(
            "app_config_loaded",
            environment=config.environment.value,
            log_format=config.log_format,
            log_level=config.log_level,
            forever_mode=config.forever_mode,
            knowledge_dir=str(config.knowledge_dir),
        )
        return config
    except Exception as e:
        log.error("app_config_load_failed", error=str(e), error_type=type(e).__name__)
        raise


def get_settings() -> AppConfig:
    """Get the application settings singleton."""
    global _settings
    if _settings is None:
        _settings = load_app_config()
    return _settings

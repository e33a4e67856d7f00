"""Configuration management.

This module provides a single source of truth for configuration,
integrating environment variables, .env files and defaults, plus the
runtime AgentConfig collaborator used by services.
"""

from micro_consolidation.config.agent import AgentConfig
from micro_consolidation.config.env_loader import Environment, get_environment
from micro_consolidation.config.settings import AppConfig, get_settings, load_app_config

__all__ = [
    "AgentConfig",
    "AppConfig",
    "get_settings",
    "load_app_config",
    "Environment",
    "get_environment",
]

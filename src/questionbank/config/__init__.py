"""Configuration package for questionbank."""

from questionbank.config.app_config import (
    AppConfig,
    CollisionConfig,
    ConfigError,
    StatisticsConfig,
    clear_config_cache,
    load_app_config,
)

__all__ = [
    "AppConfig",
    "CollisionConfig",
    "ConfigError",
    "StatisticsConfig",
    "clear_config_cache",
    "load_app_config",
]

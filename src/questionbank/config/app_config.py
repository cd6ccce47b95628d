"""Application configuration loader.

Loads reconciliation settings from data/config/questionbank_v1.yaml,
falling back to built-in defaults when the file is missing.

Usage:
    from questionbank.config.app_config import load_app_config

    config = load_app_config()
    threshold = config.statistics.strength_threshold
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/questionbank_v1.yaml")


class ConfigError(Exception):
    """Invalid configuration values."""

    pass


@dataclass
class CollisionConfig:
    """Settings for identity collision resolution."""

    max_rename_attempts: int = 1000


@dataclass
class StatisticsConfig:
    """Settings for concept classification."""

    strength_threshold: float = 0.80
    weakness_threshold: float = 0.40
    default_category: str = "OTHER"
    fallback_concept: str = "General"


@dataclass
class AppConfig:
    """Application-wide configuration."""

    collisions: CollisionConfig = field(default_factory=CollisionConfig)
    statistics: StatisticsConfig = field(default_factory=StatisticsConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "collisions": {
            "max_rename_attempts": 1000,
        },
        "statistics": {
            "strength_threshold": 0.80,
            "weakness_threshold": 0.40,
            "default_category": "OTHER",
            "fallback_concept": "General",
        },
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object.

    Raises:
        ConfigError: If a value is out of range
    """
    defaults = _get_defaults()
    collisions_data = {**defaults["collisions"], **(data.get("collisions") or {})}
    statistics_data = {**defaults["statistics"], **(data.get("statistics") or {})}

    try:
        collisions = CollisionConfig(
            max_rename_attempts=int(collisions_data["max_rename_attempts"]),
        )
        statistics = StatisticsConfig(
            strength_threshold=float(statistics_data["strength_threshold"]),
            weakness_threshold=float(statistics_data["weakness_threshold"]),
            default_category=str(statistics_data["default_category"]).upper(),
            fallback_concept=str(statistics_data["fallback_concept"]),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration value: {e}") from e

    if collisions.max_rename_attempts < 1:
        raise ConfigError("collisions.max_rename_attempts must be at least 1")
    for name in ("strength_threshold", "weakness_threshold"):
        value = getattr(statistics, name)
        if not 0.0 <= value <= 1.0:
            raise ConfigError(f"statistics.{name} must be between 0 and 1, got {value}")
    if statistics.weakness_threshold >= statistics.strength_threshold:
        raise ConfigError("statistics.weakness_threshold must be below strength_threshold")

    return AppConfig(collisions=collisions, statistics=statistics)


def load_app_config(force_reload: bool = False, path: Path | None = None) -> AppConfig:
    """Load application config with fallback to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.
        path: Config file to read instead of CONFIG_FILE.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload and path is None:
        return _cached_config

    config_path = path or CONFIG_FILE
    data: dict[str, Any]

    if config_path.exists():
        logger.debug("loading_app_config", source=str(config_path))
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None

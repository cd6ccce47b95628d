"""Tests for app configuration.

Tests the configuration loading, validation, and fallbacks.
"""

import pytest

from questionbank.config.app_config import (
    CONFIG_FILE,
    AppConfig,
    ConfigError,
    clear_config_cache,
    load_app_config,
)


class TestLoadAppConfig:
    """Tests for load_app_config function."""

    def test_defaults_without_file(self):
        """Uses built-in defaults when no config file exists."""
        config = load_app_config()
        assert isinstance(config, AppConfig)
        assert config.collisions.max_rename_attempts == 1000
        assert config.statistics.strength_threshold == 0.80
        assert config.statistics.weakness_threshold == 0.40
        assert config.statistics.default_category == "OTHER"

    def test_config_is_cached(self):
        assert load_app_config() is load_app_config()

    def test_loads_yaml_file(self):
        """Values in questionbank_v1.yaml override defaults."""
        CONFIG_FILE.parent.mkdir(parents=True)
        CONFIG_FILE.write_text(
            "collisions:\n  max_rename_attempts: 50\nstatistics:\n  default_category: misc\n",
            encoding="utf-8",
        )
        clear_config_cache()
        config = load_app_config()

        assert config.collisions.max_rename_attempts == 50
        assert config.statistics.default_category == "MISC"
        assert config.statistics.strength_threshold == 0.80

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "custom.yaml"
        path.write_text("statistics:\n  weakness_threshold: 0.3\n", encoding="utf-8")
        config = load_app_config(path=path)
        assert config.statistics.weakness_threshold == 0.3

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_app_config(path=path).collisions.max_rename_attempts == 1000


class TestConfigValidation:
    """Invalid values raise ConfigError."""

    @pytest.mark.parametrize(
        "content",
        [
            "collisions:\n  max_rename_attempts: 0\n",
            "collisions:\n  max_rename_attempts: many\n",
            "statistics:\n  strength_threshold: 1.5\n",
            "statistics:\n  weakness_threshold: 0.9\n",
        ],
    )
    def test_invalid_values(self, tmp_path, content):
        path = tmp_path / "bad.yaml"
        path.write_text(content, encoding="utf-8")
        with pytest.raises(ConfigError):
            load_app_config(path=path)

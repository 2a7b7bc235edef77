"""
Test suite for configuration models and validation.

This module tests the Pydantic configuration models, field validation,
defaults, and host detection.
"""

import pytest
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch
from pydantic import ValidationError

from vibe_cli.config.models import (
    VibeConfig, AppConfig, LLMConfig, CacheConfig, LogLevel,
    DEFAULT_API_URL, DEFAULT_MODEL, detect_os_name, detect_shell
)


class TestAppConfig:
    """Test the AppConfig model."""

    def test_app_config_defaults(self):
        """Test AppConfig default values."""
        config = AppConfig()

        assert config.debug_logs is False
        assert config.log_level == LogLevel.WARNING
        assert config.os_name
        assert config.shell

    def test_app_config_custom_values(self):
        """Test AppConfig with custom values."""
        config = AppConfig(debug_logs=True, log_level="DEBUG", os_name="macOS", shell="fish")

        assert config.debug_logs is True
        assert config.log_level == LogLevel.DEBUG
        assert config.os_name == "macOS"
        assert config.shell == "fish"

    def test_invalid_log_level(self):
        """Test that unknown log levels are rejected."""
        with pytest.raises(ValidationError):
            AppConfig(log_level="CHATTY")


class TestHostDetection:
    """Test OS and shell detection."""

    @pytest.mark.parametrize("system, expected", [
        ("Darwin", "macOS"),
        ("Linux", "Linux"),
        ("Windows", "Windows"),
        ("FreeBSD", "FreeBSD"),
        ("", "Linux"),
    ])
    def test_detect_os_name(self, system, expected):
        with patch("vibe_cli.config.models.platform.system", return_value=system):
            assert detect_os_name() == expected

    def test_detect_shell_from_environment(self, monkeypatch):
        monkeypatch.setenv("SHELL", "/usr/local/bin/fish")

        assert detect_shell() == "fish"

    def test_detect_shell_default(self, monkeypatch):
        monkeypatch.delenv("SHELL", raising=False)

        assert detect_shell() == "zsh"


class TestLLMConfig:
    """Test the LLMConfig model."""

    def test_llm_config_defaults(self):
        """Test LLMConfig default values."""
        config = LLMConfig()

        assert config.api_url == DEFAULT_API_URL
        assert config.api_key is None
        assert config.model == DEFAULT_MODEL
        assert config.temperature == 0.2
        assert config.max_tokens == 1000
        assert config.timeout == 30.0
        assert config.max_retries == 3
        assert config.retry_temperature_step == 0.0
        assert config.use_structured_output is True
        assert config.enable_json_extraction is True
        assert config.strict_validation is True

    def test_api_url_trailing_slash_removed(self):
        config = LLMConfig(api_url="https://api.openai.com/v1/")

        assert config.api_url == "https://api.openai.com/v1"

    def test_empty_api_key_is_none(self):
        assert LLMConfig(api_key="").api_key is None
        assert LLMConfig(api_key="sk-abc").api_key == "sk-abc"

    @pytest.mark.parametrize("field, value", [
        ("temperature", -0.1),
        ("temperature", 2.5),
        ("max_tokens", 0),
        ("timeout", 0),
        ("max_retries", 0),
        ("max_retries", 11),
        ("retry_temperature_step", 1.5),
    ])
    def test_out_of_range_values(self, field, value):
        """Test that numeric limits are enforced."""
        with pytest.raises(ValidationError):
            LLMConfig(**{field: value})

    def test_string_values_are_coerced(self):
        """Environment overrides arrive as strings."""
        config = LLMConfig(temperature="0.7", max_retries="5", use_structured_output="false")

        assert config.temperature == 0.7
        assert config.max_retries == 5
        assert config.use_structured_output is False


class TestCacheConfig:
    """Test the CacheConfig model."""

    def test_cache_config_defaults(self):
        config = CacheConfig()

        assert config.enabled is True
        assert config.ttl_seconds == 86400
        assert config.ttl == timedelta(hours=24)
        assert config.directory == str(Path.home() / ".cache" / "vibe")

    def test_path_expansion(self):
        config = CacheConfig(directory="~/vibe-cache")

        assert config.directory == str(Path.home() / "vibe-cache")

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            CacheConfig(ttl_seconds=0)


class TestVibeConfig:
    """Test the main VibeConfig model."""

    def test_default_sections(self):
        config = VibeConfig()

        assert isinstance(config.app, AppConfig)
        assert isinstance(config.llm, LLMConfig)
        assert isinstance(config.cache, CacheConfig)

    def test_nested_dicts(self):
        """Test building a config from plain dictionaries, as the loader does."""
        config = VibeConfig(**{
            "llm": {"model": "gpt-4o-mini", "api_url": "https://api.openai.com/v1"},
            "cache": {"enabled": False},
        })

        assert config.llm.model == "gpt-4o-mini"
        assert config.cache.enabled is False
        assert config.llm.temperature == 0.2

    def test_assignment_is_validated(self):
        config = VibeConfig()

        with pytest.raises(ValidationError):
            config.llm = "not a section"

"""
Pydantic models for Vibe CLI configuration validation.

Three sections cover everything the command generator needs: ``app`` for
logging and host detection, ``llm`` for the chat-completion endpoint and the
fallback pipeline, and ``cache`` for the on-disk response cache.
"""

import os
import platform
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def detect_os_name() -> str:
    """Return the host OS name in the form models recognise best."""
    system = platform.system()
    return {
        "Darwin": "macOS",
        "Linux": "Linux",
        "Windows": "Windows",
    }.get(system, system or "Linux")


def detect_shell() -> str:
    """Return the basename of ``$SHELL``, defaulting to zsh."""
    shell = os.environ.get("SHELL", "")
    if not shell:
        return "zsh"
    return Path(shell).name or "zsh"


class AppConfig(BaseModel):
    """Application-level configuration settings."""

    debug_logs: bool = Field(default=False, description="Log every pipeline layer and parsing failure")
    log_level: LogLevel = Field(default=LogLevel.WARNING, description="Logging level")
    os_name: str = Field(default_factory=detect_os_name, description="Host OS named in the system prompt")
    shell: str = Field(default_factory=detect_shell, description="Host shell named in the system prompt")


DEFAULT_API_URL = "http://localhost:11434/v1"
DEFAULT_MODEL = "llama3:8b"


class LLMConfig(BaseModel):
    """Chat-completion endpoint and fallback pipeline configuration."""

    api_url: str = Field(default=DEFAULT_API_URL, description="OpenAI-compatible API base URL")
    api_key: Optional[str] = Field(default=None, description="Bearer token, sent only when set")
    model: str = Field(default=DEFAULT_MODEL, description="Model name")

    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Response randomness")
    max_tokens: int = Field(default=1000, ge=1, le=32768, description="Maximum tokens per response")
    timeout: float = Field(default=30.0, gt=0.0, le=600.0, description="Request timeout in seconds")

    max_retries: int = Field(default=3, ge=1, le=10, description="Requests made by the enhanced parsing layer")
    retry_temperature_step: float = Field(
        default=0.0, ge=0.0, le=1.0,
        description="Temperature added per enhanced parsing attempt"
    )

    use_structured_output: bool = Field(default=True, description="Try JSON-schema constrained output first")
    enable_json_extraction: bool = Field(default=True, description="Recover JSON from corrupted output")
    strict_validation: bool = Field(default=True, description="Reject blank explanation lines instead of dropping them")

    @field_validator('api_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        """Normalise the base URL so paths can be appended."""
        return v.rstrip('/')

    @field_validator('api_key')
    @classmethod
    def empty_key_is_none(cls, v):
        """Treat an empty key as no key."""
        return v or None


class CacheConfig(BaseModel):
    """On-disk response cache configuration."""

    enabled: bool = Field(default=True, description="Enable response caching")
    ttl_seconds: int = Field(default=86400, ge=1, description="Cache entry lifetime")
    directory: str = Field(default="~/.cache/vibe", validate_default=True, description="Cache directory")

    @field_validator('directory')
    @classmethod
    def expand_path(cls, v):
        """Expand user home directory in paths."""
        return str(Path(v).expanduser())

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.ttl_seconds)


class VibeConfig(BaseModel):
    """Main configuration model."""

    app: AppConfig = Field(default_factory=AppConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)

    model_config = {"validate_assignment": True}

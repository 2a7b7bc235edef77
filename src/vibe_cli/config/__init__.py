"""
Vibe CLI Configuration System

    from vibe_cli.config import load_config

    config = load_config()
    print(config.llm.model)         # "llama3:8b"
    print(config.cache.directory)   # "/home/me/.cache/vibe"
"""

from .loader import (
    ConfigLoader,
    load_config,
    get_config,
    ConfigurationError,
)

from .models import (
    VibeConfig,
    AppConfig,
    LLMConfig,
    CacheConfig,
    LogLevel,
    detect_os_name,
    detect_shell,
)

__all__ = [
    "ConfigLoader",
    "get_config",
    "load_config",
    "ConfigurationError",
    "VibeConfig",
    "AppConfig",
    "LLMConfig",
    "CacheConfig",
    "LogLevel",
    "detect_os_name",
    "detect_shell",
]

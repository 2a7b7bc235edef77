"""
Vibe CLI Utilities

This module provides utility functions and classes used throughout Vibe CLI.
"""

from .logging import (
    setup_logging,
    get_logger,
    log_performance,
    is_logging_initialized,
    truncate,
    PipelineLogger,
)

from .error_handling import (
    VibeError,
    ConfigurationError,
    CacheError,
    ResponseParseError,
    JSONExtractionError,
    ResponseValidationError,
    best_effort,
)

__all__ = [
    # Logging utilities
    "setup_logging",
    "get_logger",
    "log_performance",
    "is_logging_initialized",
    "truncate",
    "PipelineLogger",

    # Error handling utilities
    "VibeError",
    "ConfigurationError",
    "CacheError",
    "ResponseParseError",
    "JSONExtractionError",
    "ResponseValidationError",
    "best_effort",
]

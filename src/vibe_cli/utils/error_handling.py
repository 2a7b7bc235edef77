"""
Unified error handling utilities for Vibe CLI.

This module provides the base exception hierarchy and the decorator used to
run advisory operations (such as cache writes) without letting their
failures abort command generation.
"""

import functools
import inspect
import logging
from typing import Any, Callable, Optional, Dict

from ..utils.logging import get_logger


class VibeError(Exception):
    """Base exception for all Vibe CLI errors."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(VibeError):
    """Configuration-related error."""
    pass


class CacheError(VibeError):
    """Response cache read/write error."""
    pass


class ResponseParseError(VibeError):
    """Model output could not be decoded into a command response."""
    pass


class JSONExtractionError(ResponseParseError):
    """No valid JSON could be recovered from the model output."""
    pass


class ResponseValidationError(VibeError):
    """A decoded command response violates its structural contract."""
    pass


def best_effort(operation_name: str, logger: Optional[logging.Logger] = None):
    """
    Decorator for advisory operations whose failure must never propagate.

    Failures derived from ``VibeError`` or ``OSError`` are logged at warning
    level and the wrapped call returns ``None``. Anything else still raises.

    Args:
        operation_name: Human-readable name of the operation
        logger: Optional logger instance (defaults to operation-specific logger)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            _logger = logger or get_logger(f"vibe_cli.{operation_name}")
            try:
                return await func(*args, **kwargs)
            except (VibeError, OSError) as e:
                _logger.warning(f"{operation_name} failed: {e}")
                return None

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            _logger = logger or get_logger(f"vibe_cli.{operation_name}")
            try:
                return func(*args, **kwargs)
            except (VibeError, OSError) as e:
                _logger.warning(f"{operation_name} failed: {e}")
                return None

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        else:
            return sync_wrapper

    return decorator

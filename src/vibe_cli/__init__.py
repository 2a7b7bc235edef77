"""
Vibe CLI - natural-language to shell command generation.

Usage:
    from vibe_cli import CommandGenerator, load_config

    config = load_config()
    response = CommandGenerator(config).generate_sync("list files by size")
"""

from .config import VibeConfig, load_config
from .core.generator import CommandGenerator
from .core.response import CommandResponse

__version__ = "0.1.0"

__all__ = [
    "CommandGenerator",
    "CommandResponse",
    "VibeConfig",
    "load_config",
    "__version__",
]

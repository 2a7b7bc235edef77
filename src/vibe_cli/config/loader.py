"""
Configuration loading for Vibe CLI.

Sources are merged in increasing priority:

1. Built-in defaults (the pydantic models)
2. The first discovered config file (``configs/default.yaml`` in the
   working directory, then ``~/.config/vibe/config.yaml``)
3. A config file named explicitly by the caller
4. ``VIBE_<SECTION>_<FIELD>`` environment variables, including any set by
   a ``.env`` file in the working directory
"""

import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from .models import VibeConfig
from ..utils.error_handling import ConfigurationError

ENV_PREFIX = "VIBE_"

USER_CONFIG_DIR = Path.home() / ".config" / "vibe"

DEFAULT_CONFIG_PATHS = (
    Path("configs") / "default.yaml",
    Path("configs") / "default.yml",
    USER_CONFIG_DIR / "config.yaml",
    USER_CONFIG_DIR / "config.yml",
)


def merge_sections(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_sections(current, value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """Loads and validates a VibeConfig from files and the environment."""

    def __init__(self, search_paths: Iterable[Path] = DEFAULT_CONFIG_PATHS):
        self.search_paths = tuple(search_paths)
        self._config: Optional[VibeConfig] = None
        self._config_path: Optional[Path] = None

        dotenv_file = Path(".env")
        if dotenv_file.is_file():
            load_dotenv(dotenv_file)

    @property
    def config_path(self) -> Optional[Path]:
        """The explicit config file used by the last load, if any."""
        return self._config_path

    def load_config(self, config_path: Optional[Union[str, Path]] = None) -> VibeConfig:
        """
        Merge every source and validate the result.

        Args:
            config_path: Optional config file that overrides the discovered one

        Raises:
            ConfigurationError: if a file is missing, unreadable or not a
                mapping, or if the merged values fail validation
        """
        layers = []

        discovered = self._find_default_config()
        if discovered is not None:
            layers.append(self._load_yaml_file(discovered))

        if config_path is not None:
            explicit = Path(config_path)
            if not explicit.is_file():
                raise ConfigurationError(f"Specified config file not found: {config_path}")
            layers.append(self._load_yaml_file(explicit))
            self._config_path = explicit

        layers.append(self._env_overrides())

        merged: Dict[str, Any] = {}
        for layer in layers:
            merged = self._deep_merge(merged, layer)

        try:
            self._config = VibeConfig(**merged)
        except ValidationError as e:
            raise ConfigurationError(
                f"Configuration validation failed: {self._format_validation_error(e)}",
                details={"errors": e.errors()},
            ) from e

        return self._config

    def get_config(self) -> VibeConfig:
        """Return the last loaded config, loading it on first use."""
        if self._config is None:
            return self.load_config()
        return self._config

    def _find_default_config(self) -> Optional[Path]:
        return next((path for path in self.search_paths if path.is_file()), None)

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        try:
            text = file_path.read_text(encoding='utf-8')
        except OSError as e:
            raise ConfigurationError(f"Cannot read configuration file {file_path}: {e}") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {file_path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {file_path} must contain a YAML object (dictionary)"
            )
        return data

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        return merge_sections(base, override)

    def _env_overrides(self) -> Dict[str, Dict[str, str]]:
        """
        Collect overrides from ``VIBE_*`` variables.

        The first segment after the prefix names the section and the rest
        names the field, so ``VIBE_LLM_API_URL`` sets ``llm.api_url``.
        Values stay strings; pydantic coerces them to the field types.
        """
        sections = set(VibeConfig.model_fields)
        overrides: Dict[str, Dict[str, str]] = {}

        for name, value in os.environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            section, _, field = name[len(ENV_PREFIX):].lower().partition('_')
            if section in sections and field:
                overrides.setdefault(section, {})[field] = value

        return overrides

    def _format_validation_error(self, error: ValidationError) -> str:
        lines = [
            f"  {' -> '.join(str(part) for part in err['loc'])}: {err['msg']} (got: {err.get('input', 'N/A')})"
            for err in error.errors()
        ]
        return "Validation errors:\n" + "\n".join(lines)


_config_loader = ConfigLoader()


def load_config(config_path: Optional[Union[str, Path]] = None) -> VibeConfig:
    """
    Load configuration from all sources.

    Raises:
        ConfigurationError: If configuration loading fails
    """
    return _config_loader.load_config(config_path)


def get_config() -> VibeConfig:
    """Get the current configuration, loading it if necessary."""
    return _config_loader.get_config()

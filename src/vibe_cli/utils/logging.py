"""
Logging system for Vibe CLI.

stdout belongs to the generated command, so every log line goes to stderr.
This module configures the ``vibe_cli`` logger tree (level from config,
colored output on a terminal, secrets redacted) and provides
``PipelineLogger``, the observer the command generator reports each
fallback layer to.
"""

import os
import re
import sys
import time
import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

PACKAGE_LOGGER = 'vibe_cli'

_RESET = '\033[0m'

# (pattern, replacement) pairs applied in order
_REDACTIONS = (
    (re.compile(r'(api[_-]?key|token|secret|password)["\s]*[:=]["\s]*([^\s"]{8,})', re.IGNORECASE),
     r'\1=***REDACTED***'),
    (re.compile(r'(bearer\s+)([a-zA-Z0-9._-]{20,})', re.IGNORECASE), r'\1***REDACTED***'),
    (re.compile(r'sk-[a-zA-Z0-9-]{20,}'), 'sk-***REDACTED***'),
    (re.compile(r'(://[^:/\s]+:)([^@\s]+)(@)'), r'\1***REDACTED***\3'),
)


def redact(text: str) -> str:
    """Mask API keys, bearer tokens and URL credentials in ``text``."""
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    return text


class SensitiveDataFilter(logging.Filter):
    """Redact secrets from the message and string arguments of every record."""

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = redact(record.msg)

        if isinstance(record.args, tuple):
            record.args = tuple(redact(a) if isinstance(a, str) else a for a in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: redact(v) if isinstance(v, str) else v for k, v in record.args.items()}

        return True


def stderr_supports_color() -> bool:
    """Honour NO_COLOR / FORCE_COLOR, otherwise require a color-capable tty."""
    if os.getenv('NO_COLOR'):
        return False
    if os.getenv('FORCE_COLOR'):
        return True
    if not getattr(sys.stderr, 'isatty', None) or not sys.stderr.isatty():
        return False
    term = os.getenv('TERM', '').lower()
    return 'color' in term or term in ('xterm', 'screen', 'linux')


class ColoredConsoleFormatter(logging.Formatter):
    """Compact ``vibe: LEVEL name: message`` lines, tinted by level."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[90m',
        logging.INFO: '\033[94m',
        logging.WARNING: '\033[93m',
        logging.ERROR: '\033[91m',
        logging.CRITICAL: '\033[1;95m',
    }

    def __init__(self, use_colors: bool = True):
        super().__init__('vibe: %(levelname)s %(name)s: %(message)s')
        self.use_colors = use_colors and stderr_supports_color()

    def format(self, record):
        line = super().format(record)
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        return f"{color}{line}{_RESET}" if color else line


class LoggingManager:
    """Owns the one-time configuration of the ``vibe_cli`` logger tree."""

    def __init__(self):
        self._initialized = False
        self._loggers: Dict[str, logging.Logger] = {}

    @staticmethod
    def resolve_level(config, verbose: bool = False) -> int:
        """DEBUG when verbose or pipeline debugging is on, else the configured level."""
        if verbose or config.app.debug_logs:
            return logging.DEBUG
        return logging.getLevelName(config.app.log_level.value)

    def setup_logging(self, config, verbose: bool = False, force_reinit: bool = False):
        """Attach a single stderr handler to the package logger.

        Args:
            config: VibeConfig instance
            verbose: Force DEBUG regardless of config
            force_reinit: Replace an existing setup
        """
        if self._initialized and not force_reinit:
            return

        level = self.resolve_level(config, verbose)

        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(level)
        handler.setFormatter(ColoredConsoleFormatter())
        handler.addFilter(SensitiveDataFilter())

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for old in list(package_logger.handlers):
            package_logger.removeHandler(old)
        package_logger.addHandler(handler)
        package_logger.setLevel(level)
        package_logger.propagate = False

        # httpx reports every request at INFO
        logging.getLogger('httpx').setLevel(logging.WARNING)

        self._initialized = True
        self.get_logger(f'{PACKAGE_LOGGER}.logging').debug(
            f"Logging initialized at {logging.getLevelName(level)}"
        )

    def get_logger(self, name: str) -> logging.Logger:
        if name not in self._loggers:
            self._loggers[name] = logging.getLogger(name)
        return self._loggers[name]

    def is_initialized(self) -> bool:
        return self._initialized


_logging_manager = LoggingManager()


def setup_logging(config, verbose: bool = False, force_reinit: bool = False):
    """Configure package logging from a VibeConfig."""
    _logging_manager.setup_logging(config, verbose, force_reinit)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name."""
    return _logging_manager.get_logger(name)


def is_logging_initialized() -> bool:
    return _logging_manager.is_initialized()


@contextmanager
def log_performance(operation: str, level: int = logging.DEBUG) -> Iterator[None]:
    """Log the wall-clock duration of the enclosed block, including on failure."""
    logger = get_logger(f'{PACKAGE_LOGGER}.performance')
    start = time.perf_counter()
    outcome = "Failed"
    try:
        yield
        outcome = "Completed"
    finally:
        logger.log(level, f"{outcome} {operation} in {time.perf_counter() - start:.3f}s")


def truncate(text: str, max_len: int) -> str:
    """Shorten ``text`` to ``max_len`` characters, noting its full length."""
    if len(text) <= max_len:
        return text
    return f"{text[:max_len]}... (truncated, total: {len(text)} chars)"


class PipelineLogger:
    """
    Observer for the command generation pipeline.

    Each generator owns an instance, so debug output is switched per
    generator and never through process-wide state. Every method is a no-op
    while ``enabled`` is False.
    """

    RAW_RESPONSE_LIMIT = 500
    AFFIX_LIMIT = 100

    def __init__(self, enabled: bool = False, logger: Optional[logging.Logger] = None):
        self.enabled = enabled
        self.logger = logger or get_logger(f'{PACKAGE_LOGGER}.pipeline')

    def log_layer_success(self, layer: str, attempt: int) -> None:
        if not self.enabled:
            return
        self.logger.debug(f"[SUCCESS] Layer '{layer}' succeeded on attempt {attempt}")

    def log_parsing_failure(self, layer: str, attempt: int, raw_response: str, error: BaseException) -> None:
        if not self.enabled:
            return
        self.logger.debug(
            f"[ATTEMPT {attempt}][{layer}] Parsing failed: {error}\n"
            f"Raw response (first {self.RAW_RESPONSE_LIMIT} chars):\n"
            f"{truncate(raw_response or '', self.RAW_RESPONSE_LIMIT)}"
        )

    def log_json_extraction(self, extracted: str, trimmed_prefix: str, trimmed_suffix: str) -> None:
        if not self.enabled:
            return
        self.logger.debug(
            f"[JSON_EXTRACT] Success\n"
            f"Trimmed prefix: {truncate(trimmed_prefix, self.AFFIX_LIMIT)!r}\n"
            f"Trimmed suffix: {truncate(trimmed_suffix, self.AFFIX_LIMIT)!r}\n"
            f"Extracted length: {len(extracted)} chars"
        )

    def debug(self, message: str) -> None:
        if not self.enabled:
            return
        self.logger.debug(f"[DEBUG] {message}")

"""
On-disk response cache keyed by query fingerprint.

Each entry is one JSON file named by the SHA-256 hex digest of the query.
The cache is advisory: an absent, unreadable or corrupt entry is a miss.
Writes go through a temporary file and an atomic rename so a concurrent
reader never sees half an entry.
"""

import hashlib
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ValidationError

from .response.models import CommandResponse
from ..utils.error_handling import CacheError
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "vibe"
DEFAULT_TTL = timedelta(hours=24)


class CacheEntry(BaseModel):
    """Persisted wrapper around a cached response."""
    query: str
    response: CommandResponse
    timestamp: datetime


def fingerprint(query: str) -> str:
    """One-way, filesystem-safe key for a query."""
    return hashlib.sha256(query.encode('utf-8')).hexdigest()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseCache:
    """TTL-bound cache of command responses stored under ``cache_dir``."""

    def __init__(
        self,
        cache_dir: Optional[Union[str, Path]] = None,
        ttl: timedelta = DEFAULT_TTL,
    ):
        """
        Create the cache directory if needed.

        Raises:
            CacheError: if the directory cannot be created
        """
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else DEFAULT_CACHE_DIR
        self.ttl = ttl

        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"Cannot create cache directory {self.cache_dir}: {e}") from e

    def _path_for(self, query: str) -> Path:
        return self.cache_dir / f"{fingerprint(query)}.json"

    def get(self, query: str) -> Tuple[Optional[CommandResponse], bool]:
        """Return ``(response, True)`` on a fresh hit, ``(None, False)`` otherwise."""
        path = self._path_for(query)

        try:
            data = path.read_bytes()
        except OSError:
            return None, False

        try:
            entry = CacheEntry.model_validate_json(data)
        except (ValidationError, UnicodeDecodeError):
            logger.debug(f"Ignoring unreadable cache entry {path.name}")
            return None, False

        timestamp = entry.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)

        if _utcnow() - timestamp > self.ttl:
            logger.debug(f"Cache entry {path.name} expired")
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                logger.debug(f"Cannot remove expired cache entry {path.name}: {e}")
            return None, False

        return entry.response, True

    def set(self, query: str, response: CommandResponse) -> None:
        """
        Store ``response`` for ``query``, replacing any existing entry.

        Raises:
            CacheError: if the entry cannot be written
        """
        path = self._path_for(query)
        entry = CacheEntry(query=query, response=response, timestamp=_utcnow())
        data = entry.model_dump_json(exclude_none=True)

        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                'w', encoding='utf-8', dir=self.cache_dir,
                prefix=f".{path.stem[:16]}-", suffix='.tmp', delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise CacheError(f"Cannot write cache entry {path.name}: {e}") from e

    def clear(self) -> int:
        """
        Delete every cache entry.

        Returns:
            Number of entries removed

        Raises:
            CacheError: if the cache directory cannot be listed
        """
        try:
            entries = list(self.cache_dir.glob('*.json'))
        except OSError as e:
            raise CacheError(f"Cannot list cache directory {self.cache_dir}: {e}") from e

        removed = 0
        for entry in entries:
            try:
                entry.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                raise CacheError(f"Cannot delete cache entry {entry.name}: {e}") from e
        return removed

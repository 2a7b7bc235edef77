"""
Test suite for the on-disk response cache.
"""

import hashlib
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from vibe_cli.core.cache import CacheEntry, ResponseCache, fingerprint
from vibe_cli.core.response.models import CommandResponse
from vibe_cli.utils.error_handling import CacheError


@pytest.fixture
def cache(tmp_path):
    return ResponseCache(tmp_path / "cache", ttl=timedelta(hours=1))


@pytest.fixture
def response():
    return CommandResponse(
        command="du -sh * | sort -h",
        explanation=["du -sh *: size of each entry", "sort -h: order by human-readable size"],
    )


class TestFingerprint:
    """Test cache key derivation."""

    def test_sha256_hex(self):
        assert fingerprint("list files") == hashlib.sha256(b"list files").hexdigest()

    def test_distinct_queries_have_distinct_keys(self):
        assert fingerprint("list files") != fingerprint("list files ")


class TestResponseCache:
    """Test ResponseCache storage and expiry."""

    def test_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "cache"

        ResponseCache(target)

        assert target.is_dir()

    def test_unusable_directory(self, tmp_path):
        """Test that a file in the way of the directory is reported."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(CacheError):
            ResponseCache(blocker / "cache")

    def test_miss(self, cache):
        assert cache.get("never stored") == (None, False)

    def test_round_trip(self, cache, response):
        cache.set("show disk usage", response)

        cached, found = cache.get("show disk usage")

        assert found is True
        assert cached == response

    def test_entry_file_layout(self, cache, response):
        """Test that entries are JSON files named by the query fingerprint."""
        cache.set("show disk usage", response)

        path = cache.cache_dir / f"{fingerprint('show disk usage')}.json"
        data = json.loads(path.read_text())

        assert data["query"] == "show disk usage"
        assert data["response"]["command"] == "du -sh * | sort -h"
        assert "warning" not in data["response"]
        assert "timestamp" in data

    def test_overwrite(self, cache, response):
        cache.set("q", response)
        newer = CommandResponse(command="df -h", explanation=["free space"])

        cache.set("q", newer)

        assert cache.get("q") == (newer, True)

    def test_expired_entry_is_removed(self, cache, response):
        cache.set("old query", response)
        path = cache.cache_dir / f"{fingerprint('old query')}.json"

        later = datetime.now(timezone.utc) + timedelta(hours=2)
        with patch("vibe_cli.core.cache._utcnow", return_value=later):
            assert cache.get("old query") == (None, False)

        assert not path.exists()

    def test_entry_within_ttl_is_kept(self, cache, response):
        cache.set("fresh query", response)

        later = datetime.now(timezone.utc) + timedelta(minutes=30)
        with patch("vibe_cli.core.cache._utcnow", return_value=later):
            assert cache.get("fresh query") == (response, True)

    def test_naive_timestamp_treated_as_utc(self, cache, response):
        """Entries written without a timezone still expire correctly."""
        entry = CacheEntry(query="q", response=response, timestamp=datetime(2020, 1, 1))
        path = cache.cache_dir / f"{fingerprint('q')}.json"
        path.write_text(entry.model_dump_json())

        assert cache.get("q") == (None, False)
        assert not path.exists()

    @pytest.mark.parametrize("content", [
        "",
        "{not json",
        '{"query": "q"}',
        '{"query": "q", "response": {"explanation": []}, "timestamp": "2024-01-01T00:00:00Z"}',
    ])
    def test_corrupt_entry_is_a_miss(self, cache, content):
        (cache.cache_dir / f"{fingerprint('q')}.json").write_text(content)

        assert cache.get("q") == (None, False)

    def test_undecodable_entry_is_a_miss(self, cache):
        """Bytes that are not UTF-8 count as a corrupt entry."""
        (cache.cache_dir / f"{fingerprint('q')}.json").write_bytes(b'\xff\xfe{"bad')

        assert cache.get("q") == (None, False)

    def test_expired_entry_on_read_only_cache(self, cache, response):
        """An expired entry that cannot be deleted is still a miss."""
        cache.set("q", response)

        later = datetime.now(timezone.utc) + timedelta(hours=2)
        with patch("vibe_cli.core.cache._utcnow", return_value=later), \
                patch.object(Path, "unlink", side_effect=PermissionError("read-only")):
            assert cache.get("q") == (None, False)

        assert (cache.cache_dir / f"{fingerprint('q')}.json").exists()

    def test_no_temporary_files_left(self, cache, response):
        for i in range(5):
            cache.set(f"query {i}", response)

        names = [p.name for p in cache.cache_dir.iterdir()]

        assert len(names) == 5
        assert all(name.endswith(".json") for name in names)

    def test_failed_write_cleans_up(self, cache, response):
        """Test that a failed rename raises CacheError and removes the temp file."""
        with patch("vibe_cli.core.cache.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(CacheError, match="disk full"):
                cache.set("q", response)

        assert list(cache.cache_dir.iterdir()) == []

    def test_clear(self, cache, response):
        cache.set("a", response)
        cache.set("b", response)

        assert cache.clear() == 2
        assert cache.get("a") == (None, False)
        assert cache.clear() == 0

"""Unit tests for the persistent audio cache."""

import sqlite3

import pytest

from docvoice.config import CacheConfig
from docvoice.errors import CacheError
from docvoice.tts.cache import (
    MS_PER_DAY,
    AudioCache,
    content_hash,
    make_cache_key,
    open_audio_cache,
)

DAY_SECONDS = MS_PER_DAY / 1000


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCacheKey:
    """Tests for cache key construction."""

    def test_key_layout(self) -> None:
        """Key is voice, full-text hash and a 20 character prefix."""
        text = "The quick brown fox jumps over the lazy dog"
        key = make_cache_key("nova", text)
        assert key == f"nova_{content_hash(text)}_The quick brown fox "

    def test_hash_covers_whole_text(self) -> None:
        """Texts sharing a prefix still get different keys."""
        a = "Identical opening words, then one ending."
        b = "Identical opening words, then another ending."
        assert make_cache_key("alloy", a) != make_cache_key("alloy", b)

    def test_hash_is_64_bit_hex(self) -> None:
        """content_hash is 16 hex digits."""
        digest = content_hash("hello")
        assert len(digest) == 16
        int(digest, 16)


class TestAudioCache:
    """Tests for AudioCache."""

    @pytest.fixture
    def clock(self) -> FakeClock:
        """Create a controllable clock."""
        return FakeClock()

    @pytest.fixture
    def cache(self, tmp_path, clock: FakeClock) -> AudioCache:
        """Create a cache in a temporary directory."""
        cache = AudioCache(tmp_path / "cache" / "tts.db", clock=clock)
        yield cache
        cache.close()

    def test_put_and_get(self, cache: AudioCache) -> None:
        """Stored audio is returned for the same voice and text."""
        cache.put("alloy", "Hello world.", b"RIFF-audio")
        assert cache.get("alloy", "Hello world.") == b"RIFF-audio"

    def test_miss_returns_none(self, cache: AudioCache) -> None:
        """Unknown entries read as None."""
        assert cache.get("alloy", "never stored") is None

    def test_voices_are_separate(self, cache: AudioCache) -> None:
        """The same text in another voice is a different entry."""
        cache.put("alloy", "Hello.", b"alloy-audio")
        assert cache.get("echo", "Hello.") is None

    def test_put_replaces(self, cache: AudioCache) -> None:
        """A second put for the same key replaces the first."""
        cache.put("alloy", "Hello.", b"first")
        cache.put("alloy", "Hello.", b"second")
        assert cache.get("alloy", "Hello.") == b"second"
        assert cache.entry_count() == 1

    def test_entry_metadata(self, cache: AudioCache, clock: FakeClock) -> None:
        """Entries record voice, text length and creation time."""
        cache.put("onyx", "Twelve chars", b"data")
        entry = cache.get_entry(make_cache_key("onyx", "Twelve chars"))

        assert entry is not None
        assert entry.voice == "onyx"
        assert entry.text_length == 12
        assert entry.timestamp_ms == int(clock.now * 1000)

    def test_entry_within_retention(self, cache: AudioCache, clock: FakeClock) -> None:
        """Entries exactly at the retention age are still served."""
        cache.put("alloy", "Hello.", b"audio")
        clock.now += 14 * DAY_SECONDS
        assert cache.get("alloy", "Hello.") == b"audio"

    def test_entry_expires(self, cache: AudioCache, clock: FakeClock) -> None:
        """Entries older than 14 days read as misses."""
        cache.put("alloy", "Hello.", b"audio")
        clock.now += 14 * DAY_SECONDS + 1
        assert cache.get("alloy", "Hello.") is None
        # Expired rows stay on disk until replaced
        assert cache.entry_count() == 1

    def test_put_refreshes_expired_entry(self, cache: AudioCache, clock: FakeClock) -> None:
        """Re-storing an expired entry makes it fresh again."""
        cache.put("alloy", "Hello.", b"old")
        clock.now += 20 * DAY_SECONDS
        cache.put("alloy", "Hello.", b"new")
        assert cache.get("alloy", "Hello.") == b"new"

    def test_custom_retention(self, tmp_path, clock: FakeClock) -> None:
        """Retention is configurable."""
        with AudioCache(tmp_path / "short.db", retention_days=1, clock=clock) as cache:
            cache.put("alloy", "Hello.", b"audio")
            clock.now += 2 * DAY_SECONDS
            assert cache.get("alloy", "Hello.") is None

    def test_usage_summary(self, cache: AudioCache) -> None:
        """Usage records aggregate into totals and per-voice counts."""
        cache.record_usage("alloy", 10, generated=True)
        cache.record_usage("alloy", 10, generated=False)
        cache.record_usage("echo", 5, generated=False)

        summary = cache.usage_summary()
        assert summary.total == 3
        assert summary.generated == 1
        assert summary.cached == 2
        assert summary.characters == 25
        assert summary.by_voice == {"alloy": 2, "echo": 1}
        assert summary.hit_rate == pytest.approx(200 / 3)

    def test_empty_summary(self, cache: AudioCache) -> None:
        """An empty log has a zero hit rate."""
        summary = cache.usage_summary()
        assert summary.total == 0
        assert summary.hit_rate == 0.0

    def test_clear(self, cache: AudioCache) -> None:
        """clear() removes audio and usage records."""
        cache.put("alloy", "Hello.", b"audio")
        cache.record_usage("alloy", 6, generated=True)

        cache.clear()

        assert cache.entry_count() == 0
        assert cache.usage_summary().total == 0

    def test_wal_mode_enabled(self, cache: AudioCache) -> None:
        """The database runs in WAL mode."""
        conn = sqlite3.connect(str(cache.db_path))
        try:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        finally:
            conn.close()
        assert mode.lower() == "wal"

    def test_persists_across_instances(self, tmp_path, clock: FakeClock) -> None:
        """Entries survive reopening the database."""
        path = tmp_path / "persist.db"
        with AudioCache(path, clock=clock) as cache:
            cache.put("nova", "Persistent.", b"audio")
        with AudioCache(path, clock=clock) as cache:
            assert cache.get("nova", "Persistent.") == b"audio"


class TestCacheFailures:
    """Storage errors degrade instead of propagating."""

    def test_reads_and_writes_after_close(self, tmp_path) -> None:
        """A broken connection reads as a miss and drops writes."""
        cache = AudioCache(tmp_path / "broken.db")
        cache.close()

        assert cache.get("alloy", "Hello.") is None
        cache.put("alloy", "Hello.", b"audio")
        cache.record_usage("alloy", 6, generated=True)

    def test_admin_operations_raise(self, tmp_path) -> None:
        """Summary, count and clear report failures as CacheError."""
        cache = AudioCache(tmp_path / "broken.db")
        cache.close()

        with pytest.raises(CacheError):
            cache.usage_summary()
        with pytest.raises(CacheError):
            cache.entry_count()
        with pytest.raises(CacheError):
            cache.clear()

    def test_unopenable_path(self, tmp_path) -> None:
        """A path under a regular file cannot be opened."""
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("x")
        with pytest.raises(CacheError):
            AudioCache(blocker / "tts.db")


class TestOpenAudioCache:
    """Tests for the open_audio_cache factory."""

    def test_disabled(self, tmp_path) -> None:
        """Disabled caching returns None."""
        config = CacheConfig(enabled=False, path=str(tmp_path / "tts.db"))
        assert open_audio_cache(config) is None

    def test_opens_configured_path(self, tmp_path) -> None:
        """The cache is created at the configured path."""
        config = CacheConfig(path=str(tmp_path / "nested" / "tts.db"), retention_days=3)
        cache = open_audio_cache(config)
        assert cache is not None
        assert cache.db_path == tmp_path / "nested" / "tts.db"
        cache.close()

    def test_failure_returns_none(self, tmp_path) -> None:
        """Open failures are logged and produce no cache."""
        blocker = tmp_path / "file"
        blocker.write_text("x")
        assert open_audio_cache(CacheConfig(path=str(blocker / "tts.db"))) is None

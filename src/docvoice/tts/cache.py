"""Persistent audio cache for synthesized speech.

Stores encoded WAV bytes keyed by (voice, text) in a local SQLite database,
alongside an append-only usage log. Storage problems never propagate: reads
degrade to cache misses and writes are logged and dropped.
"""

import hashlib
import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ..errors import CacheError, FailureKind

if TYPE_CHECKING:
    from ..config import CacheConfig

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 14
KEY_PREFIX_LENGTH = 20
MS_PER_DAY = 24 * 60 * 60 * 1000


def content_hash(text: str) -> str:
    """Return a 64-bit BLAKE2b hex digest of the full text."""
    return hashlib.blake2b(text.encode("utf-8"), digest_size=8).hexdigest()


def make_cache_key(voice_id: str, text: str) -> str:
    """Build the cache key for a (voice, text) pair.

    The key combines the voice, a hash of the whole text, and a short text
    prefix so keys stay compact but readable.
    """
    return f"{voice_id}_{content_hash(text)}_{text[:KEY_PREFIX_LENGTH]}"


@dataclass
class CacheEntry:
    """A stored audio clip.

    Attributes:
        key: Cache key from make_cache_key
        timestamp_ms: Creation time in epoch milliseconds
        voice: Voice id used for synthesis
        text_length: Length of the synthesized text
        audio_data: Encoded WAV bytes
    """

    key: str
    timestamp_ms: int
    voice: str
    text_length: int
    audio_data: bytes


@dataclass
class UsageSummary:
    """Aggregated usage statistics from the stats log."""

    total: int = 0
    generated: int = 0
    cached: int = 0
    characters: int = 0
    by_voice: dict[str, int] = field(default_factory=dict)

    @property
    def hit_rate(self) -> float:
        """Percentage of requests served from the cache."""
        return (self.cached / self.total * 100.0) if self.total else 0.0


class AudioCache:
    """SQLite-backed store for synthesized audio and usage statistics.

    Uses WAL mode so the cache file stays readable while a write is in
    progress. Entries older than the retention window read as misses but
    stay on disk until the next write for the same key replaces them.
    """

    def __init__(
        self,
        db_path: Path,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Open or create the cache database.

        Args:
            db_path: Path to the SQLite database file
            retention_days: Age after which entries are treated as absent
            clock: Source of the current time in epoch seconds

        Raises:
            CacheError: If the database cannot be opened
        """
        self._db_path = db_path
        self._retention_ms = retention_days * MS_PER_DAY
        self._clock = clock

        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._create_tables()
        except (OSError, sqlite3.Error) as e:
            raise CacheError(f"Failed to open audio cache at {db_path}: {e}") from e

    def _create_tables(self) -> None:
        """Create database tables."""
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS audio_cache (
                key TEXT PRIMARY KEY,
                timestamp INTEGER NOT NULL,
                voice TEXT NOT NULL,
                text_length INTEGER NOT NULL,
                audio_data BLOB NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_audio_cache_timestamp
                ON audio_cache(timestamp);
            CREATE INDEX IF NOT EXISTS idx_audio_cache_voice
                ON audio_cache(voice);
            CREATE INDEX IF NOT EXISTS idx_audio_cache_text_length
                ON audio_cache(text_length);

            CREATE TABLE IF NOT EXISTS tts_stats (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                voice TEXT NOT NULL,
                text_length INTEGER NOT NULL,
                generated INTEGER NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_tts_stats_date ON tts_stats(date);
            CREATE INDEX IF NOT EXISTS idx_tts_stats_voice ON tts_stats(voice);
            """
        )
        self._conn.commit()

    @property
    def db_path(self) -> Path:
        """Get the database file path."""
        return self._db_path

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def get(self, voice_id: str, text: str) -> bytes | None:
        """Return cached audio for (voice, text), or None.

        Missing entries, expired entries and storage errors all read as a
        miss.
        """
        entry = self.get_entry(make_cache_key(voice_id, text))
        if entry is None:
            return None
        if self._now_ms() - entry.timestamp_ms > self._retention_ms:
            logger.debug(f"Cache entry expired: {entry.key!r}")
            return None
        return entry.audio_data

    def get_entry(self, key: str) -> CacheEntry | None:
        """Get the raw entry for a key, ignoring expiry."""
        try:
            row = self._conn.execute(
                "SELECT * FROM audio_cache WHERE key = ?",
                (key,),
            ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Cache read failed ({FailureKind.RECOVERABLE_DEGRADE.value}): {e}")
            return None

        if row is None:
            return None
        return CacheEntry(
            key=row["key"],
            timestamp_ms=row["timestamp"],
            voice=row["voice"],
            text_length=row["text_length"],
            audio_data=bytes(row["audio_data"]),
        )

    def put(self, voice_id: str, text: str, audio: bytes) -> None:
        """Store audio for (voice, text), replacing any previous entry."""
        try:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO audio_cache (
                    key, timestamp, voice, text_length, audio_data
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    make_cache_key(voice_id, text),
                    self._now_ms(),
                    voice_id,
                    len(text),
                    sqlite3.Binary(audio),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Cache write failed ({FailureKind.RECOVERABLE_DEGRADE.value}): {e}")

    def record_usage(self, voice_id: str, text_length: int, generated: bool) -> None:
        """Append a usage record. Failures are logged and ignored."""
        try:
            self._conn.execute(
                """
                INSERT INTO tts_stats (date, voice, text_length, generated)
                VALUES (?, ?, ?, ?)
                """,
                (
                    datetime.fromtimestamp(self._clock(), UTC).isoformat(),
                    voice_id,
                    text_length,
                    int(generated),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Usage log write failed ({FailureKind.RECOVERABLE_DEGRADE.value}): {e}")

    def usage_summary(self) -> UsageSummary:
        """Aggregate the usage log.

        Raises:
            CacheError: If the stats table cannot be read
        """
        try:
            rows = self._conn.execute(
                """
                SELECT voice, generated, COUNT(*) AS count, SUM(text_length) AS chars
                FROM tts_stats
                GROUP BY voice, generated
                """
            ).fetchall()
        except sqlite3.Error as e:
            raise CacheError(f"Failed to read usage stats: {e}") from e

        summary = UsageSummary()
        for row in rows:
            summary.total += row["count"]
            summary.characters += row["chars"] or 0
            if row["generated"]:
                summary.generated += row["count"]
            else:
                summary.cached += row["count"]
            summary.by_voice[row["voice"]] = summary.by_voice.get(row["voice"], 0) + row["count"]
        return summary

    def entry_count(self) -> int:
        """Count stored audio entries, expired ones included."""
        try:
            return self._conn.execute("SELECT COUNT(*) FROM audio_cache").fetchone()[0]
        except sqlite3.Error as e:
            raise CacheError(f"Failed to count cache entries: {e}") from e

    def clear(self) -> None:
        """Delete every cached clip and usage record."""
        try:
            self._conn.executescript("DELETE FROM audio_cache; DELETE FROM tts_stats;")
            self._conn.commit()
        except sqlite3.Error as e:
            raise CacheError(f"Failed to clear audio cache: {e}") from e
        logger.info(f"Cleared audio cache at {self._db_path}")

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> "AudioCache":
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()


def open_audio_cache(config: "CacheConfig | None" = None) -> AudioCache | None:
    """Open the audio cache described by config.

    Returns None when caching is disabled or the database cannot be
    opened; the speech engine then treats every lookup as a miss.
    """
    if config is not None and not config.enabled:
        logger.info("Audio cache disabled by configuration")
        return None

    path = Path("~/.docvoice/tts_cache.db")
    retention_days = DEFAULT_RETENTION_DAYS
    if config is not None:
        path = Path(config.path)
        retention_days = config.retention_days

    try:
        cache = AudioCache(path.expanduser(), retention_days=retention_days)
    except CacheError as e:
        logger.warning(f"Audio cache unavailable, continuing without it: {e}")
        return None

    logger.info(f"Audio cache opened at {cache.db_path}")
    return cache


__all__ = [
    "DEFAULT_RETENTION_DAYS",
    "AudioCache",
    "CacheEntry",
    "UsageSummary",
    "content_hash",
    "make_cache_key",
    "open_audio_cache",
]

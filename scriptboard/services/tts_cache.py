"""TTS Cache - synthesized audio keyed by hash(text, voice preset), TTL-bounded."""

import hashlib
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from scriptboard.core.config import Settings
from scriptboard.core.errors import PersistenceError
from scriptboard.models.schemas import CachedTTS, SpeechProviderName, VoicePreset


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def tts_cache_key(text: str, voice_preset: VoicePreset) -> str:
    """First 32 hex chars of sha256("<trimmed text>::<preset>")."""
    preset = VoicePreset(voice_preset).value
    return hashlib.sha256(f"{text.strip()}::{preset}".encode("utf-8")).hexdigest()[:32]


class TTSCache:
    """One entry per (text hash, voice preset). Duplicate inserts resolve to the stored entry."""

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        db_path: Optional[str] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.settings = settings
        self.logger = logger
        self.db_path = db_path or settings.cache_db_path
        self.ttl = timedelta(days=settings.tts_cache_ttl_days)
        self._now = now
        self._lock = threading.Lock()

        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS tts_cache (
                    text_hash TEXT NOT NULL,
                    voice_preset TEXT NOT NULL,
                    audio_url TEXT NOT NULL,
                    storage_path TEXT NOT NULL,
                    duration_seconds REAL NOT NULL,
                    provider TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    PRIMARY KEY (text_hash, voice_preset)
                );
                CREATE INDEX IF NOT EXISTS idx_tts_cache_expires ON tts_cache(expires_at);
                """
            )

    @staticmethod
    def _row_to_entry(row: tuple) -> CachedTTS:
        text_hash, voice_preset, audio_url, storage_path, duration, provider, created_at, expires_at = row
        return CachedTTS(
            text_hash=text_hash,
            voice_preset=VoicePreset(voice_preset),
            audio_url=audio_url,
            storage_path=storage_path,
            duration_seconds=duration,
            provider=SpeechProviderName(provider),
            created_at=datetime.fromisoformat(created_at),
            expires_at=datetime.fromisoformat(expires_at),
        )

    def get(self, text_hash: str, voice_preset: VoicePreset) -> Optional[CachedTTS]:
        """Non-expired entry for the key, or None."""
        try:
            with self._lock, self._connect() as conn:
                row = conn.execute(
                    "SELECT text_hash, voice_preset, audio_url, storage_path, duration_seconds, provider, "
                    "created_at, expires_at FROM tts_cache WHERE text_hash = ? AND voice_preset = ? AND expires_at > ?",
                    (text_hash, VoicePreset(voice_preset).value, _ts(self._now())),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"TTS cache lookup failed: {e}") from e
        return self._row_to_entry(row) if row else None

    def put(
        self,
        text_hash: str,
        voice_preset: VoicePreset,
        audio_url: str,
        storage_path: str,
        duration_seconds: float,
        provider: SpeechProviderName,
        replace: bool = False,
    ) -> tuple[CachedTTS, bool]:
        """
        Store an entry.

        A live entry under the same key wins (concurrent writer got there
        first); an expired one is replaced. With replace=True the new row
        always overwrites whatever is stored.

        Returns:
            (stored entry, True if this call created it)
        """
        now = self._now()
        row = (
            text_hash,
            VoicePreset(voice_preset).value,
            audio_url,
            storage_path,
            float(duration_seconds),
            SpeechProviderName(provider).value,
            _ts(now),
            _ts(now + self.ttl),
        )

        try:
            with self._lock, self._connect() as conn:
                conn.execute(
                    "DELETE FROM tts_cache WHERE text_hash = ? AND voice_preset = ? AND expires_at <= ?",
                    (row[0], row[1], _ts(now)),
                )
                verb = "INSERT OR REPLACE" if replace else "INSERT OR IGNORE"
                cursor = conn.execute(
                    f"{verb} INTO tts_cache (text_hash, voice_preset, audio_url, storage_path, "
                    "duration_seconds, provider, created_at, expires_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    row,
                )
                created = cursor.rowcount == 1
        except sqlite3.Error as e:
            raise PersistenceError(f"TTS cache write failed: {e}") from e

        if created:
            return self._row_to_entry(row), True

        self.logger.debug(f"[TTS] Cache entry {text_hash} already present, reading it back")
        existing = self.get(text_hash, voice_preset)
        if existing is None:
            raise PersistenceError(f"TTS cache entry {text_hash} vanished after duplicate insert")
        return existing, False

    def expired_entries(self) -> list[CachedTTS]:
        try:
            with self._lock, self._connect() as conn:
                rows = conn.execute(
                    "SELECT text_hash, voice_preset, audio_url, storage_path, duration_seconds, provider, "
                    "created_at, expires_at FROM tts_cache WHERE expires_at <= ?",
                    (_ts(self._now()),),
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"TTS cache scan failed: {e}") from e
        return [self._row_to_entry(r) for r in rows]

    def delete(self, entries: list[CachedTTS]) -> int:
        if not entries:
            return 0
        try:
            with self._lock, self._connect() as conn:
                before = conn.total_changes
                conn.executemany(
                    "DELETE FROM tts_cache WHERE text_hash = ? AND voice_preset = ?",
                    [(e.text_hash, e.voice_preset.value) for e in entries],
                )
                return conn.total_changes - before
        except sqlite3.Error as e:
            raise PersistenceError(f"TTS cache delete failed: {e}") from e

    def count(self) -> int:
        with self._lock, self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM tts_cache").fetchone()[0]

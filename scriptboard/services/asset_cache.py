"""Asset Cache - global SQLite store of fetched stock assets with a TTL."""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Iterator, Optional

from scriptboard.core.config import Settings
from scriptboard.core.errors import PersistenceError
from scriptboard.models.schemas import CachedAsset, StockAsset


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ts(value: datetime) -> str:
    """Fixed-width UTC timestamp so SQL string comparison orders correctly."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


class AssetCache:
    """
    Stock assets keyed by (provider, provider asset id), shared by all projects.

    Inserts are best-effort: an existing key is left untouched and any other
    insert failure is logged, never raised. Lookups only return entries that
    have not expired.
    """

    def __init__(
        self,
        settings: Settings,
        logger: Any,
        db_path: Optional[str] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize the cache.

        Args:
            settings: Application settings
            logger: Logger instance
            db_path: SQLite file (defaults to settings.cache_db_path)
            now: Clock returning an aware datetime (injectable for tests)
        """
        self.settings = settings
        self.logger = logger
        self.db_path = db_path or settings.cache_db_path
        self.ttl = timedelta(days=settings.asset_cache_ttl_days)
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
                CREATE TABLE IF NOT EXISTS stock_assets (
                    provider TEXT NOT NULL,
                    provider_asset_id TEXT NOT NULL,
                    asset_json TEXT NOT NULL,
                    cached_at TEXT NOT NULL,
                    expires_at TEXT NOT NULL,
                    PRIMARY KEY (provider, provider_asset_id)
                );
                CREATE INDEX IF NOT EXISTS idx_stock_assets_expires ON stock_assets(expires_at);
                """
            )

    def get(self, provider: str, provider_asset_id: str) -> Optional[CachedAsset]:
        found = self.get_many(provider, [provider_asset_id])
        return found.get(provider_asset_id)

    def get_many(self, provider: str, provider_asset_ids: list[str]) -> dict[str, CachedAsset]:
        """
        Look up non-expired entries for one provider.

        Returns:
            Mapping of provider asset id to cached entry (missing ids omitted)
        """
        if not provider_asset_ids:
            return {}

        placeholders = ",".join("?" for _ in provider_asset_ids)
        try:
            with self._lock, self._connect() as conn:
                rows = conn.execute(
                    f"SELECT provider_asset_id, asset_json, cached_at, expires_at FROM stock_assets "
                    f"WHERE provider = ? AND provider_asset_id IN ({placeholders}) AND expires_at > ?",
                    [provider, *provider_asset_ids, _ts(self._now())],
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceError(f"Asset cache lookup failed: {e}") from e

        return {
            asset_id: CachedAsset(
                asset=StockAsset.model_validate_json(asset_json),
                cached_at=datetime.fromisoformat(cached_at),
                expires_at=datetime.fromisoformat(expires_at),
            )
            for asset_id, asset_json, cached_at, expires_at in rows
        }

    def put_many(self, assets: list[StockAsset]) -> int:
        """
        Cache assets, ignoring keys that are already present.

        Returns:
            Number of rows newly inserted
        """
        if not assets:
            return 0

        now = self._now()
        expires_at = _ts(now + self.ttl)
        rows = [
            (
                a.provider.value,
                a.provider_asset_id,
                StockAsset.model_validate(a.model_dump(include=set(StockAsset.model_fields))).model_dump_json(),
                _ts(now),
                expires_at,
            )
            for a in assets
        ]

        try:
            with self._lock, self._connect() as conn:
                before = conn.total_changes
                conn.executemany(
                    "INSERT OR IGNORE INTO stock_assets "
                    "(provider, provider_asset_id, asset_json, cached_at, expires_at) VALUES (?, ?, ?, ?, ?)",
                    rows,
                )
                inserted = conn.total_changes - before
        except sqlite3.Error as e:
            self.logger.warning(f"[AssetCache] Failed to cache {len(rows)} assets: {e}")
            return 0

        self.logger.debug(f"[AssetCache] Cached {inserted}/{len(rows)} assets")
        return inserted

    def clean_expired(self) -> int:
        """Delete entries past their expiry. Returns the number removed."""
        try:
            with self._lock, self._connect() as conn:
                cursor = conn.execute("DELETE FROM stock_assets WHERE expires_at <= ?", (_ts(self._now()),))
                removed = cursor.rowcount
        except sqlite3.Error as e:
            raise PersistenceError(f"Asset cache sweep failed: {e}") from e

        self.logger.info(f"[AssetCache] Removed {removed} expired assets")
        return removed

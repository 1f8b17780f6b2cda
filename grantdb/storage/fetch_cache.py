"""
SQLite-backed cache of fetched source feeds.

Only used for local iteration: repeated runs within the TTL reuse the last
downloaded CSV archive or HTML page instead of hitting the source again.
"""

import hashlib
import logging
import sqlite3
from contextlib import closing
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)


_SCHEMA = """
    CREATE TABLE IF NOT EXISTS feed_cache (
        url_key TEXT PRIMARY KEY,
        url TEXT NOT NULL,
        body TEXT NOT NULL,
        content_type TEXT,
        fetched_at TEXT NOT NULL
    )
"""


class FetchCache:
    """Feed bodies keyed by URL, valid for ``ttl_hours`` after download."""

    def __init__(self, db_path: Union[str, Path] = "fetch_cache.db", ttl_hours: float = 24):
        self.db_path = Path(db_path)
        self.ttl = timedelta(hours=ttl_hours)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn, conn:
            conn.execute(_SCHEMA)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_feed_fetched_at ON feed_cache(fetched_at)")

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.db_path))

    @staticmethod
    def _key(url: str) -> str:
        return hashlib.sha256(url.encode("utf-8")).hexdigest()

    def get(self, url: str) -> Optional[str]:
        """Cached body for ``url``, or None when missing or older than the TTL."""
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT body, fetched_at FROM feed_cache WHERE url_key = ?",
                (self._key(url),),
            ).fetchone()

        if row is None:
            return None

        body, fetched_at = row
        if datetime.now() - datetime.fromisoformat(fetched_at) > self.ttl:
            logger.debug(f"Cache expired for {url}")
            return None

        logger.debug(f"Cache hit: {url}")
        return body

    def set(self, url: str, body: str, content_type: str = "") -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "INSERT OR REPLACE INTO feed_cache (url_key, url, body, content_type, fetched_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (self._key(url), url, body, content_type, datetime.now().isoformat()),
            )
        logger.debug(f"Cached {len(body) / 1024:.0f}KB from {url}")

    def cleanup_expired(self) -> int:
        """Delete entries older than the TTL; returns how many were removed."""
        cutoff = (datetime.now() - self.ttl).isoformat()
        with closing(self._connect()) as conn, conn:
            deleted = conn.execute("DELETE FROM feed_cache WHERE fetched_at < ?", (cutoff,)).rowcount

        if deleted:
            logger.info(f"Cleaned up {deleted} expired cache entries")
        return deleted

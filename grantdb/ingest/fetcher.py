"""
Fetch source feeds (CSV archives, HTML pages) with timeout, bounded retries
and rate limiting.
"""

import requests
import threading
import time
from typing import TYPE_CHECKING, Optional
from urllib.parse import urlparse
import logging

from grantdb.core import config
from grantdb.core.errors import SourceFetchError

if TYPE_CHECKING:
    from grantdb.storage.fetch_cache import FetchCache

logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,text/csv,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.5',
    'Connection': 'keep-alive',
}

# Status codes worth another attempt
RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class SourceFetcher:
    """Fetch text feeds with retries, per-domain rate limiting and optional caching."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        cache: Optional['FetchCache'] = None,
        timeout: float = config.HTTP_TIMEOUT,
        max_retries: int = config.HTTP_MAX_RETRIES,
        backoff: float = config.HTTP_BACKOFF,
        min_interval: float = 1.0,
        sleep=time.sleep,
    ):
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        self.cache = cache
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.backoff = backoff
        self.min_interval = min_interval
        self._sleep = sleep
        self.last_request_time = {}  # Domain-based rate limiting
        self._rate_lock = threading.Lock()

    def fetch_text(self, url: str) -> str:
        """
        Fetch a URL and return its body as text.

        Retries connection errors, timeouts, 429 and 5xx responses up to
        ``max_retries`` attempts in total, sleeping ``backoff * attempt``
        seconds between attempts. Other non-2xx responses fail immediately.

        Raises:
            SourceFetchError: when the body could not be obtained
        """
        if self.cache:
            cached = self.cache.get(url)
            if cached is not None:
                return cached

        last_error = None
        for attempt in range(1, self.max_retries + 1):
            self._rate_limit(url)
            try:
                response = self.session.get(url, timeout=self.timeout)
            except requests.RequestException as e:
                last_error = SourceFetchError(url, f"{type(e).__name__}: {e}")
                logger.warning(f"Attempt {attempt}/{self.max_retries} failed for {url}: {e}")
            else:
                if response.ok:
                    text = response.text
                    if self.cache:
                        self.cache.set(url, text, response.headers.get('content-type', ''))
                    logger.info(f"Fetched {url} ({len(text) / 1024:.0f}KB)")
                    return text

                last_error = SourceFetchError(
                    url, f"HTTP {response.status_code}: {response.reason}", response.status_code
                )
                if response.status_code not in RETRYABLE_STATUS:
                    raise last_error
                logger.warning(
                    f"Attempt {attempt}/{self.max_retries} got {response.status_code} for {url}"
                )

            if attempt < self.max_retries:
                self._sleep(self.backoff * attempt)

        raise last_error

    def _rate_limit(self, url: str):
        """Apply rate limiting per domain."""
        domain = urlparse(url).netloc

        # Held across the sleep so concurrent adapters queue per fetcher
        with self._rate_lock:
            if domain in self.last_request_time:
                elapsed = time.time() - self.last_request_time[domain]
                if elapsed < self.min_interval:
                    self._sleep(self.min_interval - elapsed)

            self.last_request_time[domain] = time.time()

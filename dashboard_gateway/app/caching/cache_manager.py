"""
Gateway cache manager for upstream responses.
"""

from typing import Any, Awaitable, Callable, Optional, Tuple, TYPE_CHECKING

from shared.logging import get_logger
from .ttl_cache import TTLCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..adapters.upstream_client import ProxyResult
    from shared.metrics import MetricsCollector


class CacheManager:
    """Keyed access to the response cache with hit/miss accounting."""

    CACHE_PREFIXES = (
        "stock_symbols",
        "stock_search",
        "stock_news",
        "stock_quote",
        "stock_metric",
    )

    def __init__(self, cache: TTLCache, *, metrics: Optional["MetricsCollector"] = None):
        self.cache = cache
        self.metrics = metrics
        self.logger = get_logger("gateway.cache_manager")

    def _make_key(self, prefix: str, *args) -> str:
        """Generate cache key, e.g. ``stock_quote_AAPL``."""
        return "_".join([prefix] + [str(arg) for arg in args])

    def get(self, prefix: str, *args) -> Optional[Any]:
        """Get a fresh cached value or None."""
        key = self._make_key(prefix, *args)
        value = self.cache.get(key)
        hit = value is not None
        if self.metrics:
            self.metrics.record_cache_access(prefix, hit)
        self.logger.debug("Cache lookup", key=key, hit=hit)
        return value

    def set(self, prefix: str, value: Any, *args) -> None:
        """Cache a value under the prefix/parts key."""
        key = self._make_key(prefix, *args)
        self.cache.set(key, value)
        self.logger.debug("Cached value", key=key, ttl=self.cache.ttl_seconds)

    async def fetch_through(
        self,
        prefix: str,
        *args,
        fetch: Callable[[], Awaitable["ProxyResult"]],
        extract: Optional[Callable[[Any], Any]] = None,
    ) -> Tuple[int, Any, bool]:
        """
        Serve from cache, or fetch upstream and cache a 200 response.

        ``extract`` reshapes a successful upstream body before it is cached
        and returned. Non-200 results are returned untouched and never cached.
        Returns ``(status_code, body, cached)``.
        """
        cached = self.get(prefix, *args)
        if cached is not None:
            return 200, cached, True

        result = await fetch()
        if result.status_code != 200:
            return result.status_code, result.body, False

        body = extract(result.body) if extract else result.body
        self.set(prefix, body, *args)
        return 200, body, False

    def purge_expired(self) -> int:
        """Drop stale responses; returns how many were removed."""
        purged = self.cache.purge_expired()
        if purged:
            self.logger.info("Purged expired cache entries", purged=purged)
        return purged

    def get_stats(self) -> dict:
        return {
            "entries": len(self.cache),
            "ttl_seconds": self.cache.ttl_seconds,
            "cache_types": list(self.CACHE_PREFIXES),
        }

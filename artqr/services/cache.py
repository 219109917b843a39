"""
Artistic QR Cache
Redis cache for finished generation results, keyed by request digest.

Entries are write-once: a key always maps to the first result stored under it.
Redis outages never fail a request; reads degrade to a miss and writes are skipped.
"""

import hashlib
import json
import logging
from typing import Any, Dict, Optional

from redis import Redis
from redis.exceptions import RedisError

from artqr.schemas.artistic import ArtisticRequest

logger = logging.getLogger(__name__)


def generate_cache_key(request: ArtisticRequest) -> str:
    """
    Deterministic digest of (url, style-or-prompt, options).

    Options are normalized to the values the model will actually receive, so
    leaving an option unset and spelling out its default share a key. An
    unset seed stays out of the key.
    """
    data = {
        "url": request.url,
        "styleOrPrompt": request.style_or_prompt,
        "options": request.options.resolved().model_dump(mode="json", by_alias=True, exclude_none=True),
    }
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"))
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


class CacheStore:
    """Key/value store with TTL over Redis."""

    def __init__(self, redis: Redis, prefix: str = "artistic-qr:", ttl: int = 60 * 60 * 24 * 7):
        self.redis = redis
        self.prefix = prefix
        self.ttl = ttl

    def _key(self, cache_key: str) -> str:
        return self.prefix + cache_key

    def get(self, cache_key: str) -> Optional[Dict[str, Any]]:
        """Get a cached result, or None on miss or outage."""
        try:
            cached = self.redis.get(self._key(cache_key))
        except RedisError as e:
            logger.error(f"[Cache] Read failed for {cache_key}, treating as miss: {e}")
            return None

        if cached is None:
            logger.info(f"[Cache] MISS: {cache_key}")
            return None

        try:
            value = json.loads(cached)
        except ValueError as e:
            logger.error(f"[Cache] Corrupt entry {cache_key}: {e}")
            return None

        logger.info(f"[Cache] HIT: {cache_key}")
        return value

    def set(self, cache_key: str, value: Dict[str, Any]) -> bool:
        """
        Store a result if the key is still free.

        Returns:
            True if this call created the entry
        """
        try:
            created = self.redis.set(
                self._key(cache_key),
                json.dumps(value),
                ex=self.ttl,
                nx=True,
            )
        except RedisError as e:
            logger.error(f"[Cache] Write failed for {cache_key}: {e}")
            return False

        if created:
            logger.info(f"[Cache] Stored: {cache_key} (ttl={self.ttl}s)")
        else:
            logger.info(f"[Cache] Entry already present, kept original: {cache_key}")
        return bool(created)

    def stats(self) -> Dict[str, Any]:
        """Number of live entries under the prefix."""
        try:
            total = sum(1 for _ in self.redis.scan_iter(match=self.prefix + "*", count=500))
        except RedisError as e:
            logger.error(f"[Cache] Stats failed: {e}")
            return {"totalCached": 0, "cachePrefix": self.prefix, "error": str(e)}
        return {"totalCached": total, "cachePrefix": self.prefix}

    def clear(self, cache_key: str) -> bool:
        """Drop one entry so the next identical request regenerates."""
        try:
            removed = self.redis.delete(self._key(cache_key))
        except RedisError as e:
            logger.error(f"[Cache] Clear failed for {cache_key}: {e}")
            return False
        logger.info(f"[Cache] Cleared: {cache_key}")
        return bool(removed)

"""
TTL cache with a pluggable backend.

CacheService picks one CacheBackend at construction:

    - RedisBackend when CACHE_REDIS_URL is set and the server answers PING
    - InMemoryBackend otherwise (bounded, soonest-expiry-first eviction)

The cache is an optimization only. Every backend failure is logged and
turned into a miss (get) or a no-op (set/delete); nothing raised by a
backend ever reaches a caller of CacheService.
"""

import abc
import hashlib
import json
import threading
import time
from typing import Any, Callable, NamedTuple, Optional

import redis

from hotel_geosearch.config import CacheSettings, settings
from hotel_geosearch.exceptions import (
    CacheError,
    CacheBackendUnavailableError,
    CacheSerializationError,
)
from hotel_geosearch.logging_config import get_logger

logger = get_logger(__name__)


def _pattern_prefix(pattern: str) -> str:
    """'search:*' -> 'search:'. Everything before the first '*' is a required prefix."""
    return pattern.split("*", 1)[0]


class CacheBackend(abc.ABC):
    """Key/value store with per-entry TTL. Values are already-serialized strings."""

    name: str = ""

    @abc.abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None if absent or expired."""
        ...

    @abc.abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        ...

    @abc.abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        ...

    @abc.abstractmethod
    def delete_by_prefix(self, pattern: str) -> int:
        """Remove keys matching ``'prefix*'``. Returns the number removed."""
        ...

    @abc.abstractmethod
    def clear(self) -> None:
        ...

    def close(self) -> None:
        """Release connections. No-op for backends that hold none."""


# ─── In-process backend ─────────────────────────────────────


class _Entry(NamedTuple):
    value: str
    expires_at: float


class InMemoryBackend(CacheBackend):
    """
    Thread-safe in-process store.

    Expired entries are purged lazily on read. When a write pushes the
    store past ``max_entries``, expired entries are dropped first, then
    the entries closest to expiry until the store is back at capacity.
    The entry being written is never evicted by its own write.
    """

    name = "memory"

    def __init__(self, max_entries: int = 1000, clock: Callable[[], float] = time.monotonic):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        with self._lock:
            self._entries[key] = _Entry(value, self._clock() + ttl_seconds)
            if len(self._entries) > self.max_entries:
                self._evict(keep=key)

    def _evict(self, keep: str) -> None:
        """Bring the store back to capacity. Caller holds the lock."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now >= e.expires_at]
        for k in expired:
            del self._entries[k]

        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            logger.debug("Evicted %d expired cache entries", len(expired))
            return

        candidates = sorted(
            (e.expires_at, k) for k, e in self._entries.items() if k != keep
        )
        for _, k in candidates[:overflow]:
            del self._entries[k]
        logger.debug(
            "Cache over capacity — evicted %d expired and %d soonest-expiring entries",
            len(expired), overflow,
        )

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_by_prefix(self, pattern: str) -> int:
        prefix = _pattern_prefix(pattern)
        wildcard = "*" in pattern
        with self._lock:
            doomed = [
                k for k in self._entries
                if (k.startswith(prefix) if wildcard else k == pattern)
            ]
            for k in doomed:
                del self._entries[k]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


# ─── Redis backend ──────────────────────────────────────────


class RedisBackend(CacheBackend):
    """
    Redis-backed store.

    Every redis-py error is re-raised as CacheBackendUnavailableError so
    CacheService only has one failure type to absorb.
    """

    name = "redis"

    def __init__(self, client: redis.Redis):
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 1.0) -> "RedisBackend":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    def _call(self, operation: str, func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except redis.RedisError as e:
            raise CacheBackendUnavailableError(
                message=f"Redis {operation} failed: {e}",
                details={"operation": operation},
            ) from e

    def ping(self) -> bool:
        return bool(self._call("PING", self._client.ping))

    def get(self, key: str) -> Optional[str]:
        return self._call("GET", self._client.get, key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            # EX must be positive; a non-positive TTL means "already expired"
            self._call("DEL", self._client.delete, key)
            return
        self._call("SET", self._client.set, key, value, ex=int(ttl_seconds))

    def delete(self, key: str) -> bool:
        return self._call("DEL", self._client.delete, key) > 0

    def delete_by_prefix(self, pattern: str) -> int:
        keys = self._call("KEYS", self._client.keys, f"{_pattern_prefix(pattern)}*" if "*" in pattern else pattern)
        if not keys:
            return 0
        return self._call("DEL", self._client.delete, *keys)

    def clear(self) -> None:
        self._call("FLUSHDB", self._client.flushdb)

    def close(self) -> None:
        self._call("CLOSE", self._client.close)


def select_backend(cache_settings: CacheSettings | None = None) -> CacheBackend:
    """
    Choose the backend once: Redis if configured and reachable, memory otherwise.
    """
    cfg = cache_settings or settings.cache
    if cfg.redis_url:
        try:
            backend = RedisBackend.from_url(cfg.redis_url, socket_timeout=cfg.socket_timeout)
            backend.ping()
            logger.info("Cache backend: Redis at %s", cfg.redis_url.split("@")[-1])
            return backend
        except (CacheError, ValueError) as e:
            # ValueError: malformed URL
            logger.warning("Redis unreachable, falling back to in-memory cache: %s", e)
    else:
        logger.info("CACHE_REDIS_URL not set, using in-memory cache")
    return InMemoryBackend(max_entries=cfg.max_entries)


# ─── Service ────────────────────────────────────────────────


class CacheService:
    """
    JSON-serializing, failure-absorbing front for a CacheBackend.

    Usage:
        cache = CacheService()
        key = CacheService.build_key("search:location", region_id=13)
        hit = cache.get(key)
        if hit is None:
            hit = compute()
            cache.set(key, hit, ttl_seconds=300)
    """

    SEARCH_PREFIX = "search:"

    def __init__(self, backend: CacheBackend | None = None, cache_settings: CacheSettings | None = None):
        self._settings = cache_settings or settings.cache
        self.backend = backend if backend is not None else select_backend(self._settings)

    @property
    def backend_name(self) -> str:
        return self.backend.name

    @staticmethod
    def build_key(namespace: str, **params: Any) -> str:
        """
        Build a stable key from a namespace and parameters.

        Parameters are order-independent: build_key("a", x=1, y=2) ==
        build_key("a", y=2, x=1).
        """
        if not params:
            return namespace
        canonical = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
        digest = hashlib.sha1(canonical.encode("utf-8")).hexdigest()[:20]
        return f"{namespace}:{digest}"

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None on miss, expiry or backend failure."""
        try:
            raw = self.backend.get(key)
        except CacheError as e:
            logger.warning("Cache get failed for %s: %s", key, e)
            return None
        if raw is None:
            logger.debug("Cache miss: %s", key)
            return None
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(
                "Cache get failed for %s: %s",
                key, CacheSerializationError(f"Undecodable cache entry: {e}", details={"key": key}),
            )
            return None
        logger.debug("Cache hit: %s", key)
        return value

    def set(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        ttl = ttl_seconds if ttl_seconds is not None else self._settings.default_ttl
        try:
            raw = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("Cache set skipped for %s: value not serializable: %s", key, e)
            return
        try:
            self.backend.set(key, raw, ttl)
        except CacheError as e:
            logger.warning("Cache set failed for %s: %s", key, e)

    def has(self, key: str) -> bool:
        """Check if a valid (non-expired) entry exists."""
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        try:
            return self.backend.delete(key)
        except CacheError as e:
            logger.warning("Cache delete failed for %s: %s", key, e)
            return False

    def delete_by_prefix(self, pattern: str) -> int:
        """Delete keys matching ``'prefix*'``. Returns the number removed (0 on failure)."""
        try:
            count = self.backend.delete_by_prefix(pattern)
        except CacheError as e:
            logger.warning("Cache delete_by_prefix failed for %s: %s", pattern, e)
            return 0
        logger.debug("Deleted %d cache entries matching %s", count, pattern)
        return count

    def invalidate_search(self) -> int:
        """Drop every cached search result, aggregate and suggestion (e.g. after a data refresh)."""
        return self.delete_by_prefix(f"{self.SEARCH_PREFIX}*")

    def clear(self) -> None:
        try:
            self.backend.clear()
            logger.info("Cleared %s cache", self.backend_name)
        except CacheError as e:
            logger.warning("Cache clear failed: %s", e)

    def close(self) -> None:
        """Release backend connections (call on shutdown)."""
        try:
            self.backend.close()
            logger.info("Closed %s cache", self.backend_name)
        except CacheError as e:
            logger.warning("Cache close failed: %s", e)

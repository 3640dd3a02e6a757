"""
SignalDesk - Cache Service
JSON key-value cache backed by Redis, or a bounded in-process store when
REDIS_URL is not configured. Best effort: backend failures are treated as misses.
"""
import json
import time
import fnmatch
import logging
import threading
from collections import OrderedDict
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)


class MemoryBackend:
    """Thread-safe LRU store with per-key TTL"""

    def __init__(self, max_entries: int = 500):
        self.max_entries = max_entries
        self._store: "OrderedDict[str, tuple]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, expires = entry
            if time.time() > expires:
                del self._store[key]
                return None
            self._store.move_to_end(key)
            return value

    def set(self, key: str, value: str, ttl: int):
        with self._lock:
            self._store[key] = (value, time.time() + ttl)
            self._store.move_to_end(key)
            while len(self._store) > self.max_entries:
                self._store.popitem(last=False)

    def delete(self, *keys: str):
        with self._lock:
            for key in keys:
                self._store.pop(key, None)

    def keys(self, pattern: str):
        with self._lock:
            return [k for k in self._store if fnmatch.fnmatchcase(k, pattern)]


class CacheService:
    """get/set/delete/clear_pattern over JSON-serialised values"""

    DEFAULT_TTL = 3600

    def __init__(self, redis_url: str = '', max_entries: int = 500):
        self.redis_url = redis_url
        if redis_url:
            self.backend = redis.Redis.from_url(redis_url, decode_responses=True)
            logger.info("Cache using Redis backend")
        else:
            self.backend = MemoryBackend(max_entries=max_entries)

    @property
    def uses_redis(self) -> bool:
        return bool(self.redis_url)

    def get(self, key: str) -> Any:
        try:
            data = self.backend.get(key)
        except redis.RedisError as e:
            logger.error(f"Cache get failed for {key}: {e}")
            return None
        return json.loads(data) if data else None

    def set(self, key: str, value: Any, ttl: int = DEFAULT_TTL):
        payload = json.dumps(value)
        try:
            if self.uses_redis:
                self.backend.set(key, payload, ex=ttl)
            else:
                self.backend.set(key, payload, ttl)
        except redis.RedisError as e:
            logger.error(f"Cache set failed for {key}: {e}")

    def delete(self, key: str):
        try:
            self.backend.delete(key)
        except redis.RedisError as e:
            logger.error(f"Cache delete failed for {key}: {e}")

    def clear_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern; returns number removed"""
        try:
            keys = list(self.backend.keys(pattern))
            if keys:
                self.backend.delete(*keys)
            return len(keys)
        except redis.RedisError as e:
            logger.error(f"Cache clear failed for {pattern}: {e}")
            return 0


CACHE_EXTENSION_KEY = 'signaldesk.cache'


def init_cache(app) -> CacheService:
    """Attach a cache built from app config"""
    cache = CacheService(
        redis_url=app.config.get('REDIS_URL', ''),
        max_entries=app.config.get('CACHE_MAX_ENTRIES', 500)
    )
    app.extensions[CACHE_EXTENSION_KEY] = cache
    return cache


def get_cache_service() -> CacheService:
    """Cache for the current app"""
    from flask import current_app
    return current_app.extensions[CACHE_EXTENSION_KEY]

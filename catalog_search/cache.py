"""Caching helpers with Redis primary and in-memory fallback."""
from __future__ import annotations

import json
import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Protocol

import redis

from .config import settings

logger = logging.getLogger(__name__)


class LookupStatus(str, Enum):
    HIT = "hit"
    MISS = "miss"
    ERROR = "error"


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of a cache read.

    ``ERROR`` is kept apart from ``MISS`` so callers can log it, but both mean
    "no usable value".
    """

    status: LookupStatus
    value: Optional[Dict[str, Any]] = None

    @property
    def hit(self) -> bool:
        return self.status is LookupStatus.HIT

    @classmethod
    def found(cls, value: Dict[str, Any]) -> "CacheLookup":
        return cls(LookupStatus.HIT, value)

    @classmethod
    def missing(cls) -> "CacheLookup":
        return cls(LookupStatus.MISS)

    @classmethod
    def failed(cls) -> "CacheLookup":
        return cls(LookupStatus.ERROR)


class CacheBackend(Protocol):
    def lookup(self, key: str) -> CacheLookup: ...

    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None: ...


@dataclass
class RedisCache:
    client: redis.Redis
    default_ttl: int = settings.cache_ttl_seconds

    def lookup(self, key: str) -> CacheLookup:
        try:
            data = self.client.get(key)
        except redis.RedisError as exc:
            logger.warning("Redis get failed for %s: %s", key, exc)
            return CacheLookup.failed()
        if not data:
            return CacheLookup.missing()
        try:
            payload = json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Discarding undecodable cache entry %s", key)
            return CacheLookup.failed()
        if not isinstance(payload, dict):
            logger.warning("Discarding non-object cache entry %s", key)
            return CacheLookup.failed()
        return CacheLookup.found(payload)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self.lookup(key).value

    def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        try:
            self.client.setex(key, ttl, json.dumps(value))
        except redis.RedisError as exc:
            logger.warning("Redis set failed for %s: %s", key, exc)
            return
        logger.debug("cache_store key=%s ttl=%s", key, ttl)


class InMemoryCache:
    def __init__(self, default_ttl: int = settings.cache_ttl_seconds) -> None:
        self._store: Dict[str, tuple[float, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        self.default_ttl = default_ttl

    def lookup(self, key: str) -> CacheLookup:
        with self._lock:
            value = self._store.get(key)
            if not value:
                return CacheLookup.missing()
            expires_at, payload = value
            if expires_at < time.time():
                self._store.pop(key, None)
                return CacheLookup.missing()
            return CacheLookup.found(payload)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self.lookup(key).value

    def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> None:
        ttl = ttl if ttl is not None else self.default_ttl
        with self._lock:
            self._store[key] = (time.time() + ttl, value)


_cache: CacheBackend | None = None


def get_cache() -> CacheBackend:
    global _cache
    if _cache is not None:
        return _cache
    try:
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            password=settings.redis_password or None,
            decode_responses=False,
        )
        client.ping()
        logger.info("Using Redis cache at %s:%s", settings.redis_host, settings.redis_port)
        _cache = RedisCache(client)
    except redis.RedisError:
        logger.warning("Redis not available, using in-memory cache")
        _cache = InMemoryCache()
    return _cache

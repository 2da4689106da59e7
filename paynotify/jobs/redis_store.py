"""Redis-backed expiring key-value store.

Features:
- Native TTL per entry (``SET key value EX ttl``), so expiry needs no sweeping.
- Atomic single-use reads through ``GETDEL``.
- Persistence across application restarts.
- Fallback to the in-memory store if Redis is unavailable.

Keys are namespaced: ``<prefix>:<namespace>:<key>``; values are JSON.

Redis health check is performed before operations with fallback to the
in-memory store; entries written to the fallback are not migrated back.
"""
from __future__ import annotations

import json
import threading
from typing import Any, Optional

import redis

from paynotify.config import EXPIRATION_SETTINGS, STORE_SETTINGS
from paynotify.jobs.expiring_store import ExpiringStore, InMemoryExpiringStore
from paynotify.utils import get_logger

logger = get_logger(__name__)


class RedisExpiringStore:
    def __init__(self, namespace: str, *, default_ttl: Optional[float] = None) -> None:
        self._redis_url: str = str(STORE_SETTINGS.get("redis_url", "redis://localhost:6379/0"))
        prefix = str(STORE_SETTINGS.get("redis_key_prefix", "paynotify"))
        self._key_prefix = f"{prefix}:{namespace}:"
        self._health_check_timeout = float(STORE_SETTINGS.get("redis_health_check_timeout", 2.0))  # type: ignore[arg-type]
        self._default_ttl = float(
            default_ttl if default_ttl is not None else EXPIRATION_SETTINGS["message_expiration_seconds"]
        )

        self._fallback_store = InMemoryExpiringStore(default_ttl=self._default_ttl)

        self._redis_client: Optional[redis.Redis] = None
        self._lock = threading.RLock()
        self._is_redis_active = False
        self._init_redis_client()

    def _init_redis_client(self) -> None:
        """Initialize Redis client and test connection."""
        try:
            self._redis_client = redis.from_url(
                self._redis_url, socket_connect_timeout=self._health_check_timeout
            )
            self._redis_client.ping()
            self._is_redis_active = True
            logger.info("Connected to Redis successfully", url=self._redis_url, prefix=self._key_prefix)
        except (redis.RedisError, ConnectionError) as e:
            self._is_redis_active = False
            self._redis_client = None
            logger.warning("Failed to connect to Redis, using in-memory fallback store", error=str(e))

    def health_check(self) -> bool:
        """Check if Redis is available and update status accordingly."""
        with self._lock:
            if self._redis_client is None:
                self._init_redis_client()
                return self._is_redis_active

        try:
            self._redis_client.ping()
            if not self._is_redis_active:
                logger.info("Redis connection restored", prefix=self._key_prefix)
            self._is_redis_active = True
            return True
        except (redis.RedisError, ConnectionError, AttributeError) as e:
            if self._is_redis_active:
                logger.warning("Redis connection lost, using in-memory fallback store", error=str(e))
            self._is_redis_active = False
            return False

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{key}"

    @staticmethod
    def _decode(raw: Any) -> Any:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)

    def _use_fallback(self) -> bool:
        return not self.health_check() or self._redis_client is None

    # ----------------------------- public API ----------------------------- #
    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self._default_ttl if ttl_seconds is None else float(ttl_seconds)
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")
        if self._use_fallback():
            self._fallback_store.set(key, value, ttl)
            return
        try:
            self._redis_client.set(self._key(key), json.dumps(value), ex=max(1, int(round(ttl))))
        except redis.RedisError as e:
            logger.error("Redis error during set", key=key, error=str(e))
            self._is_redis_active = False
            self._fallback_store.set(key, value, ttl)

    def get(self, key: str) -> Any:
        if self._use_fallback():
            return self._fallback_store.get(key)
        try:
            return self._decode(self._redis_client.get(self._key(key)))
        except redis.RedisError as e:
            logger.error("Redis error during get", key=key, error=str(e))
            self._is_redis_active = False
            return self._fallback_store.get(key)

    def pop(self, key: str) -> Any:
        if self._use_fallback():
            return self._fallback_store.pop(key)
        try:
            return self._decode(self._redis_client.getdel(self._key(key)))
        except redis.RedisError as e:
            logger.error("Redis error during pop", key=key, error=str(e))
            self._is_redis_active = False
            return self._fallback_store.pop(key)

    def delete(self, key: str) -> None:
        self._fallback_store.delete(key)
        if self._use_fallback():
            return
        try:
            self._redis_client.delete(self._key(key))
        except redis.RedisError as e:
            logger.error("Redis error during delete", key=key, error=str(e))
            self._is_redis_active = False

    def contains(self, key: str) -> bool:
        if self._use_fallback():
            return self._fallback_store.contains(key)
        try:
            return bool(self._redis_client.exists(self._key(key)))
        except redis.RedisError as e:
            logger.error("Redis error during exists", key=key, error=str(e))
            self._is_redis_active = False
            return self._fallback_store.contains(key)

    def purge_expired(self) -> int:
        # Redis expires keys on its own; only the fallback needs sweeping.
        return self._fallback_store.purge_expired()

    def clear(self) -> None:
        """Remove every key in this namespace (for testing)."""
        with self._lock:
            self._fallback_store.clear()
            if self._use_fallback():
                return
            try:
                for raw_key in self._redis_client.scan_iter(match=f"{self._key_prefix}*"):
                    self._redis_client.delete(raw_key)
                logger.info("Redis namespace cleared", prefix=self._key_prefix)
            except redis.RedisError as e:
                logger.error("Error clearing Redis namespace", error=str(e))
                self._is_redis_active = False

    def snapshot(self) -> dict:
        with self._lock:
            if self._use_fallback():
                snapshot = self._fallback_store.snapshot()
                snapshot["redis_active"] = False
                return snapshot
            return {
                "redis_active": True,
                "redis_url": self._redis_url,
                "prefix": self._key_prefix,
                "default_ttl": self._default_ttl,
            }


def create_expiring_store(namespace: str, *, default_ttl: Optional[float] = None) -> ExpiringStore:
    """Create the configured expiring store for ``namespace``."""
    use_redis = bool(STORE_SETTINGS.get("use_redis", False))
    if use_redis:
        try:
            store = RedisExpiringStore(namespace, default_ttl=default_ttl)
            if store.health_check():
                logger.info("Using Redis-backed expiring store", namespace=namespace)
                return store
            logger.warning("REDIS CONNECTION FAILED: using in-memory expiring store", namespace=namespace)
        except Exception as e:
            logger.warning("Error initializing Redis store, falling back to in-memory store", error=str(e))

    logger.info("Using in-memory expiring store", namespace=namespace)
    return InMemoryExpiringStore(default_ttl=default_ttl)


__all__ = ["RedisExpiringStore", "create_expiring_store"]

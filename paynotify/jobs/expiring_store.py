"""In-memory expiring key-value store (single-process).

Backs the acknowledgment tracker and the processed-artifact set.

Features:
- Per-entry time-to-live (default from EXPIRATION_SETTINGS).
- Atomic get-and-delete (``pop``) for single-use entries.
- Thread-safe with a re-entrant lock.

Expiration heap strategy:
 entries: key -> (expires_at_ts, value)
 expiry_heap: (expires_at_ts, seq, key)

On set:
  - Store the entry and push its expiry onto the heap. Overwriting a key leaves
    the old heap item behind; it is ignored when popped because its timestamp
    no longer matches the live entry.
On access:
  - Pop every heap item whose expires_at <= now and evict the matching live
    entries, then serve the request. No timers per entry.
"""
from __future__ import annotations

import heapq
import threading
import time
from typing import Any, Callable, Optional, Protocol

from paynotify.config import EXPIRATION_SETTINGS
from paynotify.utils import get_logger

logger = get_logger(__name__)


class ExpiringStore(Protocol):
    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None: ...
    def get(self, key: str) -> Any: ...
    def pop(self, key: str) -> Any: ...
    def delete(self, key: str) -> None: ...
    def contains(self, key: str) -> bool: ...
    def purge_expired(self) -> int: ...
    def clear(self) -> None: ...


class InMemoryExpiringStore:
    def __init__(self, *, default_ttl: Optional[float] = None, clock: Callable[[], float] = time.time) -> None:
        self._default_ttl = float(
            default_ttl if default_ttl is not None else EXPIRATION_SETTINGS["message_expiration_seconds"]
        )
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, tuple[float, Any]] = {}
        self._expiry_heap: list[tuple[float, int, str]] = []
        self._seq_counter = 0

    # ----------------------------- internal helpers ----------------------------- #
    def _next_seq(self) -> int:
        self._seq_counter += 1
        return self._seq_counter

    def _evict_expired(self) -> int:
        now_ts = self._clock()
        evicted = 0
        while self._expiry_heap and self._expiry_heap[0][0] <= now_ts:
            expires_at, _, key = heapq.heappop(self._expiry_heap)
            entry = self._entries.get(key)
            # Stale heap item for an overwritten or deleted key
            if entry is None or entry[0] != expires_at:
                continue
            del self._entries[key]
            evicted += 1
        if evicted:
            logger.debug("Evicted expired entries", count=evicted)
        return evicted

    # ----------------------------- public API ----------------------------- #
    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self._default_ttl if ttl_seconds is None else float(ttl_seconds)
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")
        with self._lock:
            self._evict_expired()
            expires_at = self._clock() + ttl
            self._entries[key] = (expires_at, value)
            heapq.heappush(self._expiry_heap, (expires_at, self._next_seq(), key))

    def get(self, key: str) -> Any:
        with self._lock:
            self._evict_expired()
            entry = self._entries.get(key)
            return entry[1] if entry is not None else None

    def pop(self, key: str) -> Any:
        """Remove and return the live value; None if absent or expired."""
        with self._lock:
            self._evict_expired()
            entry = self._entries.pop(key, None)
            return entry[1] if entry is not None else None

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def contains(self, key: str) -> bool:
        with self._lock:
            self._evict_expired()
            return key in self._entries

    def purge_expired(self) -> int:
        with self._lock:
            return self._evict_expired()

    def clear(self) -> None:
        """Drop every entry. Intended for test isolation."""
        with self._lock:
            self._entries.clear()
            self._expiry_heap.clear()

    # ----------------------------- inspection ----------------------------- #
    def __len__(self) -> int:
        with self._lock:
            self._evict_expired()
            return len(self._entries)

    def snapshot(self) -> dict:
        with self._lock:
            self._evict_expired()
            return {
                "entries": len(self._entries),
                "heap": len(self._expiry_heap),
                "default_ttl": self._default_ttl,
                "redis_active": False,
            }


__all__ = ["ExpiringStore", "InMemoryExpiringStore"]

from __future__ import annotations

"""
Read-through cache provider used by the enabled-set registry.

The registry only needs two operations: get-or-compute with a TTL, and an
explicit forget. Any shared backend can be plugged in by implementing
CacheProvider; TTLCache is the in-process default.
"""

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol


class CacheProvider(Protocol):
    def remember(self, key: str, ttl_seconds: float, compute: Callable[[], Any]) -> Any: ...

    def forget(self, key: str) -> None: ...


@dataclass
class _Entry:
    value: Any
    expires_at: float


class TTLCache:
    """
    Thread-safe in-memory cache with per-key expiry.

    A ttl of 0 (or less) means the value is computed on every call and never stored.
    """

    def __init__(self, *, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._entries: Dict[str, _Entry] = {}

    def remember(self, key: str, ttl_seconds: float, compute: Callable[[], Any]) -> Any:
        now = self._clock()
        with self._lock:
            ent = self._entries.get(key)
            if ent is not None and ent.expires_at > now:
                return ent.value
        # compute outside the lock; the registry serializes its own writers
        value = compute()
        if float(ttl_seconds) > 0:
            with self._lock:
                self._entries[key] = _Entry(value=value, expires_at=now + float(ttl_seconds))
        return value

    def get(self, key: str) -> Any:
        with self._lock:
            ent = self._entries.get(key)
            if ent is None or ent.expires_at <= self._clock():
                return None
            return ent.value

    def forget(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

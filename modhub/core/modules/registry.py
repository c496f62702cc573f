from __future__ import annotations

"""
Enabled-set registry.

The enabled set is a JSON array of module names at
<modules_root>/<enabled_modules_file>. Disk is the source of truth: the
optional cache only serves reads, every mutation re-reads the file, writes it
back atomically, and only then updates memory and evicts the cache key.

Writers are serialized through a single lock (at most one writer at a time
per process). Separate processes sharing the same file are not coordinated.
"""

import logging
import os
import threading
from typing import Any, List, Optional

from modhub.core.cache import CacheProvider
from modhub.core.config.io import atomic_write_json, read_json_file
from modhub.core.errors import PersistenceError
from modhub.core.events import EventHub
from modhub.core.modules.descriptors import DescriptorStore


CACHE_KEY = "modhub.enabled_modules"
DEFAULT_CACHE_TTL = 3600


class EnabledRegistry:
    def __init__(
        self,
        *,
        store: DescriptorStore,
        enabled_file: str,
        cache: Optional[CacheProvider] = None,
        cache_ttl: float = DEFAULT_CACHE_TTL,
        lock: Optional[threading.RLock] = None,
        events: Optional[EventHub] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.enabled_file = str(enabled_file)
        self.cache = cache
        self.cache_ttl = float(cache_ttl)
        self.events = events
        self.logger = logger or logging.getLogger("modhub.modules.registry")
        self._lock = lock or threading.RLock()
        self._enabled: List[str] = []
        self.load()

    # ---- helpers ----
    def _read_file(self) -> List[str]:
        """
        Read the persisted array; create it empty on first access.
        Duplicates collapse to their first occurrence; non-string entries are logged and ignored.
        """
        if not os.path.exists(self.enabled_file):
            self._write_file([])
            return []
        rr = read_json_file(self.enabled_file, expect=list)
        if not rr.ok:
            self.logger.warning("Enabled modules file unreadable (%s); treating as empty: %s", rr.error, self.enabled_file)
            return []
        out: List[str] = []
        for item in rr.data:
            if not isinstance(item, str) or not item.strip():
                self.logger.warning("Ignoring invalid enabled-modules entry: %r", item)
                continue
            if item not in out:
                out.append(item)
        return out

    def _write_file(self, names: List[str]) -> None:
        try:
            atomic_write_json(self.enabled_file, list(names), indent=4)
        except OSError as e:
            raise PersistenceError(path=self.enabled_file, reason=str(e)[:200]) from e

    def _read_through_cache(self) -> List[str]:
        if self.cache is None:
            return self._read_file()
        return list(self.cache.remember(CACHE_KEY, self.cache_ttl, self._read_file))

    def _forget_cache(self) -> None:
        if self.cache is not None:
            self.cache.forget(CACHE_KEY)

    def _commit(self, names: List[str]) -> None:
        # memory follows disk: nothing changes in memory unless the write succeeded
        self._write_file(names)
        self._enabled = list(names)
        self._forget_cache()

    def _emit(self, event_type: str, module_name: str = "", **payload: Any) -> None:
        if self.events is not None:
            self.events.emit(event_type, module_name, **payload)

    # ---- public API ----
    def load(self) -> List[str]:
        """(Re)load the enabled set, then drop entries whose module no longer exists."""
        with self._lock:
            self._enabled = self._read_through_cache()
            self._cleanup_stale()
            return list(self._enabled)

    def _cleanup_stale(self) -> None:
        kept = [n for n in self._enabled if self.store.exists(n)]
        if len(kept) == len(self._enabled):
            return
        dropped = [n for n in self._enabled if n not in kept]
        self._commit(kept)
        self.logger.info("Pruned stale enabled modules: %s", ", ".join(dropped))
        self._emit("module.stale_pruned", dropped=dropped)

    def get_enabled(self) -> List[str]:
        with self._lock:
            return list(self._enabled)

    def is_enabled(self, name: str) -> bool:
        with self._lock:
            return name in self._enabled

    def enable(self, name: str) -> bool:
        """False if the module does not exist; True once it is (or already was) enabled."""
        with self._lock:
            if not self.store.exists(name):
                return False
            current = self._read_file()
            if name in current:
                if current != self._enabled:
                    self._enabled = current
                    self._forget_cache()
                return True
            self._commit(current + [name])
        self.logger.info("Module enabled: %s", name)
        self._emit("module.enabled", name)
        return True

    def disable(self, name: str) -> bool:
        """Always True: a module that was never enabled is already in the desired state."""
        with self._lock:
            current = self._read_file()
            if name not in current:
                if current != self._enabled:
                    self._enabled = current
                    self._forget_cache()
                return True
            self._commit([n for n in current if n != name])
        self.logger.info("Module disabled: %s", name)
        self._emit("module.disabled", name)
        return True

from __future__ import annotations

"""
ModuleManager: the single public API for module lifecycle operations.

It wires one descriptor store, one enabled-set registry, one resolver and one
installer around a shared writer lock, and is the error boundary: typed
errors raised below are turned into OperationResult values here.

Construct one per process (or request scope) and pass it to collaborators.
"""

import logging
import os
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from modhub.core.cache import CacheProvider, TTLCache
from modhub.core.config.manager import ConfigManager
from modhub.core.config.models import ModularConfig
from modhub.core.config.paths import ConfigFsPaths
from modhub.core.errors import ModhubError
from modhub.core.events import EventHub
from modhub.core.modules.descriptors import DescriptorStore
from modhub.core.modules.installer import ArchiveInstaller
from modhub.core.modules.models import ModuleDescriptor, OperationResult
from modhub.core.modules.registry import EnabledRegistry
from modhub.core.modules.resolver import DependencyResolver


ProviderRegistrar = Callable[[str, str], None]


class ModuleManager:
    def __init__(
        self,
        *,
        config: Optional[ModularConfig] = None,
        root_dir: str = ".",
        cache: Optional[CacheProvider] = None,
        events: Optional[EventHub] = None,
        logger: Optional[logging.Logger] = None,
        temp_root: Optional[str] = None,
    ):
        self.config = config or ModularConfig()
        fs = ConfigFsPaths(os.path.abspath(root_dir))
        self.modules_root = fs.resolve(self.config.modules_path)
        self.export_dir = fs.resolve(self.config.export_dir)
        self.logger = logger or logging.getLogger("modhub.modules")
        self.events = events or EventHub()
        self._lock = threading.RLock()

        if self.config.cache_enabled:
            cache = cache or TTLCache()
        else:
            cache = None

        self.store = DescriptorStore(modules_root=self.modules_root, manifest_filename=self.config.module_config_file)
        self.registry = EnabledRegistry(
            store=self.store,
            enabled_file=os.path.join(self.modules_root, self.config.enabled_modules_file),
            cache=cache,
            cache_ttl=self.config.cache_ttl,
            lock=self._lock,
            events=self.events,
        )
        self.resolver = DependencyResolver(store=self.store, registry=self.registry)
        self.installer = ArchiveInstaller(
            store=self.store,
            registry=self.registry,
            export_dir=self.export_dir,
            temp_root=temp_root,
            lock=self._lock,
            events=self.events,
        )

    @classmethod
    def from_config_manager(cls, cm: ConfigManager, **kwargs: Any) -> "ModuleManager":
        return cls(config=cm.get(), root_dir=cm.fs.root, **kwargs)

    # ---- helpers ----
    def _failed(self, action: str, name: str, e: ModhubError) -> OperationResult:
        self.logger.warning("Module %s failed for %s: [%s] %s", action, name, e.code, e.user_message)
        return OperationResult.failure(e.code, e.user_message)

    @staticmethod
    def _not_found(name: str) -> OperationResult:
        return OperationResult.failure("not_found", f"Module '{name}' does not exist")

    # ---- queries ----
    def list_all(self) -> Dict[str, Dict[str, Any]]:
        return self.store.list_all(enabled=self.registry.get_enabled())

    def module_exists(self, name: str) -> bool:
        return self.store.exists(name)

    def get_module_config(self, name: str) -> Optional[ModuleDescriptor]:
        return self.store.get_config(name)

    def get_module(self, name: str) -> OperationResult:
        if not self.store.exists(name):
            return self._not_found(name)
        desc = self.store.get_config(name)
        if desc is None:
            return OperationResult.failure("invalid_manifest", f"Module '{name}' has an unreadable manifest")
        data = desc.to_listing(enabled=self.registry.is_enabled(name), path=os.path.abspath(self.store.module_dir(name)))
        return OperationResult.success("Module details retrieved successfully", data)

    def is_enabled(self, name: str) -> bool:
        return self.registry.is_enabled(name)

    def get_enabled(self) -> List[str]:
        return self.registry.get_enabled()

    def check_dependencies(self, name: str) -> List[str]:
        return self.resolver.check_dependencies(name)

    def detect_circular_dependencies(self, name: str) -> Optional[List[str]]:
        return self.resolver.detect_circular_dependencies(name)

    def get_dependent_modules(self, name: str) -> List[str]:
        return self.resolver.get_dependent_modules(name)

    # ---- lifecycle ----
    def enable(self, name: str, *, require_dependencies: bool = False) -> OperationResult:
        """
        Unmet dependencies are reported in data["unmet_dependencies"]; they only
        block the call when require_dependencies=True.
        """
        if not self.store.exists(name):
            return self._not_found(name)
        if self.registry.is_enabled(name):
            return OperationResult.success(f"Module '{name}' is already enabled", {"unmet_dependencies": []})
        missing = self.resolver.check_dependencies(name)
        if missing and require_dependencies:
            return OperationResult.failure(
                "dependencies_unsatisfied",
                f"Module '{name}' has unmet dependencies: {', '.join(missing)}",
                {"unmet_dependencies": missing},
            )
        try:
            if not self.registry.enable(name):
                return self._not_found(name)
        except ModhubError as e:
            return self._failed("enable", name, e)
        return OperationResult.success(f"Module '{name}' enabled successfully", {"unmet_dependencies": missing})

    def disable(self, name: str) -> OperationResult:
        """Enabled dependents are reported in data["dependents"]; they do not block the call."""
        was_enabled = self.registry.is_enabled(name)
        if not was_enabled and not self.store.exists(name):
            return self._not_found(name)
        dependents = self.resolver.get_dependent_modules(name)
        try:
            self.registry.disable(name)
        except ModhubError as e:
            return self._failed("disable", name, e)
        if not was_enabled:
            return OperationResult.success(f"Module '{name}' is already disabled", {"dependents": dependents})
        return OperationResult.success(f"Module '{name}' disabled successfully", {"dependents": dependents})

    def install(self, archive_path: str, name: Optional[str] = None) -> OperationResult:
        try:
            outcome = self.installer.install(archive_path, name)
        except ModhubError as e:
            return self._failed("install", str(name or archive_path), e)
        data = outcome.descriptor.to_listing(enabled=self.registry.is_enabled(outcome.name), path=outcome.module_dir)
        return OperationResult.success(outcome.message, data)

    def uninstall(self, name: str) -> OperationResult:
        try:
            path = self.installer.uninstall(name)
        except ModhubError as e:
            return self._failed("uninstall", name, e)
        return OperationResult.success(f"Module '{name}' uninstalled successfully", {"path": path})

    def export(self, name: str) -> OperationResult:
        try:
            path = self.installer.export(name)
        except ModhubError as e:
            return self._failed("export", name, e)
        return OperationResult.success(f"Module '{name}' exported", {"path": path})

    def create_archive(self, name: str) -> Optional[str]:
        """Archive path for `name`, or None if the module is missing or the archive could not be written."""
        res = self.export(name)
        return res.data["path"] if res.ok else None

    def reload(self) -> List[str]:
        return self.registry.load()

    def boot_modules(self, register: ProviderRegistrar) -> List[Tuple[str, str]]:
        """
        Hand every provider hook of every enabled module (enabled-set order,
        then declaration order) to `register`. A failing hook is logged and skipped.
        """
        booted: List[Tuple[str, str]] = []
        for name in self.registry.get_enabled():
            desc = self.store.get_config(name)
            if desc is None:
                continue
            for provider in desc.providers:
                try:
                    register(name, provider)
                except Exception as e:  # noqa: BLE001
                    self.logger.warning("Provider %s of module %s failed to register: %s", provider, name, e)
                    continue
                booted.append((name, provider))
        return booted

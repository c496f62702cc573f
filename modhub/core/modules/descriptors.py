from __future__ import annotations

"""
Module descriptor store.

Reads <modules_root>/<name>/<manifest> files. A module whose manifest is
missing or unreadable does not exist; a module whose manifest is present but
corrupt exists on disk but has no descriptor (get_config returns None), and is
left out of listings.
"""

import json
import logging
import os
import threading
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from modhub.core.modules.models import ModuleDescriptor, is_safe_module_name


class DescriptorStore:
    def __init__(self, *, modules_root: str, manifest_filename: str = "module.json", logger: Optional[logging.Logger] = None):
        self.modules_root = str(modules_root)
        self.manifest_filename = str(manifest_filename)
        self.logger = logger or logging.getLogger("modhub.modules.descriptors")
        self._lock = threading.Lock()
        self._memo: Dict[str, ModuleDescriptor] = {}

    def module_dir(self, name: str) -> str:
        return os.path.join(self.modules_root, name)

    def manifest_path(self, name: str) -> str:
        return os.path.join(self.modules_root, name, self.manifest_filename)

    def exists(self, name: str) -> bool:
        if not is_safe_module_name(name):
            return False
        path = self.manifest_path(name)
        return os.path.isfile(path) and os.access(path, os.R_OK)

    def get_config(self, name: str) -> Optional[ModuleDescriptor]:
        """
        Parsed descriptor, memoized for the lifetime of this store.
        Failed parses are not memoized, so a repaired manifest is picked up.
        """
        with self._lock:
            hit = self._memo.get(name)
        if hit is not None:
            return hit
        if not self.exists(name):
            return None
        desc = parse_manifest_file(self.manifest_path(name), logger=self.logger)
        if desc is None:
            return None
        with self._lock:
            self._memo.setdefault(name, desc)
            return self._memo[name]

    def forget(self, name: str) -> None:
        """Drop a memoized descriptor (used when the installer removes a module)."""
        with self._lock:
            self._memo.pop(name, None)

    def list_all(self, *, enabled: Iterable[str] = ()) -> Dict[str, Dict[str, Any]]:
        """
        name -> descriptor fields + live "enabled" flag + absolute "path".
        Directories without a parseable manifest are skipped silently.
        """
        out: Dict[str, Dict[str, Any]] = {}
        if not os.path.isdir(self.modules_root):
            return out
        enabled_set = set(enabled)
        for name in sorted(os.listdir(self.modules_root)):
            mod_dir = self.module_dir(name)
            if not os.path.isdir(mod_dir):
                continue
            desc = self.get_config(name)
            if desc is None:
                continue
            out[name] = desc.to_listing(enabled=name in enabled_set, path=os.path.abspath(mod_dir))
        return out


def read_manifest_dict(path: str) -> Optional[Dict[str, Any]]:
    """Raw manifest object, or None if unreadable / not a JSON object."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None
    return raw if isinstance(raw, dict) else None


def validate_manifest_dict(raw: Dict[str, Any]) -> Optional[ModuleDescriptor]:
    try:
        return ModuleDescriptor.model_validate(raw)
    except ValidationError:
        return None


def parse_manifest_file(path: str, *, logger: Optional[logging.Logger] = None) -> Optional[ModuleDescriptor]:
    raw = read_manifest_dict(path)
    if raw is None:
        if logger is not None:
            logger.warning("Unreadable module manifest: %s", path)
        return None
    desc = validate_manifest_dict(raw)
    if desc is None and logger is not None:
        logger.warning("Invalid module manifest: %s", path)
    return desc

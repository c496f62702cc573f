from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from pydantic import ValidationError

from modhub.core.config.io import (
    atomic_write_json,
    backup_file,
    ensure_dirs,
    read_json_file,
    recover_from_corrupt,
    snapshot_last_known_good,
)
from modhub.core.config.models import ModularConfig, default_modular_config_dict
from modhub.core.config.paths import ConfigFsPaths
from modhub.core.errors import ConfigError


class ConfigManager:
    def __init__(
        self,
        *,
        fs: Optional[ConfigFsPaths] = None,
        logger: Optional[logging.Logger] = None,
        read_only: bool = False,
        max_backups: int = 10,
    ):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger or logging.getLogger("modhub.config")
        self.read_only = read_only
        self.max_backups = int(max_backups)
        self._cfg: Optional[ModularConfig] = None

    # ---------- public API ----------
    def load_all(self) -> ModularConfig:
        if not self.read_only:
            ensure_dirs(self.fs.config_dir, self.fs.backups_dir, self.fs.last_known_good_dir)

        raw = self._load_raw()
        cfg = self._validate(raw)
        self._cfg = cfg

        if not self.read_only:
            snapshot_last_known_good(self.fs.modular, self.fs.last_known_good_dir)
        return cfg

    def get(self) -> ModularConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    def save(self, data: Dict[str, Any]) -> ModularConfig:
        """
        Validate, back up the current file, then write atomically.
        Invalid data is rejected before anything touches disk.
        """
        if self.read_only:
            raise ConfigError("Config manager is read-only.")
        if not isinstance(data, dict):
            raise ConfigError("Config data must be an object.")
        cfg = self._validate(data)
        backup_file(self.fs.modular, self.fs.backups_dir, reason="prewrite", max_backups=self.max_backups)
        try:
            atomic_write_json(self.fs.modular, cfg.model_dump(), sort_keys=True)
        except OSError as e:
            raise ConfigError("Could not write config.", path=self.fs.modular, reason=str(e)[:200]) from e
        self._cfg = cfg
        snapshot_last_known_good(self.fs.modular, self.fs.last_known_good_dir)
        return cfg

    def resolve_path(self, path: str) -> str:
        return self.fs.resolve(path)

    def modules_path(self) -> str:
        return self.resolve_path(self.get().modules_path)

    def export_dir(self) -> str:
        return self.resolve_path(self.get().export_dir)

    # ---------- internals ----------
    def _load_raw(self) -> Dict[str, Any]:
        path = self.fs.modular
        rr = read_json_file(path)
        if rr.ok:
            return rr.data
        if rr.error == "missing":
            data = default_modular_config_dict()
            if not self.read_only:
                atomic_write_json(path, data, sort_keys=True)
                self.logger.info("Created default config: %s", path)
            return data
        if rr.error and (rr.error.startswith("corrupt_json") or rr.error == "wrong_type"):
            if self.read_only:
                self.logger.warning("Config corrupt (read-only, using defaults): %s", path)
                return default_modular_config_dict()
            data, recovered = recover_from_corrupt(path, self.fs.backups_dir, self.fs.last_known_good_dir)
            if recovered:
                self.logger.warning("Config corrupt; restored last known good: %s", path)
                return data
            data = default_modular_config_dict()
            atomic_write_json(path, data, sort_keys=True)
            self.logger.warning("Config corrupt; reset to defaults: %s", path)
            return data
        raise ConfigError("Could not read config.", path=path, reason=str(rr.error)[:200])

    @staticmethod
    def _validate(raw: Dict[str, Any]) -> ModularConfig:
        try:
            return ModularConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid modular config: {str(e)[:300]}") from e


def get_config(*, root: str = ".", logger: Optional[logging.Logger] = None, read_only: bool = False) -> ConfigManager:
    cm = ConfigManager(fs=ConfigFsPaths(os.path.abspath(root)), logger=logger, read_only=read_only)
    cm.load_all()
    return cm

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ConfigFsPaths:
    root: str = "."

    @property
    def config_dir(self) -> str:
        return os.path.join(self.root, "config")

    @property
    def backups_dir(self) -> str:
        return os.path.join(self.config_dir, "backups")

    @property
    def last_known_good_dir(self) -> str:
        return os.path.join(self.backups_dir, "last_known_good")

    # Files
    @property
    def modular(self) -> str:
        return os.path.join(self.config_dir, "modular.json")

    def resolve(self, path: str) -> str:
        """Absolute path for a config value; relative values are anchored at root."""
        p = os.path.expanduser(str(path))
        if not os.path.isabs(p):
            p = os.path.join(self.root, p)
        return os.path.abspath(p)

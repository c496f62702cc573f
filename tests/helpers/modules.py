from __future__ import annotations

import json
import os
import zipfile
from typing import Any, Dict, List, Optional, Union

from modhub.core.config.models import ModularConfig
from modhub.core.events import ModuleEvent
from modhub.core.modules.manager import ModuleManager


class EventCapture:
    def __init__(self) -> None:
        self.events: List[ModuleEvent] = []

    def __call__(self, ev: ModuleEvent) -> None:
        self.events.append(ev)

    def types(self) -> List[str]:
        return [e.event_type for e in self.events]


def write_module(modules_root: str, name: str, manifest: Optional[Dict[str, Any]] = None, files: Optional[Dict[str, str]] = None) -> str:
    mod_dir = os.path.join(str(modules_root), name)
    os.makedirs(mod_dir, exist_ok=True)
    obj = {"name": name, "version": "1.0.0"} if manifest is None else manifest
    with open(os.path.join(mod_dir, "module.json"), "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
        f.write("\n")
    for rel, content in (files or {}).items():
        path = os.path.join(mod_dir, rel)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    return mod_dir


def build_zip(zip_path: str, members: Dict[str, Union[str, bytes, Dict[str, Any]]]) -> str:
    """members: archive name -> text, bytes, or a dict written as JSON."""
    os.makedirs(os.path.dirname(zip_path) or ".", exist_ok=True)
    with zipfile.ZipFile(zip_path, "w", compression=zipfile.ZIP_DEFLATED) as z:
        for name, content in members.items():
            if isinstance(content, dict):
                content = json.dumps(content, indent=2)
            z.writestr(name, content)
    return zip_path


def read_enabled_file(modules_root: str, filename: str = "enabled.json") -> List[str]:
    with open(os.path.join(str(modules_root), filename), "r", encoding="utf-8") as f:
        return json.load(f)


def write_enabled_file(modules_root: str, names: List[Any], filename: str = "enabled.json") -> None:
    os.makedirs(str(modules_root), exist_ok=True)
    with open(os.path.join(str(modules_root), filename), "w", encoding="utf-8") as f:
        json.dump(names, f)


def tree_bytes(root: str) -> Dict[str, bytes]:
    out: Dict[str, bytes] = {}
    for cur, _dirs, files in os.walk(root):
        for fn in files:
            p = os.path.join(cur, fn)
            with open(p, "rb") as f:
                out[os.path.relpath(p, root).replace(os.sep, "/")] = f.read()
    return out


def make_manager(root: str, **cfg: Any) -> ModuleManager:
    os.makedirs(os.path.join(str(root), "tmp"), exist_ok=True)
    config = ModularConfig(**{"modules_path": "modules", "export_dir": "exports", **cfg})
    return ModuleManager(config=config, root_dir=str(root), temp_root=os.path.join(str(root), "tmp"))

from __future__ import annotations

"""
Module manifest + operation result models.

Dependency declarations are normalized here, at the parsing boundary: both the
{"name": "constraint"} mapping and the ["name", ...] list form become an
ordered list of DependencySpec. Nothing past this module sees the raw shape.
"""

import os
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


ANY_VERSION = "*"

_UNSAFE_NAME_CHARS = {c for c in ("/", os.sep, os.altsep, "\x00") if c}


def is_safe_module_name(name: Any) -> bool:
    """
    A module name doubles as a directory name under the modules root: any
    single path component is accepted (spaces and non-ASCII letters included).
    """
    if not isinstance(name, str) or not name:
        return False
    if name in {".", ".."} or name != name.strip():
        return False
    return not any(sep in name for sep in _UNSAFE_NAME_CHARS)


class DependencySpec(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    constraint: str = ANY_VERSION

    def describe(self) -> str:
        if self.constraint == ANY_VERSION:
            return self.name
        return f"{self.name} ({self.constraint})"


class ModuleDescriptor(BaseModel):
    """
    Parsed module.json. Unknown keys are kept so listings can show them.
    """

    model_config = ConfigDict(extra="allow")

    name: str = Field(min_length=1)
    version: Optional[str] = None
    description: Optional[str] = None
    dependencies: List[DependencySpec] = Field(default_factory=list)
    providers: List[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _name_non_empty(cls, v: Any) -> str:
        if not isinstance(v, str):
            raise ValueError("name must be a string")
        v = v.strip()
        if not v:
            raise ValueError("name required")
        return v

    @field_validator("version", mode="before")
    @classmethod
    def _version_loose(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            return str(v)
        s = str(v).strip()
        return s or None

    @field_validator("dependencies", mode="before")
    @classmethod
    def _norm_dependencies(cls, v: Any) -> List[Dict[str, str]]:
        return [{"name": n, "constraint": c} for n, c in normalize_dependencies(v)]

    @field_validator("providers", mode="before")
    @classmethod
    def _norm_providers(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            return [str(x) for x in v if str(x or "").strip()]
        return []

    def dependency_names(self) -> List[str]:
        return [d.name for d in self.dependencies]

    def to_listing(self, *, enabled: bool, path: str) -> Dict[str, Any]:
        out = self.model_dump(mode="json")
        out["enabled"] = bool(enabled)
        out["path"] = path
        return out


def normalize_dependencies(raw: Any) -> List[Tuple[str, str]]:
    """
    Accepts:
    - {"Blog": "^1.0", "Users": "*"}
    - ["Blog", "Users"]            (any version)
    - [{"name": "Blog", "constraint": "^1.0"}]   (already normalized)
    Order of appearance is preserved; blank names are dropped.
    """
    if raw is None:
        return []
    out: List[Tuple[str, str]] = []
    if isinstance(raw, dict):
        items = list(raw.items())
    elif isinstance(raw, (list, tuple)):
        items = []
        for it in raw:
            if isinstance(it, dict):
                items.append((it.get("name"), it.get("constraint", ANY_VERSION)))
            elif isinstance(it, DependencySpec):
                items.append((it.name, it.constraint))
            else:
                items.append((it, ANY_VERSION))
    else:
        raise ValueError("dependencies must be an object or a list")
    for name, constraint in items:
        n = str(name or "").strip()
        if not n:
            continue
        c = str(constraint).strip() if constraint is not None else ANY_VERSION
        out.append((n, c or ANY_VERSION))
    return out


class OperationResult(BaseModel):
    """
    What the ModuleManager facade hands back to admin/CLI callers.
    """

    model_config = ConfigDict(extra="forbid")

    ok: bool
    message: str = ""
    code: str = "ok"
    data: Any = None

    @classmethod
    def success(cls, message: str, data: Any = None) -> "OperationResult":
        return cls(ok=True, message=message, code="ok", data=data)

    @classmethod
    def failure(cls, code: str, message: str, data: Any = None) -> "OperationResult":
        return cls(ok=False, message=message, code=code, data=data)

from __future__ import annotations

import re
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


_PLAIN_FILENAME = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]{0,127}")


class ModularConfig(BaseModel):
    """
    config/modular.json schema.
    """

    model_config = ConfigDict(extra="forbid")

    schema_version: int = Field(default=1, ge=1, le=10)
    modules_path: str = Field(default="modules", min_length=1)
    cache_enabled: bool = True
    cache_ttl: int = Field(default=3600, ge=0)
    enabled_modules_file: str = "enabled.json"
    module_config_file: str = "module.json"
    upload_max_size: int = Field(default=2 * 1024 * 1024, ge=1)  # bytes; enforced at the upload boundary
    allowed_extensions: List[str] = Field(default_factory=lambda: ["zip"])
    export_dir: str = Field(default="storage/modules", min_length=1)

    @field_validator("enabled_modules_file", "module_config_file")
    @classmethod
    def _plain_filename(cls, v: str) -> str:
        v = str(v or "").strip()
        if not _PLAIN_FILENAME.fullmatch(v):
            raise ValueError("must be a plain file name (no directories)")
        return v

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _norm_extensions(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            out: List[str] = []
            for item in v:
                s = str(item or "").strip().lower().lstrip(".")
                if s and s not in out:
                    out.append(s)
            return out
        return []


def default_modular_config_dict() -> dict:
    return ModularConfig().model_dump()

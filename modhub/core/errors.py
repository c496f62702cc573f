from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from modhub.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class ModhubError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return self.user_message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Core types ----
class ConfigError(ModhubError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class UnknownModuleError(ModhubError):
    def __init__(self, user_message: str = "Module does not exist.", **ctx: Any):
        super().__init__("not_found", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class ModuleCollisionError(ModhubError):
    def __init__(self, user_message: str = "Module already exists.", **ctx: Any):
        super().__init__("collision", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class InvalidPackageError(ModhubError):
    def __init__(self, user_message: str = "Invalid module package.", **ctx: Any):
        super().__init__("invalid_package", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class InvalidModuleNameError(ModhubError):
    def __init__(self, user_message: str = "Invalid module name.", **ctx: Any):
        super().__init__("invalid_name", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class ModuleCopyError(ModhubError):
    def __init__(self, user_message: str = "Could not copy module files.", **ctx: Any):
        super().__init__("copy_failed", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class ModuleRemovalError(ModhubError):
    def __init__(self, user_message: str = "Could not remove module files.", **ctx: Any):
        super().__init__("removal_failed", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class ArchiveWriteError(ModhubError):
    def __init__(self, user_message: str = "Could not create module archive.", **ctx: Any):
        super().__init__("archive_write_failed", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class PersistenceError(ModhubError):
    def __init__(self, user_message: str = "Could not persist enabled modules.", **ctx: Any):
        super().__init__("persistence_failed", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)

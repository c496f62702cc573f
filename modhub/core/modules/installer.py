from __future__ import annotations

"""
Archive installer: install a module from a zip, uninstall it, export it back to a zip.

Install runs: open archive -> extract into a private temp dir -> locate the
manifest (depth-first, first match wins) -> validate it -> pick the final name
-> refuse collisions -> copy the manifest's directory into the modules root ->
rewrite the manifest name if it was overridden. The temp dir is removed on
every exit path. Installed modules are never enabled here.

The installer is the only component that creates or deletes module
directories; it shares the registry's writer lock.
"""

import logging
import os
import shutil
import tempfile
import threading
import zipfile
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple

from modhub.core.config.io import atomic_write_json
from modhub.core.errors import (
    ArchiveWriteError,
    InvalidModuleNameError,
    InvalidPackageError,
    ModhubError,
    ModuleCollisionError,
    ModuleCopyError,
    ModuleRemovalError,
    UnknownModuleError,
)
from modhub.core.events import EventHub
from modhub.core.modules.descriptors import DescriptorStore, read_manifest_dict, validate_manifest_dict
from modhub.core.modules.models import ModuleDescriptor, is_safe_module_name
from modhub.core.modules.registry import EnabledRegistry


MAX_MANIFEST_DEPTH = 32


@dataclass(frozen=True)
class InstallOutcome:
    name: str
    module_dir: str
    descriptor: ModuleDescriptor
    message: str


def find_manifest(root: str, filename: str, *, max_depth: int = MAX_MANIFEST_DEPTH) -> Optional[str]:
    """
    Depth-first search for `filename` under `root`. A directory's own manifest
    wins over anything below it; subdirectories are visited in sorted order.
    Symlinked directories are not followed.
    """
    stack: List[Tuple[str, int]] = [(root, 0)]
    while stack:
        d, depth = stack.pop()
        candidate = os.path.join(d, filename)
        if os.path.isfile(candidate):
            return candidate
        if depth >= max_depth:
            continue
        try:
            with os.scandir(d) as it:
                subdirs = sorted(e.path for e in it if e.is_dir(follow_symlinks=False))
        except OSError:
            continue
        stack.extend((s, depth + 1) for s in reversed(subdirs))
    return None


def iter_module_files(module_dir: str, *, exclude_dir: Optional[str] = None) -> Iterator[Tuple[str, str]]:
    """
    (absolute_path, archive_name) for every regular file under module_dir,
    sorted, with "/" separators. Directory entries are not produced.
    """
    base = os.path.realpath(module_dir)
    excluded = os.path.realpath(exclude_dir) if exclude_dir else None
    for cur, dirs, files in os.walk(base):
        dirs.sort()
        if excluded is not None:
            dirs[:] = [d for d in dirs if os.path.realpath(os.path.join(cur, d)) != excluded]
        for fn in sorted(files):
            abs_path = os.path.join(cur, fn)
            if not os.path.isfile(abs_path):
                continue
            rel = os.path.relpath(abs_path, base).replace(os.sep, "/")
            yield abs_path, rel


def check_upload(path: str, *, max_size: int, allowed_extensions: List[str], filename: Optional[str] = None) -> None:
    """
    Upload-boundary limits (size ceiling + extension allowlist). Not applied by install() itself.
    """
    name = filename or os.path.basename(path)
    ext = os.path.splitext(name)[1].lower().lstrip(".")
    allowed = [str(x).lower().lstrip(".") for x in (allowed_extensions or [])]
    if allowed and ext not in allowed:
        raise InvalidPackageError(f"File type '.{ext}' is not allowed (allowed: {', '.join(allowed)})", file=name)
    try:
        size = os.path.getsize(path)
    except OSError as e:
        raise InvalidPackageError("Could not open archive", file=name, reason=str(e)[:200]) from e
    if size > int(max_size):
        raise InvalidPackageError(f"Archive exceeds the upload limit of {int(max_size)} bytes", file=name, size=size)


class ArchiveInstaller:
    def __init__(
        self,
        *,
        store: DescriptorStore,
        registry: EnabledRegistry,
        export_dir: str,
        temp_root: Optional[str] = None,
        lock: Optional[threading.RLock] = None,
        events: Optional[EventHub] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.registry = registry
        self.export_dir = str(export_dir)
        self.temp_root = temp_root
        self.events = events
        self.logger = logger or logging.getLogger("modhub.modules.installer")
        self._lock = lock or threading.RLock()

    @property
    def modules_root(self) -> str:
        return self.store.modules_root

    def _emit(self, event_type: str, module_name: str = "", **payload: Any) -> None:
        if self.events is not None:
            self.events.emit(event_type, module_name, **payload)

    # ---- install ----
    def install(self, archive_path: str, name: Optional[str] = None) -> InstallOutcome:
        with self._lock:
            tmp = tempfile.mkdtemp(prefix="module_", dir=self.temp_root)
            try:
                outcome = self._install_from(str(archive_path), name, tmp)
            except ModhubError as e:
                self.logger.warning("Install failed for %s: %s", archive_path, e.user_message)
                self._emit("module.install_failed", str(name or ""), archive=os.path.basename(str(archive_path)), reason=e.code)
                raise
            finally:
                shutil.rmtree(tmp, ignore_errors=True)
                if os.path.exists(tmp):
                    self.logger.warning("Temp extraction dir not fully removed: %s", tmp)
        self.logger.info("Module installed: %s -> %s", outcome.name, outcome.module_dir)
        self._emit("module.installed", outcome.name, module_path=outcome.module_dir)
        return outcome

    def _install_from(self, archive_path: str, override: Optional[str], tmp: str) -> InstallOutcome:
        self._extract(archive_path, tmp)

        manifest_path = find_manifest(tmp, self.store.manifest_filename)
        if manifest_path is None:
            raise InvalidPackageError(f"No {self.store.manifest_filename} found in archive", archive=archive_path)

        raw = read_manifest_dict(manifest_path)
        declared = raw.get("name") if raw is not None else None
        if not isinstance(declared, str) or not declared.strip():
            raise InvalidPackageError(f"Invalid {self.store.manifest_filename} format", archive=archive_path)
        desc = validate_manifest_dict(raw)
        if desc is None:
            raise InvalidPackageError(f"Invalid {self.store.manifest_filename} format", archive=archive_path)

        final_name = str(override) if override else desc.name
        if not is_safe_module_name(final_name):
            raise InvalidModuleNameError(f"Invalid module name '{final_name}'", module=final_name)

        module_dir = self.store.module_dir(final_name)
        if self.store.exists(final_name):
            raise ModuleCollisionError(f"Module '{final_name}' already exists", module=final_name)
        if os.path.lexists(module_dir):
            raise ModuleCollisionError(f"Target directory already exists: {module_dir}", module=final_name, module_path=module_dir)

        self._emit("module.installing", final_name, archive=archive_path, manifest=raw)
        self._copy_into_place(os.path.dirname(manifest_path), module_dir, final_name)

        if final_name != desc.name:
            raw = dict(raw)
            raw["name"] = final_name
            try:
                atomic_write_json(os.path.join(module_dir, self.store.manifest_filename), raw, indent=4)
            except OSError as e:
                shutil.rmtree(module_dir, ignore_errors=True)
                raise ModuleCopyError(f"Could not rewrite manifest for '{final_name}'", module=final_name, reason=str(e)[:200]) from e

        self.store.forget(final_name)
        installed = self.store.get_config(final_name) or desc.model_copy(update={"name": final_name})
        return InstallOutcome(
            name=final_name,
            module_dir=os.path.abspath(module_dir),
            descriptor=installed,
            message=f"Module '{final_name}' installed successfully",
        )

    @staticmethod
    def _extract(archive_path: str, dest: str) -> None:
        try:
            zf = zipfile.ZipFile(archive_path, "r")
        except (OSError, zipfile.BadZipFile) as e:
            raise InvalidPackageError("Could not open archive", archive=archive_path, reason=str(e)[:200]) from e
        with zf:
            root = os.path.realpath(dest)
            try:
                for info in zf.infolist():
                    target = os.path.realpath(os.path.join(root, info.filename))
                    if target != root and not target.startswith(root + os.sep):
                        raise InvalidPackageError("Could not extract archive", archive=archive_path, member=info.filename)
                zf.extractall(root)
            except (OSError, zipfile.BadZipFile, RuntimeError, ValueError) as e:
                # RuntimeError: encrypted members; ValueError: unsupported compression
                raise InvalidPackageError("Could not extract archive", archive=archive_path, reason=str(e)[:200]) from e

    def _copy_into_place(self, src_dir: str, module_dir: str, name: str) -> None:
        try:
            os.makedirs(self.modules_root, exist_ok=True)
            shutil.copytree(src_dir, module_dir, symlinks=True)
        except (OSError, shutil.Error) as e:
            # the target was created by this call, so it is ours to remove
            shutil.rmtree(module_dir, ignore_errors=True)
            raise ModuleCopyError("Could not copy module files", module=name, reason=str(e)[:200]) from e

    # ---- uninstall ----
    def uninstall(self, name: str) -> str:
        """
        Disable first, then delete the directory (fail-fast: any deletion error is
        reported, and the module stays disabled). Returns the removed path.
        """
        with self._lock:
            if not self.store.exists(name):
                raise UnknownModuleError(f"Module '{name}' does not exist", module=name)
            module_dir = self.store.module_dir(name)
            self._ensure_inside_root(module_dir, name)

            self.registry.disable(name)
            try:
                if os.path.islink(module_dir):
                    # a linked-in module: drop the link, never the directory it points to
                    os.unlink(module_dir)
                else:
                    shutil.rmtree(module_dir)
            except OSError as e:
                raise ModuleRemovalError(
                    f"Module '{name}' was disabled but its files could not be fully removed",
                    module=name,
                    module_path=module_dir,
                    reason=str(e)[:200],
                ) from e
            finally:
                self.store.forget(name)
        self.logger.info("Module uninstalled: %s", name)
        self._emit("module.uninstalled", name, module_path=os.path.abspath(module_dir))
        return os.path.abspath(module_dir)

    def _ensure_inside_root(self, module_dir: str, name: str) -> None:
        root = os.path.realpath(self.modules_root)
        parent = os.path.realpath(os.path.dirname(os.path.abspath(module_dir)))
        if parent != root:
            raise InvalidModuleNameError(f"Module '{name}' is outside the modules directory", module=name)

    # ---- export ----
    def export_path(self, name: str) -> str:
        return os.path.join(self.export_dir, f"{name}.zip")

    def export(self, name: str) -> str:
        """
        Zip every file under the module directory (entry names relative to it)
        into <export_dir>/<name>.zip, replacing any previous archive atomically.
        """
        if not self.store.exists(name):
            raise UnknownModuleError(f"Module '{name}' does not exist", module=name)
        module_dir = self.store.module_dir(name)
        zip_path = self.export_path(name)
        try:
            os.makedirs(self.export_dir, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{name}.", suffix=".zip.tmp", dir=self.export_dir)
            os.close(fd)
        except OSError as e:
            raise ArchiveWriteError(f"Could not create archive for module '{name}'", module=name, reason=str(e)[:200]) from e
        count = 0
        try:
            with zipfile.ZipFile(tmp, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=6) as z:
                for abs_path, rel in iter_module_files(module_dir, exclude_dir=self.export_dir):
                    z.write(abs_path, arcname=rel)
                    count += 1
            os.replace(tmp, zip_path)
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            raise ArchiveWriteError(f"Could not create archive for module '{name}'", module=name, reason=str(e)[:200]) from e
        finally:
            if os.path.exists(tmp):
                try:
                    os.remove(tmp)
                except OSError as e:
                    self.logger.warning("Temp export archive not removed: %s (%s)", tmp, e)
        self.logger.info("Module exported: %s (%d files) -> %s", name, count, zip_path)
        self._emit("module.exported", name, archive=zip_path, files=count)
        return zip_path


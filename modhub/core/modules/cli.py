from __future__ import annotations

"""
Admin CLI for module lifecycle commands.

Rendering helpers are pure functions over a ModuleManager so they can be
tested without a terminal; main() is the argparse entrypoint.
"""

import argparse
import json
import sys
from typing import Any, Callable, Dict, List, Optional, Sequence

from modhub.core.config.manager import get_config
from modhub.core.errors import ModhubError
from modhub.core.events import JsonlEventSink
from modhub.core.modules.installer import check_upload
from modhub.core.modules.manager import ModuleManager
from modhub.core.modules.models import OperationResult


def modules_list_lines(*, module_manager: ModuleManager) -> List[str]:
    """
    Columns: name | version | status | description
    """
    modules = module_manager.list_all()
    if not modules:
        return ["No modules found."]
    lines = ["name | version | status | description"]
    for name, info in modules.items():
        status = "enabled" if info.get("enabled") else "disabled"
        lines.append(f"{name} | {info.get('version') or 'N/A'} | {status} | {info.get('description') or 'N/A'}")
    return lines


def module_show_payload(*, module_manager: ModuleManager, name: str) -> Dict[str, Any]:
    res = module_manager.get_module(name)
    if not res.ok:
        return {"ok": False, "error": res.message}
    return {
        "ok": True,
        "module": res.data,
        "unmet_dependencies": module_manager.check_dependencies(name),
        "dependents": module_manager.get_dependent_modules(name),
        "cycle": module_manager.detect_circular_dependencies(name),
    }


def dependency_report_lines(*, module_manager: ModuleManager, name: str) -> List[str]:
    if not module_manager.module_exists(name):
        return [f"Module '{name}' does not exist."]
    desc = module_manager.get_module_config(name)
    declared = [d.describe() for d in desc.dependencies] if desc is not None else []
    missing = module_manager.check_dependencies(name)
    cycle = module_manager.detect_circular_dependencies(name)
    dependents = module_manager.get_dependent_modules(name)
    return [
        f"module: {name}",
        f"declared: {', '.join(declared) or '-'}",
        f"unmet: {', '.join(missing) or '-'}",
        f"cycle: {' -> '.join(cycle) if cycle else '-'}",
        f"enabled dependents: {', '.join(dependents) or '-'}",
    ]


def _print_result(res: OperationResult, out: Callable[[str], None]) -> int:
    out(res.message)
    if res.ok:
        data = res.data if isinstance(res.data, dict) else {}
        if data.get("unmet_dependencies"):
            out("Warning: unmet dependencies: " + ", ".join(data["unmet_dependencies"]))
        if data.get("dependents"):
            out("Warning: enabled modules depending on it: " + ", ".join(data["dependents"]))
    elif isinstance(res.data, dict) and res.data.get("unmet_dependencies"):
        out("Unmet: " + ", ".join(res.data["unmet_dependencies"]))
    return 0 if res.ok else 1


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="modhub module admin")
    ap.add_argument("--root", default=".", help="Project root holding config/modular.json")
    ap.add_argument("--events-log", default=None, help="Append module lifecycle events to this JSONL file")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List installed modules")

    p = sub.add_parser("show", help="Show one module")
    p.add_argument("name")

    p = sub.add_parser("enable", help="Enable a module")
    p.add_argument("name")
    p.add_argument("--require-deps", action="store_true", help="Refuse when dependencies are unmet")

    p = sub.add_parser("disable", help="Disable a module")
    p.add_argument("name")

    p = sub.add_parser("install", help="Install a module from a zip archive")
    p.add_argument("archive")
    p.add_argument("--name", default=None, help="Install under a different module name")

    p = sub.add_parser("remove", help="Uninstall a module (deletes its files)")
    p.add_argument("name")
    p.add_argument("--force", action="store_true", help="Do not ask for confirmation")

    p = sub.add_parser("export", help="Write <export_dir>/<name>.zip")
    p.add_argument("name")

    p = sub.add_parser("deps", help="Dependency report for a module")
    p.add_argument("name")
    return ap


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    manager: Optional[ModuleManager] = None,
    out: Callable[[str], None] = print,
    ask: Callable[[str], str] = input,
) -> int:
    args = build_parser().parse_args(argv)
    cm = None
    if manager is None:
        cm = get_config(root=args.root)
        manager = ModuleManager.from_config_manager(cm)
    if args.events_log:
        manager.events.subscribe("module.*", JsonlEventSink(path=args.events_log))

    if args.command == "list":
        for line in modules_list_lines(module_manager=manager):
            out(line)
        return 0

    if args.command == "show":
        payload = module_show_payload(module_manager=manager, name=args.name)
        out(json.dumps(payload, indent=2, sort_keys=True))
        return 0 if payload.get("ok") else 1

    if args.command == "deps":
        for line in dependency_report_lines(module_manager=manager, name=args.name):
            out(line)
        return 0 if manager.module_exists(args.name) else 1

    if args.command == "enable":
        return _print_result(manager.enable(args.name, require_dependencies=args.require_deps), out)

    if args.command == "disable":
        return _print_result(manager.disable(args.name), out)

    if args.command == "install":
        cfg = cm.get() if cm is not None else manager.config
        try:
            check_upload(args.archive, max_size=cfg.upload_max_size, allowed_extensions=cfg.allowed_extensions)
        except ModhubError as e:
            out(e.user_message)
            return 1
        return _print_result(manager.install(args.archive, args.name), out)

    if args.command == "remove":
        if not manager.module_exists(args.name):
            out(f"Module '{args.name}' does not exist.")
            return 1
        if not args.force:
            try:
                answer = ask(f"Remove module '{args.name}' and delete all its files? [y/N] ")
            except (EOFError, KeyboardInterrupt):
                answer = ""
            if answer.strip().lower() not in {"y", "yes"}:
                out("Module removal cancelled.")
                return 0
        return _print_result(manager.uninstall(args.name), out)

    if args.command == "export":
        res = manager.export(args.name)
        if res.ok:
            out(res.data["path"])
            return 0
        out(res.message)
        return 1

    return 2


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import json
import os

from modhub.core.modules.cli import dependency_report_lines, main, modules_list_lines

from .helpers.modules import build_zip, write_module


def _run(manager, *argv, answer="y"):
    out = []
    code = main(list(argv), manager=manager, out=out.append, ask=lambda _prompt: answer)
    return code, out


def test_list_empty_and_populated(manager):
    assert modules_list_lines(module_manager=manager) == ["No modules found."]
    write_module(manager.modules_root, "Blog", {"name": "Blog", "version": "1.0.0", "description": "Posts"})
    write_module(manager.modules_root, "Shop", {"name": "Shop"})
    manager.enable("Blog")
    code, out = _run(manager, "list")
    assert code == 0
    assert out == [
        "name | version | status | description",
        "Blog | 1.0.0 | enabled | Posts",
        "Shop | N/A | disabled | N/A",
    ]


def test_enable_disable_commands(manager):
    write_module(manager.modules_root, "Users")
    write_module(manager.modules_root, "Blog", {"name": "Blog", "dependencies": ["Users"]})

    code, out = _run(manager, "enable", "Blog", "--require-deps")
    assert code == 1
    assert out == ["Module 'Blog' has unmet dependencies: Users", "Unmet: Users"]

    code, out = _run(manager, "enable", "Blog")
    assert code == 0
    assert out == ["Module 'Blog' enabled successfully", "Warning: unmet dependencies: Users"]

    _run(manager, "enable", "Users")
    code, out = _run(manager, "disable", "Users")
    assert code == 0
    assert out == ["Module 'Users' disabled successfully", "Warning: enabled modules depending on it: Blog"]

    code, out = _run(manager, "enable", "Ghost")
    assert (code, out) == (1, ["Module 'Ghost' does not exist"])


def test_show_and_deps(manager):
    write_module(manager.modules_root, "A", {"name": "A", "version": "1.0.0", "dependencies": {"B": "^1.0"}})
    write_module(manager.modules_root, "B", {"name": "B", "dependencies": ["A"]})
    code, out = _run(manager, "show", "A")
    assert code == 0
    payload = json.loads(out[0])
    assert payload["module"]["name"] == "A"
    assert payload["unmet_dependencies"] == ["B"]
    assert payload["cycle"] == ["A", "B", "A"]

    assert dependency_report_lines(module_manager=manager, name="A") == [
        "module: A",
        "declared: B (^1.0)",
        "unmet: B",
        "cycle: A -> B -> A",
        "enabled dependents: -",
    ]
    code, out = _run(manager, "deps", "Ghost")
    assert (code, out) == (1, ["Module 'Ghost' does not exist."])


def test_install_respects_upload_limits(manager, tmp_path):
    zp = build_zip(str(tmp_path / "blog.zip"), {"module.json": {"name": "Blog"}})
    code, out = _run(manager, "install", zp, "--name", "Journal")
    assert code == 0
    assert out == ["Module 'Journal' installed successfully"]

    other = tmp_path / "blog.rar"
    other.write_bytes(b"x")
    code, out = _run(manager, "install", str(other))
    assert code == 1
    assert "not allowed" in out[0]


def test_remove_asks_for_confirmation(manager):
    write_module(manager.modules_root, "Blog")
    code, out = _run(manager, "remove", "Blog", answer="n")
    assert (code, out) == (0, ["Module removal cancelled."])
    assert manager.module_exists("Blog")

    code, out = _run(manager, "remove", "Blog", answer="yes")
    assert (code, out) == (0, ["Module 'Blog' uninstalled successfully"])
    assert not manager.module_exists("Blog")

    code, out = _run(manager, "remove", "Blog", "--force")
    assert (code, out) == (1, ["Module 'Blog' does not exist."])


def test_export_prints_archive_path(manager):
    write_module(manager.modules_root, "Blog")
    code, out = _run(manager, "export", "Blog")
    assert code == 0
    assert out == [os.path.join(manager.export_dir, "Blog.zip")]
    assert os.path.isfile(out[0])


def test_main_builds_manager_from_project_root(tmp_path, capsys):
    write_module(str(tmp_path / "modules"), "Blog")
    assert main(["--root", str(tmp_path), "enable", "Blog"]) == 0
    assert "enabled successfully" in capsys.readouterr().out
    with open(tmp_path / "modules" / "enabled.json", encoding="utf-8") as f:
        assert json.load(f) == ["Blog"]


def test_events_log_option_writes_jsonl(manager, tmp_path):
    write_module(manager.modules_root, "Blog")
    log = tmp_path / "events.jsonl"
    code, _out = _run(manager, "--events-log", str(log), "enable", "Blog")
    assert code == 0
    events = [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines()]
    assert [(e["event_type"], e["module_name"]) for e in events] == [("module.enabled", "Blog")]

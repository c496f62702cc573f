from __future__ import annotations

import argparse
import json

from modhub.core.config import ConfigManager
from modhub.core.config.paths import ConfigFsPaths


def main() -> None:
    ap = argparse.ArgumentParser(description="Print the effective modular config (creates defaults if missing).")
    ap.add_argument("--root", default=".", help="Project root directory (default: .)")
    args = ap.parse_args()

    cm = ConfigManager(fs=ConfigFsPaths(str(args.root or ".")), logger=None)
    cfg = cm.load_all()
    out = cfg.model_dump()
    out["resolved"] = {"modules_path": cm.modules_path(), "export_dir": cm.export_dir()}
    print(json.dumps(out, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()

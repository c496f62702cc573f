from __future__ import annotations

import sys

from modhub.core.logger import setup_logging
from modhub.core.modules.cli import main as modules_main


def main() -> int:
    setup_logging("logs")
    return modules_main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(main())

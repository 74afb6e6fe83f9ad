from __future__ import annotations

from pathlib import Path

from patchbuild.cli import main

PROJECT_ROOT = Path(__file__).resolve().parents[1]


if __name__ == "__main__":
    raise SystemExit(main(default_root=PROJECT_ROOT))

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import yaml

from patchbuild.errors import BuildToolFailure, PatchbuildError
from patchbuild.invoke.build_tool import out_dir_from_args
from patchbuild.settings import BuildSettings
from patchbuild.txn.patcher import recover, run
from patchbuild.utils.config import AppConfig


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="patchbuild",
        description=(
            "Temporarily add a crate type to the manifest, run the build tool, "
            "and restore the manifest afterwards. Unrecognised arguments, and "
            "everything after '--', are passed to the build tool."
        ),
        allow_abbrev=False,
    )
    parser.add_argument("--project", required=False, help="Project root holding the manifest")
    parser.add_argument("--config", action="append", default=[], help="YAML config file (repeatable)")
    parser.add_argument("--lock", action="store_true", help="Hold an advisory lock beside the manifest")
    parser.add_argument("--recover", action="store_true", help="Restore the manifest from a leftover backup and exit")
    return parser


def parse_args(argv: Sequence[str]) -> Tuple[argparse.Namespace, List[str]]:
    argv = list(argv)
    passthrough: List[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, passthrough = argv[:split], argv[split + 1 :]
    args, unknown = build_parser().parse_known_args(argv)
    return args, unknown + passthrough


def main(argv: Optional[Sequence[str]] = None, default_root: Optional[Path] = None) -> int:
    args, tool_args = parse_args(sys.argv[1:] if argv is None else argv)
    root = Path(args.project) if args.project else (default_root or Path.cwd())

    try:
        settings = BuildSettings.from_config(AppConfig.from_files(*args.config))
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"patchbuild: error[config]: {exc}", file=sys.stderr)
        return 2

    try:
        if args.recover:
            if not recover(root, settings):
                print(f"Nothing to recover in {root}")
            return 0

        status = run(root, tool_args, settings=settings, lock=args.lock or settings.lock.enabled)
        if status != 0:
            raise BuildToolFailure(settings.tool.argv(tool_args), status)
    except PatchbuildError as exc:
        print(f"patchbuild: error[{exc.kind}]: {exc}", file=sys.stderr)
        return exc.exit_code

    out_dir = out_dir_from_args(tool_args, settings.tool.default_out_dir)
    print(f"Build complete. Output is in {root / out_dir}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

from __future__ import annotations

import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from patchbuild.errors import BuildToolFailure, EXIT_SPAWN_FAILED, Interrupted

# (argv, cwd) -> exit status
Runner = Callable[[Sequence[str], Path], int]


@dataclass
class ToolSettings:
    command: str = "wasm-pack"
    subcommand: str = "build"
    target: str = "bundler"
    out_name: str = "rojo"
    default_out_dir: str = "pkg"
    kill_grace_sec: float = 5.0

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "ToolSettings":
        defaults = cls()
        return cls(
            command=str(cfg.get("command", defaults.command)),
            subcommand=str(cfg.get("subcommand", defaults.subcommand)),
            target=str(cfg.get("target", defaults.target)),
            out_name=str(cfg.get("out_name", defaults.out_name)),
            default_out_dir=str(cfg.get("default_out_dir", defaults.default_out_dir)),
            kill_grace_sec=float(cfg.get("kill_grace_sec", defaults.kill_grace_sec)),
        )

    def fixed_args(self) -> List[str]:
        return [self.subcommand, "--target", self.target, "--out-name", self.out_name]

    def argv(self, raw_args: Sequence[str]) -> List[str]:
        return [self.command, *self.fixed_args(), *raw_args]


def out_dir_from_args(raw_args: Sequence[str], default: str) -> str:
    """Find the output directory the tool will use, honouring --out-dir/-d."""
    out_dir = default
    args = list(raw_args)
    for i, arg in enumerate(args):
        if arg in ("--out-dir", "-d") and i + 1 < len(args):
            out_dir = args[i + 1]
        elif arg.startswith("--out-dir="):
            out_dir = arg.split("=", 1)[1]
    return out_dir


class SubprocessRunner:
    """Runs the tool as a child with inherited stdio and waits for it.

    If the wait is interrupted, the child gets the same signal and is
    reaped (killed after ``kill_grace_sec``) before the exception propagates.
    """

    def __init__(self, kill_grace_sec: float = 5.0) -> None:
        self.kill_grace_sec = kill_grace_sec
        self.process: Optional[subprocess.Popen] = None

    def __call__(self, argv: Sequence[str], cwd: Path) -> int:
        try:
            self.process = subprocess.Popen(list(argv), cwd=cwd)
        except OSError as exc:
            raise BuildToolFailure(argv, EXIT_SPAWN_FAILED, reason=exc.strerror or str(exc)) from exc
        try:
            returncode = self.process.wait()
        except Interrupted as exc:
            self._stop(exc.signum)
            raise
        except BaseException:
            self._stop(signal.SIGTERM)
            raise
        # Popen reports death by signal N as -N; use the shell convention.
        if returncode < 0:
            return 128 - returncode
        return returncode

    def _stop(self, signum: int) -> None:
        proc = self.process
        if proc is None or proc.poll() is not None:
            return
        try:
            proc.send_signal(signum)
            proc.wait(timeout=self.kill_grace_sec)
        except subprocess.TimeoutExpired:
            print(f"Build tool did not exit after {self.kill_grace_sec:.1f}s, killing it")
            proc.kill()
            proc.wait()

from __future__ import annotations

import signal
from pathlib import Path
from typing import Optional, Sequence

# Exit codes above the range build tools normally use, so callers can tell
# our own failures apart from a forwarded tool status.
EXIT_MANIFEST_IO = 201
EXIT_PATCH_MISMATCH = 202
EXIT_RESTORE_FAILED = 203
EXIT_STALE_BACKUP = 204
EXIT_LOCK_HELD = 205
EXIT_SPAWN_FAILED = 127


class PatchbuildError(Exception):
    kind = "error"
    exit_code = 1


class ManifestIOError(PatchbuildError):
    """The manifest could not be read or written before any mutation."""

    kind = "manifest-io"
    exit_code = EXIT_MANIFEST_IO

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"cannot access manifest {path}: {reason}")
        self.path = path


class PatchMismatchError(PatchbuildError):
    """The patch anchor was absent or ambiguous; nothing was written."""

    kind = "patch-mismatch"
    exit_code = EXIT_PATCH_MISMATCH

    def __init__(self, path: Path, anchor: str, count: int, message: Optional[str] = None) -> None:
        if message is None:
            if count == 0:
                message = f"expected {anchor!r} in {path}, found none"
            else:
                message = f"expected {anchor!r} exactly once in {path}, found {count}"
        super().__init__(message)
        self.path = path
        self.anchor = anchor
        self.count = count


class AlreadyPatchedError(PatchMismatchError):
    def __init__(self, path: Path, anchor: str) -> None:
        super().__init__(
            path,
            anchor,
            count=0,
            message=f"{path} already contains the patched form {anchor!r}; restore it before building",
        )


class StaleBackupError(PatchbuildError):
    kind = "stale-backup"
    exit_code = EXIT_STALE_BACKUP

    def __init__(self, backup_path: Path) -> None:
        super().__init__(
            f"found leftover backup {backup_path} from an interrupted run; "
            "run with --recover to restore the manifest first"
        )
        self.backup_path = backup_path


class LockHeldError(PatchbuildError):
    kind = "lock-held"
    exit_code = EXIT_LOCK_HELD

    def __init__(self, lock_path: Path, owner: str = "") -> None:
        detail = f" (held by pid {owner})" if owner else ""
        super().__init__(f"another build holds {lock_path}{detail}")
        self.lock_path = lock_path
        self.owner = owner


class BuildToolFailure(PatchbuildError):
    """The build tool could not be spawned or exited non-zero."""

    kind = "build-tool"

    def __init__(self, argv: Sequence[str], returncode: int, reason: str = "") -> None:
        if reason:
            message = f"could not run {argv[0]!r}: {reason}"
        else:
            message = f"{argv[0]!r} exited with status {returncode}"
        super().__init__(message)
        self.argv = list(argv)
        self.returncode = returncode
        self.exit_code = returncode


class RestoreFailedError(PatchbuildError):
    """Writing the original manifest back failed; the manifest may still be patched."""

    kind = "restore-failed"
    exit_code = EXIT_RESTORE_FAILED

    def __init__(
        self,
        path: Path,
        backup_path: Optional[Path],
        reason: str,
        build_status: Optional[int] = None,
    ) -> None:
        message = f"failed to restore {path}: {reason}"
        if backup_path is not None:
            message += f"; original content kept in {backup_path}"
        if build_status is not None:
            message += f" (build tool status was {build_status})"
        super().__init__(message)
        self.path = path
        self.backup_path = backup_path
        self.build_status = build_status


class Interrupted(PatchbuildError):
    kind = "interrupted"

    def __init__(self, signum: int) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        super().__init__(f"interrupted by {name}")
        self.signum = signum
        self.exit_code = 128 + signum

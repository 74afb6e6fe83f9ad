from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional, Sequence

from patchbuild.errors import (
    Interrupted,
    ManifestIOError,
    RestoreFailedError,
    StaleBackupError,
)
from patchbuild.invoke.build_tool import Runner, SubprocessRunner
from patchbuild.manifest.lock import ManifestLock
from patchbuild.manifest.snapshot import Snapshot, backup_path_for, ensure_writable, read_bytes, write_atomic
from patchbuild.settings import BuildSettings
from patchbuild.txn.signals import SignalGuard


def run(
    project_root: str | Path,
    raw_args: Sequence[str],
    settings: Optional[BuildSettings] = None,
    runner: Optional[Runner] = None,
    lock: Optional[bool] = None,
) -> int:
    """Patch the manifest, run the build tool, then put the manifest back.

    Returns the build tool's exit status. The original manifest bytes are
    written back on every path once they have been read, including
    SIGINT/SIGTERM; a failed write back raises ``RestoreFailedError``,
    which wins over whatever the build returned or raised.
    """
    settings = settings or BuildSettings()
    root = Path(project_root)
    manifest = root / settings.manifest
    use_lock = settings.lock.enabled if lock is None else lock

    if not use_lock:
        return _run_unlocked(root, manifest, raw_args, settings, runner)
    with ManifestLock(manifest, settings.lock.suffix):
        return _run_unlocked(root, manifest, raw_args, settings, runner)


def _run_unlocked(
    root: Path,
    manifest: Path,
    raw_args: Sequence[str],
    settings: BuildSettings,
    runner: Optional[Runner],
) -> int:
    backup = backup_path_for(manifest, settings.backup_suffix)
    if backup.exists():
        raise StaleBackupError(backup)

    snapshot = Snapshot.take(manifest)
    try:
        ensure_writable(manifest)
    except PermissionError as exc:
        raise ManifestIOError(manifest, exc.strerror) from exc
    patched = settings.rule.apply(snapshot.content, manifest)
    argv = settings.tool.argv(raw_args)
    if runner is None:
        runner = SubprocessRunner(settings.tool.kill_grace_sec)

    status: Optional[int] = None
    mutated = False
    with SignalGuard() as guard:
        try:
            snapshot.persist(settings.backup_suffix)
            mutated = True
            try:
                _write(manifest, patched)
            except ManifestIOError:
                mutated = not _unchanged(snapshot)
                raise
            print(f"Patched {manifest.name}: {settings.rule.find} -> {settings.rule.replace}")
            print(f"Running: {' '.join(argv)}")
            with guard.armed():
                status = runner(argv, root)
        finally:
            if mutated:
                _restore(snapshot, status)
            else:
                snapshot.discard_backup()

    if guard.pending is not None:
        raise Interrupted(guard.pending)
    return status


def _write(path: Path, data: bytes) -> None:
    try:
        write_atomic(path, data)
    except OSError as exc:
        raise ManifestIOError(path, exc.strerror or str(exc)) from exc


def _unchanged(snapshot: Snapshot) -> bool:
    try:
        return read_bytes(snapshot.path) == snapshot.content
    except ManifestIOError:
        return False


def _restore(snapshot: Snapshot, status: Optional[int]) -> None:
    try:
        snapshot.restore()
        ok = read_bytes(snapshot.path) == snapshot.content
    except (OSError, ManifestIOError) as exc:
        raise RestoreFailedError(snapshot.path, snapshot.backup_path, str(exc), build_status=status) from exc
    if not ok:
        raise RestoreFailedError(
            snapshot.path, snapshot.backup_path, "content differs after write", build_status=status
        )
    print(f"Restored {snapshot.path.name}")
    backup = snapshot.backup_path
    try:
        snapshot.discard_backup()
    except OSError as exc:
        print(f"Warning: could not remove backup {backup}: {exc.strerror or exc}", file=sys.stderr)


def recover(project_root: str | Path, settings: Optional[BuildSettings] = None) -> bool:
    """Replay a backup left behind by a run that died before restoring.

    Returns True if the manifest was rewritten from the backup.
    """
    settings = settings or BuildSettings()
    manifest = Path(project_root) / settings.manifest
    backup = backup_path_for(manifest, settings.backup_suffix)
    if not backup.exists():
        if manifest.exists() and settings.rule.is_applied(read_bytes(manifest)):
            print(
                f"Warning: {manifest.name} still contains {settings.rule.replace!r} "
                "but there is no backup to restore it from",
                file=sys.stderr,
            )
        return False

    content = read_bytes(backup)
    try:
        write_atomic(manifest, content)
    except OSError as exc:
        raise RestoreFailedError(manifest, backup, exc.strerror or str(exc)) from exc
    backup.unlink()
    print(f"Recovered {manifest.name} from {backup.name}")
    return True

from __future__ import annotations

import errno
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from patchbuild.errors import ManifestIOError


def read_bytes(path: Path) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as exc:
        raise ManifestIOError(path, exc.strerror or str(exc)) from exc


def write_atomic(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` via a synced temp file and a rename.

    The file mode of an existing ``path`` is carried over to the new file.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if path.exists():
            shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    _fsync_dir(path.parent)


def ensure_writable(path: Path) -> None:
    """Refuse to replace a file its owner has made read-only.

    ``write_atomic`` renames over the target, which only needs write access
    to the directory, so the file's own mode has to be checked here.
    """
    if path.exists() and not os.access(path, os.W_OK):
        raise PermissionError(errno.EACCES, "file is not writable", str(path))


def _fsync_dir(directory: Path) -> None:
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


@dataclass
class Snapshot:
    """Original manifest bytes, mirrored in a backup file until released."""

    path: Path
    content: bytes
    backup_path: Optional[Path] = None

    @classmethod
    def take(cls, path: Path) -> "Snapshot":
        path = Path(path)
        return cls(path=path, content=read_bytes(path))

    def persist(self, backup_suffix: str) -> Path:
        backup = backup_path_for(self.path, backup_suffix)
        try:
            write_atomic(backup, self.content)
        except OSError as exc:
            raise ManifestIOError(backup, exc.strerror or str(exc)) from exc
        self.backup_path = backup
        return backup

    def restore(self) -> None:
        ensure_writable(self.path)
        write_atomic(self.path, self.content)

    def discard_backup(self) -> None:
        if self.backup_path is not None:
            self.backup_path.unlink(missing_ok=True)
            self.backup_path = None


def backup_path_for(manifest: Path, backup_suffix: str) -> Path:
    return manifest.with_name(manifest.name + backup_suffix)

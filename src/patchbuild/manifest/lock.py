from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from patchbuild.errors import LockHeldError


class ManifestLock:
    """Advisory lock file beside the manifest.

    Only cooperating patchbuild runs honour it; the build tool never looks at it.
    """

    def __init__(self, manifest: Path, suffix: str = ".patchbuild.lock") -> None:
        self.path = manifest.with_name(manifest.name + suffix)
        self._fd: Optional[int] = None

    def acquire(self) -> None:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as exc:
            raise LockHeldError(self.path, self._read_owner()) from exc
        os.write(fd, str(os.getpid()).encode("ascii"))
        os.fsync(fd)
        self._fd = fd

    def release(self) -> None:
        if self._fd is None:
            return
        os.close(self._fd)
        self._fd = None
        self.path.unlink(missing_ok=True)

    def _read_owner(self) -> str:
        try:
            return self.path.read_text(encoding="ascii").strip()
        except (OSError, UnicodeDecodeError):
            return ""

    def __enter__(self) -> "ManifestLock":
        self.acquire()
        return self

    def __exit__(self, *_exc) -> None:
        self.release()

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from patchbuild.errors import AlreadyPatchedError, PatchMismatchError


@dataclass(frozen=True)
class PatchRule:
    """Exact substring rewrite applied to the manifest bytes."""

    find: str
    replace: str

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "PatchRule":
        find = str(cfg.get("from", ""))
        replace = str(cfg.get("to", ""))
        if not find:
            raise ValueError("patch.from must be a non-empty string")
        if find == replace:
            raise ValueError("patch.from and patch.to must differ")
        return cls(find=find, replace=replace)

    def apply(self, content: bytes, path: Path) -> bytes:
        find = self.find.encode("utf-8")
        replace = self.replace.encode("utf-8")
        count = content.count(find)
        # A patched form that embeds the anchor would otherwise match again.
        if replace in content and (count == 0 or find in replace):
            raise AlreadyPatchedError(path, self.replace)
        if count != 1:
            raise PatchMismatchError(path, self.find, count)
        return content.replace(find, replace, 1)

    def is_applied(self, content: bytes) -> bool:
        return self.replace.encode("utf-8") in content

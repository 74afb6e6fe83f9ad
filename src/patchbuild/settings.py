from __future__ import annotations

from dataclasses import dataclass, field

from patchbuild.invoke.build_tool import ToolSettings
from patchbuild.manifest.patch_rule import PatchRule
from patchbuild.utils.config import AppConfig, DEFAULTS


@dataclass
class LockSettings:
    enabled: bool = False
    suffix: str = ".patchbuild.lock"


@dataclass
class BuildSettings:
    manifest: str = "Cargo.toml"
    backup_suffix: str = ".bak"
    rule: PatchRule = field(default_factory=lambda: PatchRule.from_config(DEFAULTS["patch"]))
    tool: ToolSettings = field(default_factory=ToolSettings)
    lock: LockSettings = field(default_factory=LockSettings)

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "BuildSettings":
        raw = cfg.raw
        lock_cfg = raw.get("lock", {}) or {}
        backup_suffix = str(raw.get("backup_suffix", ".bak"))
        if not backup_suffix:
            raise ValueError("backup_suffix must be non-empty")
        return cls(
            manifest=str(raw.get("manifest", "Cargo.toml")),
            backup_suffix=backup_suffix,
            rule=PatchRule.from_config(raw.get("patch", {}) or {}),
            tool=ToolSettings.from_config(raw.get("tool", {}) or {}),
            lock=LockSettings(
                enabled=bool(lock_cfg.get("enabled", False)),
                suffix=str(lock_cfg.get("suffix", ".patchbuild.lock")),
            ),
        )

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import yaml

DEFAULTS: Dict[str, Any] = {
    "manifest": "Cargo.toml",
    "backup_suffix": ".bak",
    "patch": {
        "from": 'crate-type = ["rlib"]',
        "to": 'crate-type = ["rlib", "cdylib"]',
    },
    "tool": {
        "command": "wasm-pack",
        "subcommand": "build",
        "target": "bundler",
        "out_name": "rojo",
        "default_out_dir": "pkg",
        "kill_grace_sec": 5.0,
    },
    "lock": {
        "enabled": False,
        "suffix": ".patchbuild.lock",
    },
}


def load_yaml(path: str | Path) -> Dict[str, Any]:
    """Load YAML config into a dict."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping at the top level.")
    return data


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@dataclass
class AppConfig:
    raw: Dict[str, Any]

    @classmethod
    def from_files(cls, *paths: str | Path) -> "AppConfig":
        merged: Dict[str, Any] = deep_merge({}, DEFAULTS)
        for path in paths:
            merged = deep_merge(merged, load_yaml(path))
        return cls(raw=merged)

    @classmethod
    def defaults(cls) -> "AppConfig":
        return cls.from_files()

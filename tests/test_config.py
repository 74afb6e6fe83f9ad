from pathlib import Path

import pytest

from patchbuild.settings import BuildSettings
from patchbuild.utils.config import AppConfig, deep_merge


def test_defaults_match_wasm_pack_build():
    settings = BuildSettings.from_config(AppConfig.defaults())
    assert settings.manifest == "Cargo.toml"
    assert settings.backup_suffix == ".bak"
    assert settings.rule.find == 'crate-type = ["rlib"]'
    assert settings.rule.replace == 'crate-type = ["rlib", "cdylib"]'
    assert settings.tool.argv(["--dev"]) == [
        "wasm-pack", "build", "--target", "bundler", "--out-name", "rojo", "--dev",
    ]
    assert settings.lock.enabled is False


def test_shipped_config_equals_defaults():
    shipped = Path(__file__).resolve().parents[1] / "configs" / "wasm.yaml"
    assert AppConfig.from_files(shipped).raw == AppConfig.defaults().raw


def test_override_file_merges_nested_keys(tmp_path: Path):
    override = tmp_path / "override.yaml"
    override.write_text("tool:\n  out_name: mylib\nlock:\n  enabled: true\n", encoding="utf-8")
    settings = BuildSettings.from_config(AppConfig.from_files(override))
    assert settings.tool.out_name == "mylib"
    assert settings.tool.command == "wasm-pack"
    assert settings.lock.enabled is True


def test_deep_merge_keeps_base_untouched():
    base = {"tool": {"target": "bundler", "out_name": "rojo"}}
    merged = deep_merge(base, {"tool": {"target": "web"}})
    assert merged == {"tool": {"target": "web", "out_name": "rojo"}}
    assert base["tool"]["target"] == "bundler"


def test_empty_patch_anchor_rejected(tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("patch:\n  from: ''\n", encoding="utf-8")
    with pytest.raises(ValueError):
        BuildSettings.from_config(AppConfig.from_files(bad))

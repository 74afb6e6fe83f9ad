import os
import stat
import sys
from pathlib import Path

import pytest

MANIFEST = """[package]
name = "rojo"
version = "7.4.0"

[lib]
path = "src/lib.rs"
crate-type = ["rlib"]

[dependencies]
anyhow = "1.0"
"""

FAKE_TOOL = """#!{python}
import json
import os
import signal
import sys
import time
from pathlib import Path

record = {{
    "argv": sys.argv[1:],
    "cwd": str(Path.cwd()),
    "manifest": Path("Cargo.toml").read_text(encoding="utf-8"),
}}
Path(os.environ["FAKE_TOOL_RECORD"]).write_text(json.dumps(record), encoding="utf-8")

if os.environ.get("FAKE_TOOL_SELFKILL"):
    os.kill(os.getpid(), signal.SIGKILL)

ready = os.environ.get("FAKE_TOOL_READY")
if ready:
    Path(ready).write_text("running", encoding="utf-8")
    time.sleep(60)

sys.exit(int(os.environ.get("FAKE_TOOL_EXIT", "0")))
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    (root / "Cargo.toml").write_text(MANIFEST, encoding="utf-8")
    return root


@pytest.fixture
def fake_tool(tmp_path: Path, monkeypatch) -> Path:
    if os.name != "posix":
        pytest.skip("fake build tool relies on a shebang script")
    tool = tmp_path / "fake-wasm-pack"
    tool.write_text(FAKE_TOOL.format(python=sys.executable), encoding="utf-8")
    tool.chmod(tool.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("FAKE_TOOL_RECORD", str(tmp_path / "record.json"))
    return tool


@pytest.fixture
def tool_config(tmp_path: Path, fake_tool: Path) -> Path:
    cfg = tmp_path / "tool.yaml"
    cfg.write_text(f"tool:\n  command: '{fake_tool}'\n  kill_grace_sec: 2.0\n", encoding="utf-8")
    return cfg

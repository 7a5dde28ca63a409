import json
import os
import subprocess
import sys
from pathlib import Path

SRC = Path(__file__).resolve().parents[1] / "src"


def _run(*args: str, config: Path) -> subprocess.CompletedProcess:
    env = dict(os.environ)
    env["LIMITBAR_CONFIG_PATH"] = str(config)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "limitbar.cli", *args],
        check=False,
        capture_output=True,
        text=True,
        env=env,
    )


def test_cli_health_runs(tmp_path: Path) -> None:
    proc = _run("health", config=tmp_path / "config.toml")
    assert proc.returncode == 0
    checks = json.loads(proc.stdout)
    assert checks["config"] == str(tmp_path / "config.toml")
    assert checks["config_exists"] is False


def test_cli_config_path(tmp_path: Path) -> None:
    proc = _run("config", "path", config=tmp_path / "c.toml")
    assert proc.returncode == 0
    assert proc.stdout.strip() == str(tmp_path / "c.toml")


def test_cli_config_init_then_snapshot(tmp_path: Path) -> None:
    config = tmp_path / "config.toml"

    init = _run("config", "init", config=config)
    assert init.returncode == 0
    assert config.exists()
    assert _run("config", "init", config=config).returncode == 1

    snap = _run("snapshot", config=config)
    assert snap.returncode == 0
    payload = json.loads(snap.stdout)
    assert len(payload["accounts"]) == 3


def test_cli_config_show_reports_decode_error(tmp_path: Path) -> None:
    config = tmp_path / "config.toml"
    config.write_text("= broken")

    proc = _run("config", "show", config=config)

    assert proc.returncode == 1
    assert "Failed to decode" in proc.stderr

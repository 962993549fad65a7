import subprocess
import sys
from pathlib import Path

import pytest

from xirrcalc.scenario_runner import run_dir

ROOT = Path(__file__).resolve().parents[2]

NO_FINAL = """\
entries:
  - { label: seed, direction: contribution, amount: 1000, date: 2023-01-01 }
"""


def _write(p: Path, name: str, text: str) -> Path:
    f = p / name
    f.write_text(text, encoding="utf-8")
    return f


def test_strict_requires_final_in_runner(tmp_path: Path, monkeypatch):
    cfg = _write(tmp_path, "no_final.yaml", NO_FINAL)
    monkeypatch.setenv("VALIDATION_MODE", "strict")
    with pytest.raises(SystemExit):
        run_dir(cfg, tmp_path / "out")


def test_strict_accepts_final_from_caller(tmp_path: Path, monkeypatch):
    cfg = _write(tmp_path, "no_final.yaml", NO_FINAL)
    monkeypatch.setenv("VALIDATION_MODE", "strict")
    res = run_dir(cfg, tmp_path / "out", final_amount="1100", final_date="2024-01-01")
    assert res.summary["ok"] is True


def test_cli_strict_flag_requires_final(tmp_path: Path):
    cfg = _write(tmp_path, "no_final.yaml", NO_FINAL)
    with pytest.raises(subprocess.CalledProcessError) as ei:
        subprocess.check_call(
            [sys.executable, "-m", "xirrcalc", "--config", str(cfg), "--strict"],
            cwd=ROOT,
            stderr=subprocess.DEVNULL,
        )
    assert ei.value.returncode == 2

import io
import json

import pytest

from xirrcalc.config import final_valuation, load_ledger_config, solver_settings
from xirrcalc.validate import _main as validate_main
from xirrcalc.validate import validate_ledger_dict, validate_solver_dict

LEDGER_YAML = """\
entries:
  - { label: seed, direction: contribution, amount: "1,000", date: 2023-01-01 }
final: { amount: 1100, date: 2024-01-01 }
solver: { tolerance: 1e-9 }
"""


def test_load_yaml_stream():
    cfg = load_ledger_config(io.StringIO(LEDGER_YAML))
    assert cfg["entries"][0]["amount"] == "1,000"
    amount, d = final_valuation(cfg)
    assert amount == 1100
    assert str(d) == "2024-01-01"


def test_load_json_file(tmp_path):
    p = tmp_path / "l.json"
    p.write_text(json.dumps({"entries": [{"amount": 5, "date": "2023-01-01"}]}), encoding="utf-8")
    cfg = load_ledger_config(p)
    assert cfg["entries"][0]["amount"] == 5
    assert final_valuation(cfg) == (None, None)


def test_load_csv_file(tmp_path):
    p = tmp_path / "l.csv"
    p.write_text("Date,Amount,Direction\n2023-01-01,\"1,000\",out\n2023-06-01,200,in\n", encoding="utf-8")
    cfg = load_ledger_config(p)
    assert cfg["entries"] == [
        {"label": "", "direction": "out", "amount": "1,000", "date": "2023-01-01"},
        {"label": "", "direction": "in", "amount": "200", "date": "2023-06-01"},
    ]


def test_csv_requires_amount_and_date(tmp_path):
    p = tmp_path / "l.csv"
    p.write_text("label,amount\nx,1\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        load_ledger_config(p)


def test_directory_is_rejected(tmp_path):
    with pytest.raises(SystemExit):
        load_ledger_config(tmp_path)


def test_broken_yaml(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("entries: [\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        load_ledger_config(p)


def test_solver_settings_precedence(monkeypatch):
    cfg = load_ledger_config(io.StringIO(LEDGER_YAML))
    monkeypatch.delenv("XIRR_GUESS", raising=False)
    monkeypatch.delenv("XIRR_TOLERANCE", raising=False)
    monkeypatch.setenv("XIRR_MAX_ITERATIONS", "250")
    s = solver_settings(cfg, {"guess": 0.2, "tolerance": None})
    assert s == {"guess": 0.2, "max_iterations": 250, "tolerance": 1e-9}


def test_solver_settings_bad_env(monkeypatch):
    monkeypatch.setenv("XIRR_GUESS", "ten percent")
    with pytest.raises(SystemExit):
        solver_settings({})


def test_validate_relaxed_ok():
    validate_ledger_dict(load_ledger_config(io.StringIO(LEDGER_YAML)), mode="relaxed")


@pytest.mark.parametrize(
    "data",
    [
        {},
        {"entries": "nope"},
        {"entries": [1, 2]},
        {"entries": [], "final": 5},
        {"entries": [], "solver": {"max_iterations": 0}},
        {"entries": [], "solver": {"tolerance": "tiny"}},
    ],
)
def test_validate_rejects_bad_shapes(data):
    with pytest.raises(SystemExit):
        validate_ledger_dict(data, mode="relaxed")


def test_strict_mode():
    data = {"entries": [], "final": {"amount": 1, "date": "2024-01-01"}}
    validate_ledger_dict(data, mode="strict")
    with pytest.raises(SystemExit, match="unknown top-level keys"):
        validate_ledger_dict({**data, "notes": "x"}, mode="strict")
    with pytest.raises(SystemExit, match="requires a 'final' block"):
        validate_ledger_dict({"entries": []}, mode="strict")
    with pytest.raises(SystemExit, match="unknown keys"):
        validate_ledger_dict({**data, "entries": [{"amount": 1, "date": "x", "memo": 1}]}, mode="strict")


def test_solver_bounds():
    validate_solver_dict({"guess": 0.1, "max_iterations": 100, "tolerance": 1e-7})
    with pytest.raises(SystemExit, match="outside allowed range"):
        validate_solver_dict({"guess": -1.0})


def test_validate_cli(tmp_path, capsys):
    good = tmp_path / "good.yaml"
    good.write_text(LEDGER_YAML, encoding="utf-8")
    assert validate_main([str(good)]) == 0
    (tmp_path / "bad.yaml").write_text("final: {}\n", encoding="utf-8")
    assert validate_main([str(tmp_path)]) == 1
    assert "missing required keys" in capsys.readouterr().err


def test_broken_json(tmp_path):
    p = tmp_path / "bad.json"
    p.write_text('{"entries": [', encoding="utf-8")
    with pytest.raises(SystemExit, match="invalid JSON ledger"):
        load_ledger_config(p)


@pytest.mark.parametrize("text", ["", 'amount,date\n"1,2023-01-01\n'])
def test_broken_csv(tmp_path, text):
    p = tmp_path / "bad.csv"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(SystemExit, match="invalid CSV ledger"):
        load_ledger_config(p)


@pytest.mark.parametrize("raw", ["inf", "1e400", "nan"])
def test_solver_settings_non_finite_iterations(monkeypatch, raw):
    monkeypatch.setenv("XIRR_MAX_ITERATIONS", raw)
    with pytest.raises(SystemExit, match="XIRR_MAX_ITERATIONS"):
        solver_settings({})


def test_solver_settings_non_finite_file_and_override(monkeypatch):
    monkeypatch.delenv("XIRR_MAX_ITERATIONS", raising=False)
    with pytest.raises(SystemExit, match="solver.max_iterations"):
        solver_settings({"solver": {"max_iterations": float("inf")}})
    with pytest.raises(SystemExit, match="max_iterations"):
        solver_settings({}, {"max_iterations": float("inf")})


def test_strict_csv_ledger_has_no_final_block(tmp_path, capsys):
    p = tmp_path / "rows.csv"
    p.write_text("label,direction,amount,date\nseed,out,1000,2023-01-01\n", encoding="utf-8")
    assert validate_main([str(p), "--mode", "strict"]) == 0
    validate_ledger_dict(load_ledger_config(p), mode="strict", require_final=False)
    with pytest.raises(SystemExit, match="final missing required keys"):
        validate_ledger_dict({"entries": [], "final": {}}, mode="strict", require_final=False)

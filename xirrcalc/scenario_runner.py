# xirrcalc/scenario_runner.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, List, Mapping, Optional
from datetime import datetime
import json, csv
import logging

from .adapters import run_ledger
from .config import solver_settings
from .validate import (
    iter_ledger_files,
    load_ledger_from_file,
    mode_from_env_or_flag,
    validate_ledger_dict,
    validate_solver_dict,
)

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    summary: Dict[str, Any]
    summary_path: Path
    results_path: Optional[Path] = None


def _write_jsonl(path: Path, rows: List[Dict[str, Any]]) -> None:
    with path.open("w", encoding="utf-8") as f:
        for row in rows:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")


def _write_csv(path: Path, rows: List[Dict[str, Any]]) -> None:
    if not rows:
        path.write_text("", encoding="utf-8")
        return
    cols: List[str] = []
    for row in rows:
        for k in row.keys():
            if k not in cols:
                cols.append(k)
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=cols)
        w.writeheader()
        for row in rows:
            w.writerow({k: row.get(k, "") for k in cols})


def _write_rows(base: Path, rows: List[Dict[str, Any]], fmt: str) -> Path:
    if fmt == "jsonl":
        path = base.parent / f"{base.name}.jsonl"
        _write_jsonl(path, rows)
    elif fmt == "csv":
        path = base.parent / f"{base.name}.csv"
        _write_csv(path, rows)
    else:
        raise SystemExit(f"unknown fmt: {fmt}")
    logger.info("wrote %s", path)
    return path


def _flat_row(name: str, res: Mapping[str, Any]) -> Dict[str, Any]:
    row: Dict[str, Any] = {"ledger": name, "ok": res["ok"], "rate": res["rate"], "rate_pct": res["rate_pct"]}
    err = res.get("error") or {}
    row["error_kind"] = err.get("kind")
    row["error_message"] = err.get("message")
    for k, v in (res.get("summary") or {}).items():
        if k not in ("rate", "rate_pct"):
            row[k] = v
    return row


def run_one(
    cfg_path: Path,
    *,
    mode: str = "relaxed",
    final_amount: Any = None,
    final_date: Any = None,
    solver: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    params = load_ledger_from_file(cfg_path)
    if final_amount is not None or final_date is not None:
        final = dict(params.get("final") or {})
        if final_amount is not None:
            final["amount"] = final_amount
        if final_date is not None:
            final["date"] = final_date
        params["final"] = final
    validate_ledger_dict(params, mode=mode)
    # env and caller overrides get the same range checks as the file
    validate_solver_dict(solver_settings(params, solver))
    return run_ledger(params, solver=solver)


def run_dir(
    config: str | Path,
    out_dir: str | Path,
    *,
    fmt: str = "jsonl",
    save_cashflows: bool = False,
    final_amount: Any = None,
    final_date: Any = None,
    solver: Optional[Mapping[str, Any]] = None,
    mode: Optional[str] = None,
) -> RunResult:
    """
    Single ledger file -> summary.json (+ optional cash-flow listing).
    Directory          -> summary.json keyed by file name + results.{jsonl,csv}.
    """
    cfg_path = Path(config)
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    mode = mode_from_env_or_flag(mode)
    summary_path = out / "summary.json"

    if cfg_path.is_dir():
        results: Dict[str, Any] = {}
        rows: List[Dict[str, Any]] = []
        for f in iter_ledger_files(cfg_path):
            try:
                res = run_one(f, mode=mode, final_amount=final_amount, final_date=final_date, solver=solver)
            except SystemExit as e:
                logger.warning("%s: skipped (%s)", f, e)
                continue
            name = str(f.relative_to(cfg_path))
            res.pop("cashflows", None)
            results[name] = res
            rows.append(_flat_row(name, res))
        if not results:
            raise ValueError(f"{cfg_path}: no ledger files found")
        summary_path.write_text(json.dumps(results, indent=2, ensure_ascii=False), encoding="utf-8")
        written = _write_rows(out / "results", rows, fmt)
        return RunResult(summary=results, summary_path=summary_path, results_path=written)

    # Single file path
    res = run_one(cfg_path, mode=mode, final_amount=final_amount, final_date=final_date, solver=solver)
    cashflows = res.pop("cashflows", [])
    summary_path.write_text(json.dumps(res, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("wrote %s", summary_path)

    results_path: Optional[Path] = None
    if save_cashflows:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        results_path = _write_rows(out / f"{cfg_path.stem}_cashflows_{stamp}", cashflows, fmt)

    return RunResult(summary=res, summary_path=summary_path, results_path=results_path)


__all__ = ["RunResult", "run_dir", "run_one"]

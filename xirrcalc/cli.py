# xirrcalc/cli.py
from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Mapping

# Only imports the thin runner; the math stays behind adapters/finance
from .scenario_runner import run_dir, run_one
from .validate import mode_from_env_or_flag, _main as validate_main

DEFAULT_LEDGER = Path(__file__).resolve().parent / "inputs" / "ledgers" / "scenario_a.yaml"


def parse_args(argv: list[str] | None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="xirrcalc",
        description="Money-weighted annualised return (XIRR) from dated contributions and withdrawals",
    )
    p.add_argument(
        "--mode",
        default="xirr",
        choices=["xirr", "validate"],
        help="Execution mode (default: xirr).",
    )
    p.add_argument(
        "--config",
        default=None,
        help="Ledger file (YAML/JSON/CSV) or a directory of ledgers. If omitted, uses the bundled demo ledger.",
    )
    p.add_argument("--final-amount", default=None, help="Terminal valuation amount (overrides the ledger).")
    p.add_argument("--final-date", default=None, help="Terminal valuation date, YYYY-MM-DD (overrides the ledger).")
    p.add_argument("--guess", type=float, default=None, help="Initial rate for the solver (default: 0.1).")
    p.add_argument("--max-iterations", type=int, default=None, help="Solver iteration cap (default: 100).")
    p.add_argument("--tolerance", type=float, default=None, help="Solver convergence step (default: 1e-7).")
    p.add_argument(
        "--outputs-dir",
        default=None,
        help="If set, write summary.json (and result files) here. Required for a directory of ledgers.",
    )
    p.add_argument(
        "--format",
        dest="fmt",
        default="text",
        choices=["text", "json", "jsonl", "csv"],
        help="Console format; jsonl/csv also select the result-file format (default: text).",
    )
    p.add_argument(
        "--save-cashflows",
        action="store_true",
        help="With --outputs-dir, also write the signed cash-flow listing.",
    )
    v = p.add_mutually_exclusive_group()
    v.add_argument("--strict", action="store_true", help="Enable strict validation (unknown keys raise).")
    v.add_argument("--relaxed", action="store_true", help="Enable relaxed validation (default).")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr.")
    return p.parse_args(argv)


def _apply_validation_mode(ns: argparse.Namespace) -> None:
    # Default: leave env as-is; flags override explicitly.
    if ns.strict:
        os.environ["VALIDATION_MODE"] = "strict"
    elif ns.relaxed:
        os.environ["VALIDATION_MODE"] = "relaxed"


def _money(x: Any) -> str:
    return f"{float(x):,.2f}"


def _print_text(res: Mapping[str, Any]) -> None:
    if not res["ok"]:
        print(res["error"]["message"], file=sys.stderr)
        return
    s = res["summary"]
    print(f"Annualised return (XIRR): {res['rate_pct']}")
    print(f"Total contributed:  {_money(s['total_contributed'])}")
    print(f"Total withdrawn:    {_money(s['total_withdrawn'])}")
    print(f"Final value:        {_money(s['final_amount'])}")
    print(f"Net profit:         {_money(s['net_profit'])}")
    if s["total_return_pct"] is not None:
        print(f"Total return:       {s['total_return_pct']}")
    print(f"Holding period:     {s['holding_years']:.2f} years")


def _print_csv(res: Mapping[str, Any]) -> None:
    row: Dict[str, Any] = {"ok": res["ok"], "rate": res["rate"], "rate_pct": res["rate_pct"]}
    row["error_kind"] = (res.get("error") or {}).get("kind")
    row.update({k: v for k, v in (res.get("summary") or {}).items() if k not in row})
    w = csv.DictWriter(sys.stdout, fieldnames=list(row))
    w.writeheader()
    w.writerow(row)


def _emit(res: Mapping[str, Any], fmt: str) -> None:
    if fmt == "json":
        print(json.dumps(res, indent=2, ensure_ascii=False))
    elif fmt == "jsonl":
        print(json.dumps(res, ensure_ascii=False))
    elif fmt == "csv":
        _print_csv(res)
    else:
        _print_text(res)


def main(argv: list[str] | None = None) -> int:
    try:
        ns = parse_args(argv)
    except SystemExit as e:
        # argparse exits 0 for --help, 2 for usage errors
        return int(e.code) if isinstance(e.code, int) else 2

    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    _apply_validation_mode(ns)
    mode = mode_from_env_or_flag(None)

    cfg_path = Path(ns.config).resolve() if ns.config else DEFAULT_LEDGER

    if ns.mode == "validate":
        return validate_main([str(cfg_path), "--mode", mode])

    solver = {"guess": ns.guess, "max_iterations": ns.max_iterations, "tolerance": ns.tolerance}
    file_fmt = ns.fmt if ns.fmt in ("jsonl", "csv") else "jsonl"

    try:
        if ns.outputs_dir:
            rr = run_dir(
                cfg_path,
                Path(ns.outputs_dir).resolve(),
                fmt=file_fmt,
                save_cashflows=ns.save_cashflows,
                final_amount=ns.final_amount,
                final_date=ns.final_date,
                solver=solver,
                mode=mode,
            )
            if cfg_path.is_dir():
                failed = [name for name, res in rr.summary.items() if not res["ok"]]
                print(f"Ran {len(rr.summary)} ledger(s), {len(failed)} failed. Summary: {rr.summary_path}")
                return 1 if failed else 0
            _emit(rr.summary, ns.fmt)
            return 0 if rr.summary["ok"] else 1

        if cfg_path.is_dir():
            print("a directory of ledgers needs --outputs-dir", file=sys.stderr)
            return 2
        res = run_one(
            cfg_path,
            mode=mode,
            final_amount=ns.final_amount,
            final_date=ns.final_date,
            solver=solver,
        )
    except SystemExit as e:
        # configuration / file-shape problems
        print(str(e), file=sys.stderr)
        return 2
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    _emit(res, ns.fmt)
    return 0 if res["ok"] else 1


__all__ = ["main", "parse_args"]

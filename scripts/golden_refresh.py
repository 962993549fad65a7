"""Rebuild tests/golden/summary.json from the bundled Scenario A ledger (needs `pip install -e .`)."""
from __future__ import annotations

import json
import sys
from pathlib import Path

from xirrcalc.scenario_runner import run_one

ROOT = Path(__file__).resolve().parents[1]
LEDGER = ROOT / "xirrcalc" / "inputs" / "ledgers" / "scenario_a.yaml"
BASELINE = ROOT / "tests" / "golden" / "summary.json"
FROZEN_KEYS = ("rate", "net_profit", "holding_years")


def main() -> int:
    res = run_one(LEDGER, mode="relaxed")
    if not res["ok"]:
        print(f"[x] {LEDGER.name}: {res['error']['message']}", file=sys.stderr)
        return 1

    figures = {"rate": res["rate"], **res["summary"]}
    baseline = {k: round(float(figures[k]), 9) for k in FROZEN_KEYS}
    BASELINE.write_text(json.dumps(baseline, indent=2, sort_keys=True), encoding="utf-8")
    print(f"[ok] {BASELINE.relative_to(ROOT)}: {baseline}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

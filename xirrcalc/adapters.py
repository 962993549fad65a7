# xirrcalc/adapters.py
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, Mapping, Optional

from xirrcalc.config import final_valuation, solver_settings
from xirrcalc.finance.cashflow import BuildResult, ErrorKind, ValidationError, build
from xirrcalc.finance.irr import (
    DEFAULT_GUESS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    xirr,
)
from xirrcalc.finance.metrics import format_percent, summarize


def _cashflow_rows(result: BuildResult) -> list[Dict[str, Any]]:
    return [{"date": cf.date.isoformat(), "amount": cf.amount} for cf in result.cashflows]


def _failure(error: ValidationError, result: Optional[BuildResult] = None) -> Dict[str, Any]:
    return {
        "ok": False,
        "rate": None,
        "rate_pct": None,
        "error": error.as_dict(),
        "summary": None,
        "cashflows": _cashflow_rows(result) if result is not None and result.ok else [],
    }


def run_xirr(
    entries: Iterable[Any],
    final_amount: Any,
    final_date: Any,
    *,
    guess: float = DEFAULT_GUESS,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Dict[str, Any]:
    """
    High-level adapter:
      1) Build the signed, dated cash-flow list from raw rows + final valuation.
      2) Solve for the annualised rate.
      3) Attach the display summary.

    Returns:
      {
        'ok': bool,
        'rate': float | None,
        'rate_pct': '12.34%' | None,
        'error': {'kind', 'message', 'index', 'field'} | None,
        'summary': {...} | None,
        'cashflows': [{'date': 'YYYY-MM-DD', 'amount': float}, ...],
      }
    """
    result = build(entries, final_amount, final_date)
    if not result.ok:
        return _failure(result.error)

    rate = xirr(result.cashflows, guess=guess, max_iterations=max_iterations, tolerance=tolerance)
    if rate is None or not math.isfinite(rate):
        return _failure(ValidationError.of(ErrorKind.NO_CONVERGENCE), result)

    summary = summarize(result, rate)
    return {
        "ok": True,
        "rate": rate,
        "rate_pct": format_percent(rate),
        "error": None,
        "summary": summary.as_dict(),
        "cashflows": _cashflow_rows(result),
    }


def run_ledger(
    cfg: Mapping[str, Any],
    *,
    final_amount: Any = None,
    final_date: Any = None,
    solver: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """run_xirr() for a loaded ledger mapping; explicit arguments win over the file."""
    file_amount, file_date = final_valuation(cfg)
    settings = solver_settings(cfg, solver)
    return run_xirr(
        cfg.get("entries") or [],
        file_amount if final_amount is None else final_amount,
        file_date if final_date is None else final_date,
        **settings,
    )


__all__ = ["run_xirr", "run_ledger"]

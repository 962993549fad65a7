from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple
import os
import io
import json
from pathlib import Path

import pandas as pd
import yaml

from .schema import CSV_COLUMNS, SOLVER_DEFAULTS, SOLVER_ENV, SOLVER_SCHEMA


def _read_csv_entries(source: str | os.PathLike | io.StringIO) -> List[Dict[str, Any]]:
    """
    CSV ledgers carry rows only (label, direction, amount, date); the final
    valuation comes from the caller. Cells are kept as text so the builder
    does the parsing.
    """
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False, skipinitialspace=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise SystemExit(f"invalid CSV ledger: {e}") from e
    df.columns = [str(c).strip().lower() for c in df.columns]
    missing = [c for c in ("amount", "date") if c not in df.columns]
    if missing:
        raise SystemExit(f"CSV ledger missing required columns: {missing}")
    for col in CSV_COLUMNS:
        if col not in df.columns:
            df[col] = ""
    return df[list(CSV_COLUMNS)].to_dict(orient="records")


def _safe_yaml(text: str) -> Any:
    try:
        return yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise SystemExit(f"invalid YAML ledger: {e}") from e


def _safe_json(text: str) -> Any:
    try:
        return json.loads(text or "{}")
    except json.JSONDecodeError as e:
        raise SystemExit(f"invalid JSON ledger: {e}") from e


def load_ledger_config(source: str | os.PathLike | io.StringIO) -> Dict[str, Any]:
    """
    Load a ledger from a path (.yaml/.yml/.json/.csv) or a YAML text stream.
    Shape checks are left to validate.validate_ledger_dict.
    """
    if hasattr(source, "read"):
        cfg = _safe_yaml(str(source.read()))
    else:
        p = Path(os.fspath(source))
        if p.is_dir():
            raise SystemExit(f"{p} is a directory (expected a file)")
        suffix = p.suffix.lower()
        if suffix == ".csv":
            return {"entries": _read_csv_entries(p)}
        text = p.read_text(encoding="utf-8")
        if suffix == ".json":
            cfg = _safe_json(text)
        else:
            cfg = _safe_yaml(text)

    if not isinstance(cfg, dict):
        raise SystemExit("ledger must be a mapping with an 'entries' list")
    return cfg


def final_valuation(cfg: Mapping[str, Any]) -> Tuple[Any, Any]:
    """(amount, date) of the terminal valuation; either may be None."""
    final = cfg.get("final") or {}
    if not isinstance(final, dict):
        return None, None
    return final.get("amount"), final.get("date")


def _coerce(key: str, value: Any) -> Any:
    kind = SOLVER_SCHEMA[key]["type"]
    # PyYAML reads "1e-7" (no dot) as a string
    return int(float(value)) if kind == "int" else float(value)


def solver_settings(
    cfg: Optional[Mapping[str, Any]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Resolve guess / max_iterations / tolerance.
    Precedence: defaults < ledger `solver:` block < environment < overrides.
    Unknown keys are ignored here; range checks live in validate.
    """
    out: Dict[str, Any] = dict(SOLVER_DEFAULTS)
    block = (cfg or {}).get("solver") or {}
    if isinstance(block, dict):
        for k, v in block.items():
            if k in SOLVER_SCHEMA and v is not None:
                try:
                    out[k] = _coerce(k, v)
                except (TypeError, ValueError, OverflowError):
                    raise SystemExit(f"solver.{k} must be numeric, got {v!r}") from None
    for k, env_name in SOLVER_ENV.items():
        raw = os.environ.get(env_name)
        if raw:
            try:
                out[k] = _coerce(k, raw)
            except (ValueError, OverflowError):
                raise SystemExit(f"{env_name} must be numeric, got {raw!r}") from None
    for k, v in (overrides or {}).items():
        if k in SOLVER_SCHEMA and v is not None:
            try:
                out[k] = _coerce(k, v)
            except (TypeError, ValueError, OverflowError):
                raise SystemExit(f"{k} must be a finite number, got {v!r}") from None
    return out

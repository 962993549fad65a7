# xirrcalc/validate.py
from __future__ import annotations
import os, sys
from pathlib import Path
from typing import Any, Dict, Iterable, List

from .config import load_ledger_config
from .schema import ENTRY_KEYS, FINAL_KEYS, LEDGER_KEYS, SOLVER_SCHEMA

LEDGER_SUFFIXES = (".yaml", ".yml", ".json", ".csv")


def mode_from_env_or_flag(flag: str | None) -> str:
    if flag in ("strict", "relaxed"):
        return flag
    env = (os.environ.get("VALIDATION_MODE") or "").lower()
    return env if env in ("strict", "relaxed") else "relaxed"


def validate_ledger_dict(data: Dict[str, Any], *, mode: str = "relaxed", require_final: bool = True) -> None:
    """
    File-shape guardrails (row contents are the builder's job):
      - relaxed: require an `entries` list of mappings
      - strict : also require `final` and reject unknown keys
    CSV ledgers have no `final` block; pass require_final=False for them.
    """
    if "entries" not in data:
        raise SystemExit("missing required keys: ['entries']")
    entries = data["entries"]
    if not isinstance(entries, list):
        raise SystemExit("entries must be a list")
    for i, row in enumerate(entries):
        if not isinstance(row, dict):
            raise SystemExit(f"entries[{i}] must be a mapping")

    final = data.get("final")
    if final is not None and not isinstance(final, dict):
        raise SystemExit("final must be a mapping with 'amount' and 'date'")

    if mode == "strict":
        unknown = sorted(k for k in data.keys() if k not in LEDGER_KEYS)
        if unknown:
            raise SystemExit(f"unknown top-level keys (strict mode): {unknown}")
        if final is None and require_final:
            raise SystemExit("strict mode requires a 'final' block")
        missing = sorted(FINAL_KEYS - set(final)) if final is not None else []
        if missing:
            raise SystemExit(f"final missing required keys: {missing}")
        for i, row in enumerate(entries):
            extra = sorted(k for k in row.keys() if k not in ENTRY_KEYS)
            if extra:
                raise SystemExit(f"entries[{i}] has unknown keys (strict mode): {extra}")

    solver = data.get("solver")
    if solver is not None:
        validate_solver_dict(solver, mode=mode)


def validate_solver_dict(data: Any, *, mode: str = "relaxed") -> None:
    if not isinstance(data, dict):
        raise SystemExit("solver must be a mapping")
    if mode == "strict":
        unknown = sorted(k for k in data.keys() if k not in SOLVER_SCHEMA)
        if unknown:
            raise SystemExit(f"unknown solver keys (strict mode): {unknown}")
    for k, bounds in SOLVER_SCHEMA.items():
        if k not in data:
            continue
        try:
            v = float(data[k])
        except (TypeError, ValueError):
            raise SystemExit(f"solver.{k} must be numeric, got {data[k]!r}") from None
        lo, hi = float(bounds["min"]), float(bounds["max"])
        if not (lo <= v <= hi):
            raise SystemExit(f"solver.{k} outside allowed range [{lo}, {hi}]: {v}")


def load_ledger_from_file(path: Path) -> Dict[str, Any]:
    return load_ledger_config(Path(path))


def iter_ledger_files(p: Path) -> Iterable[Path]:
    if p.is_file():
        yield p
    elif p.is_dir():
        for f in sorted(p.rglob("*")):
            if f.is_file() and f.suffix.lower() in LEDGER_SUFFIXES:
                yield f


def _main(argv: List[str] | None = None) -> int:
    import argparse
    parser = argparse.ArgumentParser(prog="xirrcalc.validate", add_help=True)
    parser.add_argument("paths", nargs="+", help="ledger files (YAML/JSON/CSV) or directories to validate")
    parser.add_argument("--mode", choices=["strict", "relaxed"], default=None, help="validation mode")
    args = parser.parse_args(argv)

    mode = mode_from_env_or_flag(args.mode)
    had_error = False

    for raw in args.paths:
        target = Path(raw)
        any_seen = False
        for f in iter_ledger_files(target):
            any_seen = True
            try:
                data = load_ledger_from_file(f)
                validate_ledger_dict(data, mode=mode, require_final=f.suffix.lower() != ".csv")
                print(f"OK: {f}")
            except SystemExit as e:
                print(f"{f}: {e}", file=sys.stderr)
                had_error = True
            except Exception as e:
                print(f"{f}: ERROR: {e}", file=sys.stderr)
                had_error = True
        if not any_seen:
            print(f"{target}: no ledger files found", file=sys.stderr)
            had_error = True

    return 1 if had_error else 0


if __name__ == "__main__":
    raise SystemExit(_main())

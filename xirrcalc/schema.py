from __future__ import annotations
from typing import Dict, Any

# Solver settings: type, min/max ranges, and description.
SOLVER_SCHEMA: Dict[str, Dict[str, Any]] = {
    "guess":          {"unit": "rate/yr", "type": "float", "min": -0.99,  "max": 10.0,  "desc": "Initial Newton-Raphson rate"},
    "max_iterations": {"unit": "steps",   "type": "int",   "min": 1,      "max": 10000, "desc": "Iteration cap before giving up"},
    "tolerance":      {"unit": "rate/yr", "type": "float", "min": 1e-15,  "max": 1e-2,  "desc": "Step size treated as converged"},
}

SOLVER_DEFAULTS: Dict[str, Any] = {
    "guess": 0.1,
    "max_iterations": 100,
    "tolerance": 1e-7,
}

# Environment overrides, applied after the ledger file and before CLI flags.
SOLVER_ENV: Dict[str, str] = {
    "guess": "XIRR_GUESS",
    "max_iterations": "XIRR_MAX_ITERATIONS",
    "tolerance": "XIRR_TOLERANCE",
}

# Ledger file layout
LEDGER_KEYS = {"entries", "final", "solver"}
ENTRY_KEYS = {"label", "direction", "amount", "date"}
FINAL_KEYS = {"amount", "date"}
CSV_COLUMNS = ("label", "direction", "amount", "date")

# xirrcalc/finance/daycount.py
"""
Calendar-date helpers shared by the builder and the solver.

Fixed 365-day year, no leap-year adjustment.
"""
from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, List, Sequence

import numpy as np
import pandas as pd

DAYS_PER_YEAR = 365.0

# pandas resolves these against the clock
_RELATIVE_WORDS = frozenset({"today", "now", "yesterday", "tomorrow"})


class DateParseError(ValueError):
    pass


def parse_date(raw: Any) -> date:
    """
    Coerce a date-like value (date, datetime, Timestamp, ISO string) to a
    plain calendar date. Time components are dropped.
    """
    if raw is None or (isinstance(raw, float) and math.isnan(raw)):
        raise DateParseError("date is missing")
    if isinstance(raw, (bool, int, float)):
        # pandas would read bare numbers as epoch offsets
        raise DateParseError(f"not a calendar date: {raw!r}")
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str) and not raw.strip():
        raise DateParseError("date is missing")
    if isinstance(raw, str) and raw.strip().lower() in _RELATIVE_WORDS:
        raise DateParseError(f"not a calendar date: {raw!r}")
    try:
        ts = pd.to_datetime(raw.strip() if isinstance(raw, str) else raw)
    except (ValueError, TypeError, OverflowError) as e:
        raise DateParseError(f"unparseable date: {raw!r}") from e
    if pd.isna(ts):
        raise DateParseError(f"unparseable date: {raw!r}")
    return ts.date()


def days_between(start: date, end: date) -> int:
    return (end - start).days


def year_fraction(start: date, end: date) -> float:
    return days_between(start, end) / DAYS_PER_YEAR


def year_fractions(dates: Sequence[date]) -> np.ndarray:
    """Year fractions of each date measured from the earliest one (t=0)."""
    origin = min(dates)
    out: List[float] = [year_fraction(origin, d) for d in dates]
    return np.asarray(out, dtype=np.float64)

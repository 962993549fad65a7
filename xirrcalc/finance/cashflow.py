# xirrcalc/finance/cashflow.py
"""
Cash-flow builder: turns user-entered rows plus a terminal valuation into a
chronologically ordered list of signed, dated amounts ready for the solver.

Sign convention:
  - Contribution           -> negative (money leaving the investor)
  - Withdrawal             -> positive (money the investor receives)
  - Terminal valuation > 0 -> positive, dated at the valuation date

build() never raises for bad input. It returns a BuildResult whose `error`
names the first problem found.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from xirrcalc.finance.daycount import DateParseError, parse_date

logger = logging.getLogger(__name__)


class AmountParseError(ValueError):
    pass


class Direction(str, Enum):
    CONTRIBUTION = "contribution"
    WITHDRAWAL = "withdrawal"

    @classmethod
    def parse(cls, raw: Any) -> "Direction":
        if isinstance(raw, Direction):
            return raw
        if is_blank(raw):
            return cls.CONTRIBUTION
        key = str(raw).strip().lower()
        # "out"/"in" are the short forms used by the entry form
        aliases = {"out": cls.CONTRIBUTION, "in": cls.WITHDRAWAL}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"unknown direction: {raw!r}") from None

    @property
    def sign(self) -> float:
        return -1.0 if self is Direction.CONTRIBUTION else 1.0


class ErrorKind(str, Enum):
    INVALID_ENTRY = "InvalidEntry"
    NO_VALID_ENTRIES = "NoValidEntries"
    INVALID_FINAL_AMOUNT = "InvalidFinalAmount"
    INVALID_FINAL_DATE = "InvalidFinalDate"
    FINAL_DATE_TOO_EARLY = "FinalDateTooEarly"
    DEGENERATE_CASHFLOWS = "DegenerateCashflows"
    NO_CONVERGENCE = "NoConvergence"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.INVALID_ENTRY: "every record needs an amount greater than 0 and a valid date",
    ErrorKind.NO_VALID_ENTRIES: "enter at least one record",
    ErrorKind.INVALID_FINAL_AMOUNT: "enter a valid final value",
    ErrorKind.INVALID_FINAL_DATE: "enter a valid final date",
    ErrorKind.FINAL_DATE_TOO_EARLY: "final date must be after the first record",
    ErrorKind.DEGENERATE_CASHFLOWS: "need both contributions and returns",
    ErrorKind.NO_CONVERGENCE: "could not compute a rate; check inputs",
}


@dataclass(frozen=True)
class ValidationError:
    kind: ErrorKind
    message: str
    index: Optional[int] = None
    field: Optional[str] = None

    @classmethod
    def of(cls, kind: ErrorKind, *, index: Optional[int] = None, field: Optional[str] = None,
           detail: Optional[str] = None) -> "ValidationError":
        msg = kind.message
        if index is not None:
            msg = f"record {index + 1}: {msg}"
        if detail:
            msg = f"{msg} ({detail})"
        return cls(kind=kind, message=msg, index=index, field=field)

    def as_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "index": self.index, "field": self.field}


class CashflowError(ValueError):
    """Raised by callers that prefer exceptions over BuildResult.error."""

    def __init__(self, error: ValidationError):
        super().__init__(error.message)
        self.error = error


@dataclass(frozen=True)
class Cashflow:
    date: date
    amount: float

    def __post_init__(self) -> None:
        if self.amount == 0:
            raise ValueError("cash flow amount must be non-zero")


@dataclass
class RawEntry:
    """One user-entered row. `label` is advisory and never inspected."""
    label: str = ""
    direction: Any = Direction.CONTRIBUTION
    amount: Any = None
    date: Any = None

    @classmethod
    def from_mapping(cls, row: Mapping[str, Any]) -> "RawEntry":
        return cls(
            label=str(row.get("label") or ""),
            direction=row.get("direction", Direction.CONTRIBUTION),
            amount=row.get("amount"),
            date=row.get("date"),
        )


@dataclass
class BuildResult:
    entries: Tuple[Cashflow, ...] = ()
    final_amount: float = 0.0
    final_date: Optional[date] = None
    error: Optional[ValidationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def cashflows(self) -> List[Cashflow]:
        """Entry flows plus the terminal flow (only when final_amount > 0)."""
        out = list(self.entries)
        if self.ok and self.final_amount > 0 and self.final_date is not None:
            out.append(Cashflow(self.final_date, self.final_amount))
        return out

    def unwrap(self) -> List[Cashflow]:
        if self.error is not None:
            raise CashflowError(self.error)
        return self.cashflows


# ---------- Parse step ----------
def is_blank(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, float) and math.isnan(raw):
        # empty CSV cells arrive as NaN
        return True
    return isinstance(raw, str) and not raw.strip()


def parse_amount(raw: Any) -> float:
    """
    Parse a user-entered amount. Thousands separators and surrounding blanks
    are tolerated; anything that is not a finite number raises AmountParseError.
    """
    if is_blank(raw):
        raise AmountParseError("amount is missing")
    if isinstance(raw, bool):
        raise AmountParseError(f"not a number: {raw!r}")
    if isinstance(raw, (int, float, Decimal)):
        value = float(raw)
    else:
        text = str(raw).strip().replace(",", "").replace("_", "").replace(" ", "")
        try:
            value = float(text)
        except ValueError:
            raise AmountParseError(f"not a number: {raw!r}") from None
    if not math.isfinite(value):
        raise AmountParseError(f"not a finite number: {raw!r}")
    return value


# ---------- Builder ----------
def _fail(kind: ErrorKind, **kw: Any) -> BuildResult:
    err = ValidationError.of(kind, **kw)
    logger.debug("build failed: %s", err.message)
    return BuildResult(error=err)


def _as_entry(e: Any) -> Optional[RawEntry]:
    """Accept a RawEntry, a mapping, or a (label, direction, amount, date) sequence."""
    if isinstance(e, RawEntry):
        return e
    if isinstance(e, Mapping):
        return RawEntry.from_mapping(e)
    if isinstance(e, (list, tuple)) and len(e) == 4:
        return RawEntry(*e)
    return None


def build(entries: Iterable[Any], final_amount: Any, final_date: Any) -> BuildResult:
    """
    Validate raw rows and the terminal valuation into solver input.

    Checks run in a fixed order and the first failure wins:
    per-row amount/date/direction, at least one row, final amount >= 0,
    final date, final date strictly after the earliest row, sign mix.
    """
    flows: List[Cashflow] = []
    skipped = 0

    for i, raw in enumerate(entries):
        e = _as_entry(raw)
        if e is None:
            return _fail(ErrorKind.INVALID_ENTRY, index=i, field="entry", detail=f"unsupported row: {raw!r}")
        if is_blank(e.amount) and is_blank(e.date):
            skipped += 1
            continue

        try:
            amt = parse_amount(e.amount)
        except AmountParseError as ex:
            return _fail(ErrorKind.INVALID_ENTRY, index=i, field="amount", detail=str(ex))
        if amt <= 0:
            return _fail(ErrorKind.INVALID_ENTRY, index=i, field="amount", detail="amount must be > 0")

        try:
            d = parse_date(e.date)
        except DateParseError as ex:
            return _fail(ErrorKind.INVALID_ENTRY, index=i, field="date", detail=str(ex))

        try:
            direction = Direction.parse(e.direction)
        except ValueError as ex:
            return _fail(ErrorKind.INVALID_ENTRY, index=i, field="direction", detail=str(ex))

        flows.append(Cashflow(d, direction.sign * amt))

    if skipped:
        logger.debug("skipped %d blank row(s)", skipped)
    if not flows:
        return _fail(ErrorKind.NO_VALID_ENTRIES)

    try:
        final = parse_amount(final_amount)
    except AmountParseError as ex:
        return _fail(ErrorKind.INVALID_FINAL_AMOUNT, field="final_amount", detail=str(ex))
    if final < 0:
        return _fail(ErrorKind.INVALID_FINAL_AMOUNT, field="final_amount", detail="must be >= 0")

    try:
        final_d = parse_date(final_date)
    except DateParseError as ex:
        return _fail(ErrorKind.INVALID_FINAL_DATE, field="final_date", detail=str(ex))

    # list.sort is stable: same-day rows keep their input order
    flows.sort(key=lambda cf: cf.date)

    if final_d <= flows[0].date:
        return _fail(ErrorKind.FINAL_DATE_TOO_EARLY, field="final_date")

    result = BuildResult(entries=tuple(flows), final_amount=final, final_date=final_d)
    if not has_sign_mix(result.cashflows):
        return _fail(ErrorKind.DEGENERATE_CASHFLOWS)
    return result


def has_sign_mix(cashflows: Iterable[Cashflow]) -> bool:
    amounts = [cf.amount for cf in cashflows]
    return any(a > 0 for a in amounts) and any(a < 0 for a in amounts)


__all__ = [
    "AmountParseError",
    "BuildResult",
    "Cashflow",
    "CashflowError",
    "Direction",
    "ErrorKind",
    "RawEntry",
    "ValidationError",
    "build",
    "has_sign_mix",
    "is_blank",
    "parse_amount",
]

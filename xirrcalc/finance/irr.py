# xirrcalc/finance/irr.py
from __future__ import annotations

import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from xirrcalc.finance.cashflow import Cashflow, has_sign_mix
from xirrcalc.finance.daycount import year_fractions

logger = logging.getLogger(__name__)

DEFAULT_GUESS = 0.1
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_TOLERANCE = 1e-7
# Below this slope a Newton step is not trusted
FLAT_DERIVATIVE = 1e-12


def _arrays(cashflows: Sequence[Cashflow]) -> Tuple[np.ndarray, np.ndarray]:
    amounts = np.asarray([float(cf.amount) for cf in cashflows], dtype=np.float64)
    years = year_fractions([cf.date for cf in cashflows])
    return amounts, years


def _base(rate: float) -> float:
    base = 1.0 + float(rate)
    if not base > 0.0:
        raise ValueError(f"rate {rate!r} gives a non-positive discount base")
    return base


# ---------- XNPV ----------
def xnpv(rate: float, cashflows: Sequence[Cashflow]) -> float:
    """
    Date-aware net present value, discounted to the earliest flow:
        XNPV(r) = sum_i CF[i] / (1+r)^t[i],   t[i] = days since earliest / 365

    Raises ValueError when 1 + rate <= 0 (no real-valued result).
    """
    base = _base(rate)
    amounts, years = _arrays(cashflows)
    return float(np.dot(amounts, base ** -years))


def xnpv_derivative(rate: float, cashflows: Sequence[Cashflow]) -> float:
    """
    d/dr XNPV(r) = sum_i CF[i] * (-t[i]) * (1+r)^(-t[i]-1)
    """
    base = _base(rate)
    amounts, years = _arrays(cashflows)
    return float(np.dot(amounts * -years, base ** (-years - 1.0)))


# ---------- XIRR (Newton-Raphson) ----------
def xirr(
    cashflows: Sequence[Cashflow],
    guess: float = DEFAULT_GUESS,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> Optional[float]:
    """
    Annualised money-weighted rate r with XNPV(r) = 0.

    Returns a decimal rate (0.096 = 9.6%), or None when no rate could be
    determined: fewer than two flows, no sign mix, a flat derivative, an
    iterate at or below -100%, a non-finite intermediate, or no convergence
    within max_iterations. None never means "zero".

    Input order does not matter; t=0 is the earliest date present.
    """
    flows = list(cashflows)
    if len(flows) < 2:
        logger.debug("xirr: need at least 2 cash flows, got %d", len(flows))
        return None
    if not has_sign_mix(flows):
        logger.debug("xirr: cash flows need both signs")
        return None

    # year fractions are fixed across iterations
    amounts, years = _arrays(flows)
    rate = float(guess)

    for i in range(int(max_iterations)):
        base = 1.0 + rate
        if not (math.isfinite(base) and base > 0.0):
            logger.debug("xirr: iterate %r left the real domain at step %d", rate, i)
            return None

        discount = base ** -years
        f = float(np.dot(amounts, discount))
        f_prime = float(np.dot(amounts * -years, discount / base))
        if not (math.isfinite(f) and math.isfinite(f_prime)):
            logger.debug("xirr: non-finite NPV at rate %r", rate)
            return None

        if abs(f_prime) < FLAT_DERIVATIVE:
            logger.debug("xirr: derivative too flat at rate %r", rate)
            return None

        new_rate = rate - f / f_prime
        if not math.isfinite(new_rate):
            return None

        if abs(new_rate - rate) < tolerance:
            if new_rate <= -1.0:
                return None
            logger.debug("xirr: converged to %.10f after %d step(s)", new_rate, i + 1)
            return new_rate

        rate = new_rate

    logger.debug("xirr: no convergence after %d iterations", max_iterations)
    return None


__all__ = [
    "DEFAULT_GUESS",
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_TOLERANCE",
    "xnpv",
    "xnpv_derivative",
    "xirr",
]

"""
Display summary derived from a built cash-flow list.

Same sign convention and 365-day year as the builder and solver:
contributions are the negative entry flows, interim withdrawals the positive
ones; the terminal valuation is reported separately.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .cashflow import BuildResult
from .daycount import year_fraction


@dataclass(frozen=True)
class Summary:
    total_contributed: float
    total_withdrawn: float
    final_amount: float
    net_profit: float
    total_return: Optional[float]
    holding_years: float
    rate: Optional[float] = None

    @property
    def rate_pct(self) -> Optional[str]:
        return format_percent(self.rate)

    def as_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["rate_pct"] = self.rate_pct
        out["total_return_pct"] = format_percent(self.total_return)
        return out


def format_percent(value: Optional[float], digits: int = 2) -> Optional[str]:
    if value is None:
        return None
    return f"{value * 100:.{digits}f}%"


def summarize(result: BuildResult, rate: Optional[float] = None) -> Summary:
    """Totals, net profit, simple total return and holding period."""
    if not result.ok or not result.entries or result.final_date is None:
        raise ValueError("summarize() needs a successful BuildResult")

    contributed = sum(-cf.amount for cf in result.entries if cf.amount < 0)
    withdrawn = sum(cf.amount for cf in result.entries if cf.amount > 0)
    final = result.final_amount
    net = final + withdrawn - contributed
    earliest = result.entries[0].date

    return Summary(
        total_contributed=contributed,
        total_withdrawn=withdrawn,
        final_amount=final,
        net_profit=net,
        total_return=(net / contributed) if contributed > 0 else None,
        holding_years=year_fraction(earliest, result.final_date),
        rate=rate,
    )


__all__ = ["Summary", "format_percent", "summarize"]

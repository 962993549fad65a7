import pytest

from xirrcalc.finance.cashflow import build
from xirrcalc.finance.metrics import format_percent, summarize


def _scenario_b():
    rows = [
        {"direction": "contribution", "amount": 100000, "date": "2023-01-01"},
        {"direction": "withdrawal", "amount": 20000, "date": "2023-07-01"},
    ]
    return build(rows, 90000, "2024-01-01")


def test_summary_figures():
    s = summarize(_scenario_b(), rate=0.111)
    assert s.total_contributed == 100000
    assert s.total_withdrawn == 20000
    assert s.final_amount == 90000
    assert s.net_profit == 10000
    assert s.total_return == pytest.approx(0.1)
    assert s.holding_years == pytest.approx(1.0)
    assert s.rate_pct == "11.10%"


def test_holding_period_uses_365_day_year():
    # 2024 is a leap year: 366 days
    res = build([{"direction": "out", "amount": 1, "date": "2024-01-01"}], 2, "2025-01-01")
    assert summarize(res).holding_years == pytest.approx(366 / 365)


def test_as_dict_has_display_fields():
    d = summarize(_scenario_b()).as_dict()
    assert d["rate"] is None and d["rate_pct"] is None
    assert d["total_return_pct"] == "10.00%"


def test_failed_build_cannot_be_summarised():
    with pytest.raises(ValueError):
        summarize(build([], 1, "2024-01-01"))


@pytest.mark.parametrize("value, text", [(0.58, "58.00%"), (-0.1056, "-10.56%"), (None, None)])
def test_format_percent(value, text):
    assert format_percent(value) == text

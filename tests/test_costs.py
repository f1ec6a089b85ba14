from datetime import date

import pytest

from energy_insights.analysis.costs import (
    cost_rows,
    delta,
    percent_change,
    rows_total,
    to_cost,
    validate_rate,
)
from energy_insights.models import CostDelta, InvalidConfigurationError, PeriodRow


def row(day: int, **values) -> PeriodRow:
    return PeriodRow(label=f"2024-03-{day:02d}", values=values, day=date(2024, 3, day))


def test_to_cost():
    assert to_cost(10, 6.14) == 61.4
    assert to_cost(0, 6.14) == 0.0
    assert to_cost(1.234, 1) == 1.23


@pytest.mark.parametrize("rate", [0, -1, float("nan"), float("inf"), "6.14", None, True])
def test_invalid_rate_rejected(rate):
    with pytest.raises(InvalidConfigurationError):
        validate_rate(rate)
    with pytest.raises(InvalidConfigurationError):
        to_cost(1.0, rate)


def test_cost_rows():
    rows = cost_rows([row(1, TV=1.0, Fridge=0.5)], 6.14)
    assert rows[0].values == {"TV": 6.14, "Fridge": 3.07}
    assert rows[0].label == "2024-03-01"
    assert rows[0].day == date(2024, 3, 1)


def test_rows_total():
    assert rows_total([row(1, TV=1.1, Fridge=2.2), row(2, TV=3.3)]) == 6.6
    assert rows_total([]) == 0.0


def test_delta_without_previous_data():
    """No previous rows means no baseline, not a zero baseline."""
    result = delta([row(1, TV=10.0)], None, 6.14)
    assert result == CostDelta(current_total=61.4)
    assert result.previous_total is None
    assert result.percent_change is None
    assert result.savings is None

    assert delta([row(1, TV=10.0)], [], 6.14).previous_total is None


def test_delta_with_zero_previous():
    result = delta([row(2, TV=10.0)], [row(1, TV=0.0)], 1.0)
    assert result.previous_total == 0.0
    assert result.percent_change is None
    assert result.savings == -10.0


def test_delta_percent_change():
    result = delta([row(2, TV=20.0)], [row(1, TV=10.0)], 1.0)
    assert result.current_total == 20.0
    assert result.previous_total == 10.0
    assert result.percent_change == 100.0
    assert result.savings == -10.0

    cheaper = delta([row(2, TV=7.5)], [row(1, TV=10.0)], 2.0)
    assert cheaper.percent_change == -25.0
    assert cheaper.savings == 5.0


def test_percent_change():
    assert percent_change(110, 100) == 10.0
    assert percent_change(1, 3) == -66.67
    assert percent_change(5, 0) is None
    assert percent_change(5, None) is None

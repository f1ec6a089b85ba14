"""Cost calculation and period-over-period cost comparison."""

import math
from typing import Iterable, Sequence

from ..models import CostDelta, InvalidConfigurationError, PeriodRow


def validate_rate(rate: float) -> float:
    """Return the rate if it is a positive finite number, else raise."""
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        raise InvalidConfigurationError(f"Rate per kWh must be a number, got {rate!r}")
    if not math.isfinite(rate) or rate <= 0:
        raise InvalidConfigurationError(f"Rate per kWh must be positive, got {rate!r}")
    return float(rate)


def to_cost(kwh: float, rate: float) -> float:
    """Cost of `kwh` at `rate` per kWh, rounded to 2 decimals."""
    return round(kwh * validate_rate(rate), 2)


def _sum_rows(rows: Iterable[PeriodRow]) -> float:
    return sum(sum(row.values.values()) for row in rows)


def rows_total(rows: Iterable[PeriodRow]) -> float:
    """Total kWh across every row and appliance."""
    return round(_sum_rows(rows), 2)


def cost_rows(rows: Iterable[PeriodRow], rate: float) -> list[PeriodRow]:
    """Convert kWh rows into per-appliance cost rows."""
    rate = validate_rate(rate)
    return [
        PeriodRow(
            label=row.label,
            values={name: round(kwh * rate, 2) for name, kwh in row.values.items()},
            day=row.day,
            hour=row.hour,
        )
        for row in rows
    ]


def percent_change(current: float, previous: float | None) -> float | None:
    """Percent change from previous to current. None when there is no baseline."""
    if previous is None or previous == 0:
        return None
    return round((current - previous) / previous * 100, 2)


def delta(
    current_rows: Sequence[PeriodRow],
    previous_rows: Sequence[PeriodRow] | None,
    rate: float,
) -> CostDelta:
    """Compare the cost of two periods' rows.

    Pass None (or no rows) for the previous period when it has no data.
    """
    rate = validate_rate(rate)
    current = round(_sum_rows(current_rows) * rate, 2)

    if not previous_rows:
        return CostDelta(current_total=current)

    previous = round(_sum_rows(previous_rows) * rate, 2)
    return CostDelta(
        current_total=current,
        previous_total=previous,
        percent_change=percent_change(current, previous),
    )

"""Run-rate forecasting: project a full-period total from the elapsed part."""

from collections import defaultdict
from datetime import date, datetime
from typing import Iterable, Sequence

from ..models import ForecastPoint, ForecastResult, Granularity, Period, Reading
from ..periods import days_in_month, days_in_year
from .aggregation import HOURS_PER_DAY, readings_in_period


def _cumulative_series(daily: dict[date, float], days: Sequence[date]) -> tuple[ForecastPoint, ...]:
    points = []
    cumulative = 0.0
    for day in days:
        cumulative += daily.get(day, 0.0)
        points.append(ForecastPoint(day=day, cumulative_kwh=round(cumulative, 2)))
    return tuple(points)


def _project(period: Period, elapsed: float, in_period: list[Reading], today: date) -> float:
    """Extrapolate the elapsed total of an in-progress period to its full length."""
    if period.granularity is Granularity.DAY:
        latest_hour = max((r.timestamp.hour for r in in_period), default=0)
        hours_elapsed = max(1, latest_hour + 1)
        return elapsed / hours_elapsed * HOURS_PER_DAY

    if period.granularity is Granularity.WEEK:
        days_elapsed = (today - period.start).days + 1
        return elapsed / max(1, days_elapsed) * period.length_days

    if period.granularity is Granularity.MONTH:
        month_days = days_in_month(period.start.year, period.start.month)
        days_elapsed = min(today.day, month_days)
        return elapsed / max(1, days_elapsed) * month_days

    day_of_year = today.timetuple().tm_yday
    return elapsed / max(1, day_of_year) * days_in_year(period.start.year)


def forecast_period(
    period: Period,
    readings: Iterable[Reading],
    now: datetime,
    active_appliances: Sequence[str] | None = None,
) -> ForecastResult:
    """Forecast the full-period total for `period` as seen from `now`.

    Only the period containing `now` is extrapolated. A period entirely in the
    past projects exactly its elapsed total; a future period projects nothing.
    """
    today = now.date() if isinstance(now, datetime) else now

    if period.start > today:
        return ForecastResult(elapsed_total=0.0, projected_total=0.0)

    in_period = readings_in_period(readings, period, active_appliances)
    if period.granularity is Granularity.DAY and isinstance(now, datetime):
        # Hourly buckets count once their hour has started
        in_period = [r for r in in_period if r.timestamp.replace(minute=0, second=0, microsecond=0) <= now]

    daily: dict[date, float] = defaultdict(float)
    for reading in in_period:
        daily[reading.timestamp.date()] += reading.energy_kwh

    elapsed_days = [day for day in period.days if day <= today]
    series = _cumulative_series(daily, elapsed_days)
    elapsed_kwh = sum(daily.get(day, 0.0) for day in elapsed_days)
    elapsed = round(elapsed_kwh, 2)

    if not period.contains(today):
        return ForecastResult(elapsed_total=elapsed, projected_total=elapsed, series=series)

    projected = round(_project(period, elapsed_kwh, in_period, today), 2)
    return ForecastResult(
        elapsed_total=elapsed,
        projected_total=projected,
        series=series,
        is_current=True,
    )

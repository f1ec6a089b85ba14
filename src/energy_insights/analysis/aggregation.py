"""Group readings into day buckets and expand periods into zero-filled chart rows."""

import logging
from collections import defaultdict
from datetime import date, datetime, time
from typing import Iterable, Mapping, Sequence

from ..models import (
    ApplianceUsage,
    DayBucket,
    Granularity,
    InvalidConfigurationError,
    Period,
    PeriodRow,
    Reading,
    UsageProfile,
)
from ..periods import day_key, hour_label, month_key

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24


def build_day_buckets(readings: Iterable[Reading]) -> dict[date, DayBucket]:
    """Sum kWh per appliance for every calendar day present in the readings.

    Readings without an appliance cannot be attributed and are skipped.
    """
    totals: dict[date, dict[str, float]] = defaultdict(lambda: defaultdict(float))
    for reading in readings:
        if not reading.appliance:
            continue
        totals[reading.timestamp.date()][reading.appliance] += reading.energy_kwh

    return {day: DayBucket(day=day, totals=totals[day]) for day in sorted(totals)}


def all_appliances(readings: Iterable[Reading]) -> list[str]:
    """Every attributed appliance name in the readings, sorted."""
    return sorted({r.appliance for r in readings if r.appliance})


def resolve_active_appliances(
    readings: Iterable[Reading], selection: Iterable[str] | None = None
) -> tuple[str, ...]:
    """Resolve the appliances to include in a view.

    An empty or missing selection means every observed appliance, in
    lexicographic order. Otherwise the selection is kept in caller order with
    duplicates and blank names removed.
    """
    chosen = []
    for name in selection or ():
        name = str(name).strip()
        if name and name not in chosen:
            chosen.append(name)

    if not chosen:
        return tuple(all_appliances(readings))
    return tuple(chosen)


def readings_in_period(
    readings: Iterable[Reading],
    period: Period,
    active_appliances: Sequence[str] | None = None,
) -> list[Reading]:
    """Attributed readings that fall inside the period (and the appliance filter)."""
    active = set(active_appliances) if active_appliances else None
    return [
        r
        for r in readings
        if r.appliance
        and period.contains(r.timestamp)
        and (active is None or r.appliance in active)
    ]


def has_readings(readings: Iterable[Reading], period: Period) -> bool:
    """Whether any reading (attributed or not) falls inside the period."""
    return any(period.contains(r.timestamp) for r in readings)


def _hourly_rows(
    period: Period, readings: Iterable[Reading], active_appliances: Sequence[str]
) -> list[PeriodRow]:
    hours = [dict.fromkeys(active_appliances, 0.0) for _ in range(HOURS_PER_DAY)]
    for reading in readings:
        if reading.timestamp.date() != period.start:
            continue
        bucket = hours[reading.timestamp.hour]
        if reading.appliance in bucket:
            bucket[reading.appliance] += reading.energy_kwh

    return [
        PeriodRow(
            label=hour_label(hour),
            values={name: round(kwh, 2) for name, kwh in values.items()},
            day=period.start,
            hour=hour,
        )
        for hour, values in enumerate(hours)
    ]


def _daily_rows(
    period: Period, day_buckets: Mapping[date, DayBucket], active_appliances: Sequence[str]
) -> list[PeriodRow]:
    rows = []
    for day in period.days:
        bucket = day_buckets.get(day)
        values = {name: round(bucket.get(name) if bucket else 0.0, 2) for name in active_appliances}
        rows.append(PeriodRow(label=day_key(day), values=values, day=day))
    return rows


def _monthly_rows(
    period: Period, day_buckets: Mapping[date, DayBucket], active_appliances: Sequence[str]
) -> list[PeriodRow]:
    months = {month: dict.fromkeys(active_appliances, 0.0) for month in range(1, 13)}
    for day, bucket in day_buckets.items():
        if not period.contains(day):
            continue
        for name in active_appliances:
            months[day.month][name] += bucket.get(name)

    return [
        PeriodRow(
            label=month_key(period.start.year, month),
            values={name: round(kwh, 2) for name, kwh in values.items()},
            day=date(period.start.year, month, 1),
        )
        for month, values in months.items()
    ]


def rows_for_period(
    period: Period,
    day_buckets: Mapping[date, DayBucket],
    active_appliances: Sequence[str],
    readings: Iterable[Reading] | None = None,
) -> list[PeriodRow]:
    """Expand a period into zero-filled rows, one per bucket.

    DAY periods produce 24 hourly rows and need the raw readings for hour
    resolution. WEEK and MONTH produce one row per calendar day, YEAR one row
    per calendar month. Values are rounded to 2 decimals here and nowhere
    earlier.
    """
    if period.granularity is Granularity.DAY:
        if readings is None:
            raise InvalidConfigurationError("Hourly rows for a day period need the raw readings")
        return _hourly_rows(period, readings, active_appliances)
    if period.granularity is Granularity.YEAR:
        return _monthly_rows(period, day_buckets, active_appliances)
    return _daily_rows(period, day_buckets, active_appliances)


def row_start(row: PeriodRow) -> datetime | None:
    """The instant a row's bucket starts."""
    if row.day is None:
        return None
    return datetime.combine(row.day, time(row.hour or 0))


def rows_until(rows: Iterable[PeriodRow], moment: date | datetime) -> list[PeriodRow]:
    """Rows whose bucket starts at or before `moment` (the "so far" slice)."""
    if not isinstance(moment, datetime):
        moment = datetime.combine(moment, time.max)
    return [row for row in rows if row.day is not None and row_start(row) <= moment]


def appliance_usage(
    readings: Iterable[Reading],
    period: Period,
    active_appliances: Sequence[str] | None = None,
) -> list[ApplianceUsage]:
    """Per-appliance totals for the period, largest first."""
    totals: dict[str, float] = defaultdict(float)
    for reading in readings_in_period(readings, period, active_appliances):
        totals[reading.appliance] += reading.energy_kwh

    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))
    return [ApplianceUsage(appliance=name, kwh=round(kwh, 2)) for name, kwh in ranked]


def top_appliances(usage: Sequence[ApplianceUsage], limit: int = 5) -> list[ApplianceUsage]:
    return list(usage[:limit])


def build_usage_profile(
    readings: Iterable[Reading],
    period: Period,
    active_appliances: Sequence[str] | None = None,
) -> UsageProfile:
    """Aggregate one period for the recommendation rules."""
    in_period = readings_in_period(readings, period, active_appliances)

    appliance_totals: dict[str, float] = defaultdict(float)
    hourly: dict[str, list[float]] = defaultdict(lambda: [0.0] * HOURS_PER_DAY)
    daily: dict[date, float] = defaultdict(float)
    for reading in in_period:
        appliance_totals[reading.appliance] += reading.energy_kwh
        hourly[reading.appliance][reading.timestamp.hour] += reading.energy_kwh
        daily[reading.timestamp.date()] += reading.energy_kwh

    logger.debug("Profiled %s readings for %s", len(in_period), period.key)
    return UsageProfile(
        appliance_totals=dict(appliance_totals),
        hourly_by_appliance={name: tuple(hours) for name, hours in hourly.items()},
        daily_totals={day: daily[day] for day in sorted(daily)},
        reading_count=len(in_period),
    )


def peak_hour(hourly: Sequence[float]) -> tuple[int, float]:
    """The busiest hour of day and its kWh. Ties go to the earliest hour."""
    if not hourly:
        return 0, 0.0
    best = 0
    for hour, kwh in enumerate(hourly):
        if kwh > hourly[best]:
            best = hour
    return best, round(hourly[best], 2)

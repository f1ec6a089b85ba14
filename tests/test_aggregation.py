from datetime import date, datetime

import pytest

from energy_insights.analysis.aggregation import (
    appliance_usage,
    build_day_buckets,
    build_usage_profile,
    peak_hour,
    resolve_active_appliances,
    rows_for_period,
    rows_until,
    top_appliances,
)
from energy_insights.models import Granularity, InvalidConfigurationError, Reading
from energy_insights.periods import period_for


def reading(ts: datetime, appliance: str | None = "TV", kwh: float = 1.0) -> Reading:
    return Reading(timestamp=ts, appliance=appliance, energy_kwh=kwh)


@pytest.fixture
def readings():
    return [
        reading(datetime(2024, 3, 4, 10, 5), "TV", 1.0),
        reading(datetime(2024, 3, 4, 10, 40), "TV", 2.0),
        reading(datetime(2024, 3, 4, 18, 0), "Fridge", 0.5),
        reading(datetime(2024, 3, 6, 9, 0), "Fridge", 1.25),
        reading(datetime(2024, 3, 6, 9, 30), None, 7.0),
        reading(datetime(2024, 2, 28, 12, 0), "Heater", 4.0),
    ]


def test_day_buckets_skip_unattributed(readings):
    buckets = build_day_buckets(readings)
    assert list(buckets) == [date(2024, 2, 28), date(2024, 3, 4), date(2024, 3, 6)]
    assert buckets[date(2024, 3, 4)].get("TV") == 3.0
    assert buckets[date(2024, 3, 4)].get("Heater") == 0.0
    assert buckets[date(2024, 3, 6)].total_kwh == 1.25


def test_same_hour_readings_are_summed(readings):
    """Two TV readings in the 10:00 hour land in one hourly row."""
    period = period_for(Granularity.DAY, date(2024, 3, 4))
    rows = rows_for_period(period, build_day_buckets(readings), ("TV", "Fridge"), readings)

    assert len(rows) == 24
    assert rows[10].label == "10:00"
    assert rows[10].hour == 10
    assert rows[10].values == {"TV": 3.0, "Fridge": 0.0}
    assert rows[18].values == {"TV": 0.0, "Fridge": 0.5}
    assert rows[0].values == {"TV": 0.0, "Fridge": 0.0}


@pytest.mark.parametrize(
    "granularity,anchor,expected",
    [
        ("week", date(2024, 3, 6), 7),
        ("month", date(2023, 2, 10), 28),
        ("month", date(2024, 2, 10), 29),
        ("month", date(2024, 4, 10), 30),
        ("month", date(2024, 1, 10), 31),
        ("year", date(2024, 6, 1), 12),
    ],
)
def test_row_counts(readings, granularity, anchor, expected):
    period = period_for(granularity, anchor)
    rows = rows_for_period(period, build_day_buckets(readings), ("TV",))
    assert len(rows) == expected


def test_week_rows_are_zero_filled(readings):
    period = period_for(Granularity.WEEK, date(2024, 3, 6))
    rows = rows_for_period(period, build_day_buckets(readings), ("Fridge", "TV"))

    assert [row.label for row in rows] == [f"2024-03-{d:02d}" for d in range(4, 11)]
    assert rows[0].values == {"Fridge": 0.5, "TV": 3.0}
    assert rows[1].values == {"Fridge": 0.0, "TV": 0.0}
    assert rows[2].values == {"Fridge": 1.25, "TV": 0.0}
    assert all(row.total == 0.0 for row in rows[3:])


def test_year_rows_are_monthly(readings):
    period = period_for(Granularity.YEAR, date(2024, 1, 1))
    rows = rows_for_period(period, build_day_buckets(readings), ("Fridge", "Heater", "TV"))

    assert rows[0].label == "2024-01"
    assert rows[1].values == {"Fridge": 0.0, "Heater": 4.0, "TV": 0.0}
    assert rows[2].values == {"Fridge": 1.75, "Heater": 0.0, "TV": 3.0}
    assert rows[11].day == date(2024, 12, 1)


def test_rows_only_include_active_appliances(readings):
    period = period_for(Granularity.MONTH, date(2024, 3, 1))
    rows = rows_for_period(period, build_day_buckets(readings), ("Fridge",))
    assert all(set(row.values) == {"Fridge"} for row in rows)
    assert sum(row.total for row in rows) == 1.75


def test_rows_are_idempotent(readings):
    period = period_for(Granularity.MONTH, date(2024, 3, 1))
    buckets = build_day_buckets(readings)
    assert rows_for_period(period, buckets, ("TV",)) == rows_for_period(period, buckets, ("TV",))


def test_values_rounded_at_emission():
    readings = [reading(datetime(2024, 3, 4, 1), "TV", 0.1), reading(datetime(2024, 3, 4, 2), "TV", 0.2)]
    period = period_for(Granularity.WEEK, date(2024, 3, 4))
    rows = rows_for_period(period, build_day_buckets(readings), ("TV",))
    assert rows[0].values["TV"] == 0.3


def test_day_rows_need_raw_readings(readings):
    period = period_for(Granularity.DAY, date(2024, 3, 4))
    with pytest.raises(InvalidConfigurationError):
        rows_for_period(period, build_day_buckets(readings), ("TV",))


def test_resolve_active_appliances(readings):
    assert resolve_active_appliances(readings) == ("Fridge", "Heater", "TV")
    assert resolve_active_appliances(readings, []) == ("Fridge", "Heater", "TV")
    assert resolve_active_appliances(readings, ["TV", "TV", " ", "Fridge"]) == ("TV", "Fridge")
    assert resolve_active_appliances([], None) == ()


def test_rows_until_slices_elapsed_buckets(readings):
    period = period_for(Granularity.MONTH, date(2024, 3, 1))
    rows = rows_for_period(period, build_day_buckets(readings), ("TV",))
    assert len(rows_until(rows, date(2024, 3, 5))) == 5

    day = period_for(Granularity.DAY, date(2024, 3, 4))
    hourly = rows_for_period(day, build_day_buckets(readings), ("TV",), readings)
    assert len(rows_until(hourly, datetime(2024, 3, 4, 10, 30))) == 11


def test_appliance_usage_ranked(readings):
    period = period_for(Granularity.MONTH, date(2024, 3, 1))
    usage = appliance_usage(readings, period)
    assert [(u.appliance, u.kwh) for u in usage] == [("TV", 3.0), ("Fridge", 1.75)]
    assert top_appliances(usage, 1)[0].appliance == "TV"


def test_usage_profile(readings):
    period = period_for(Granularity.MONTH, date(2024, 3, 1))
    profile = build_usage_profile(readings, period)

    assert profile.reading_count == 4
    assert profile.appliance_totals == {"TV": 3.0, "Fridge": 1.75}
    assert profile.hourly_by_appliance["TV"][10] == 3.0
    assert profile.hourly[9] == 1.25
    assert list(profile.daily_totals) == [date(2024, 3, 4), date(2024, 3, 6)]
    assert profile.total_kwh == 4.75


def test_peak_hour():
    hourly = [0.0] * 24
    hourly[7] = 2.0
    hourly[19] = 2.0
    assert peak_hour(hourly) == (7, 2.0)
    assert peak_hour([0.0] * 24) == (0, 0.0)
    assert peak_hour([]) == (0, 0.0)

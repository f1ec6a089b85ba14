"""Calendar arithmetic: resolve day/week/month/year periods around an anchor date."""

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Iterable

from .models import Granularity, InvalidConfigurationError, Period, Reading

logger = logging.getLogger(__name__)

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

WEEK_KEY_SUFFIX = "__WEEK"


def is_leap_year(year: int) -> bool:
    """A leap year is one whose February has 29 days."""
    return days_in_month(year, 2) == 29


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def days_in_year(year: int) -> int:
    return 366 if is_leap_year(year) else 365


def monday_of(day: date) -> date:
    """Monday of the week containing `day`. Sunday belongs to the week it ends."""
    return day - timedelta(days=day.weekday())


def _as_date(anchor: date | datetime) -> date:
    if isinstance(anchor, datetime):
        return anchor.date()
    if isinstance(anchor, date):
        return anchor
    raise InvalidConfigurationError(f"Anchor must be a date, got {anchor!r}")


def format_day_label(day: date) -> str:
    """Format a day label like 'Mon 04 Mar 2024'."""
    return day.strftime("%a %d %b %Y")


def day_key(day: date) -> str:
    return day.isoformat()


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def hour_label(hour: int) -> str:
    """Hour-of-day row label like '07:00'."""
    return f"{hour:02d}:00"


def day_period(day: date) -> Period:
    return Period(
        granularity=Granularity.DAY,
        start=day,
        end=day,
        label=format_day_label(day),
        key=day_key(day),
    )


def week_period(day: date) -> Period:
    start = monday_of(day)
    end = start + timedelta(days=6)
    return Period(
        granularity=Granularity.WEEK,
        start=start,
        end=end,
        label=f"{start.strftime('%d %b %Y')} - {end.strftime('%d %b %Y')}",
        key=f"{start.isoformat()}{WEEK_KEY_SUFFIX}",
    )


def month_period(year: int, month: int) -> Period:
    return Period(
        granularity=Granularity.MONTH,
        start=date(year, month, 1),
        end=date(year, month, days_in_month(year, month)),
        label=f"{MONTH_NAMES[month - 1]} {year}",
        key=month_key(year, month),
    )


def year_period(year: int) -> Period:
    return Period(
        granularity=Granularity.YEAR,
        start=date(year, 1, 1),
        end=date(year, 12, 31),
        label=str(year),
        key=f"{year:04d}",
    )


def period_for(granularity: Granularity | str, anchor: date | datetime) -> Period:
    """Resolve the period of the given granularity containing the anchor date."""
    granularity = Granularity.parse(granularity)
    day = _as_date(anchor)

    if granularity is Granularity.DAY:
        return day_period(day)
    if granularity is Granularity.WEEK:
        return week_period(day)
    if granularity is Granularity.MONTH:
        return month_period(day.year, day.month)
    return year_period(day.year)


def previous_period(period: Period) -> Period:
    """The immediately preceding period of the same granularity.

    Works for any period whether or not data exists for it.
    """
    if period.granularity is Granularity.DAY:
        return day_period(period.start - timedelta(days=1))
    if period.granularity is Granularity.WEEK:
        return week_period(period.start - timedelta(days=7))
    if period.granularity is Granularity.MONTH:
        if period.start.month == 1:
            return month_period(period.start.year - 1, 12)
        return month_period(period.start.year, period.start.month - 1)
    return year_period(period.start.year - 1)


def next_period(period: Period) -> Period:
    """The period immediately following `period`."""
    return period_for(period.granularity, period.end + timedelta(days=1))


def enumerate_periods(granularity: Granularity | str, readings: Iterable[Reading]) -> list[Period]:
    """Distinct periods represented in the readings, oldest first."""
    granularity = Granularity.parse(granularity)
    days = {reading.timestamp.date() for reading in readings}

    periods = {}
    for day in days:
        period = period_for(granularity, day)
        periods.setdefault(period.start, period)

    result = [periods[start] for start in sorted(periods)]
    logger.debug("Found %s %s periods across %s days", len(result), granularity.value, len(days))
    return result


def period_from_key(key: str) -> Period:
    """Rebuild a period from its key (as produced by the functions above)."""
    if not isinstance(key, str):
        raise InvalidConfigurationError(f"Invalid period key: {key!r}")

    text = key.strip()
    try:
        if text.endswith(WEEK_KEY_SUFFIX):
            monday = date.fromisoformat(text[: -len(WEEK_KEY_SUFFIX)])
            if monday.weekday() != 0:
                raise InvalidConfigurationError(f"Week key does not start on a Monday: {key!r}")
            return week_period(monday)
        parts = text.split("-")
        if len(parts) == 1 and len(text) == 4:
            return year_period(int(text))
        if len(parts) == 2:
            year, month = int(parts[0]), int(parts[1])
            if not 1 <= month <= 12:
                raise InvalidConfigurationError(f"Invalid month in period key: {key!r}")
            return month_period(year, month)
        if len(parts) == 3:
            return day_period(date.fromisoformat(text))
    except InvalidConfigurationError:
        raise
    except ValueError as e:
        raise InvalidConfigurationError(f"Invalid period key: {key!r}") from e

    raise InvalidConfigurationError(f"Invalid period key: {key!r}")

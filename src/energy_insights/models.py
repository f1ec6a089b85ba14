"""Data models for appliance readings, periods and derived aggregates."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class InvalidConfigurationError(ValueError):
    """Raised when a caller passes an invalid rate, granularity or period key."""

    pass


class Granularity(Enum):
    """The span of calendar time a view covers."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def parse(cls, value: "Granularity | str") -> "Granularity":
        """Resolve a granularity from an enum member or a view name like 'monthly'."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().lower()
            if name in _GRANULARITY_ALIASES:
                return _GRANULARITY_ALIASES[name]
        raise InvalidConfigurationError(f"Unknown granularity: {value!r}")


_GRANULARITY_ALIASES = {
    "day": Granularity.DAY,
    "daily": Granularity.DAY,
    "today": Granularity.DAY,
    "week": Granularity.WEEK,
    "weekly": Granularity.WEEK,
    "month": Granularity.MONTH,
    "monthly": Granularity.MONTH,
    "year": Granularity.YEAR,
    "yearly": Granularity.YEAR,
}


@dataclass(frozen=True)
class Reading:
    """A single normalized appliance energy reading."""

    timestamp: datetime
    appliance: str | None
    energy_kwh: float


@dataclass(frozen=True)
class Period:
    """A bounded calendar span. `end` is inclusive."""

    granularity: Granularity
    start: date
    end: date
    label: str
    key: str

    @property
    def length_days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def days(self) -> list[date]:
        """Every calendar date in the period, ascending."""
        return [date.fromordinal(self.start.toordinal() + i) for i in range(self.length_days)]

    def contains(self, day: date | datetime) -> bool:
        if isinstance(day, datetime):
            day = day.date()
        return self.start <= day <= self.end


@dataclass(frozen=True)
class DayBucket:
    """Accumulated kWh per appliance for one calendar day."""

    day: date
    totals: Mapping[str, float]

    def __post_init__(self):
        object.__setattr__(self, "totals", MappingProxyType(dict(self.totals)))

    def get(self, appliance: str) -> float:
        return self.totals.get(appliance, 0.0)

    @property
    def total_kwh(self) -> float:
        return sum(self.totals.values())


@dataclass(frozen=True)
class PeriodRow:
    """One chart-ready row: a bucket label plus one value per active appliance."""

    label: str
    values: Mapping[str, float]
    day: date | None = None
    hour: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @property
    def total(self) -> float:
        return round(sum(self.values.values()), 2)

    def as_dict(self) -> dict:
        return {"date": self.label, **self.values}


@dataclass(frozen=True)
class ApplianceUsage:
    """Energy used by one appliance over a period."""

    appliance: str
    kwh: float


@dataclass(frozen=True)
class UsageProfile:
    """Per-period aggregate used by the recommendation rules.

    hourly_by_appliance maps each appliance to 24 hour-of-day totals summed
    across every day of the period.
    """

    appliance_totals: Mapping[str, float]
    hourly_by_appliance: Mapping[str, tuple[float, ...]]
    daily_totals: Mapping[date, float]
    reading_count: int

    @property
    def total_kwh(self) -> float:
        return sum(self.appliance_totals.values())

    @property
    def hourly(self) -> list[float]:
        """Hour-of-day totals across all appliances."""
        profile = [0.0] * 24
        for hours in self.hourly_by_appliance.values():
            for hour, kwh in enumerate(hours):
                profile[hour] += kwh
        return profile


@dataclass(frozen=True)
class CostDelta:
    """Cost of the current period against the previous equivalent period."""

    current_total: float
    previous_total: float | None = None
    percent_change: float | None = None

    @property
    def savings(self) -> float | None:
        """Amount saved versus the previous period (negative when spending more)."""
        if self.previous_total is None:
            return None
        return round(self.previous_total - self.current_total, 2)


@dataclass(frozen=True)
class ForecastPoint:
    """Cumulative consumption up to and including a day."""

    day: date
    cumulative_kwh: float


@dataclass(frozen=True)
class ForecastResult:
    """Elapsed and projected consumption for a period."""

    elapsed_total: float
    projected_total: float
    series: tuple[ForecastPoint, ...] = field(default_factory=tuple)
    is_current: bool = False


@dataclass(frozen=True)
class Recommendation:
    """An advisory message produced by the rule engine."""

    text: str

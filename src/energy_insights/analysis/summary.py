"""Compose the analysis for one view: a period, its rows, costs, forecast and advice."""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Iterable, Sequence

from ..models import (
    ApplianceUsage,
    CostDelta,
    ForecastResult,
    Granularity,
    Period,
    PeriodRow,
    Reading,
    Recommendation,
)
from ..periods import next_period, period_for, previous_period
from .aggregation import (
    appliance_usage,
    build_day_buckets,
    build_usage_profile,
    has_readings,
    peak_hour,
    resolve_active_appliances,
    rows_for_period,
    rows_until,
    top_appliances,
)
from .costs import cost_rows, delta, rows_total, validate_rate
from .forecast import forecast_period
from .recommendations import RuleSettings, recommend

logger = logging.getLogger(__name__)

TOP_APPLIANCE_LIMIT = 5


@dataclass
class PeriodAnalysis:
    """Everything a dashboard view needs for one period."""

    period: Period
    previous_period: Period
    next_period: Period
    active_appliances: tuple[str, ...]
    rows: list[PeriodRow]
    cost_rows: list[PeriodRow]
    total_kwh: float
    so_far_kwh: float
    so_far_cost: float
    cost_delta: CostDelta
    forecast: ForecastResult
    top_appliances: list[ApplianceUsage]
    peak_hour: tuple[int, float]
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict:
        """JSON-ready representation."""
        return {
            "period": _period_dict(self.period),
            "previous_period": _period_dict(self.previous_period),
            "next_period": _period_dict(self.next_period),
            "appliances": list(self.active_appliances),
            "totals": {
                "kwh": self.total_kwh,
                "cost": self.cost_delta.current_total,
                "so_far_kwh": self.so_far_kwh,
                "so_far_cost": self.so_far_cost,
            },
            "cost_delta": {
                "current": self.cost_delta.current_total,
                "previous": self.cost_delta.previous_total,
                "percent_change": self.cost_delta.percent_change,
                "savings": self.cost_delta.savings,
            },
            "forecast": {
                "elapsed_kwh": self.forecast.elapsed_total,
                "projected_kwh": self.forecast.projected_total,
                "is_current": self.forecast.is_current,
                "series": [
                    {"date": p.day.isoformat(), "kwh": p.cumulative_kwh} for p in self.forecast.series
                ],
            },
            "peak_hour": {"hour": self.peak_hour[0], "kwh": self.peak_hour[1]},
            "top_appliances": [{"name": u.appliance, "kwh": u.kwh} for u in self.top_appliances],
            "rows": [row.as_dict() for row in self.rows],
            "cost_rows": [row.as_dict() for row in self.cost_rows],
            "recommendations": [r.text for r in self.recommendations],
        }


def _period_dict(period: Period) -> dict:
    return {
        "granularity": period.granularity.value,
        "key": period.key,
        "label": period.label,
        "start": period.start.isoformat(),
        "end": period.end.isoformat(),
    }


def latest_timestamp(readings: Iterable[Reading]) -> datetime | None:
    """Timestamp of the most recent reading, or None."""
    return max((r.timestamp for r in readings), default=None)


def _resolve_now(readings: Sequence[Reading], anchor: date | datetime) -> datetime:
    latest = latest_timestamp(readings)
    if latest is not None:
        return latest
    if isinstance(anchor, datetime):
        return anchor
    return datetime.combine(anchor, time.min)


def analyze_period(
    readings: Sequence[Reading],
    granularity: Granularity | str,
    anchor: date | datetime,
    rate: float,
    appliances: Iterable[str] | None = None,
    now: datetime | None = None,
    settings: RuleSettings | None = None,
) -> PeriodAnalysis:
    """Run the full analysis for the period of `granularity` containing `anchor`.

    `now` is the moment used for "so far" totals and forecasting; it defaults to
    the latest reading timestamp.
    """
    rate = validate_rate(rate)
    readings = list(readings)
    period = period_for(granularity, anchor)
    previous = previous_period(period)
    now = now or _resolve_now(readings, anchor)
    logger.debug("Analyzing %s (previous %s) as of %s", period.key, previous.key, now)

    active = resolve_active_appliances(readings, appliances)
    buckets = build_day_buckets(readings)

    rows = rows_for_period(period, buckets, active, readings)
    previous_rows = None
    if has_readings(readings, previous):
        previous_rows = rows_for_period(previous, buckets, active, readings)
    so_far = rows_until(rows, now)
    so_far_kwh = rows_total(so_far)

    usage = appliance_usage(readings, period, active)
    profile = build_usage_profile(readings, period, active)
    cost_delta = delta(rows, previous_rows, rate)

    return PeriodAnalysis(
        period=period,
        previous_period=previous,
        next_period=next_period(period),
        active_appliances=active,
        rows=rows,
        cost_rows=cost_rows(rows, rate),
        total_kwh=rows_total(rows),
        so_far_kwh=so_far_kwh,
        so_far_cost=round(so_far_kwh * rate, 2),
        cost_delta=cost_delta,
        forecast=forecast_period(period, readings, now, active),
        top_appliances=top_appliances(usage, TOP_APPLIANCE_LIMIT),
        peak_hour=peak_hour(profile.hourly),
        recommendations=recommend(profile, cost_delta, period.granularity, rate, settings),
    )


def format_analysis_text(analysis: PeriodAnalysis) -> str:
    """Format a period analysis as human-readable text."""
    delta_ = analysis.cost_delta
    forecast = analysis.forecast
    lines = [
        f"Energy Summary: {analysis.period.label}",
        f"({analysis.period.start.isoformat()} to {analysis.period.end.isoformat()})",
        "",
        "Totals:",
        f"  - Consumption: {analysis.total_kwh:.2f} kWh",
        f"  - Cost: {delta_.current_total:.2f}",
        f"  - So far: {analysis.so_far_kwh:.2f} kWh ({analysis.so_far_cost:.2f})",
        "",
        f"Compared with {analysis.previous_period.label}:",
    ]

    if delta_.previous_total is None:
        lines.append("  - No data for the previous period")
    else:
        lines.append(f"  - Previous cost: {delta_.previous_total:.2f}")
        if delta_.percent_change is not None:
            lines.append(f"  - Change: {delta_.percent_change:+.2f}%")
        lines.append(f"  - Savings: {delta_.savings:.2f}")

    lines.extend([
        "",
        "Forecast:",
        f"  - Till now: {forecast.elapsed_total:.2f} kWh",
        f"  - Predicted: {forecast.projected_total:.2f} kWh",
    ])

    if analysis.top_appliances:
        lines.extend(["", "Top appliances:"])
        for usage in analysis.top_appliances:
            lines.append(f"  - {usage.appliance}: {usage.kwh:.2f} kWh")

    hour, kwh = analysis.peak_hour
    lines.extend(["", f"Peak hour: {hour:02d}:00 ({kwh:.2f} kWh)"])

    if analysis.recommendations:
        lines.extend(["", "Recommendations:"])
        for rec in analysis.recommendations:
            lines.append(f"  - {rec.text}")

    return "\n".join(lines)

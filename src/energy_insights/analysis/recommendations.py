"""Rule-based savings recommendations for one period's aggregated usage.

Each rule looks at the period's UsageProfile (and the cost delta against the
previous period) and emits at most one message. Rules run in a fixed order;
earlier rules win when more messages fire than the cap allows.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable

from ..models import CostDelta, Granularity, Recommendation, UsageProfile
from .costs import validate_rate

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = (
    "Not enough data for this period yet. Keep the monitors running and "
    "insights will be generated automatically."
)


@dataclass(frozen=True)
class RuleSettings:
    """Thresholds and appliance vocabularies used by the rules."""

    # Appliance vocabularies
    hvac_appliances: tuple[str, ...] = ("Air Conditioner", "Heater")
    shiftable_appliances: tuple[str, ...] = ("Washing Machine", "Dishwasher")
    standby_appliances: tuple[str, ...] = (
        "TV",
        "Plug Loads",
        "Others",
        "Computer",
        "Game Console",
        "Router",
        "Set-Top Box",
    )

    # Hour-of-day windows
    peak_hours: tuple[int, ...] = (17, 18, 19, 20, 21, 22)
    night_hours: tuple[int, ...] = (0, 1, 2, 3, 4, 5)
    midday_hours: tuple[int, ...] = (10, 11, 12, 13, 14, 15)

    top_contributors: int = 3

    hvac_share_threshold: float = 0.30
    hvac_saving_fraction: float = 0.07  # 1-2 degree setpoint change

    peak_share_threshold: float = 0.40
    shift_saving_fraction: float = 0.10

    standby_share_threshold: float = 0.20
    standby_min_kwh: float = 0.2
    standby_saving_fraction: float = 0.15

    base_load_ratio: float = 0.6
    base_load_min_kwh: float = 0.1

    cost_spike_ratio: float = 1.08

    weekday_skew_ratio: float = 1.4

    max_recommendations: int = 5


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at."""

    profile: UsageProfile
    delta: CostDelta
    granularity: Granularity
    rate: float
    settings: RuleSettings


def _share(part: float, whole: float) -> float:
    return part / whole if whole > 0 else 0.0


def _sum_hours(hours: tuple[float, ...], window: Iterable[int]) -> float:
    return sum(hours[h] for h in window if 0 <= h < len(hours))


def _average(values: list[float]) -> float:
    return sum(values) / max(1, len(values))


def top_contributors_rule(ctx: RuleContext) -> str | None:
    totals = ctx.profile.appliance_totals
    total = ctx.profile.total_kwh
    ranked = sorted(totals.items(), key=lambda item: (-item[1], item[0]))[: ctx.settings.top_contributors]
    if not ranked:
        return None
    parts = ", ".join(f"{name} {_share(kwh, total) * 100:.0f}%" for name, kwh in ranked)
    return f"Top contributors this period: {parts}. Focus on these to make the biggest impact."


def hvac_rule(ctx: RuleContext) -> str | None:
    settings = ctx.settings
    total = ctx.profile.total_kwh
    hvac_kwh = sum(ctx.profile.appliance_totals.get(name, 0.0) for name in settings.hvac_appliances)
    share = _share(hvac_kwh, total)
    if share <= settings.hvac_share_threshold:
        return None
    saving = hvac_kwh * settings.hvac_saving_fraction * ctx.rate
    return (
        f"Heating and cooling are a major driver (~{share * 100:.0f}% of usage). "
        f"Raise the cooling or lower the heating setpoint by 1-2 degrees and use schedules. "
        f"Potential saving ~{saving:.2f} this period."
    )


def peak_shift_rule(ctx: RuleContext) -> str | None:
    settings = ctx.settings
    hourly = ctx.profile.hourly_by_appliance

    peak_share = 0.0
    for name in settings.shiftable_appliances:
        hours = hourly.get(name)
        if hours:
            peak_share = max(peak_share, _share(_sum_hours(hours, settings.peak_hours), sum(hours)))

    if peak_share <= settings.peak_share_threshold:
        return None
    shiftable_kwh = sum(ctx.profile.appliance_totals.get(name, 0.0) for name in settings.shiftable_appliances)
    saving = peak_share * shiftable_kwh * ctx.rate * settings.shift_saving_fraction
    return (
        "Laundry and dishwashing often run during the evening peak. "
        f"Shift cycles to late morning or early afternoon. Estimated saving ~{saving:.2f}."
    )


def standby_rule(ctx: RuleContext) -> str | None:
    settings = ctx.settings
    hourly = ctx.profile.hourly_by_appliance

    night_kwh = sum(_sum_hours(hours, settings.night_hours) for hours in hourly.values())
    standby_kwh = sum(
        _sum_hours(hourly[name], settings.night_hours)
        for name in settings.standby_appliances
        if name in hourly
    )
    share = _share(standby_kwh, night_kwh)
    if share <= settings.standby_share_threshold or standby_kwh <= settings.standby_min_kwh:
        return None
    saving = standby_kwh * ctx.rate * settings.standby_saving_fraction
    return (
        f"Overnight standby seems high (~{share * 100:.0f}% of overnight usage). "
        "Use smart power strips and switch off always-on devices at night. "
        f"Potential saving ~{saving:.2f}."
    )


def base_load_rule(ctx: RuleContext) -> str | None:
    settings = ctx.settings
    hourly = ctx.profile.hourly
    night_avg = _average([hourly[h] for h in settings.night_hours])
    midday_avg = _average([hourly[h] for h in settings.midday_hours])
    if night_avg <= midday_avg * settings.base_load_ratio or night_avg <= settings.base_load_min_kwh:
        return None
    return (
        "Overnight base load is relatively high. Audit always-on devices "
        "(old fridges, routers, set-top boxes) and target a 10-20% reduction overnight."
    )


def cost_spike_rule(ctx: RuleContext) -> str | None:
    delta = ctx.delta
    if delta.previous_total is None or delta.percent_change is None:
        return None
    if delta.current_total <= delta.previous_total * ctx.settings.cost_spike_ratio:
        return None
    return (
        f"Energy cost up by {delta.percent_change:.1f}% vs the previous {ctx.granularity.value}. "
        "Review recent schedule or setpoint changes and any new devices."
    )


def weekday_skew_rule(ctx: RuleContext) -> str | None:
    weekday_kwh = 0.0
    weekend_kwh = 0.0
    for day, kwh in ctx.profile.daily_totals.items():
        if day.weekday() >= 5:
            weekend_kwh += kwh
        else:
            weekday_kwh += kwh

    if weekday_kwh <= 0 or weekend_kwh <= 0:
        return None
    ratio = ctx.settings.weekday_skew_ratio
    if weekend_kwh / weekday_kwh <= ratio and weekday_kwh / weekend_kwh <= ratio:
        return None
    heavier = "weekends" if weekend_kwh > weekday_kwh else "weekdays"
    return (
        f"Usage is concentrated on {heavier}. If tariffs vary, "
        "schedule flexible loads on cheaper days and hours."
    )


RULES: tuple[Callable[[RuleContext], str | None], ...] = (
    top_contributors_rule,
    hvac_rule,
    peak_shift_rule,
    standby_rule,
    base_load_rule,
    cost_spike_rule,
    weekday_skew_rule,
)


def recommend(
    profile: UsageProfile,
    cost_delta: CostDelta,
    granularity: Granularity | str,
    rate: float,
    settings: RuleSettings | None = None,
) -> list[Recommendation]:
    """Evaluate every rule and return at most `max_recommendations` messages."""
    settings = settings or RuleSettings()
    granularity = Granularity.parse(granularity)
    rate = validate_rate(rate)

    if profile.reading_count == 0:
        return [Recommendation(text=NO_DATA_MESSAGE)]

    ctx = RuleContext(
        profile=profile,
        delta=cost_delta,
        granularity=granularity,
        rate=rate,
        settings=settings,
    )

    messages = []
    for rule in RULES:
        text = rule(ctx)
        if text and text not in messages:
            messages.append(text)
            logger.debug("Rule %s fired", rule.__name__)

    return [Recommendation(text=text) for text in messages[: settings.max_recommendations]]

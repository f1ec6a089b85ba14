"""Command-line interface for appliance energy analysis."""

import json
import logging
from datetime import date, datetime
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .analysis import aggregation, summary
from .analysis.costs import validate_rate
from .collectors import dashboard_api, export_file
from .collectors.dashboard_api import DataSourceError
from .config import Settings, load_settings
from .models import Granularity, InvalidConfigurationError, Reading
from .normalize import normalize_readings
from .periods import enumerate_periods, period_from_key

console = Console()
logger = logging.getLogger(__name__)

VIEW_CHOICES = ["day", "week", "month", "year"]


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise SystemExit(1)


@click.group()
@click.option("--config", "config_path", type=click.Path(exists=True), help="Path to settings.yaml")
@click.option("--file", "file_path", type=click.Path(exists=True), help="Read records from a JSON/CSV export")
@click.option("--source-url", help="Data API URL (or set ENERGY_INSIGHTS_SOURCE_URL)")
@click.option("--rate", type=float, help="Cost per kWh (overrides settings)")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, config_path, file_path, source_url, rate, verbose):
    """Appliance energy insights - usage, cost, forecasts and savings advice."""
    configure_logging(verbose)
    ctx.ensure_object(dict)
    try:
        settings = load_settings(Path(config_path) if config_path else None)
        if rate is not None:
            validate_rate(rate)
    except InvalidConfigurationError as e:
        fail(str(e))

    ctx.obj["settings"] = settings
    ctx.obj["file_path"] = Path(file_path) if file_path else None
    ctx.obj["source_url"] = source_url or settings.source_url
    ctx.obj["rate"] = rate if rate is not None else settings.rate_per_kwh


def load_readings(ctx) -> list[Reading]:
    """Fetch the raw snapshot once and normalize it."""
    settings: Settings = ctx.obj["settings"]
    try:
        if ctx.obj["file_path"]:
            records = export_file.load_records(ctx.obj["file_path"])
        else:
            if not ctx.obj["source_url"]:
                fail("Please provide --file or --source-url (or set ENERGY_INSIGHTS_SOURCE_URL)")
            records = dashboard_api.fetch_records(ctx.obj["source_url"], headers=settings.source_headers)
    except DataSourceError as e:
        fail(str(e))

    readings = normalize_readings(records, settings.fields)
    logger.debug("Normalized %s readings", len(readings))
    return readings


def view_options(func):
    """Options shared by every period view."""
    func = click.option("--json", "as_json", is_flag=True, help="Output as JSON")(func)
    func = click.option(
        "--appliance", "appliances", multiple=True, help="Only include this appliance (repeatable)"
    )(func)
    func = click.option("--date", "anchor", help="Anchor date (YYYY-MM-DD), defaults to the latest reading")(func)
    func = click.option(
        "--period", "period_key", help="Period key from the periods command (overrides --view)"
    )(func)
    func = click.option(
        "--view", type=click.Choice(VIEW_CHOICES, case_sensitive=False), default="month", help="Period granularity"
    )(func)
    return func


def resolve_anchor(anchor: str | None, readings: list[Reading]) -> date:
    if anchor:
        try:
            return date.fromisoformat(anchor)
        except ValueError:
            fail(f"Invalid --date {anchor!r}, expected YYYY-MM-DD")
    latest = summary.latest_timestamp(readings)
    return latest.date() if latest else datetime.now().date()


def run_analysis(ctx, view, anchor, period_key, appliances, readings=None) -> summary.PeriodAnalysis:
    if period_key and anchor:
        fail("Use either --period or --date, not both")
    if readings is None:
        readings = load_readings(ctx)
    try:
        if period_key:
            period = period_from_key(period_key)
            granularity, anchor_date = period.granularity, period.start
        else:
            granularity, anchor_date = Granularity.parse(view), resolve_anchor(anchor, readings)
        return summary.analyze_period(
            readings,
            granularity,
            anchor_date,
            ctx.obj["rate"],
            appliances=appliances,
            settings=ctx.obj["settings"].rules,
        )
    except InvalidConfigurationError as e:
        fail(str(e))


def echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2))


@cli.command("periods")
@click.option("--view", type=click.Choice(VIEW_CHOICES, case_sensitive=False), default="month")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def periods_cmd(ctx, view, as_json):
    """List the periods available in the data."""
    readings = load_readings(ctx)
    periods = enumerate_periods(view, readings)

    if as_json:
        echo_json([
            {"key": p.key, "label": p.label, "start": p.start.isoformat(), "end": p.end.isoformat()}
            for p in periods
        ])
        return

    if not periods:
        console.print("[yellow]No periods found[/yellow]")
        return

    table = Table(title=f"Available {view} periods")
    table.add_column("Key", style="cyan")
    table.add_column("Label")
    table.add_column("Range", style="dim")
    for p in periods:
        table.add_row(p.key, p.label, f"{p.start.isoformat()} → {p.end.isoformat()}")
    console.print(table)


@cli.command("usage")
@view_options
@click.option("--cost", "show_cost", is_flag=True, help="Show cost per appliance instead of kWh")
@click.pass_context
def usage_cmd(ctx, view, anchor, period_key, appliances, as_json, show_cost):
    """Show zero-filled usage rows for a period."""
    analysis = run_analysis(ctx, view, anchor, period_key, appliances)
    rows = analysis.cost_rows if show_cost else analysis.rows

    if as_json:
        echo_json([row.as_dict() for row in rows])
        return

    unit = "cost" if show_cost else "kWh"
    table = Table(title=f"{analysis.period.label} ({unit})")
    table.add_column("Bucket", style="cyan")
    for name in analysis.active_appliances:
        table.add_column(name, justify="right")
    table.add_column("Total", justify="right", style="bold")

    for row in rows:
        table.add_row(
            row.label,
            *[f"{row.values[name]:.2f}" for name in analysis.active_appliances],
            f"{row.total:.2f}",
        )
    console.print(table)


@cli.command("cost")
@view_options
@click.pass_context
def cost_cmd(ctx, view, anchor, period_key, appliances, as_json):
    """Compare the period's cost with the previous period."""
    analysis = run_analysis(ctx, view, anchor, period_key, appliances)
    delta = analysis.cost_delta

    if as_json:
        data = analysis.to_dict()
        echo_json({"period": data["period"], "totals": data["totals"], "cost_delta": data["cost_delta"]})
        return

    table = Table(title=f"Cost: {analysis.period.label}")
    table.add_column("Measure", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("This period", f"{delta.current_total:.2f}")
    table.add_row("So far", f"{analysis.so_far_cost:.2f}")
    table.add_row(
        f"Previous ({analysis.previous_period.label})",
        "N/A" if delta.previous_total is None else f"{delta.previous_total:.2f}",
    )
    if delta.percent_change is None:
        table.add_row("Change", "N/A")
    else:
        colour = "red" if delta.percent_change >= 0 else "green"
        arrow = "▲" if delta.percent_change >= 0 else "▼"
        table.add_row("Change", f"[{colour}]{arrow} {abs(delta.percent_change):.2f}%[/{colour}]")
    table.add_row("Estimated savings", "N/A" if delta.savings is None else f"{delta.savings:.2f}")
    console.print(table)


@cli.command("forecast")
@view_options
@click.pass_context
def forecast_cmd(ctx, view, anchor, period_key, appliances, as_json):
    """Project the full-period total from usage so far."""
    analysis = run_analysis(ctx, view, anchor, period_key, appliances)
    forecast = analysis.forecast

    if as_json:
        echo_json(analysis.to_dict()["forecast"])
        return

    console.print(f"[cyan]{analysis.period.label}[/cyan]")
    console.print(f"  Till now:  {forecast.elapsed_total:.2f} kWh")
    console.print(f"  Predicted: {forecast.projected_total:.2f} kWh")
    if not forecast.is_current:
        console.print("[dim]  Period is not in progress; no extrapolation applied[/dim]")

    if forecast.series:
        table = Table(title="Cumulative usage")
        table.add_column("Date", style="cyan")
        table.add_column("kWh", justify="right")
        for point in forecast.series:
            table.add_row(point.day.isoformat(), f"{point.cumulative_kwh:.2f}")
        console.print(table)


@cli.command("recommend")
@view_options
@click.pass_context
def recommend_cmd(ctx, view, anchor, period_key, appliances, as_json):
    """Suggest changes that would reduce cost."""
    analysis = run_analysis(ctx, view, anchor, period_key, appliances)

    if as_json:
        echo_json([r.text for r in analysis.recommendations])
        return

    console.print(f"[cyan]Recommendations for {analysis.period.label}[/cyan]")
    for i, rec in enumerate(analysis.recommendations, start=1):
        console.print(f"{i}. {rec.text}", markup=False)


@cli.command("appliances")
@view_options
@click.pass_context
def appliances_cmd(ctx, view, anchor, period_key, appliances, as_json):
    """Rank appliances by energy used in the period."""
    readings = load_readings(ctx)
    analysis = run_analysis(ctx, view, anchor, period_key, appliances, readings)
    usage = aggregation.appliance_usage(readings, analysis.period, analysis.active_appliances)
    rate = ctx.obj["rate"]

    if as_json:
        echo_json([{"name": u.appliance, "kwh": u.kwh, "cost": round(u.kwh * rate, 2)} for u in usage])
        return

    if not usage:
        console.print("[yellow]No appliance usage in this period[/yellow]")
        return

    table = Table(title=f"Appliances: {analysis.period.label}")
    table.add_column("Appliance", style="cyan")
    table.add_column("kWh", justify="right")
    table.add_column("Cost", justify="right")
    for u in usage:
        table.add_row(u.appliance, f"{u.kwh:.2f}", f"{u.kwh * rate:.2f}")
    console.print(table)


@cli.command("summary")
@view_options
@click.pass_context
def summary_cmd(ctx, view, anchor, period_key, appliances, as_json):
    """Full period summary: totals, comparison, forecast and advice."""
    analysis = run_analysis(ctx, view, anchor, period_key, appliances)

    if as_json:
        echo_json(analysis.to_dict())
    else:
        console.print(summary.format_analysis_text(analysis), markup=False)


if __name__ == "__main__":
    cli()

"""CLI helpers for date range resolution."""

from datetime import date
from typing import Callable

import click

from ledgerkit.utils.date_parser import PERIODS, get_date_range, parse_date


def period_options(func: Callable) -> Callable:
    """Add --start-date, --end-date and --period options to a command."""
    func = click.option(
        "--period",
        type=click.Choice(PERIODS, case_sensitive=False),
        help="Named period instead of explicit dates",
    )(func)
    func = click.option("--end-date", help="End date (inclusive)")(func)
    func = click.option("--start-date", help="Start date (inclusive)")(func)
    return func


def parse_date_or_exit(ctx: click.Context, value: str | None, label: str) -> date | None:
    """Parse an optional CLI date, exiting with an error message on failure."""
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def resolve_cli_date_range(
    ctx: click.Context,
    *,
    start_date: str | None,
    end_date: str | None,
    period: str | None = None,
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from a named period or explicit dates."""
    if period and (start_date or end_date):
        click.echo(
            "Error: --period cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    if period:
        return get_date_range(period)

    start = parse_date_or_exit(ctx, start_date, "start date")
    end = parse_date_or_exit(ctx, end_date, "end date")
    if start is not None and end is not None and start > end:
        click.echo("Error: Start date must not be after end date.", err=True)
        ctx.exit(1)
    return start, end

"""Financial statement commands."""

from dataclasses import replace
from datetime import date

import click

from ledgerkit.cli.date_filters import parse_date_or_exit, period_options, resolve_cli_date_range
from ledgerkit.cli.error_handling import handle_domain_error, handle_integrity_error
from ledgerkit.cli.formatting import format_money
from ledgerkit.config import parse_cash_flow_map
from ledgerkit.domain.entities import CashFlowActivity, StatementLine
from ledgerkit.domain.errors import DomainError, LedgerIntegrityError
from ledgerkit.domain.statements import StatementService

WIDTH = 64


def _echo_section(title: str, lines: tuple[StatementLine, ...], total: str, amount) -> None:
    click.echo(f"\n{title}")
    for line in lines:
        label = f"  {line.code} {line.name}".rstrip() if line.code else f"  {line.name}"
        click.echo(f"{label:48s} {format_money(line.balance):>15s}")
    click.echo(f"{total:48s} {format_money(amount):>15s}")


def _echo_activities(title: str, activities: tuple[CashFlowActivity, ...], amount) -> None:
    click.echo(f"\n{title}")
    for activity in activities:
        label = f"  {activity.date} {activity.entry_code} {activity.description}"
        click.echo(f"{label[:48]:48s} {format_money(activity.amount):>15s}")
    click.echo(f"{'  Net cash from ' + title.lower():48s} {format_money(amount):>15s}")


@click.group()
def report_group():
    """Financial statements."""
    pass


@report_group.command("balance-sheet")
@click.option("--as-of", default="today", show_default=True, help="Balance sheet date")
@click.option(
    "--exclude-current-earnings",
    is_flag=True,
    help="Leave out unclosed revenue and expenses (pre-closing view)",
)
@click.pass_context
def balance_sheet(ctx, as_of: str, exclude_current_earnings: bool):
    """Show the balance sheet."""
    service = StatementService(ctx.obj["db"], ctx.obj["settings"])
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date")

    try:
        report = service.balance_sheet(
            as_of_date, include_current_earnings=not exclude_current_earnings
        )
    except LedgerIntegrityError as e:
        handle_integrity_error(ctx, e)

    click.echo(f"\nBalance sheet as of {report.as_of_date}")
    click.echo("=" * WIDTH)
    _echo_section("Assets", report.assets, "Total assets", report.total_assets)
    _echo_section("Liabilities", report.liabilities, "Total liabilities", report.total_liabilities)
    _echo_section("Equity", report.equity, "Total equity", report.total_equity)
    click.echo("-" * WIDTH)
    click.echo(
        f"{'Total liabilities and equity':48s} "
        f"{format_money(report.total_liabilities_and_equity):>15s}"
    )
    if not report.is_balanced:
        click.echo("\nNot balanced: revenue and expenses have not been closed to equity.")


@report_group.command("income-statement")
@period_options
@click.pass_context
def income_statement(ctx, start_date: str | None, end_date: str | None, period: str | None):
    """Show the income statement.

    Without a start date the configured fiscal year start applies; if none
    is configured the statement covers all activity up to the end date.
    """
    service = StatementService(ctx.obj["db"], ctx.obj["settings"])
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )

    try:
        report = service.income_statement(end or date.today(), start_date=start)
    except DomainError as e:
        handle_domain_error(ctx, e)

    span = f"{report.start_date} to {report.end_date}" if report.start_date else f"through {report.end_date}"
    click.echo(f"\nIncome statement {span}")
    click.echo("=" * WIDTH)
    _echo_section("Revenue", report.revenue, "Total revenue", report.total_revenue)
    _echo_section("Expenses", report.expenses, "Total expenses", report.total_expenses)
    click.echo("-" * WIDTH)
    click.echo(f"{'Net income':48s} {format_money(report.net_income):>15s}")


@report_group.command("cash-flow")
@period_options
@click.option(
    "--cash-account",
    "cash_accounts",
    multiple=True,
    help="Code of a cash-equivalent account (repeatable; overrides LEDGERKIT_CASH_ACCOUNTS)",
)
@click.option(
    "--map",
    "mappings",
    multiple=True,
    help="CODE=CATEGORY classification, category operating|investing|financing (repeatable)",
)
@click.pass_context
def cash_flow(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    cash_accounts: tuple[str, ...],
    mappings: tuple[str, ...],
):
    """Show the cash-flow statement.

    Cash accounts default to LEDGERKIT_CASH_ACCOUNTS, or to asset accounts
    named like cash or bank. Counterpart accounts are classified by
    LEDGERKIT_CASH_FLOW_MAP and --map, looking up parent accounts too;
    anything unmapped is operating.

    Examples:
        ledgerkit report cash-flow --period this-year
        ledgerkit report cash-flow --cash-account 1000 --map 1500=investing --map 2500=financing
    """
    settings = ctx.obj["settings"]
    service = StatementService(ctx.obj["db"], settings)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )

    config = settings.cash_flow
    try:
        if cash_accounts:
            config = replace(config, cash_account_codes=frozenset(cash_accounts))
        if mappings:
            config = replace(
                config,
                category_by_code={**config.category_by_code, **parse_cash_flow_map(",".join(mappings))},
            )
        report = service.cash_flow_statement(end or date.today(), start_date=start, cash_flow=config)
    except DomainError as e:
        handle_domain_error(ctx, e)
    except LedgerIntegrityError as e:
        handle_integrity_error(ctx, e)

    span = f"{report.start_date} to {report.end_date}" if report.start_date else f"through {report.end_date}"
    click.echo(f"\nCash flow statement {span}")
    click.echo("=" * WIDTH)
    _echo_activities("Operating activities", report.operating_activities, report.operating_cash_flow)
    _echo_activities("Investing activities", report.investing_activities, report.investing_cash_flow)
    _echo_activities("Financing activities", report.financing_activities, report.financing_cash_flow)
    click.echo("-" * WIDTH)
    click.echo(f"{'Net cash flow':48s} {format_money(report.net_cash_flow):>15s}")
    click.echo(f"{'Beginning cash':48s} {format_money(report.beginning_cash):>15s}")
    click.echo(f"{'Ending cash':48s} {format_money(report.ending_cash):>15s}")


def register_commands(cli):
    """Register report commands with main CLI."""
    cli.add_command(report_group, name="report")

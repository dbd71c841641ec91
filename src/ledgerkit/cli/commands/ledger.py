"""General ledger and statistics commands."""

import click

from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import period_options, resolve_cli_date_range
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_money
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import AccountType, EntryDirection
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.ledger import LedgerService


@click.command("ledger")
@click.argument("account", metavar="ACCOUNT")
@period_options
@click.pass_context
def general_ledger(
    ctx, account: str, start_date: str | None, end_date: str | None, period: str | None
):
    """Show an account's postings with a running balance.

    ACCOUNT can be an account code or ID.
    """
    db = ctx.obj["db"]
    service = LedgerService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )

    try:
        ledger = service.general_ledger(account_id, start_date=start, end_date=end)
    except DomainError as e:
        handle_domain_error(ctx, e)

    acc = ledger.account
    click.echo(f"\nGeneral ledger: {acc.code} {acc.name}")
    click.echo("=" * 96)
    click.echo(f"{'Opening balance':70s} {format_money(ledger.opening_balance):>14s}")
    for line in ledger.lines:
        debit = format_money(line.amount) if line.direction == EntryDirection.DEBIT else ""
        credit = format_money(line.amount) if line.direction == EntryDirection.CREDIT else ""
        click.echo(
            f"{line.date} {line.entry_code:10s} {(line.description or '')[:22]:22s} "
            f"{debit:>12s} {credit:>12s} {format_money(line.running_balance):>14s}"
        )
    click.echo(f"{'Closing balance':70s} {format_money(ledger.closing_balance):>14s}")


@click.command("stats")
@click.pass_context
def statistics(ctx):
    """Show headline figures for the ledger."""
    stats = LedgerService(ctx.obj["db"]).statistics()

    click.echo(f"Accounts:        {stats.total_accounts}")
    click.echo(f"Journal entries: {stats.total_journal_entries}")
    for account_type in AccountType:
        total = stats.totals_by_type.get(account_type)
        click.echo(f"{account_type.value.capitalize() + ':':16s} {format_money(total):>14s}")
    click.echo(f"{'Net income:':16s} {format_money(stats.net_income):>14s}")


def register_commands(cli):
    """Register ledger commands with main CLI."""
    cli.add_command(general_ledger)
    cli.add_command(statistics)

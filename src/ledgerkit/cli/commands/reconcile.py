"""Account reconciliation commands."""

import click

from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import parse_date_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_money
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.errors import DomainError
from ledgerkit.domain.reconciliation import ReconciliationService
from ledgerkit.utils.amount_parser import parse_amount


@click.command("reconcile")
@click.argument("account", metavar="ACCOUNT")
@click.argument("statement_balance", metavar="STATEMENT_BALANCE")
@click.option(
    "--date",
    "statement_date",
    default="today",
    show_default=True,
    help="Date of the external statement",
)
@click.pass_context
def reconcile(ctx, account: str, statement_balance: str, statement_date: str):
    """Compare an account's book balance with a statement balance.

    ACCOUNT can be an account code or ID. The outcome is recorded; the
    account balance is never changed. Exits with status 1 when the
    balances differ.

    Examples:
        ledgerkit reconcile 1000 480.00 --date 2024-01-31
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = ReconciliationService(db)

    account_id = resolve_account_or_exit(ctx, account_service, account)
    on_date = parse_date_or_exit(ctx, statement_date, "statement date")

    try:
        record = service.reconcile(account_id, parse_amount(statement_balance), on_date)
    except (DomainError, ValueError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Statement balance: {format_money(record.statement_balance):>14s}")
    click.echo(f"Book balance:      {format_money(record.book_balance):>14s}")
    click.echo(f"Difference:        {format_money(record.difference):>14s}")
    if record.reconciled:
        click.echo("Reconciled.")
    else:
        click.echo("Not reconciled: book and statement disagree.")
        ctx.exit(1)


@click.command("reconciliations")
@click.option("--account", help="Only reconciliations of this account (code or ID)")
@click.pass_context
def list_reconciliations(ctx, account: str | None):
    """List reconciliation history, newest first."""
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = ReconciliationService(db)

    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, account_service, account)

    records = service.list_reconciliations(account_id=account_id)
    if not records:
        click.echo("No reconciliations found.")
        return

    codes = {acc.id: acc.code for acc in account_service.list_accounts()}
    click.echo(
        f"\n{'ID':>4s} {'Account':10s} {'Date':10s} {'Statement':>14s} {'Book':>14s} "
        f"{'Difference':>14s}  Status"
    )
    click.echo("-" * 84)
    for record in records:
        status = "reconciled" if record.reconciled else "open"
        click.echo(
            f"{record.id:4d} {codes.get(record.account_id, '?'):10s} {record.statement_date} "
            f"{format_money(record.statement_balance):>14s} {format_money(record.book_balance):>14s} "
            f"{format_money(record.difference):>14s}  {status}"
        )


def register_commands(cli):
    """Register reconciliation commands with main CLI."""
    cli.add_command(reconcile)
    cli.add_command(list_reconciliations)

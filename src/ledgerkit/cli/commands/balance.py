"""Balance and trial balance commands."""

import click

from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import parse_date_or_exit
from ledgerkit.cli.error_handling import handle_domain_error, handle_integrity_error
from ledgerkit.cli.formatting import format_column, format_money
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.entities import BalanceScope
from ledgerkit.domain.errors import ConcurrencyError, LedgerIntegrityError


def _balance_service(ctx) -> BalanceService:
    return BalanceService(ctx.obj["db"], lock_timeout=ctx.obj["settings"].lock_timeout)


@click.command("balance")
@click.argument("account", metavar="ACCOUNT")
@click.option("--as-of", help="Recompute the balance as of this date")
@click.option(
    "--scope",
    type=click.Choice([s.value for s in BalanceScope]),
    default=BalanceScope.OWN.value,
    show_default=True,
    help="own: the account's own postings; rollup: including all sub-accounts",
)
@click.pass_context
def show_balance(ctx, account: str, as_of: str | None, scope: str):
    """Show the balance of an account.

    ACCOUNT can be an account code or ID. Balances are shown on the
    account's normal side (debit for assets and expenses, credit otherwise).
    """
    account_service = AccountService(ctx.obj["db"])
    service = _balance_service(ctx)

    account_id = resolve_account_or_exit(ctx, account_service, account)
    acc = account_service.require_account(account_id)
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date")

    amount = service.get_balance(account_id, as_of=as_of_date, scope=BalanceScope(scope))
    suffix = f" as of {as_of_date}" if as_of_date else ""
    click.echo(f"{acc.code} {acc.name} ({scope}){suffix}: {format_money(amount)}")


@click.command("trial-balance")
@click.option("--as-of", help="Compute the trial balance as of this date")
@click.option("--show-zero", is_flag=True, help="Include accounts with a zero balance")
@click.pass_context
def trial_balance(ctx, as_of: str | None, show_zero: bool):
    """Show the trial balance."""
    service = _balance_service(ctx)
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date")

    try:
        report = service.trial_balance(as_of=as_of_date)
    except LedgerIntegrityError as e:
        handle_integrity_error(ctx, e)

    title = f"Trial balance as of {as_of_date}" if as_of_date else "Trial balance"
    click.echo(f"\n{title}")
    click.echo("=" * 78)
    click.echo(f"{'Code':10s} {'Account':30s} {'Type':9s} {'Debit':>13s} {'Credit':>13s}")
    click.echo("-" * 78)
    for item in report.items:
        if not show_zero and not item.balance:
            continue
        click.echo(
            f"{item.code:10s} {item.name[:30]:30s} {item.account_type.value:9s} "
            f"{format_column(item.debit):>13s} {format_column(item.credit):>13s}"
        )
    click.echo("-" * 78)
    click.echo(
        f"{'Total':51s} {format_money(report.total_debits):>13s} "
        f"{format_money(report.total_credits):>13s}"
    )


@click.command("verify-balances")
@click.option("--repair", is_flag=True, help="Overwrite stored balances that disagree")
@click.pass_context
def verify_balances(ctx, repair: bool):
    """Check stored balances against the journal.

    Every account balance is recomputed from the posted entries. Without
    --repair a mismatch makes the command exit with status 2.
    """
    service = _balance_service(ctx)

    try:
        mismatches = service.rebuild_balances() if repair else service.verify_balances()
    except ConcurrencyError as e:
        handle_domain_error(ctx, e)

    if not mismatches:
        click.echo("All account balances match the journal.")
        return

    for mismatch in mismatches:
        click.echo(
            f"{mismatch.code:10s} stored {format_money(mismatch.stored_balance):>14s} "
            f"journal {format_money(mismatch.computed_balance):>14s}"
        )

    if repair:
        click.echo(f"Repaired {len(mismatches)} account balance(s).")
    else:
        handle_integrity_error(
            ctx,
            LedgerIntegrityError(f"{len(mismatches)} account balance(s) disagree with the journal"),
            hint="Run with --repair to rebuild them from the journal.",
        )


def register_commands(cli):
    """Register balance commands with main CLI."""
    cli.add_command(show_balance)
    cli.add_command(trial_balance)
    cli.add_command(verify_balances)

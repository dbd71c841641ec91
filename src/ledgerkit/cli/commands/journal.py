"""Journal entry commands."""

import click

from ledgerkit.cli.account_resolution import resolve_entry_or_exit
from ledgerkit.cli.date_filters import parse_date_or_exit, period_options, resolve_cli_date_range
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_money
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import EntryDirection, JournalEntry, JournalLineDraft
from ledgerkit.domain.errors import ConcurrencyError, DomainError, UnknownAccountError
from ledgerkit.domain.journal import JournalService
from ledgerkit.utils.account_resolver import resolve_account
from ledgerkit.utils.amount_parser import parse_amount


def _journal_service(ctx) -> JournalService:
    settings = ctx.obj["settings"]
    return JournalService(
        ctx.obj["db"], lock_timeout=settings.lock_timeout, max_retries=settings.max_retries
    )


def parse_line_option(
    account_service: AccountService, value: str, direction: EntryDirection
) -> JournalLineDraft:
    """Parse a ``ACCOUNT=AMOUNT[:DESCRIPTION]`` option value into a line draft.

    Raises:
        UnknownAccountError: If the account does not resolve
        ValueError: If the value is malformed
    """
    account, sep, rest = value.partition("=")
    if not sep or not account.strip() or not rest.strip():
        raise ValueError(f"Invalid line '{value}', expected ACCOUNT=AMOUNT[:DESCRIPTION]")
    amount, _, description = rest.partition(":")

    try:
        account_id = resolve_account(account_service, account.strip())
    except DomainError:
        raise UnknownAccountError(f"Unknown account '{account.strip()}'") from None

    try:
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        raise ValueError(f"Invalid amount in line '{value}': {e}") from e

    return JournalLineDraft(
        account_id=account_id,
        direction=direction,
        amount=parsed_amount,
        description=description.strip() or None,
    )


def echo_entry(entry: JournalEntry, account_service: AccountService) -> None:
    """Print one entry with its lines."""
    codes = {acc.id: acc.code for acc in account_service.list_accounts()}
    click.echo(f"\n{entry.code}  {entry.date}  (ID: {entry.id})")
    if entry.reference:
        click.echo(f"  Reference: {entry.reference}")
    if entry.description:
        click.echo(f"  Description: {entry.description}")
    if entry.reversal_of_id is not None:
        click.echo(f"  Reverses entry ID: {entry.reversal_of_id}")
    for line in entry.lines:
        code = codes.get(line.account_id, str(line.account_id))
        debit = format_money(line.amount) if line.direction == EntryDirection.DEBIT else ""
        credit = format_money(line.amount) if line.direction == EntryDirection.CREDIT else ""
        click.echo(f"    {code:10s} {debit:>14s} {credit:>14s}  {line.description or ''}")
    click.echo(
        f"    {'Total':10s} {format_money(entry.total_debits):>14s} "
        f"{format_money(entry.total_credits):>14s}"
    )


@click.group()
def journal_group():
    """Post, reverse and browse journal entries."""
    pass


@journal_group.command("post")
@click.option(
    "--date",
    "entry_date",
    default="today",
    show_default=True,
    help="Entry date (YYYY-MM-DD or relative like 'today', 'yesterday')",
)
@click.option("--debit", "debits", multiple=True, help="Debit line ACCOUNT=AMOUNT[:DESCRIPTION]")
@click.option("--credit", "credits", multiple=True, help="Credit line ACCOUNT=AMOUNT[:DESCRIPTION]")
@click.option("--reference", help="External reference")
@click.option("--description", help="Entry description")
@click.pass_context
def post_entry(
    ctx,
    entry_date: str,
    debits: tuple[str, ...],
    credits: tuple[str, ...],
    reference: str | None,
    description: str | None,
):
    """Post a balanced journal entry.

    ACCOUNT is an account code or ID.

    Examples:
        ledgerkit journal post --debit 1000=500.00 --credit 4000=500.00 --description "Cash sale"
        ledgerkit journal post --date 2024-01-31 --debit 5100=1200 --credit 2000=1200:"January rent"
    """
    service = _journal_service(ctx)
    account_service = AccountService(ctx.obj["db"])
    posted_on = parse_date_or_exit(ctx, entry_date, "date")

    try:
        lines = [parse_line_option(account_service, d, EntryDirection.DEBIT) for d in debits]
        lines += [parse_line_option(account_service, c, EntryDirection.CREDIT) for c in credits]
        entry = service.post(
            entry_date=posted_on, lines=lines, reference=reference, description=description
        )
    except (DomainError, ConcurrencyError, ValueError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Posted {entry.code} for {format_money(entry.total_debits)} (ID: {entry.id})")


@journal_group.command("reverse")
@click.argument("entry", metavar="ENTRY")
@click.option("--date", "entry_date", help="Reversal date (defaults to today)")
@click.option("--description", help="Reversal description")
@click.pass_context
def reverse_entry(ctx, entry: str, entry_date: str | None, description: str | None):
    """Reverse a posted journal entry.

    ENTRY can be an entry code (JE-000001) or ID. The original entry stays
    in the journal; a new entry with every line flipped is posted.
    """
    service = _journal_service(ctx)
    original = resolve_entry_or_exit(ctx, service, entry)
    reversal_date = parse_date_or_exit(ctx, entry_date, "date")

    try:
        reversal = service.reverse(
            original.id, entry_date=reversal_date, description=description
        )
    except (DomainError, ConcurrencyError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Reversed {original.code} with {reversal.code} (ID: {reversal.id})")


@journal_group.command("list")
@period_options
@click.option("--account", help="Only entries touching this account (code or ID)")
@click.option("--verbose", "-v", is_flag=True, help="Show entry lines")
@click.pass_context
def list_entries(
    ctx,
    start_date: str | None,
    end_date: str | None,
    period: str | None,
    account: str | None,
    verbose: bool,
):
    """List journal entries ordered by date."""
    service = _journal_service(ctx)
    account_service = AccountService(ctx.obj["db"])
    start, end = resolve_cli_date_range(
        ctx, start_date=start_date, end_date=end_date, period=period
    )

    account_id = None
    if account:
        try:
            account_id = resolve_account(account_service, account)
        except DomainError as e:
            handle_domain_error(ctx, e)

    entries = service.list_entries(start_date=start, end_date=end, account_id=account_id)
    if not entries:
        click.echo("No journal entries found.")
        return

    if verbose:
        for entry in entries:
            echo_entry(entry, account_service)
        return

    click.echo(f"\nFound {len(entries)} journal entr{'y' if len(entries) == 1 else 'ies'}:")
    click.echo("-" * 78)
    for entry in entries:
        click.echo(
            f"{entry.code} | {entry.date} | {format_money(entry.total_debits):>14s} | "
            f"{(entry.description or '')[:40]}"
        )


@journal_group.command("show")
@click.argument("entry", metavar="ENTRY")
@click.pass_context
def show_entry(ctx, entry: str):
    """Show a journal entry with its lines.

    ENTRY can be an entry code (JE-000001) or ID.
    """
    service = _journal_service(ctx)
    found = resolve_entry_or_exit(ctx, service, entry)
    echo_entry(found, AccountService(ctx.obj["db"]))

    reversal = service.get_reversal(found.id)
    if reversal is not None:
        click.echo(f"\n  Reversed by {reversal.code} on {reversal.date}")


def register_commands(cli):
    """Register journal commands with main CLI."""
    cli.add_command(journal_group, name="journal")

"""CLI error handling helpers."""

import click

from ledgerkit.domain.errors import ConcurrencyError, DomainError, LedgerIntegrityError

INTEGRITY_EXIT_CODE = 2
DEFAULT_INTEGRITY_HINT = "Run 'ledgerkit verify-balances' to inspect stored balances."


def handle_domain_error(ctx: click.Context, error: DomainError | ConcurrencyError | ValueError) -> None:
    """Render a domain or concurrency error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def handle_integrity_error(
    ctx: click.Context, error: LedgerIntegrityError, hint: str = DEFAULT_INTEGRITY_HINT
) -> None:
    """Render a ledger integrity fault and exit with status 2."""
    click.echo(f"Ledger integrity error: {error}", err=True)
    click.echo(hint, err=True)
    ctx.exit(INTEGRITY_EXIT_CODE)

"""CLI helpers for account and entry resolution."""

from __future__ import annotations

import click

from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import JournalEntry
from ledgerkit.domain.journal import JournalService
from ledgerkit.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context, account_service: AccountService, account: str | int
) -> int:
    """Resolve account code or ID, or exit with a CLI error."""
    try:
        return resolve_account(account_service, account)
    except ValueError as exc:
        click.echo(f"Error: {exc}", err=True)
        ctx.exit(1)


def resolve_entry_or_exit(
    ctx: click.Context, journal_service: JournalService, entry: str
) -> JournalEntry:
    """Resolve a journal entry by code (e.g. JE-000001) or ID, or exit."""
    found = journal_service.get_entry_by_code(entry.strip().upper())
    if found is None and entry.strip().isdigit():
        found = journal_service.get_entry(int(entry))
    if found is None:
        click.echo(f"Error: Journal entry '{entry}' not found", err=True)
        ctx.exit(1)
    return found

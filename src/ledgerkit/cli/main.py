"""Main CLI entry point."""

import logging

import click

from ledgerkit.config import load_settings
from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.domain.errors import ConfigurationError
from ledgerkit.logging_config import configure_logging

# Import and register all commands at module level
from ledgerkit.cli.commands import (
    account,
    journal,
    balance,
    report,
    reconcile,
    ledger,
    init_accounts,
)

logger = logging.getLogger(__name__)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERKIT_DB_PATH environment variable)",
    envvar="LEDGERKIT_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (overrides LEDGERKIT_LOG_LEVEL)",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    help="Log output format (overrides LEDGERKIT_LOG_FORMAT)",
)
@click.option(
    "--lock-timeout",
    type=float,
    help="Seconds to wait for busy accounts (overrides LEDGERKIT_LOCK_TIMEOUT)",
)
@click.pass_context
def cli(
    ctx,
    db_path: str | None,
    log_level: str | None,
    log_format: str | None,
    lock_timeout: float | None,
):
    """Ledgerkit - Double-entry bookkeeping ledger.

    Maintain a chart of accounts, post balanced journal entries, and derive
    the trial balance, financial statements and reconciliations from them.
    """
    ctx.ensure_object(dict)

    # Initialize settings and database only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is None:
        return

    try:
        settings = load_settings(
            database_path=db_path,
            log_level=log_level,
            log_format=log_format,
            lock_timeout=lock_timeout,
        )
    except ConfigurationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    configure_logging(level=settings.log_level, fmt=settings.log_format)

    db = create_sqlite_database(
        database_path=settings.database_path, busy_timeout=settings.lock_timeout
    )
    db.connect()
    db.initialize_schema()
    ctx.call_on_close(db.disconnect)
    logger.debug("Opened ledger database", extra={"database_path": settings.database_path})

    ctx.obj["db"] = db
    ctx.obj["settings"] = settings


# Register all commands
account.register_commands(cli)
journal.register_commands(cli)
balance.register_commands(cli)
report.register_commands(cli)
reconcile.register_commands(cli)
ledger.register_commands(cli)
init_accounts.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()

"""Initialize a default chart of accounts."""

import click

from ledgerkit.domain.account import AccountService
from ledgerkit.domain.entities import AccountType
from ledgerkit.domain.errors import DomainError

# Retail chart of accounts: (code, name, type, parent code)
INITIAL_ACCOUNTS = [
    # Assets
    ("1000", "Current Assets", AccountType.ASSET, None),
    ("1010", "Cash", AccountType.ASSET, "1000"),
    ("1020", "Bank", AccountType.ASSET, "1000"),
    ("1100", "Accounts Receivable", AccountType.ASSET, "1000"),
    ("1200", "Inventory", AccountType.ASSET, "1000"),
    ("1300", "Prepaid Expenses", AccountType.ASSET, "1000"),
    ("1500", "Fixed Assets", AccountType.ASSET, None),
    ("1510", "Equipment", AccountType.ASSET, "1500"),
    ("1590", "Accumulated Depreciation", AccountType.ASSET, "1500"),
    # Liabilities
    ("2000", "Current Liabilities", AccountType.LIABILITY, None),
    ("2010", "Accounts Payable", AccountType.LIABILITY, "2000"),
    ("2100", "Sales Tax Payable", AccountType.LIABILITY, "2000"),
    ("2500", "Long-term Loans", AccountType.LIABILITY, None),
    # Equity
    ("3000", "Owner's Equity", AccountType.EQUITY, None),
    ("3010", "Owner's Capital", AccountType.EQUITY, "3000"),
    ("3100", "Retained Earnings", AccountType.EQUITY, "3000"),
    # Revenue
    ("4000", "Revenue", AccountType.REVENUE, None),
    ("4010", "Sales Revenue", AccountType.REVENUE, "4000"),
    ("4020", "Sales Returns", AccountType.REVENUE, "4000"),
    ("4100", "Other Income", AccountType.REVENUE, None),
    # Expenses
    ("5000", "Cost of Goods Sold", AccountType.EXPENSE, None),
    ("6000", "Operating Expenses", AccountType.EXPENSE, None),
    ("6010", "Rent", AccountType.EXPENSE, "6000"),
    ("6020", "Salaries", AccountType.EXPENSE, "6000"),
    ("6030", "Utilities", AccountType.EXPENSE, "6000"),
    ("6040", "Insurance", AccountType.EXPENSE, "6000"),
    ("6050", "Depreciation", AccountType.EXPENSE, "6000"),
]


@click.command("init-accounts")
@click.option("--force", is_flag=True, help="Add missing default accounts to a non-empty chart")
@click.pass_context
def init_accounts(ctx, force: bool):
    """Initialize the database with a default retail chart of accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    if service.list_accounts() and not force:
        click.echo("Accounts already exist. Use --force to add missing default accounts.")
        return

    click.echo("Creating default chart of accounts...")

    created = 0
    skipped = 0
    errors = 0

    # Parents precede their children in INITIAL_ACCOUNTS
    for code, name, account_type, parent_code in INITIAL_ACCOUNTS:
        if service.get_account_by_code(code) is not None:
            skipped += 1
            continue

        parent_id = None
        if parent_code is not None:
            parent = service.get_account_by_code(parent_code)
            if parent is None:
                click.echo(f"Warning: Parent {parent_code} of account {code} is missing", err=True)
                errors += 1
                continue
            parent_id = parent.id

        try:
            service.create_account(code=code, name=name, account_type=account_type, parent_id=parent_id)
            created += 1
        except DomainError as e:
            click.echo(f"Warning: Could not create account {code} '{name}': {e}", err=True)
            errors += 1

    summary = f"Created {created} accounts"
    if skipped:
        summary += f", skipped {skipped} existing"
    if errors:
        summary += f", {errors} errors"
    click.echo(summary + ".")


def register_commands(cli):
    """Register init-accounts command with main CLI."""
    cli.add_command(init_accounts)

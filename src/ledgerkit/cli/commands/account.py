"""Account management commands."""

import click

from ledgerkit.cli.account_resolution import resolve_account_or_exit
from ledgerkit.cli.date_filters import parse_date_or_exit
from ledgerkit.cli.error_handling import handle_domain_error
from ledgerkit.cli.formatting import format_money
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.entities import AccountType, BalanceScope
from ledgerkit.domain.errors import ConcurrencyError, DomainError

ACCOUNT_TYPES = [t.value for t in AccountType]


@click.group()
def account_group():
    """Manage the chart of accounts."""
    pass


@account_group.command("create")
@click.argument("code")
@click.argument("name")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    required=True,
    help="Account type",
)
@click.option("--parent", help="Parent account code or ID")
@click.pass_context
def create_account(ctx, code: str, name: str, account_type: str, parent: str | None):
    """Create a new account with a zero balance.

    Examples:
        ledgerkit account create 1000 "Cash" --type asset
        ledgerkit account create 1010 "Petty Cash" --type asset --parent 1000
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    parent_id = None
    if parent is not None:
        parent_id = resolve_account_or_exit(ctx, service, parent)

    try:
        account = service.create_account(
            code=code, name=name, account_type=account_type, parent_id=parent_id
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created account {account.code} '{account.name}' (ID: {account.id})")


@account_group.command("list")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    help="Only accounts of this type",
)
@click.option("--search", help="Text to match against code and name")
@click.pass_context
def list_accounts(ctx, account_type: str | None, search: str | None):
    """List accounts ordered by code."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts(account_type=account_type, search=search)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 78)
    for acc in accounts:
        click.echo(
            f"ID: {acc.id:3d} | {acc.code:10s} | {acc.name:30s} | "
            f"{acc.account_type.value:9s} | {format_money(acc.balance):>14s}"
        )


@account_group.command("tree")
@click.option(
    "--scope",
    type=click.Choice([s.value for s in BalanceScope]),
    default=BalanceScope.OWN.value,
    show_default=True,
    help="own: each account's own postings; rollup: including all sub-accounts",
)
@click.option("--as-of", help="Show balances as of this date")
@click.pass_context
def account_tree(ctx, scope: str, as_of: str | None):
    """Show the chart of accounts as a tree with balances."""
    db = ctx.obj["db"]
    service = BalanceService(db)
    as_of_date = parse_date_or_exit(ctx, as_of, "as-of date")

    nodes = service.balance_tree(as_of=as_of_date)
    if not nodes:
        click.echo("No accounts found. Run 'init-accounts' to create a default chart.")
        return

    balance_scope = BalanceScope(scope)
    click.echo(f"\nChart of accounts ({balance_scope.value} balances):")
    for node in nodes:
        label = f"{'  ' * node.depth}{node.account.code} {node.account.name}"
        click.echo(f"{label:50s} {format_money(node.balance(balance_scope)):>14s}")


@account_group.command("show")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def show_account(ctx, account: str):
    """Show one account.

    ACCOUNT can be an account code or ID.
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    balance_service = BalanceService(db)

    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.require_account(account_id)

    click.echo(f"Account ID: {acc.id}")
    click.echo(f"  Code: {acc.code}")
    click.echo(f"  Name: {acc.name}")
    click.echo(f"  Type: {acc.account_type.value} (normal side: {acc.normal_side.value})")
    click.echo(f"  Path: {service.format_account_path(acc.id)}")
    click.echo(f"  Balance: {format_money(acc.balance)}")
    rollup = balance_service.get_balance(acc.id, scope=BalanceScope.ROLLUP)
    if rollup != acc.balance:
        click.echo(f"  Balance incl. sub-accounts: {format_money(rollup)}")


@account_group.command("update")
@click.argument("account", metavar="ACCOUNT")
@click.option("--code", help="New account code")
@click.option("--name", help="New account name")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES, case_sensitive=False),
    help="New account type",
)
@click.option("--parent", help="New parent account code or ID")
@click.option("--root", is_flag=True, help="Detach the account from its parent")
@click.pass_context
def update_account(
    ctx,
    account: str,
    code: str | None,
    name: str | None,
    account_type: str | None,
    parent: str | None,
    root: bool,
):
    """Update an account.

    ACCOUNT can be an account code or ID.

    Examples:
        ledgerkit account update 1010 --name "Cash on Hand"
        ledgerkit account update 1010 --parent 1100
        ledgerkit account update 1010 --root
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, service, account)
    parent_id = None
    if parent is not None:
        parent_id = resolve_account_or_exit(ctx, service, parent)

    try:
        updated = service.update_account(
            account_id=account_id,
            code=code,
            name=name,
            account_type=account_type,
            parent_id=parent_id,
            clear_parent=root,
        )
    except DomainError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Updated account {updated.code} '{updated.name}'")


@account_group.command("delete")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_account(ctx, account: str, yes: bool) -> None:
    """Delete an account.

    ACCOUNT can be an account code or ID.

    The account can only be deleted if no journal lines and no sub-accounts
    reference it. Posted entries are never removed; reverse them instead.
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    account_id = resolve_account_or_exit(ctx, service, account)
    acc = service.require_account(account_id)

    if not yes and not click.confirm(
        f"Are you sure you want to delete account {acc.code} '{acc.name}'?"
    ):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_account(account_id)
    except (DomainError, ConcurrencyError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted account {acc.code} '{acc.name}'")


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")

"""Tests for account CLI commands."""

from ledgerkit.cli.main import cli


def _run(cli_runner, db_path, *args, **kwargs):
    return cli_runner.invoke(cli, ["--db-path", db_path, *args], **kwargs)


def test_account_create(cli_runner, cli_db_path):
    """Test creating an account."""
    result = _run(cli_runner, cli_db_path, "account", "create", "1000", "Cash", "--type", "asset")
    assert result.exit_code == 0
    assert "Created account 1000 'Cash'" in result.output
    assert "ID: 1" in result.output


def test_account_create_with_parent(cli_runner, cli_db_path):
    """Test creating a sub-account by parent code."""
    _run(cli_runner, cli_db_path, "account", "create", "1000", "Current Assets", "--type", "asset")
    result = _run(
        cli_runner, cli_db_path,
        "account", "create", "1010", "Petty Cash", "--type", "asset", "--parent", "1000",
    )
    assert result.exit_code == 0

    result = _run(cli_runner, cli_db_path, "account", "show", "1010")
    assert result.exit_code == 0
    assert "Path: 1000 > 1010" in result.output


def test_account_create_missing_parent(cli_runner, cli_db_path):
    """Test that an unknown parent is reported."""
    result = _run(
        cli_runner, cli_db_path,
        "account", "create", "1010", "Petty Cash", "--type", "asset", "--parent", "9999",
    )
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_account_create_duplicate(cli_runner, cli_db_path):
    """Test that a duplicate code fails cleanly."""
    result1 = _run(cli_runner, cli_db_path, "account", "create", "1000", "Cash", "--type", "asset")
    assert result1.exit_code == 0

    result2 = _run(cli_runner, cli_db_path, "account", "create", "1000", "Other", "--type", "asset")
    assert result2.exit_code == 1
    assert "already exists" in result2.output


def test_account_create_requires_type(cli_runner, cli_db_path):
    """Test that --type is mandatory."""
    result = _run(cli_runner, cli_db_path, "account", "create", "1000", "Cash")
    assert result.exit_code == 2
    assert "--type" in result.output


def test_account_list_empty(cli_runner, cli_db_path):
    """Test listing accounts when none exist."""
    result = _run(cli_runner, cli_db_path, "account", "list")
    assert result.exit_code == 0
    assert "No accounts found" in result.output


def test_account_list_with_filters(cli_runner, cli_db_path):
    """Test listing and filtering accounts."""
    _run(cli_runner, cli_db_path, "account", "create", "1000", "Cash", "--type", "asset")
    _run(cli_runner, cli_db_path, "account", "create", "4000", "Sales", "--type", "revenue")

    result = _run(cli_runner, cli_db_path, "account", "list")
    assert "1000" in result.output
    assert "4000" in result.output

    result = _run(cli_runner, cli_db_path, "account", "list", "--type", "revenue")
    assert "Sales" in result.output
    assert "Cash" not in result.output


def test_account_update_and_cycle(cli_runner, cli_db_path):
    """Test renaming, re-parenting and cycle rejection."""
    _run(cli_runner, cli_db_path, "account", "create", "1000", "Assets", "--type", "asset")
    _run(cli_runner, cli_db_path, "account", "create", "1010", "Cash", "--type", "asset", "--parent", "1000")

    result = _run(cli_runner, cli_db_path, "account", "update", "1010", "--name", "Cash on Hand")
    assert result.exit_code == 0
    assert "Updated account 1010 'Cash on Hand'" in result.output

    result = _run(cli_runner, cli_db_path, "account", "update", "1000", "--parent", "1010")
    assert result.exit_code == 1
    assert "Error:" in result.output

    result = _run(cli_runner, cli_db_path, "account", "update", "1010", "--root")
    assert result.exit_code == 0


def test_account_delete_guarded_by_postings(cli_runner, cli_db_path):
    """Test that accounts with postings cannot be deleted."""
    _run(cli_runner, cli_db_path, "account", "create", "1000", "Cash", "--type", "asset")
    _run(cli_runner, cli_db_path, "account", "create", "4000", "Sales", "--type", "revenue")
    _run(cli_runner, cli_db_path, "account", "create", "9000", "Spare", "--type", "expense")
    _run(cli_runner, cli_db_path, "journal", "post", "--debit", "1000=5", "--credit", "4000=5")

    result = _run(cli_runner, cli_db_path, "account", "delete", "1000", "--yes")
    assert result.exit_code == 1
    assert "journal line" in result.output

    result = _run(cli_runner, cli_db_path, "account", "delete", "9000", "--yes")
    assert result.exit_code == 0
    assert "Deleted account 9000 'Spare'" in result.output


def test_account_delete_cancelled(cli_runner, cli_db_path):
    """Test declining the confirmation prompt."""
    _run(cli_runner, cli_db_path, "account", "create", "9000", "Spare", "--type", "expense")
    result = _run(cli_runner, cli_db_path, "account", "delete", "9000", input="n\n")
    assert "Deletion cancelled." in result.output

    result = _run(cli_runner, cli_db_path, "account", "list")
    assert "9000" in result.output


def test_account_tree_scopes(cli_runner, cli_db_path):
    """Test own versus roll-up balances in the tree."""
    _run(cli_runner, cli_db_path, "account", "create", "5000", "Expenses", "--type", "expense")
    _run(cli_runner, cli_db_path, "account", "create", "5100", "Rent", "--type", "expense", "--parent", "5000")
    _run(cli_runner, cli_db_path, "account", "create", "1000", "Cash", "--type", "asset")
    _run(cli_runner, cli_db_path, "journal", "post", "--debit", "5100=1200", "--credit", "1000=1200")

    own = _run(cli_runner, cli_db_path, "account", "tree")
    rollup = _run(cli_runner, cli_db_path, "account", "tree", "--scope", "rollup")

    assert own.exit_code == 0
    assert "(own balances)" in own.output
    assert "  5100 Rent" in own.output
    expenses_own = next(line for line in own.output.splitlines() if line.startswith("5000"))
    expenses_rollup = next(line for line in rollup.output.splitlines() if line.startswith("5000"))
    assert expenses_own.rstrip().endswith("0.00")
    assert not expenses_own.rstrip().endswith("1,200.00")
    assert expenses_rollup.rstrip().endswith("1,200.00")


def test_account_tree_empty(cli_runner, cli_db_path):
    """Test the tree of an empty chart."""
    result = _run(cli_runner, cli_db_path, "account", "tree")
    assert "init-accounts" in result.output


def test_account_show_missing(cli_runner, cli_db_path):
    """Test showing an unknown account."""
    result = _run(cli_runner, cli_db_path, "account", "show", "nope")
    assert result.exit_code == 1
    assert "not found" in result.output

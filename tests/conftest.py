"""Shared pytest fixtures for ledgerkit tests."""

import os
import tempfile
from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.config import LedgerSettings
from ledgerkit.database.factories import create_memory_database, create_sqlite_database
from ledgerkit.domain.account import AccountService
from ledgerkit.domain.balance import BalanceService
from ledgerkit.domain.entities import AccountType, EntryDirection, JournalLineDraft
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.ledger import LedgerService
from ledgerkit.domain.reconciliation import ReconciliationService
from ledgerkit.domain.statements import StatementService

# (code, name, type, parent code)
SAMPLE_CHART = [
    ("1000", "Cash", AccountType.ASSET, None),
    ("1100", "Accounts Receivable", AccountType.ASSET, None),
    ("1500", "Equipment", AccountType.ASSET, None),
    ("2000", "Accounts Payable", AccountType.LIABILITY, None),
    ("2500", "Bank Loan", AccountType.LIABILITY, None),
    ("3000", "Owner's Capital", AccountType.EQUITY, None),
    ("4000", "Sales Revenue", AccountType.REVENUE, None),
    ("5000", "Operating Expenses", AccountType.EXPENSE, None),
    ("5100", "Rent", AccountType.EXPENSE, "5000"),
    ("5200", "Salaries", AccountType.EXPENSE, "5000"),
]


@pytest.fixture
def temp_db():
    """Create a temporary SQLite database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def memory_db():
    """Create an empty in-memory database."""
    db = create_memory_database()
    db.connect()
    db.initialize_schema()
    return db


@pytest.fixture(params=["sqlite", "memory"])
def db(request):
    """Run a test against both store implementations."""
    return request.getfixturevalue("temp_db" if request.param == "sqlite" else "memory_db")


@pytest.fixture
def account_service(db):
    """Create an AccountService for the parametrized store."""
    return AccountService(db)


@pytest.fixture
def journal_service(db):
    """Create a JournalService for the parametrized store."""
    return JournalService(db, retry_backoff=0.01)


@pytest.fixture
def balance_service(db):
    """Create a BalanceService for the parametrized store."""
    return BalanceService(db)


@pytest.fixture
def statement_service(db):
    """Create a StatementService with default settings."""
    return StatementService(db, LedgerSettings())


@pytest.fixture
def reconciliation_service(db):
    """Create a ReconciliationService for the parametrized store."""
    return ReconciliationService(db)


@pytest.fixture
def ledger_service(db):
    """Create a LedgerService for the parametrized store."""
    return LedgerService(db)


def create_chart(account_service: AccountService, chart=SAMPLE_CHART) -> dict:
    """Create accounts parents-first and return them keyed by code."""
    accounts = {}
    for code, name, account_type, parent_code in chart:
        parent_id = accounts[parent_code].id if parent_code else None
        accounts[code] = account_service.create_account(
            code=code, name=name, account_type=account_type, parent_id=parent_id
        )
    return accounts


@pytest.fixture
def chart(account_service):
    """Sample chart of accounts keyed by code."""
    return create_chart(account_service)


@pytest.fixture
def post(journal_service, chart):
    """Post an entry from (code, direction, amount) tuples.

    Example: post(date(2024, 1, 5), ("1000", "debit", "500.00"), ("4000", "credit", "500.00"))
    """

    def _post(entry_date: date, *lines, description=None, reference=None):
        drafts = [
            JournalLineDraft(
                account_id=chart[code].id,
                direction=EntryDirection(direction),
                amount=Decimal(amount),
            )
            for code, direction, amount in lines
        ]
        return journal_service.post(
            entry_date=entry_date, lines=drafts, description=description, reference=reference
        )

    return _post


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def cli_db_path(temp_db):
    """Path of a temporary database for CLI tests."""
    return temp_db.database_path

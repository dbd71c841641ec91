"""Tests for the Database interface shared by both stores."""

import threading

import pytest
from datetime import date, datetime
from decimal import Decimal

from ledgerkit.database.factories import create_sqlite_database
from ledgerkit.domain import entities
from ledgerkit.domain.entities import AccountType, EntryDirection, JournalLineDraft
from ledgerkit.domain.errors import (
    AccountNotFoundError,
    AlreadyReversedError,
    DuplicateCodeError,
)


def _lines(debit_id, credit_id, amount="10.00"):
    return [
        JournalLineDraft(debit_id, EntryDirection.DEBIT, Decimal(amount)),
        JournalLineDraft(credit_id, EntryDirection.CREDIT, Decimal(amount), description="other side"),
    ]


@pytest.fixture
def two_accounts(db):
    cash = db.create_account("1000", "Cash", AccountType.ASSET)
    sales = db.create_account("4000", "Sales", AccountType.REVENUE)
    return cash, sales


class TestAccounts:
    """Tests for account storage."""

    def test_get_account_returns_domain_model(self, db):
        """Test that get_account returns a domain Account entity."""
        account_id = db.create_account("1000", "Cash", AccountType.ASSET)

        account = db.get_account(account_id)

        assert isinstance(account, entities.Account)
        assert account.id == account_id
        assert account.code == "1000"
        assert account.account_type == AccountType.ASSET
        assert account.balance == Decimal("0.00")
        assert isinstance(account.created_at, datetime)

    def test_get_account_missing(self, db):
        assert db.get_account(123) is None
        assert db.get_account_by_code("nope") is None

    def test_duplicate_code(self, db):
        db.create_account("1000", "Cash", AccountType.ASSET)
        with pytest.raises(DuplicateCodeError):
            db.create_account("1000", "Other", AccountType.ASSET)

    def test_list_filters_and_order(self, db):
        db.create_account("2000", "Payables", AccountType.LIABILITY)
        db.create_account("1000", "Cash", AccountType.ASSET)
        db.create_account("1100", "Receivables", AccountType.ASSET)

        assert [acc.code for acc in db.list_accounts()] == ["1000", "1100", "2000"]
        assert [acc.code for acc in db.list_accounts(account_type=AccountType.ASSET)] == [
            "1000",
            "1100",
        ]
        assert [acc.code for acc in db.list_accounts(search="PAY")] == ["2000"]
        assert [acc.code for acc in db.list_accounts(search="11")] == ["1100"]

    def test_update_and_detach_parent(self, db):
        parent = db.create_account("1000", "Assets", AccountType.ASSET)
        child = db.create_account("1010", "Cash", AccountType.ASSET, parent_id=parent)

        db.update_account(child, name="Cash on Hand")
        assert db.get_account(child).parent_id == parent
        assert db.get_account(child).name == "Cash on Hand"

        db.update_account(child, parent_id=None, update_parent=True)
        assert db.get_account(child).parent_id is None
        assert db.get_child_account_count(parent) == 0

    def test_update_missing(self, db):
        with pytest.raises(AccountNotFoundError):
            db.update_account(99, name="x")

    def test_delete(self, db):
        account_id = db.create_account("1000", "Cash", AccountType.ASSET)
        db.delete_account(account_id)
        assert db.get_account(account_id) is None
        with pytest.raises(AccountNotFoundError):
            db.delete_account(account_id)

    def test_apply_delta_follows_normal_side(self, db, two_accounts):
        cash, sales = two_accounts
        db.apply_delta(cash, EntryDirection.DEBIT, Decimal("5.00"))
        db.apply_delta(cash, EntryDirection.CREDIT, Decimal("2.00"))
        db.apply_delta(sales, EntryDirection.CREDIT, Decimal("3.00"))

        assert db.get_account(cash).balance == Decimal("3.00")
        assert db.get_account(sales).balance == Decimal("3.00")

        db.set_account_balance(cash, Decimal("7.25"))
        assert db.get_account(cash).balance == Decimal("7.25")


class TestJournalEntries:
    """Tests for journal entry storage."""

    def test_insert_and_read_back(self, db, two_accounts):
        cash, sales = two_accounts
        entry_id = db.insert_journal_entry(
            "JE-000001", date(2024, 1, 15), _lines(cash, sales), reference="INV-1", description="Sale"
        )

        entry = db.get_journal_entry(entry_id)
        assert isinstance(entry, entities.JournalEntry)
        assert entry.code == "JE-000001"
        assert entry.reference == "INV-1"
        assert [line.account_id for line in entry.lines] == [cash, sales]
        assert entry.lines[1].description == "other side"
        assert db.get_journal_entry_by_code("JE-000001") == entry
        assert db.count_journal_entries() == 1
        assert db.get_account_line_count(cash) == 1

    def test_list_ordered_by_date_then_id(self, db, two_accounts):
        cash, sales = two_accounts
        later = db.insert_journal_entry("JE-000001", date(2024, 2, 1), _lines(cash, sales))
        earlier = db.insert_journal_entry("JE-000002", date(2024, 1, 1), _lines(cash, sales))
        same_day = db.insert_journal_entry("JE-000003", date(2024, 1, 1), _lines(sales, cash))

        assert [entry.id for entry in db.list_journal_entries()] == [earlier, same_day, later]
        assert [entry.id for entry in db.list_journal_entries(end_date=date(2024, 1, 31))] == [
            earlier,
            same_day,
        ]

    def test_reversal_link_is_unique(self, db, two_accounts):
        cash, sales = two_accounts
        original = db.insert_journal_entry("JE-000001", date(2024, 1, 1), _lines(cash, sales))
        reversal = db.insert_journal_entry(
            "JE-000002", date(2024, 1, 2), _lines(sales, cash), reversal_of_id=original
        )

        assert db.get_reversal_of(original).id == reversal
        assert db.get_reversal_of(reversal) is None
        with pytest.raises(AlreadyReversedError):
            db.insert_journal_entry(
                "JE-000003", date(2024, 1, 3), _lines(sales, cash), reversal_of_id=original
            )

    def test_account_activity(self, db, two_accounts):
        cash, sales = two_accounts
        db.insert_journal_entry("JE-000001", date(2024, 1, 1), _lines(cash, sales, "10.00"))
        db.insert_journal_entry("JE-000002", date(2024, 1, 5), _lines(sales, cash, "4.00"))

        activity = db.get_account_activity()
        assert activity[cash].debits == Decimal("10.00")
        assert activity[cash].credits == Decimal("4.00")
        assert activity[cash].net_for(EntryDirection.DEBIT) == Decimal("6.00")

        early = db.get_account_activity(end_date=date(2024, 1, 2), account_ids=[sales])
        assert set(early) == {sales}
        assert early[sales].credits == Decimal("10.00")
        assert db.get_account_activity(start_date=date(2024, 2, 1)) == {}

    def test_sequences_are_independent(self, db):
        assert [db.next_sequence_value("journal_entry") for _ in range(3)] == [1, 2, 3]
        assert db.next_sequence_value("other") == 1


class TestAtomic:
    """Tests for units of work."""

    def test_atomic_rolls_back_everything(self, db, two_accounts):
        cash, sales = two_accounts

        with pytest.raises(RuntimeError):
            with db.atomic():
                db.next_sequence_value("journal_entry")
                db.insert_journal_entry("JE-000001", date(2024, 1, 1), _lines(cash, sales))
                db.apply_delta(cash, EntryDirection.DEBIT, Decimal("10.00"))
                raise RuntimeError("boom")

        assert db.count_journal_entries() == 0
        assert db.get_account(cash).balance == Decimal("0.00")
        assert db.next_sequence_value("journal_entry") == 1

    def test_atomic_commits(self, db, two_accounts):
        cash, sales = two_accounts
        with db.atomic():
            db.insert_journal_entry("JE-000001", date(2024, 1, 1), _lines(cash, sales))
            db.apply_delta(cash, EntryDirection.DEBIT, Decimal("10.00"))
            with db.atomic():
                db.apply_delta(sales, EntryDirection.CREDIT, Decimal("10.00"))

        assert db.count_journal_entries() == 1
        assert db.get_account(sales).balance == Decimal("10.00")


class TestReadSnapshot:
    """Tests for consistent multi-query reads."""

    def test_nested_snapshots_read_normally(self, db, two_accounts):
        cash, _ = two_accounts
        with db.read_snapshot():
            with db.read_snapshot():
                assert len(db.list_accounts()) == 2
            assert db.get_account(cash).code == "1000"

        # Writes work again once the snapshot is closed
        db.create_account(code="2000", name="Payables", account_type=AccountType.LIABILITY)
        assert len(db.list_accounts()) == 3

    def test_writer_waits_for_snapshot(self, db, two_accounts):
        writer = threading.Thread(
            target=db.create_account,
            kwargs={"code": "2000", "name": "Payables", "account_type": AccountType.LIABILITY},
        )
        with db.read_snapshot():
            assert len(db.list_accounts()) == 2
            writer.start()
            writer.join(timeout=0.3)
            assert len(db.list_accounts()) == 2

        writer.join(timeout=10)
        assert not writer.is_alive()
        assert db.get_account_by_code("2000") is not None


class TestReconciliations:
    """Tests for reconciliation storage."""

    def test_create_and_list(self, db, two_accounts):
        cash, _ = two_accounts
        first = db.create_reconciliation(
            cash, Decimal("5.00"), Decimal("0.00"), Decimal("5.00"), date(2024, 1, 31), False
        )
        second = db.create_reconciliation(
            cash, Decimal("0.00"), Decimal("0.00"), Decimal("0.00"), date(2024, 2, 29), True
        )

        record = db.get_reconciliation(first)
        assert isinstance(record, entities.ReconciliationRecord)
        assert record.difference == Decimal("5.00")
        assert not record.reconciled
        assert isinstance(record.reconciled_at, datetime)
        assert [r.id for r in db.list_reconciliations()] == [second, first]
        assert db.list_reconciliations(account_id=cash + 1000) == []
        assert db.get_reconciliation(999) is None


def test_sqlite_data_survives_reconnect(temp_db):
    """Test that a fresh instance on the same file sees committed data."""
    account_id = temp_db.create_account("1000", "Cash", AccountType.ASSET)
    temp_db.apply_delta(account_id, EntryDirection.DEBIT, Decimal("12.34"))
    temp_db.disconnect()

    reopened = create_sqlite_database(database_path=temp_db.database_path)
    reopened.connect()
    reopened.initialize_schema()
    try:
        account = reopened.get_account_by_code("1000")
        assert account.balance == Decimal("12.34")
    finally:
        reopened.disconnect()


def test_sqlite_amounts_are_exact(temp_db):
    """Test that cent amounts round-trip without float drift."""
    account_id = temp_db.create_account("1000", "Cash", AccountType.ASSET)
    for _ in range(10):
        temp_db.apply_delta(account_id, EntryDirection.DEBIT, Decimal("0.10"))
    assert temp_db.get_account(account_id).balance == Decimal("1.00")

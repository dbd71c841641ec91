"""Tests for balances, roll-up and the trial balance."""

import threading
from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.domain.entities import AccountType, BalanceScope, EntryDirection, JournalLineDraft
from ledgerkit.domain.errors import AccountNotFoundError, LedgerIntegrityError
from ledgerkit.domain.journal import JournalService


@pytest.fixture
def january(post):
    """A month of activity across the sample chart."""
    post(date(2024, 1, 1), ("1000", "debit", "10000.00"), ("3000", "credit", "10000.00"))
    post(date(2024, 1, 5), ("1500", "debit", "4000.00"), ("2500", "credit", "4000.00"))
    post(date(2024, 1, 10), ("1100", "debit", "2500.00"), ("4000", "credit", "2500.00"))
    post(date(2024, 1, 20), ("5100", "debit", "1200.00"), ("1000", "credit", "1200.00"))
    post(date(2024, 1, 31), ("5200", "debit", "900.00"), ("2000", "credit", "900.00"))


class TestGetBalance:
    """Tests for single-account balances."""

    def test_stored_balance(self, balance_service, chart, january):
        assert balance_service.get_balance(chart["1000"].id) == Decimal("8800.00")
        assert balance_service.get_balance(chart["2500"].id) == Decimal("4000.00")

    def test_balance_as_of(self, balance_service, chart, january):
        assert balance_service.get_balance(chart["1000"].id, as_of=date(2024, 1, 19)) == Decimal(
            "10000.00"
        )
        assert balance_service.get_balance(chart["1000"].id, as_of=date(2024, 1, 20)) == Decimal(
            "8800.00"
        )
        assert balance_service.get_balance(chart["1000"].id, as_of=date(2023, 12, 31)) == Decimal(
            "0.00"
        )

    def test_missing_account(self, balance_service):
        with pytest.raises(AccountNotFoundError):
            balance_service.get_balance(12345)

    def test_own_versus_rollup(self, balance_service, chart, january):
        parent = chart["5000"].id
        assert balance_service.get_balance(parent, scope=BalanceScope.OWN) == Decimal("0.00")
        assert balance_service.get_balance(parent, scope=BalanceScope.ROLLUP) == Decimal("2100.00")
        assert balance_service.get_balance(
            parent, as_of=date(2024, 1, 25), scope=BalanceScope.ROLLUP
        ) == Decimal("1200.00")

    def test_rollup_of_leaf_equals_own(self, balance_service, chart, january):
        leaf = chart["5100"].id
        assert balance_service.get_balance(leaf, scope=BalanceScope.ROLLUP) == balance_service.get_balance(
            leaf
        )

    def test_rollup_subtracts_opposite_normal_side(
        self, account_service, balance_service, journal_service, chart
    ):
        contra = account_service.create_account(
            "1590", "Accumulated Depreciation", AccountType.LIABILITY, parent_id=chart["1500"].id
        )
        journal_service.post(
            date(2024, 1, 1),
            [
                {"account_id": chart["1500"].id, "type": "debit", "amount": "1000.00"},
                {"account_id": chart["3000"].id, "type": "credit", "amount": "1000.00"},
            ],
        )
        journal_service.post(
            date(2024, 12, 31),
            [
                {"account_id": chart["5100"].id, "type": "debit", "amount": "250.00"},
                {"account_id": contra.id, "type": "credit", "amount": "250.00"},
            ],
        )
        assert balance_service.get_balance(
            chart["1500"].id, scope=BalanceScope.ROLLUP
        ) == Decimal("750.00")


class TestBalanceTree:
    """Tests for the hierarchical balance view."""

    def test_tree_carries_both_figures(self, balance_service, january):
        nodes = {node.account.code: node for node in balance_service.balance_tree()}

        expenses = nodes["5000"]
        assert expenses.depth == 0
        assert expenses.own_balance == Decimal("0.00")
        assert expenses.rollup_balance == Decimal("2100.00")
        assert expenses.balance(BalanceScope.ROLLUP) == Decimal("2100.00")
        assert expenses.balance(BalanceScope.OWN) == Decimal("0.00")
        assert nodes["5100"].depth == 1

    def test_tree_as_of(self, balance_service, january):
        nodes = {node.account.code: node for node in balance_service.balance_tree(date(2024, 1, 15))}
        assert nodes["5000"].rollup_balance == Decimal("0.00")
        assert nodes["1000"].own_balance == Decimal("10000.00")

    def test_tree_order(self, balance_service, chart):
        codes = [node.account.code for node in balance_service.balance_tree()]
        assert codes == ["1000", "1100", "1500", "2000", "2500", "3000", "4000", "5000", "5100", "5200"]


class TestTrialBalance:
    """Tests for the trial balance."""

    def test_empty_ledger(self, balance_service, chart):
        report = balance_service.trial_balance()
        assert report.total_debits == report.total_credits == Decimal("0.00")
        assert len(report.items) == len(chart)

    def test_totals_match(self, balance_service, january):
        report = balance_service.trial_balance()
        assert report.total_debits == Decimal("17400.00")
        assert report.total_credits == Decimal("17400.00")

        items = {item.code: item for item in report.items}
        assert items["1000"].debit == Decimal("8800.00")
        assert items["1000"].credit == Decimal("0.00")
        assert items["4000"].credit == Decimal("2500.00")
        assert items["4000"].account_type == AccountType.REVENUE

    def test_as_of(self, balance_service, january):
        report = balance_service.trial_balance(as_of=date(2024, 1, 5))
        assert report.as_of == date(2024, 1, 5)
        assert report.total_debits == report.total_credits == Decimal("14000.00")

    def test_overdrawn_asset_lands_in_credit_column(self, balance_service, post):
        post(date(2024, 1, 1), ("5100", "debit", "300.00"), ("1000", "credit", "300.00"))
        report = balance_service.trial_balance()
        cash = next(item for item in report.items if item.code == "1000")
        assert cash.balance == Decimal("-300.00")
        assert cash.debit == Decimal("0.00")
        assert cash.credit == Decimal("300.00")
        assert report.total_debits == report.total_credits == Decimal("300.00")

    def test_corrupted_balance_is_integrity_error(self, db, balance_service, chart, january):
        db.set_account_balance(chart["1000"].id, Decimal("9999.99"))
        with pytest.raises(LedgerIntegrityError, match="out of balance"):
            balance_service.trial_balance()


class TestVerifyAndRebuild:
    """Tests for stored balance verification."""

    def test_clean_ledger_verifies(self, balance_service, january):
        assert balance_service.verify_balances() == []

    def test_rebuild_repairs_drift(self, db, balance_service, chart, january):
        db.set_account_balance(chart["1000"].id, Decimal("1.00"))

        mismatches = balance_service.verify_balances()
        assert len(mismatches) == 1
        assert mismatches[0].code == "1000"
        assert mismatches[0].stored_balance == Decimal("1.00")
        assert mismatches[0].computed_balance == Decimal("8800.00")

        repaired = balance_service.rebuild_balances()
        assert [m.code for m in repaired] == ["1000"]
        assert balance_service.get_balance(chart["1000"].id) == Decimal("8800.00")
        assert balance_service.verify_balances() == []


class TestConsistentReads:
    """A report never sees half of a concurrent write."""

    @pytest.fixture
    def writer_during_listing(self, db, account_service, monkeypatch):
        """Create an account and post to it right after the report lists accounts."""
        poster = JournalService(db, lock_timeout=10, retry_backoff=0.01)
        original = db.list_accounts
        threads = []

        def create_and_post():
            revenue = account_service.create_account("4900", "Other Revenue", AccountType.REVENUE)
            cash = account_service.get_account_by_code("1000")
            poster.post(
                date(2024, 6, 1),
                [
                    JournalLineDraft(cash.id, EntryDirection.DEBIT, Decimal("50.00")),
                    JournalLineDraft(revenue.id, EntryDirection.CREDIT, Decimal("50.00")),
                ],
            )

        def list_then_write(*args, **kwargs):
            accounts = original(*args, **kwargs)
            if not threads:
                thread = threading.Thread(target=create_and_post)
                threads.append(thread)
                thread.start()
                # The writer must wait for the report; give it time to try
                thread.join(timeout=0.3)
            return accounts

        monkeypatch.setattr(db, "list_accounts", list_then_write)
        return threads

    def test_trial_balance_as_of(self, balance_service, chart, writer_during_listing):
        report = balance_service.trial_balance(as_of=date(2024, 12, 31))

        assert report.total_debits == report.total_credits == Decimal("0.00")
        writer_during_listing[0].join(timeout=10)
        assert not writer_during_listing[0].is_alive()

        report = balance_service.trial_balance(as_of=date(2024, 12, 31))
        assert report.total_debits == report.total_credits == Decimal("50.00")

    def test_balance_sheet(self, statement_service, chart, writer_during_listing):
        sheet = statement_service.balance_sheet(date(2024, 12, 31))

        assert sheet.is_balanced
        assert sheet.total_assets == Decimal("0.00")
        writer_during_listing[0].join(timeout=10)
        assert not writer_during_listing[0].is_alive()

        sheet = statement_service.balance_sheet(date(2024, 12, 31))
        assert sheet.is_balanced
        assert sheet.total_assets == Decimal("50.00")

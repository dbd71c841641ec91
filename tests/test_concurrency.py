"""Tests for concurrent posting."""

import random
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from ledgerkit.domain.entities import EntryDirection, JournalLineDraft
from ledgerkit.domain.errors import BusyError
from ledgerkit.domain.journal import JournalService
from ledgerkit.domain.locking import AccountLockManager, lock_manager_for

POSTINGS = 100


def _sale(chart, amount="10.00"):
    return [
        JournalLineDraft(chart["1000"].id, EntryDirection.DEBIT, Decimal(amount)),
        JournalLineDraft(chart["4000"].id, EntryDirection.CREDIT, Decimal(amount)),
    ]


@pytest.mark.parametrize("seed", [7, 2024])
def test_parallel_postings_to_same_accounts(db, chart, balance_service, seed):
    rng = random.Random(seed)
    amounts = [Decimal(rng.randint(1, 500_000)) / 100 for _ in range(POSTINGS)]
    service = JournalService(db, lock_timeout=30, retry_backoff=0.01)

    def work(amount):
        time.sleep(rng.random() / 1000)
        return service.post(date(2024, 1, 1), _sale(chart, amount))

    with ThreadPoolExecutor(max_workers=16) as pool:
        entries = list(pool.map(work, amounts))

    expected = sum(amounts, Decimal("0.00"))
    assert len({entry.code for entry in entries}) == POSTINGS
    assert balance_service.get_balance(chart["1000"].id) == expected
    assert balance_service.get_balance(chart["4000"].id) == expected
    report = balance_service.trial_balance()
    assert report.total_debits == report.total_credits == expected


def test_parallel_postings_on_overlapping_accounts(db, chart, balance_service):
    service = JournalService(db, lock_timeout=30, retry_backoff=0.01)
    # Opposite line orders would deadlock without ordered locking
    forward = [
        JournalLineDraft(chart["1000"].id, EntryDirection.DEBIT, Decimal("1.00")),
        JournalLineDraft(chart["2000"].id, EntryDirection.CREDIT, Decimal("1.00")),
    ]
    backward = [
        JournalLineDraft(chart["2000"].id, EntryDirection.DEBIT, Decimal("1.00")),
        JournalLineDraft(chart["5100"].id, EntryDirection.DEBIT, Decimal("1.00")),
        JournalLineDraft(chart["1000"].id, EntryDirection.CREDIT, Decimal("2.00")),
    ]

    def work(i):
        return service.post(date(2024, 1, 1), forward if i % 2 else backward)

    with ThreadPoolExecutor(max_workers=16) as pool:
        list(pool.map(work, range(POSTINGS)))

    # 50 forward (+1 cash) and 50 backward (-2 cash)
    assert balance_service.get_balance(chart["1000"].id) == Decimal("-50.00")
    assert balance_service.get_balance(chart["2000"].id) == Decimal("0.00")
    assert balance_service.get_balance(chart["5100"].id) == Decimal("50.00")
    assert balance_service.verify_balances() == []


def test_entry_codes_have_no_gaps(db, chart, journal_service):
    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda _: journal_service.post(date(2024, 1, 1), _sale(chart, "1")), range(20)))

    codes = sorted(entry.code for entry in journal_service.list_entries())
    assert codes == [f"JE-{n:06d}" for n in range(1, 21)]


class TestAccountLockManager:
    """Tests for per-account locking."""

    def test_busy_after_timeout(self):
        manager = AccountLockManager()
        held = threading.Event()
        release = threading.Event()

        def holder():
            with manager.hold([1, 2], timeout=1):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(5)
        try:
            with pytest.raises(BusyError, match="busy"):
                with manager.hold([2, 3], timeout=0.05):
                    pass
        finally:
            release.set()
            thread.join()

    def test_failed_acquire_releases_partial_locks(self):
        manager = AccountLockManager()
        held = threading.Event()
        release = threading.Event()

        def holder():
            with manager.hold([5], timeout=1):
                held.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        held.wait(5)
        try:
            with pytest.raises(BusyError):
                with manager.hold([4, 5], timeout=0.05):
                    pass
        finally:
            release.set()
            thread.join()

        # Account 4 must not stay locked
        with manager.hold([4], timeout=0.05):
            pass

    def test_duplicate_ids_are_locked_once(self):
        manager = AccountLockManager()
        with manager.hold([7, 7, 7], timeout=0.05):
            pass

    def test_shared_manager_per_store(self, memory_db):
        assert lock_manager_for(memory_db) is lock_manager_for(memory_db)

    def test_busy_posting_is_retried_then_raised(self, db, chart):
        manager = AccountLockManager()
        service = JournalService(
            db, lock_timeout=0.02, max_retries=2, retry_backoff=0, lock_manager=manager
        )

        with manager.hold([chart["1000"].id], timeout=1):
            with pytest.raises(BusyError):
                service.post(date(2024, 1, 1), _sale(chart))
        assert service.list_entries() == []

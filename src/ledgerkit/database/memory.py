"""In-memory database implementation.

Keeps the whole book in dictionaries guarded by a re-entrant lock. Useful for
tests and throwaway books; nothing survives the process.
"""

import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, UTC
from decimal import Decimal
from typing import Iterable, Iterator, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    Account,
    AccountActivity,
    AccountType,
    EntryDirection,
    JournalEntry,
    JournalEntryLine,
    JournalLineDraft,
    ReconciliationRecord,
    ZERO,
    signed_delta,
)
from ledgerkit.domain.errors import (
    AccountNotFoundError,
    AlreadyReversedError,
    DuplicateCodeError,
    account_not_found,
    duplicate_account_code,
)


class InMemoryDatabase(Database):
    """Dictionary-backed implementation of Database interface."""

    def __init__(self):
        self._lock = threading.RLock()
        self._accounts: dict[int, Account] = {}
        self._entries: dict[int, JournalEntry] = {}
        self._reconciliations: dict[int, ReconciliationRecord] = {}
        self._sequences: dict[str, int] = {}
        self._ids = {"account": 0, "entry": 0, "line": 0, "reconciliation": 0}

    def _next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    def _snapshot(self) -> dict:
        return {
            "accounts": dict(self._accounts),
            "entries": dict(self._entries),
            "reconciliations": dict(self._reconciliations),
            "sequences": dict(self._sequences),
            "ids": dict(self._ids),
        }

    def _restore(self, state: dict) -> None:
        self._accounts = state["accounts"]
        self._entries = state["entries"]
        self._reconciliations = state["reconciliations"]
        self._sequences = state["sequences"]
        self._ids = state["ids"]

    def connect(self) -> None:
        """Connect to the database."""
        pass

    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    def initialize_schema(self) -> None:
        """Initialize database schema."""
        pass

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Hold the store lock and roll state back if the block raises."""
        with self._lock:
            state = self._snapshot()
            try:
                yield
            except BaseException:
                self._restore(state)
                raise

    @contextmanager
    def read_snapshot(self) -> Iterator[None]:
        """Hold the store lock so no other thread writes during the block."""
        with self._lock:
            yield

    # Account operations
    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType,
        parent_id: Optional[int] = None,
    ) -> int:
        with self._lock:
            if any(acc.code == code for acc in self._accounts.values()):
                raise DuplicateCodeError(duplicate_account_code(code))
            now = datetime.now(UTC)
            account_id = self._next_id("account")
            self._accounts[account_id] = Account(
                id=account_id,
                code=code,
                name=name,
                account_type=account_type,
                parent_id=parent_id,
                balance=ZERO,
                created_at=now,
                updated_at=now,
            )
            return account_id

    def get_account(self, account_id: int) -> Optional[Account]:
        with self._lock:
            return self._accounts.get(account_id)

    def get_account_by_code(self, code: str) -> Optional[Account]:
        with self._lock:
            for account in self._accounts.values():
                if account.code == code:
                    return account
            return None

    def list_accounts(
        self,
        account_type: Optional[AccountType] = None,
        search: Optional[str] = None,
    ) -> list[Account]:
        with self._lock:
            accounts = list(self._accounts.values())
        if account_type is not None:
            accounts = [acc for acc in accounts if acc.account_type == account_type]
        if search:
            needle = search.lower()
            accounts = [
                acc for acc in accounts if needle in acc.code.lower() or needle in acc.name.lower()
            ]
        return sorted(accounts, key=lambda acc: acc.code)

    def update_account(
        self,
        account_id: int,
        code: Optional[str] = None,
        name: Optional[str] = None,
        account_type: Optional[AccountType] = None,
        parent_id: Optional[int] = None,
        update_parent: bool = False,
    ) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(account_not_found(account_id))

            changes = {}
            if code is not None:
                if any(acc.code == code and acc.id != account_id for acc in self._accounts.values()):
                    raise DuplicateCodeError(duplicate_account_code(code))
                changes["code"] = code
            if name is not None:
                changes["name"] = name
            if account_type is not None:
                changes["account_type"] = account_type
            if update_parent or parent_id is not None:
                changes["parent_id"] = parent_id

            self._accounts[account_id] = replace(account, updated_at=datetime.now(UTC), **changes)

    def delete_account(self, account_id: int) -> None:
        with self._lock:
            if account_id not in self._accounts:
                raise AccountNotFoundError(account_not_found(account_id))
            del self._accounts[account_id]

    def get_account_line_count(self, account_id: int) -> int:
        with self._lock:
            return sum(
                1
                for entry in self._entries.values()
                for line in entry.lines
                if line.account_id == account_id
            )

    def get_child_account_count(self, account_id: int) -> int:
        with self._lock:
            return sum(1 for acc in self._accounts.values() if acc.parent_id == account_id)

    def apply_delta(self, account_id: int, direction: EntryDirection, amount: Decimal) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(account_not_found(account_id))
            delta = signed_delta(account.normal_side, direction, amount)
            self._accounts[account_id] = replace(
                account, balance=account.balance + delta, updated_at=datetime.now(UTC)
            )

    def set_account_balance(self, account_id: int, balance: Decimal) -> None:
        with self._lock:
            account = self._accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(account_not_found(account_id))
            self._accounts[account_id] = replace(account, balance=balance, updated_at=datetime.now(UTC))

    # Journal operations
    def next_sequence_value(self, name: str) -> int:
        with self._lock:
            value = self._sequences.get(name, 1)
            self._sequences[name] = value + 1
            return value

    def insert_journal_entry(
        self,
        code: str,
        entry_date: date,
        lines: Iterable[JournalLineDraft],
        reference: Optional[str] = None,
        description: Optional[str] = None,
        reversal_of_id: Optional[int] = None,
    ) -> int:
        with self._lock:
            if reversal_of_id is not None and self.get_reversal_of(reversal_of_id) is not None:
                raise AlreadyReversedError(
                    f"Journal entry {reversal_of_id} has already been reversed"
                )
            now = datetime.now(UTC)
            entry_id = self._next_id("entry")
            posted_lines = tuple(
                JournalEntryLine(
                    id=self._next_id("line"),
                    entry_id=entry_id,
                    account_id=line.account_id,
                    direction=line.direction,
                    amount=line.amount,
                    description=line.description,
                )
                for line in lines
            )
            self._entries[entry_id] = JournalEntry(
                id=entry_id,
                code=code,
                date=entry_date,
                reference=reference,
                description=description,
                lines=posted_lines,
                created_at=now,
                updated_at=now,
                reversal_of_id=reversal_of_id,
            )
            return entry_id

    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        with self._lock:
            return self._entries.get(entry_id)

    def get_journal_entry_by_code(self, code: str) -> Optional[JournalEntry]:
        with self._lock:
            for entry in self._entries.values():
                if entry.code == code:
                    return entry
            return None

    def get_reversal_of(self, entry_id: int) -> Optional[JournalEntry]:
        with self._lock:
            for entry in self._entries.values():
                if entry.reversal_of_id == entry_id:
                    return entry
            return None

    def list_journal_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
    ) -> list[JournalEntry]:
        with self._lock:
            entries = list(self._entries.values())
        if start_date is not None:
            entries = [entry for entry in entries if entry.date >= start_date]
        if end_date is not None:
            entries = [entry for entry in entries if entry.date <= end_date]
        if account_id is not None:
            entries = [entry for entry in entries if account_id in entry.account_ids]
        return sorted(entries, key=lambda entry: (entry.date, entry.id))

    def count_journal_entries(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_account_activity(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_ids: Optional[Iterable[int]] = None,
    ) -> dict[int, AccountActivity]:
        wanted = set(account_ids) if account_ids is not None else None
        totals: dict[int, AccountActivity] = {}
        for entry in self.list_journal_entries(start_date=start_date, end_date=end_date):
            for line in entry.lines:
                if wanted is not None and line.account_id not in wanted:
                    continue
                current = totals.get(line.account_id, AccountActivity(account_id=line.account_id))
                if line.direction == EntryDirection.DEBIT:
                    current = replace(current, debits=current.debits + line.amount)
                else:
                    current = replace(current, credits=current.credits + line.amount)
                totals[line.account_id] = current
        return totals

    # Reconciliation operations
    def create_reconciliation(
        self,
        account_id: int,
        statement_balance: Decimal,
        book_balance: Decimal,
        difference: Decimal,
        statement_date: date,
        reconciled: bool,
    ) -> int:
        with self._lock:
            record_id = self._next_id("reconciliation")
            self._reconciliations[record_id] = ReconciliationRecord(
                id=record_id,
                account_id=account_id,
                statement_balance=statement_balance,
                book_balance=book_balance,
                difference=difference,
                statement_date=statement_date,
                reconciled=reconciled,
                reconciled_at=datetime.now(UTC),
            )
            return record_id

    def get_reconciliation(self, reconciliation_id: int) -> Optional[ReconciliationRecord]:
        with self._lock:
            return self._reconciliations.get(reconciliation_id)

    def list_reconciliations(self, account_id: Optional[int] = None) -> list[ReconciliationRecord]:
        with self._lock:
            records = list(self._reconciliations.values())
        if account_id is not None:
            records = [record for record in records if record.account_id == account_id]
        return sorted(records, key=lambda record: record.id, reverse=True)

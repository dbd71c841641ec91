"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Iterable
from datetime import date
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from ledgerkit.domain.entities import (
    Account,
    AccountActivity,
    AccountType,
    EntryDirection,
    JournalEntry,
    JournalLineDraft,
    ReconciliationRecord,
)


class Database(ABC):
    """Abstract ledger store.

    Write methods called inside an ``atomic()`` block join that block's
    unit of work: nothing they do is visible to other callers until the
    block exits normally, and everything is discarded if it raises.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def atomic(self) -> AbstractContextManager[None]:
        """Open a unit of work that commits once or not at all."""
        pass

    @abstractmethod
    def read_snapshot(self) -> AbstractContextManager[None]:
        """Run the reads of the block against one consistent state.

        Writers from other threads wait until the block exits. Nested
        snapshots join the outermost one. No writes may be made inside.
        """
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType,
        parent_id: Optional[int] = None,
    ) -> int:
        """Create a new account with a zero balance. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_code(self, code: str) -> Optional[Account]:
        """Get account by its unique code."""
        pass

    @abstractmethod
    def list_accounts(
        self,
        account_type: Optional[AccountType] = None,
        search: Optional[str] = None,
    ) -> list[Account]:
        """List accounts ordered by code.

        Args:
            account_type: Optional account type filter
            search: Optional case-insensitive substring matched against code and name
        """
        pass

    @abstractmethod
    def update_account(
        self,
        account_id: int,
        code: Optional[str] = None,
        name: Optional[str] = None,
        account_type: Optional[AccountType] = None,
        parent_id: Optional[int] = None,
        update_parent: bool = False,
    ) -> None:
        """Update account fields.

        Args:
            update_parent: If True, set parent_id even if it's None (to detach the account)
        """
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account."""
        pass

    @abstractmethod
    def get_account_line_count(self, account_id: int) -> int:
        """Get count of journal entry lines posted against an account."""
        pass

    @abstractmethod
    def get_child_account_count(self, account_id: int) -> int:
        """Get count of accounts whose parent is the given account."""
        pass

    @abstractmethod
    def apply_delta(self, account_id: int, direction: EntryDirection, amount: Decimal) -> None:
        """Adjust a balance by +amount on its normal side, -amount otherwise.

        Only the journal posting engine calls this, inside ``atomic()``.
        """
        pass

    @abstractmethod
    def set_account_balance(self, account_id: int, balance: Decimal) -> None:
        """Overwrite a stored balance (used when rebuilding from the entry log)."""
        pass

    # Journal operations
    @abstractmethod
    def next_sequence_value(self, name: str) -> int:
        """Allocate the next value of a named counter, starting at 1."""
        pass

    @abstractmethod
    def insert_journal_entry(
        self,
        code: str,
        entry_date: date,
        lines: Iterable[JournalLineDraft],
        reference: Optional[str] = None,
        description: Optional[str] = None,
        reversal_of_id: Optional[int] = None,
    ) -> int:
        """Persist a journal entry and its lines. Returns entry ID."""
        pass

    @abstractmethod
    def get_journal_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry by ID."""
        pass

    @abstractmethod
    def get_journal_entry_by_code(self, code: str) -> Optional[JournalEntry]:
        """Get journal entry by its sequential code."""
        pass

    @abstractmethod
    def get_reversal_of(self, entry_id: int) -> Optional[JournalEntry]:
        """Get the entry that reverses the given entry, if any."""
        pass

    @abstractmethod
    def list_journal_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
    ) -> list[JournalEntry]:
        """List journal entries ordered by date then ID.

        Args:
            start_date: Optional inclusive start date filter
            end_date: Optional inclusive end date filter
            account_id: Optional filter to entries with a line on this account
        """
        pass

    @abstractmethod
    def count_journal_entries(self) -> int:
        """Get total number of posted journal entries."""
        pass

    @abstractmethod
    def get_account_activity(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_ids: Optional[Iterable[int]] = None,
    ) -> dict[int, AccountActivity]:
        """Sum posted debits and credits per account over an inclusive date range.

        Accounts without activity are absent from the result.
        """
        pass

    # Reconciliation operations
    @abstractmethod
    def create_reconciliation(
        self,
        account_id: int,
        statement_balance: Decimal,
        book_balance: Decimal,
        difference: Decimal,
        statement_date: date,
        reconciled: bool,
    ) -> int:
        """Record a reconciliation attempt. Returns record ID."""
        pass

    @abstractmethod
    def get_reconciliation(self, reconciliation_id: int) -> Optional[ReconciliationRecord]:
        """Get reconciliation record by ID."""
        pass

    @abstractmethod
    def list_reconciliations(self, account_id: Optional[int] = None) -> list[ReconciliationRecord]:
        """List reconciliation records, newest first."""
        pass

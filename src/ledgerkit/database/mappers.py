"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, making it easy to change when
the database schema changes.
"""

from ledgerkit.domain import entities as domain
from ledgerkit.database.models import (
    Account as ORMAccount,
    JournalEntry as ORMJournalEntry,
    JournalEntryLine as ORMJournalEntryLine,
    Reconciliation as ORMReconciliation,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        code=orm_account.code,
        name=orm_account.name,
        account_type=orm_account.account_type,
        parent_id=orm_account.parent_id,
        balance=orm_account.balance,
        created_at=orm_account.created_at,
        updated_at=orm_account.updated_at,
    )


def journal_line_to_domain(orm_line: ORMJournalEntryLine) -> domain.JournalEntryLine:
    """Convert SQLAlchemy JournalEntryLine model to domain JournalEntryLine entity."""
    return domain.JournalEntryLine(
        id=orm_line.id,
        entry_id=orm_line.entry_id,
        account_id=orm_line.account_id,
        direction=orm_line.direction,
        amount=orm_line.amount,
        description=orm_line.description,
    )


def journal_entry_to_domain(orm_entry: ORMJournalEntry) -> domain.JournalEntry:
    """Convert SQLAlchemy JournalEntry model (with lines) to domain JournalEntry entity."""
    return domain.JournalEntry(
        id=orm_entry.id,
        code=orm_entry.code,
        date=orm_entry.date,
        reference=orm_entry.reference,
        description=orm_entry.description,
        lines=tuple(journal_line_to_domain(line) for line in orm_entry.lines),
        created_at=orm_entry.created_at,
        updated_at=orm_entry.updated_at,
        reversal_of_id=orm_entry.reversal_of_id,
    )


def reconciliation_to_domain(orm_record: ORMReconciliation) -> domain.ReconciliationRecord:
    """Convert SQLAlchemy Reconciliation model to domain ReconciliationRecord entity."""
    return domain.ReconciliationRecord(
        id=orm_record.id,
        account_id=orm_record.account_id,
        statement_balance=orm_record.statement_balance,
        book_balance=orm_record.book_balance,
        difference=orm_record.difference,
        statement_date=orm_record.statement_date,
        reconciled=orm_record.reconciled,
        reconciled_at=orm_record.reconciled_at,
    )

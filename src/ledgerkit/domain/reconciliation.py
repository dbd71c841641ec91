"""Account reconciliation domain service."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import CENT, ReconciliationRecord
from ledgerkit.domain.errors import (
    AccountNotFoundError,
    InvalidAmountError,
    NotFoundError,
    account_not_found,
)

logger = logging.getLogger(__name__)


def coerce_balance(value: Any) -> Decimal:
    """Convert a statement balance to a two-place Decimal.

    Unlike journal line amounts, balances may be zero or negative.

    Raises:
        InvalidAmountError: If the value is not a finite number with at most
            two decimal places
    """
    try:
        balance = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(f"Invalid balance '{value}'") from exc
    if not balance.is_finite():
        raise InvalidAmountError(f"Invalid balance '{value}'")
    if balance != balance.quantize(CENT):
        raise InvalidAmountError(f"Balance {balance} has more than two decimal places")
    return balance.quantize(CENT)


class ReconciliationService:
    """Service for reconciling book balances against external statements."""

    def __init__(self, db: Database):
        """Initialize reconciliation service.

        Args:
            db: Database instance
        """
        self.db = db

    def reconcile(
        self, account_id: int, statement_balance: Any, statement_date: date
    ) -> ReconciliationRecord:
        """Compare an account's book balance with a statement balance.

        The account balance is never changed; each call appends a new record.

        Args:
            account_id: Account being reconciled
            statement_balance: Balance reported by the external statement
            statement_date: Date of the external statement

        Returns:
            The persisted reconciliation record, where
            ``difference = statement_balance - book_balance``

        Raises:
            AccountNotFoundError: If the account doesn't exist
            InvalidAmountError: If statement_balance is not a valid amount
        """
        statement_balance = coerce_balance(statement_balance)
        account = self.db.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_not_found(account_id))

        book_balance = account.balance
        difference = statement_balance - book_balance
        record_id = self.db.create_reconciliation(
            account_id=account_id,
            statement_balance=statement_balance,
            book_balance=book_balance,
            difference=difference,
            statement_date=statement_date,
            reconciled=difference == 0,
        )

        log = logger.info if difference == 0 else logger.warning
        log(
            "Reconciled account" if difference == 0 else "Reconciliation difference found",
            extra={
                "account_id": account_id,
                "statement_balance": str(statement_balance),
                "book_balance": str(book_balance),
                "difference": str(difference),
            },
        )
        return self.db.get_reconciliation(record_id)

    def get_reconciliation(self, reconciliation_id: int) -> ReconciliationRecord:
        """Get a reconciliation record by ID.

        Raises:
            NotFoundError: If the record doesn't exist
        """
        record = self.db.get_reconciliation(reconciliation_id)
        if record is None:
            raise NotFoundError(f"Reconciliation {reconciliation_id} not found")
        return record

    def list_reconciliations(self, account_id: Optional[int] = None) -> list[ReconciliationRecord]:
        """List reconciliation history, newest first.

        Args:
            account_id: Optional account filter
        """
        return self.db.list_reconciliations(account_id=account_id)

    def last_reconciliation(self, account_id: int) -> Optional[ReconciliationRecord]:
        """Most recent reconciliation of an account, or None."""
        records = self.db.list_reconciliations(account_id=account_id)
        return records[0] if records else None

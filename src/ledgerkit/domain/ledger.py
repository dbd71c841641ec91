"""General ledger and book statistics domain service."""

from datetime import date, timedelta
from typing import Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    ZERO,
    AccountType,
    GeneralLedger,
    LedgerLine,
    LedgerStatistics,
    signed_delta,
)
from ledgerkit.domain.errors import AccountNotFoundError, ValidationError, account_not_found


class LedgerService:
    """Service for per-account posting history and book-wide figures."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def general_ledger(
        self,
        account_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> GeneralLedger:
        """Build the general ledger of one account.

        The opening balance covers everything posted before start_date. Each
        line carries the balance after it, in the account's normal-side
        convention.

        Args:
            account_id: Account ID
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date

        Raises:
            AccountNotFoundError: If the account doesn't exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_not_found(account_id))
        if start_date is not None and end_date is not None and start_date > end_date:
            raise ValidationError(f"Start date {start_date} is after end date {end_date}")

        opening_balance = ZERO
        with self.db.read_snapshot():
            if start_date is not None:
                before = self.db.get_account_activity(
                    end_date=start_date - timedelta(days=1), account_ids=[account_id]
                )
                if account_id in before:
                    opening_balance = before[account_id].net_for(account.normal_side)
            entries = self.db.list_journal_entries(
                start_date=start_date, end_date=end_date, account_id=account_id
            )

        running = opening_balance
        lines = []
        for entry in entries:
            for line in entry.lines:
                if line.account_id != account_id:
                    continue
                running += signed_delta(account.normal_side, line.direction, line.amount)
                lines.append(
                    LedgerLine(
                        entry_id=entry.id,
                        entry_code=entry.code,
                        date=entry.date,
                        reference=entry.reference,
                        description=line.description or entry.description,
                        direction=line.direction,
                        amount=line.amount,
                        running_balance=running,
                    )
                )

        return GeneralLedger(
            account=account,
            start_date=start_date,
            end_date=end_date,
            opening_balance=opening_balance,
            closing_balance=running,
            lines=tuple(lines),
        )

    def statistics(self) -> LedgerStatistics:
        """Count accounts and entries and total the stored balances per account type."""
        with self.db.read_snapshot():
            accounts = self.db.list_accounts()
            entry_count = self.db.count_journal_entries()
        totals = {account_type: ZERO for account_type in AccountType}
        for account in accounts:
            totals[account.account_type] += account.balance
        return LedgerStatistics(
            total_accounts=len(accounts),
            total_journal_entries=entry_count,
            totals_by_type=totals,
        )

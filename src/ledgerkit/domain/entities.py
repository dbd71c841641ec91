"""Domain model entities for ledgerkit.

These are pure data classes representing ledger concepts, independent of
database schema. Stores return these entities, so the business logic stays
the same whichever store implementation backs it.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional

ZERO = Decimal("0.00")
CENT = Decimal("0.01")


class EntryDirection(str, Enum):
    """Side of a journal entry line."""

    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def opposite(self) -> "EntryDirection":
        if self is EntryDirection.DEBIT:
            return EntryDirection.CREDIT
        return EntryDirection.DEBIT


class AccountType(str, Enum):
    """Account type taxonomy of the chart of accounts."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @property
    def normal_side(self) -> EntryDirection:
        """Direction that increases a balance of this type."""
        if self in (AccountType.ASSET, AccountType.EXPENSE):
            return EntryDirection.DEBIT
        return EntryDirection.CREDIT


class BalanceScope(str, Enum):
    """Which postings make up an account's reported balance."""

    OWN = "own"
    ROLLUP = "rollup"


class CashFlowCategory(str, Enum):
    """Cash-flow statement activity sections."""

    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"


def signed_delta(normal_side: EntryDirection, direction: EntryDirection, amount: Decimal) -> Decimal:
    """Return the balance change a line causes on an account.

    Positive when the line is on the account's normal side.
    """
    return amount if direction == normal_side else -amount


@dataclass(frozen=True)
class Account:
    """Chart of accounts node."""

    id: int
    code: str
    name: str
    account_type: AccountType
    parent_id: Optional[int]
    balance: Decimal
    created_at: datetime
    updated_at: datetime

    @property
    def normal_side(self) -> EntryDirection:
        return self.account_type.normal_side


@dataclass(frozen=True)
class JournalLineDraft:
    """One leg of an entry that has not been posted yet."""

    account_id: int
    direction: EntryDirection
    amount: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class JournalEntryLine:
    """Posted journal entry line."""

    id: int
    entry_id: int
    account_id: int
    direction: EntryDirection
    amount: Decimal
    description: Optional[str]


@dataclass(frozen=True)
class JournalEntry:
    """Posted, immutable journal entry."""

    id: int
    code: str
    date: date
    reference: Optional[str]
    description: Optional[str]
    lines: tuple[JournalEntryLine, ...]
    created_at: datetime
    updated_at: datetime
    reversal_of_id: Optional[int] = None

    @property
    def total_debits(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.direction == EntryDirection.DEBIT),
            ZERO,
        )

    @property
    def total_credits(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.direction == EntryDirection.CREDIT),
            ZERO,
        )

    @property
    def account_ids(self) -> frozenset[int]:
        return frozenset(line.account_id for line in self.lines)


@dataclass(frozen=True)
class AccountActivity:
    """Debit and credit totals posted to one account over a period."""

    account_id: int
    debits: Decimal = ZERO
    credits: Decimal = ZERO

    def net_for(self, normal_side: EntryDirection) -> Decimal:
        if normal_side == EntryDirection.DEBIT:
            return self.debits - self.credits
        return self.credits - self.debits


@dataclass(frozen=True)
class ReconciliationRecord:
    """Outcome of comparing a book balance to a statement balance."""

    id: int
    account_id: int
    statement_balance: Decimal
    book_balance: Decimal
    difference: Decimal
    statement_date: date
    reconciled: bool
    reconciled_at: datetime


@dataclass(frozen=True)
class AccountTreeNode:
    """Account positioned in the chart of accounts tree."""

    account: Account
    depth: int
    children: tuple["AccountTreeNode", ...] = ()


@dataclass(frozen=True)
class AccountBalanceNode:
    """Account with its own and roll-up balances, for hierarchical views."""

    account: Account
    depth: int
    own_balance: Decimal
    rollup_balance: Decimal

    def balance(self, scope: BalanceScope) -> Decimal:
        if scope == BalanceScope.ROLLUP:
            return self.rollup_balance
        return self.own_balance


@dataclass(frozen=True)
class TrialBalanceItem:
    """Per-account trial balance row, computed at query time."""

    account_id: int
    code: str
    name: str
    account_type: AccountType
    balance: Decimal
    debit: Decimal
    credit: Decimal


@dataclass(frozen=True)
class TrialBalance:
    """Trial balance report."""

    items: tuple[TrialBalanceItem, ...]
    total_debits: Decimal
    total_credits: Decimal
    as_of: Optional[date] = None


@dataclass(frozen=True)
class StatementLine:
    """Account row on a financial statement."""

    account_id: Optional[int]
    code: str
    name: str
    balance: Decimal


@dataclass(frozen=True)
class BalanceSheetReport:
    """Balance sheet as of a date."""

    as_of_date: date
    assets: tuple[StatementLine, ...]
    liabilities: tuple[StatementLine, ...]
    equity: tuple[StatementLine, ...]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    is_balanced: bool

    @property
    def total_liabilities_and_equity(self) -> Decimal:
        return self.total_liabilities + self.total_equity


@dataclass(frozen=True)
class IncomeStatementReport:
    """Income statement over a period."""

    start_date: Optional[date]
    end_date: date
    revenue: tuple[StatementLine, ...]
    expenses: tuple[StatementLine, ...]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal


@dataclass(frozen=True)
class CashFlowActivity:
    """Cash movement attributed to one non-cash line of an entry."""

    entry_id: int
    entry_code: str
    date: date
    account_code: str
    description: str
    amount: Decimal
    category: CashFlowCategory

    @property
    def is_inflow(self) -> bool:
        return self.amount > 0


@dataclass(frozen=True)
class CashFlowReport:
    """Cash-flow statement over a period."""

    start_date: Optional[date]
    end_date: date
    operating_activities: tuple[CashFlowActivity, ...]
    investing_activities: tuple[CashFlowActivity, ...]
    financing_activities: tuple[CashFlowActivity, ...]
    operating_cash_flow: Decimal
    investing_cash_flow: Decimal
    financing_cash_flow: Decimal
    net_cash_flow: Decimal
    beginning_cash: Decimal
    ending_cash: Decimal


@dataclass(frozen=True)
class LedgerLine:
    """One posting in an account's general ledger with running balance."""

    entry_id: int
    entry_code: str
    date: date
    reference: Optional[str]
    description: Optional[str]
    direction: EntryDirection
    amount: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class GeneralLedger:
    """Postings against one account over a period."""

    account: Account
    start_date: Optional[date]
    end_date: Optional[date]
    opening_balance: Decimal
    closing_balance: Decimal
    lines: tuple[LedgerLine, ...] = ()


@dataclass(frozen=True)
class LedgerStatistics:
    """Headline figures for the whole book."""

    total_accounts: int
    total_journal_entries: int
    totals_by_type: dict[AccountType, Decimal] = field(default_factory=dict)

    @property
    def net_income(self) -> Decimal:
        return self.totals_by_type.get(AccountType.REVENUE, ZERO) - self.totals_by_type.get(
            AccountType.EXPENSE, ZERO
        )


@dataclass(frozen=True)
class BalanceMismatch:
    """Stored balance that disagrees with the entry log."""

    account_id: int
    code: str
    stored_balance: Decimal
    computed_balance: Decimal

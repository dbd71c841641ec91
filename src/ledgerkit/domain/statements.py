"""Financial statement domain service."""

import logging
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from ledgerkit.config import CashFlowConfig, LedgerSettings
from ledgerkit.database.base import Database
from ledgerkit.domain.account import AccountTree
from ledgerkit.domain.balance import normal_balances
from ledgerkit.domain.entities import (
    ZERO,
    Account,
    AccountType,
    BalanceSheetReport,
    CashFlowActivity,
    CashFlowCategory,
    CashFlowReport,
    EntryDirection,
    IncomeStatementReport,
    StatementLine,
)
from ledgerkit.domain.errors import LedgerIntegrityError, ValidationError

logger = logging.getLogger(__name__)

CURRENT_EARNINGS_NAME = "Current earnings"
CASH_NAME_PATTERN = re.compile(r"cash|bank", re.IGNORECASE)


def _lines(accounts: list[Account], balances: dict[int, Decimal]) -> tuple[StatementLine, ...]:
    return tuple(
        StatementLine(account_id=acc.id, code=acc.code, name=acc.name, balance=balances[acc.id])
        for acc in accounts
    )


def _total(lines: tuple[StatementLine, ...]) -> Decimal:
    return sum((line.balance for line in lines), ZERO)


class StatementService:
    """Service for balance sheet, income statement and cash-flow statement."""

    def __init__(self, db: Database, settings: Optional[LedgerSettings] = None):
        """Initialize statement service.

        Args:
            db: Database instance
            settings: Ledger settings; supplies the default period start and
                the cash-flow configuration
        """
        self.db = db
        self.settings = settings if settings is not None else LedgerSettings()

    def resolve_period_start(self, start_date: Optional[date], end_date: date) -> Optional[date]:
        """Return the effective start date of a period ending on end_date."""
        if start_date is None:
            start_date = self.settings.period_start(end_date)
        if start_date is not None and start_date > end_date:
            raise ValidationError(f"Start date {start_date} is after end date {end_date}")
        return start_date

    def balance_sheet(
        self, as_of_date: date, include_current_earnings: bool = True
    ) -> BalanceSheetReport:
        """Build the balance sheet as of a date.

        Args:
            as_of_date: Inclusive cut-off date
            include_current_earnings: Add revenue minus expenses to date as an
                equity line. Without it the sheet only balances once closing
                entries have been posted, and ``is_balanced`` reports that.

        Raises:
            LedgerIntegrityError: If current earnings are included and the
                sheet still does not balance
        """
        with self.db.read_snapshot():
            accounts = self.db.list_accounts()
            activity = self.db.get_account_activity(end_date=as_of_date)
        balances = normal_balances(accounts, activity)

        def of_type(account_type: AccountType) -> list[Account]:
            return [acc for acc in accounts if acc.account_type == account_type]

        assets = _lines(of_type(AccountType.ASSET), balances)
        liabilities = _lines(of_type(AccountType.LIABILITY), balances)
        equity = _lines(of_type(AccountType.EQUITY), balances)

        if include_current_earnings:
            earnings = _total(_lines(of_type(AccountType.REVENUE), balances)) - _total(
                _lines(of_type(AccountType.EXPENSE), balances)
            )
            equity += (
                StatementLine(account_id=None, code="", name=CURRENT_EARNINGS_NAME, balance=earnings),
            )

        total_assets = _total(assets)
        total_liabilities = _total(liabilities)
        total_equity = _total(equity)
        is_balanced = total_assets == total_liabilities + total_equity

        if include_current_earnings and not is_balanced:
            logger.error(
                "Balance sheet does not balance",
                extra={
                    "as_of": as_of_date.isoformat(),
                    "total_assets": str(total_assets),
                    "total_liabilities_and_equity": str(total_liabilities + total_equity),
                },
            )
            raise LedgerIntegrityError(
                f"Balance sheet out of balance as of {as_of_date}: assets={total_assets} "
                f"liabilities+equity={total_liabilities + total_equity}"
            )

        return BalanceSheetReport(
            as_of_date=as_of_date,
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            total_equity=total_equity,
            is_balanced=is_balanced,
        )

    def income_statement(
        self, end_date: date, start_date: Optional[date] = None
    ) -> IncomeStatementReport:
        """Build the income statement.

        Args:
            end_date: Inclusive period end
            start_date: Inclusive period start; when omitted the configured
                fiscal year start applies, or all activity up to end_date
        """
        start_date = self.resolve_period_start(start_date, end_date)
        with self.db.read_snapshot():
            accounts = [
                acc
                for acc in self.db.list_accounts()
                if acc.account_type in (AccountType.REVENUE, AccountType.EXPENSE)
            ]
            activity = self.db.get_account_activity(
                start_date=start_date, end_date=end_date, account_ids=[acc.id for acc in accounts]
            )
        balances = normal_balances(accounts, activity)

        revenue = _lines([acc for acc in accounts if acc.account_type == AccountType.REVENUE], balances)
        expenses = _lines([acc for acc in accounts if acc.account_type == AccountType.EXPENSE], balances)
        total_revenue = _total(revenue)
        total_expenses = _total(expenses)

        return IncomeStatementReport(
            start_date=start_date,
            end_date=end_date,
            revenue=revenue,
            expenses=expenses,
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_income=total_revenue - total_expenses,
        )

    def cash_flow_statement(
        self,
        end_date: date,
        start_date: Optional[date] = None,
        cash_flow: Optional[CashFlowConfig] = None,
    ) -> CashFlowReport:
        """Build the cash-flow statement.

        Every non-cash line of an entry that touches a cash account becomes
        one activity whose amount is the cash it brought in (positive) or
        paid out (negative). The activity's section comes from the mapping of
        its account code, looked up along the parent chain.

        Args:
            end_date: Inclusive period end
            start_date: Inclusive period start; when omitted the configured
                fiscal year start applies, or all activity up to end_date
            cash_flow: Cash accounts and section mapping; defaults to settings

        Raises:
            LedgerIntegrityError: If ending cash differs from beginning cash
                plus net cash flow
        """
        start_date = self.resolve_period_start(start_date, end_date)
        config = cash_flow if cash_flow is not None else self.settings.cash_flow

        with self.db.read_snapshot():
            accounts = self.db.list_accounts()
            cash_ids = self.cash_account_ids(accounts, config)
            before = {}
            if start_date is not None and cash_ids:
                before = self.db.get_account_activity(
                    end_date=start_date - timedelta(days=1), account_ids=cash_ids
                )
            entries = self.db.list_journal_entries(start_date=start_date, end_date=end_date)

        by_id = {acc.id: acc for acc in accounts}
        beginning_cash = sum(
            (activity.debits - activity.credits for activity in before.values()), ZERO
        )

        sections: dict[CashFlowCategory, list[CashFlowActivity]] = {
            category: [] for category in CashFlowCategory
        }
        cash_movement = ZERO
        for entry in entries:
            cash_lines = [line for line in entry.lines if line.account_id in cash_ids]
            if not cash_lines:
                continue
            for line in cash_lines:
                cash_movement += line.amount if line.direction == EntryDirection.DEBIT else -line.amount
            for line in entry.lines:
                if line.account_id in cash_ids:
                    continue
                account = by_id.get(line.account_id)
                amount = line.amount if line.direction == EntryDirection.CREDIT else -line.amount
                category = self.classify(account, by_id, config)
                sections[category].append(
                    CashFlowActivity(
                        entry_id=entry.id,
                        entry_code=entry.code,
                        date=entry.date,
                        account_code=account.code if account else str(line.account_id),
                        description=line.description
                        or entry.description
                        or (account.name if account else ""),
                        amount=amount,
                        category=category,
                    )
                )

        flows = {
            category: sum((activity.amount for activity in activities), ZERO)
            for category, activities in sections.items()
        }
        net_cash_flow = sum(flows.values(), ZERO)
        ending_cash = beginning_cash + cash_movement

        if ending_cash != beginning_cash + net_cash_flow:
            logger.error(
                "Cash flow does not reconcile",
                extra={
                    "beginning_cash": str(beginning_cash),
                    "net_cash_flow": str(net_cash_flow),
                    "ending_cash": str(ending_cash),
                },
            )
            raise LedgerIntegrityError(
                f"Cash flow does not reconcile: beginning={beginning_cash} net={net_cash_flow} "
                f"ending={ending_cash}"
            )

        return CashFlowReport(
            start_date=start_date,
            end_date=end_date,
            operating_activities=tuple(sections[CashFlowCategory.OPERATING]),
            investing_activities=tuple(sections[CashFlowCategory.INVESTING]),
            financing_activities=tuple(sections[CashFlowCategory.FINANCING]),
            operating_cash_flow=flows[CashFlowCategory.OPERATING],
            investing_cash_flow=flows[CashFlowCategory.INVESTING],
            financing_cash_flow=flows[CashFlowCategory.FINANCING],
            net_cash_flow=net_cash_flow,
            beginning_cash=beginning_cash,
            ending_cash=ending_cash,
        )

    @staticmethod
    def cash_account_ids(accounts: list[Account], config: CashFlowConfig) -> set[int]:
        """IDs of cash-equivalent accounts, including sub-accounts.

        Configured codes win; without any, asset accounts whose code or name
        mentions cash or bank are used.
        """
        if config.cash_account_codes:
            roots = [acc for acc in accounts if acc.code in config.cash_account_codes]
        else:
            roots = [
                acc
                for acc in accounts
                if acc.account_type == AccountType.ASSET
                and (CASH_NAME_PATTERN.search(acc.name) or CASH_NAME_PATTERN.search(acc.code))
            ]
        tree = AccountTree(accounts)
        cash_ids: set[int] = set()
        for account in roots:
            cash_ids |= tree.descendant_ids(account.id)
        return cash_ids

    @staticmethod
    def classify(
        account: Optional[Account], by_id: dict[int, Account], config: CashFlowConfig
    ) -> CashFlowCategory:
        """Section for a counterpart account: its own mapping or its nearest mapped ancestor."""
        seen: set[int] = set()
        while account is not None and account.id not in seen:
            category = config.category_by_code.get(account.code)
            if category is not None:
                return category
            seen.add(account.id)
            account = by_id.get(account.parent_id) if account.parent_id is not None else None
        return config.default_category

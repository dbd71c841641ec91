"""Balance and trial balance domain service."""

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.account import AccountTree
from ledgerkit.domain.entities import (
    ZERO,
    Account,
    AccountActivity,
    AccountBalanceNode,
    BalanceMismatch,
    BalanceScope,
    EntryDirection,
    TrialBalance,
    TrialBalanceItem,
)
from ledgerkit.domain.errors import (
    AccountNotFoundError,
    LedgerIntegrityError,
    account_not_found,
)
from ledgerkit.domain.locking import lock_manager_for

logger = logging.getLogger(__name__)


def debit_positive(account: Account, balance: Decimal) -> Decimal:
    """Express a normal-side balance with debits positive."""
    if account.normal_side == EntryDirection.DEBIT:
        return balance
    return -balance


def normal_balances(
    accounts: Iterable[Account], activity: Mapping[int, AccountActivity]
) -> dict[int, Decimal]:
    """Net each account's activity on its normal side; no activity means zero."""
    return {
        acc.id: activity[acc.id].net_for(acc.normal_side) if acc.id in activity else ZERO
        for acc in accounts
    }


def in_convention_of(parent: Account, child: Account, balance: Decimal) -> Decimal:
    """Express a child's balance in the parent's normal-side convention."""
    if parent.normal_side == child.normal_side:
        return balance
    return -balance


class BalanceService:
    """Service for account balances and the trial balance."""

    def __init__(self, db: Database, lock_timeout: float = 5.0):
        """Initialize balance service.

        Args:
            db: Database instance
            lock_timeout: Seconds to wait for account locks when verifying
                or rebuilding balances
        """
        self.db = db
        self.lock_timeout = lock_timeout

    def get_balance(
        self,
        account_id: int,
        as_of: Optional[date] = None,
        scope: BalanceScope = BalanceScope.OWN,
    ) -> Decimal:
        """Get an account balance in its normal-side convention.

        Args:
            account_id: Account ID
            as_of: If given, recompute from entries dated on or before it;
                otherwise read the stored balance
            scope: OWN for the account's own postings, ROLLUP to add all
                descendants (converted to this account's normal side)

        Raises:
            AccountNotFoundError: If the account doesn't exist
        """
        account = self.db.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_not_found(account_id))

        if scope == BalanceScope.OWN:
            if as_of is None:
                return account.balance
            return self.balances_as_of(as_of, [account_id]).get(account_id, ZERO)

        with self.db.read_snapshot():
            accounts = self.db.list_accounts()
            member_ids = AccountTree(accounts).descendant_ids(account_id)
            members = [acc for acc in accounts if acc.id in member_ids]
            if as_of is None:
                balances = {acc.id: acc.balance for acc in members}
            else:
                balances = self.balances_as_of(as_of, member_ids)
        return sum(
            (in_convention_of(account, member, balances.get(member.id, ZERO)) for member in members),
            ZERO,
        )

    def balances_as_of(
        self, as_of: Optional[date], account_ids: Optional[set[int] | list[int]] = None
    ) -> dict[int, Decimal]:
        """Recompute normal-side balances from the entry log.

        Args:
            as_of: Inclusive cut-off date, or None for the whole log
            account_ids: Optional subset of accounts

        Returns:
            Mapping of account ID to balance; accounts without postings map to zero
        """
        with self.db.read_snapshot():
            accounts = self.db.list_accounts()
            if account_ids is not None:
                wanted = set(account_ids)
                accounts = [acc for acc in accounts if acc.id in wanted]
            activity = self.db.get_account_activity(
                end_date=as_of, account_ids=[acc.id for acc in accounts]
            )
        return normal_balances(accounts, activity)

    def balance_tree(self, as_of: Optional[date] = None) -> list[AccountBalanceNode]:
        """Chart of accounts in tree order with own and roll-up balances.

        Callers pick the figure to show with ``AccountBalanceNode.balance(scope)``.

        Args:
            as_of: Optional cut-off date (stored balances when omitted)
        """
        with self.db.read_snapshot():
            accounts = self.db.list_accounts()
            if as_of is None:
                own = {acc.id: acc.balance for acc in accounts}
            else:
                own = normal_balances(accounts, self.db.get_account_activity(end_date=as_of))

        tree = AccountTree(accounts)
        by_id = {acc.id: acc for acc in accounts}
        nodes = []
        for node in tree:
            account = node.account
            rollup = sum(
                (
                    in_convention_of(account, by_id[member_id], own[member_id])
                    for member_id in tree.descendant_ids(account.id)
                ),
                ZERO,
            )
            nodes.append(
                AccountBalanceNode(
                    account=account,
                    depth=node.depth,
                    own_balance=own[account.id],
                    rollup_balance=rollup,
                )
            )
        return nodes

    def trial_balance(self, as_of: Optional[date] = None) -> TrialBalance:
        """Compute the trial balance.

        Each account's balance lands in the debit or the credit column
        according to the sign of its debit-positive balance.

        Args:
            as_of: Optional cut-off date; stored balances are used when omitted

        Raises:
            LedgerIntegrityError: If total debits differ from total credits
        """
        with self.db.read_snapshot():
            accounts = self.db.list_accounts()
            if as_of is None:
                balances = {acc.id: acc.balance for acc in accounts}
            else:
                balances = normal_balances(accounts, self.db.get_account_activity(end_date=as_of))

        items = []
        total_debits = ZERO
        total_credits = ZERO
        for account in accounts:
            balance = balances[account.id]
            signed = debit_positive(account, balance)
            debit = signed if signed > 0 else ZERO
            credit = -signed if signed < 0 else ZERO
            total_debits += debit
            total_credits += credit
            items.append(
                TrialBalanceItem(
                    account_id=account.id,
                    code=account.code,
                    name=account.name,
                    account_type=account.account_type,
                    balance=balance,
                    debit=debit,
                    credit=credit,
                )
            )

        if total_debits != total_credits:
            logger.error(
                "Trial balance does not balance",
                extra={
                    "total_debits": str(total_debits),
                    "total_credits": str(total_credits),
                    "as_of": as_of.isoformat() if as_of else None,
                },
            )
            raise LedgerIntegrityError(
                f"Trial balance out of balance: debits={total_debits} credits={total_credits}"
            )

        return TrialBalance(
            items=tuple(items),
            total_debits=total_debits,
            total_credits=total_credits,
            as_of=as_of,
        )

    def verify_balances(self) -> list[BalanceMismatch]:
        """Compare stored balances with balances recomputed from the entry log.

        Postings are held off for the duration of the check.
        """
        accounts = self.db.list_accounts()
        with lock_manager_for(self.db).hold([acc.id for acc in accounts], timeout=self.lock_timeout):
            return self._find_mismatches()

    def rebuild_balances(self) -> list[BalanceMismatch]:
        """Overwrite stored balances that disagree with the entry log.

        Returns:
            The mismatches that were repaired
        """
        accounts = self.db.list_accounts()
        with lock_manager_for(self.db).hold([acc.id for acc in accounts], timeout=self.lock_timeout):
            mismatches = self._find_mismatches()
            with self.db.atomic():
                for mismatch in mismatches:
                    self.db.set_account_balance(mismatch.account_id, mismatch.computed_balance)
        for mismatch in mismatches:
            logger.warning(
                "Rebuilt account balance",
                extra={
                    "account_id": mismatch.account_id,
                    "stored": str(mismatch.stored_balance),
                    "computed": str(mismatch.computed_balance),
                },
            )
        return mismatches

    def _find_mismatches(self) -> list[BalanceMismatch]:
        with self.db.read_snapshot():
            accounts = self.db.list_accounts()
            computed = self.balances_as_of(None)
        return [
            BalanceMismatch(
                account_id=acc.id,
                code=acc.code,
                stored_balance=acc.balance,
                computed_balance=computed.get(acc.id, ZERO),
            )
            for acc in accounts
            if acc.balance != computed.get(acc.id, ZERO)
        ]

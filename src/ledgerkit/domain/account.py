"""Chart of accounts domain service."""

import logging
from typing import Iterable, Iterator, Optional

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import Account, AccountTreeNode, AccountType
from ledgerkit.domain.locking import lock_manager_for
from ledgerkit.domain.errors import (
    AccountInUseError,
    AccountNotFoundError,
    CycleDetectedError,
    DuplicateCodeError,
    ParentNotFoundError,
    ValidationError,
    account_delete_blocked,
    account_not_found,
    duplicate_account_code,
)

logger = logging.getLogger(__name__)

MAX_CODE_LENGTH = 20
MAX_NAME_LENGTH = 255


def coerce_account_type(value: AccountType | str) -> AccountType:
    """Accept an AccountType or its (case-insensitive) value."""
    if isinstance(value, AccountType):
        return value
    try:
        return AccountType(str(value).strip().lower())
    except ValueError as exc:
        valid = ", ".join(t.value for t in AccountType)
        raise ValidationError(f"Invalid account type '{value}'. Expected one of: {valid}") from exc


class AccountTree:
    """Ordered forest view over a snapshot of the chart of accounts.

    Iterating walks the forest depth-first, siblings ordered by code. The
    walk is lazy and every ``iter()`` starts over from the first root.
    """

    def __init__(self, accounts: Iterable[Account]):
        self._accounts = {account.id: account for account in accounts}
        children: dict[Optional[int], list[Account]] = {}
        for account in self._accounts.values():
            parent_id = account.parent_id if account.parent_id in self._accounts else None
            children.setdefault(parent_id, []).append(account)
        self._children = {
            parent_id: sorted(siblings, key=lambda acc: acc.code)
            for parent_id, siblings in children.items()
        }

    def __iter__(self) -> Iterator[AccountTreeNode]:
        return self.walk()

    def __len__(self) -> int:
        return len(self._accounts)

    def walk(self) -> Iterator[AccountTreeNode]:
        """Yield flat nodes (no children attached) in pre-order."""
        stack = [(account, 0) for account in reversed(self._children.get(None, []))]
        while stack:
            account, depth = stack.pop()
            yield AccountTreeNode(account=account, depth=depth)
            for child in reversed(self._children.get(account.id, [])):
                stack.append((child, depth + 1))

    def children_of(self, account_id: Optional[int]) -> list[Account]:
        """Direct children of an account, or the roots when account_id is None."""
        return list(self._children.get(account_id, []))

    def descendant_ids(self, account_id: int) -> set[int]:
        """IDs of an account and everything below it."""
        result = {account_id}
        pending = [account_id]
        while pending:
            for child in self._children.get(pending.pop(), []):
                if child.id not in result:
                    result.add(child.id)
                    pending.append(child.id)
        return result

    @property
    def roots(self) -> tuple[AccountTreeNode, ...]:
        """Nested nodes for every root account."""
        return tuple(self._build(account, 0) for account in self._children.get(None, []))

    def _build(self, account: Account, depth: int) -> AccountTreeNode:
        return AccountTreeNode(
            account=account,
            depth=depth,
            children=tuple(self._build(child, depth + 1) for child in self._children.get(account.id, [])),
        )


class AccountService:
    """Service for managing the chart of accounts."""

    def __init__(self, db: Database, lock_timeout: float = 5.0):
        """Initialize account service.

        Args:
            db: Database instance
            lock_timeout: Seconds to wait for an account lock when deleting an
                account or updating it
        """
        self.db = db
        self.lock_timeout = lock_timeout

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        parent_id: Optional[int] = None,
    ) -> Account:
        """Create a new account with a zero balance.

        Args:
            code: Unique account code (e.g. "1000")
            name: Display name
            account_type: Account type
            parent_id: Optional parent account ID

        Returns:
            The created account

        Raises:
            DuplicateCodeError: If the code already exists
            ParentNotFoundError: If parent_id does not resolve
            CycleDetectedError: If the parent chain is corrupted
        """
        code = self._validate_code(code)
        name = self._validate_name(name)
        account_type = coerce_account_type(account_type)

        if self.db.get_account_by_code(code) is not None:
            raise DuplicateCodeError(duplicate_account_code(code))

        if parent_id is not None:
            if self.db.get_account(parent_id) is None:
                raise ParentNotFoundError(f"Parent account {parent_id} not found")
            self._ensure_acyclic(account_id=None, parent_id=parent_id)

        account_id = self.db.create_account(
            code=code, name=name, account_type=account_type, parent_id=parent_id
        )
        logger.info(
            "Created account",
            extra={"account_id": account_id, "code": code, "account_type": account_type.value},
        )
        return self.db.get_account(account_id)

    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID.

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def get_account_by_code(self, code: str) -> Optional[Account]:
        """Get account by code.

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account_by_code(code)

    def require_account(self, account_id: int) -> Account:
        """Get account by ID or raise AccountNotFoundError."""
        account = self.db.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_not_found(account_id))
        return account

    def list_accounts(
        self,
        account_type: Optional[AccountType | str] = None,
        search: Optional[str] = None,
    ) -> list[Account]:
        """List accounts ordered by code.

        Args:
            account_type: Optional account type filter
            search: Optional text matched against code and name
        """
        if account_type is not None:
            account_type = coerce_account_type(account_type)
        return self.db.list_accounts(account_type=account_type, search=search)

    def update_account(
        self,
        account_id: int,
        code: Optional[str] = None,
        name: Optional[str] = None,
        account_type: Optional[AccountType | str] = None,
        parent_id: Optional[int] = None,
        clear_parent: bool = False,
    ) -> Account:
        """Update account fields.

        Args:
            account_id: Account ID to update
            code: Optional new code
            name: Optional new name
            account_type: Optional new type
            parent_id: Optional new parent account ID
            clear_parent: If True, make the account a root (parent_id must be None)

        Returns:
            The updated account

        Raises:
            AccountNotFoundError: If the account doesn't exist
            DuplicateCodeError: If the new code belongs to another account
            ParentNotFoundError: If the new parent doesn't exist
            CycleDetectedError: If re-parenting would create a cycle
            AccountInUseError: If a type change would flip the normal side of
                an account that already has postings
        """
        self.require_account(account_id)

        if code is not None:
            code = self._validate_code(code)
            existing = self.db.get_account_by_code(code)
            if existing is not None and existing.id != account_id:
                raise DuplicateCodeError(duplicate_account_code(code))
        if name is not None:
            name = self._validate_name(name)

        if account_type is not None:
            account_type = coerce_account_type(account_type)

        if clear_parent:
            if parent_id is not None:
                raise ValidationError("Cannot set both parent_id and clear_parent")
        elif parent_id is not None:
            if self.db.get_account(parent_id) is None:
                raise ParentNotFoundError(f"Parent account {parent_id} not found")
            self._ensure_acyclic(account_id=account_id, parent_id=parent_id)

        # Postings take the same lock, so none can land between the check and the write
        with lock_manager_for(self.db).hold([account_id], timeout=self.lock_timeout):
            current = self.require_account(account_id)
            if (
                account_type is not None
                and account_type.normal_side != current.normal_side
                and self.db.get_account_line_count(account_id) > 0
            ):
                raise AccountInUseError(
                    f"Cannot change account {account_id} from {current.account_type.value} "
                    f"to {account_type.value}: it has posted journal lines"
                )

            self.db.update_account(
                account_id=account_id,
                code=code,
                name=name,
                account_type=account_type,
                parent_id=parent_id,
                update_parent=clear_parent,
            )
        logger.info("Updated account", extra={"account_id": account_id})
        return self.db.get_account(account_id)

    def delete_account(self, account_id: int) -> None:
        """Delete an account.

        Args:
            account_id: Account ID to delete

        Raises:
            AccountNotFoundError: If the account doesn't exist
            AccountInUseError: If journal lines or sub-accounts reference it
        """
        self.require_account(account_id)

        # Hold the account lock so no posting can land between check and delete
        with lock_manager_for(self.db).hold([account_id], timeout=self.lock_timeout):
            line_count = self.db.get_account_line_count(account_id)
            child_count = self.db.get_child_account_count(account_id)
            if line_count > 0 or child_count > 0:
                raise AccountInUseError(account_delete_blocked(account_id, line_count, child_count))

            self.db.delete_account(account_id)
        logger.info("Deleted account", extra={"account_id": account_id})

    def get_tree(self) -> AccountTree:
        """Get the chart of accounts as an ordered forest."""
        return AccountTree(self.db.list_accounts())

    def format_account_path(self, account_id: int) -> str:
        """Get the full path for an account.

        Returns:
            Codes from root to account (e.g., "1000 > 1100 > 1110")
        """
        account = self.get_account(account_id)
        if account is None:
            return ""

        path_parts = [account.code]
        current_parent_id = account.parent_id
        seen = {account.id}

        while current_parent_id is not None and current_parent_id not in seen:
            parent = self.get_account(current_parent_id)
            if parent is None:
                break
            seen.add(parent.id)
            path_parts.append(parent.code)
            current_parent_id = parent.parent_id

        return " > ".join(reversed(path_parts))

    def _ensure_acyclic(self, account_id: Optional[int], parent_id: int) -> None:
        """Walk up from parent_id and fail if account_id is an ancestor.

        The walk is bounded by the number of accounts so a corrupted parent
        chain cannot loop forever.
        """
        limit = len(self.db.list_accounts()) + 1
        current_id: Optional[int] = parent_id
        steps = 0
        while current_id is not None:
            if current_id == account_id:
                raise CycleDetectedError(
                    f"Account {parent_id} is a descendant of account {account_id}"
                )
            steps += 1
            if steps > limit:
                raise CycleDetectedError(f"Parent chain of account {parent_id} contains a cycle")
            current = self.db.get_account(current_id)
            if current is None:
                break
            current_id = current.parent_id

    @staticmethod
    def _validate_code(code: str) -> str:
        code = (code or "").strip()
        if not code:
            raise ValidationError("Account code is required")
        if len(code) > MAX_CODE_LENGTH:
            raise ValidationError(f"Account code must be at most {MAX_CODE_LENGTH} characters")
        return code

    @staticmethod
    def _validate_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Account name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Account name must be at most {MAX_NAME_LENGTH} characters")
        return name

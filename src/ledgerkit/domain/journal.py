"""Journal posting domain service.

The only writer of account balances. An entry is validated without side
effects, then its accounts are locked in ID order and the entry record and
every balance change are written as one unit of work.
"""

import logging
import time
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

from ledgerkit.database.base import Database
from ledgerkit.domain.entities import (
    CENT,
    ZERO,
    EntryDirection,
    JournalEntry,
    JournalLineDraft,
)
from ledgerkit.domain.errors import (
    AlreadyReversedError,
    ConcurrencyError,
    EntryNotFoundError,
    InsufficientLinesError,
    InvalidAmountError,
    UnbalancedEntryError,
    UnknownAccountError,
    ValidationError,
    account_not_found,
    entry_not_found,
    unbalanced_entry,
)
from ledgerkit.domain.locking import AccountLockManager, lock_manager_for

logger = logging.getLogger(__name__)

ENTRY_SEQUENCE = "journal_entry"

T = TypeVar("T")


def format_entry_code(value: int) -> str:
    """Return the human-readable code for a sequence value (e.g. JE-000042)."""
    return f"JE-{value:06d}"


def coerce_amount(value: Any) -> Decimal:
    """Convert a line amount to a two-place Decimal.

    Raises:
        InvalidAmountError: If the value is not a finite, strictly positive
            amount with at most two decimal places
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(f"Invalid amount '{value}'") from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"Invalid amount '{value}'")
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {amount}")
    if amount != amount.quantize(CENT):
        raise InvalidAmountError(f"Amount {amount} has more than two decimal places")
    return amount.quantize(CENT)


def coerce_line(line: JournalLineDraft | Mapping[str, Any]) -> JournalLineDraft:
    """Build a JournalLineDraft from a draft or a request-shaped mapping.

    Mappings use the keys ``account_id``, ``type`` (or ``direction``),
    ``amount`` and optionally ``description``.
    """
    if isinstance(line, JournalLineDraft):
        raw_direction: Any = line.direction
        account_id: Any = line.account_id
        raw_amount: Any = line.amount
        description = line.description
    else:
        raw_direction = line.get("type", line.get("direction"))
        account_id = line.get("account_id")
        raw_amount = line.get("amount")
        description = line.get("description")

    try:
        direction = EntryDirection(raw_direction)
    except ValueError as exc:
        raise ValidationError(f"Line type must be 'debit' or 'credit', got '{raw_direction}'") from exc

    try:
        account_id = int(account_id)
    except (TypeError, ValueError) as exc:
        raise UnknownAccountError(f"Invalid account reference '{account_id}'") from exc

    return JournalLineDraft(
        account_id=account_id,
        direction=direction,
        amount=coerce_amount(raw_amount),
        description=description,
    )


class JournalService:
    """Service for posting and reversing journal entries."""

    def __init__(
        self,
        db: Database,
        lock_timeout: float = 5.0,
        max_retries: int = 3,
        retry_backoff: float = 0.05,
        lock_manager: Optional[AccountLockManager] = None,
    ):
        """Initialize journal service.

        Args:
            db: Database instance
            lock_timeout: Seconds to wait for the accounts of one entry
            max_retries: How many times a concurrency failure is retried
            retry_backoff: Base sleep between retries, grown linearly
            lock_manager: Lock manager to use; defaults to the one shared
                by all services on the same database
        """
        self.db = db
        self.lock_timeout = lock_timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.locks = lock_manager if lock_manager is not None else lock_manager_for(db)

    def post(
        self,
        entry_date: date,
        lines: Iterable[JournalLineDraft | Mapping[str, Any]],
        reference: Optional[str] = None,
        description: Optional[str] = None,
    ) -> JournalEntry:
        """Validate and post a balanced journal entry.

        Args:
            entry_date: Transaction date
            lines: Entry lines (JournalLineDraft or request-shaped mappings)
            reference: Optional external reference
            description: Optional free-text description

        Returns:
            The posted journal entry

        Raises:
            InsufficientLinesError: Fewer than two lines
            InvalidAmountError: A line amount is not strictly positive
            UnknownAccountError: A line account does not exist
            UnbalancedEntryError: Debits and credits differ
            BusyError: Account locks stayed busy after all retries
        """
        drafts = self.validate(lines)
        entry = self._with_retries(
            lambda: self._apply(entry_date, drafts, reference, description),
            operation="post",
        )
        logger.info(
            "Posted journal entry",
            extra={
                "entry_id": entry.id,
                "entry_code": entry.code,
                "total": str(entry.total_debits),
                "line_count": len(entry.lines),
            },
        )
        return entry

    def validate(self, lines: Iterable[JournalLineDraft | Mapping[str, Any]]) -> list[JournalLineDraft]:
        """Check an entry without touching any balance.

        Returns:
            Normalized line drafts
        """
        raw_lines = list(lines)
        if len(raw_lines) < 2:
            raise InsufficientLinesError(
                f"A journal entry needs at least two lines, got {len(raw_lines)}"
            )

        # Amounts are checked on every line before any account reference
        for line in raw_lines:
            coerce_amount(line.amount if isinstance(line, JournalLineDraft) else line.get("amount"))
        drafts = [coerce_line(line) for line in raw_lines]

        for account_id in sorted({draft.account_id for draft in drafts}):
            if self.db.get_account(account_id) is None:
                raise UnknownAccountError(account_not_found(account_id))

        total_debits = sum(
            (d.amount for d in drafts if d.direction == EntryDirection.DEBIT), ZERO
        )
        total_credits = sum(
            (d.amount for d in drafts if d.direction == EntryDirection.CREDIT), ZERO
        )
        if total_debits != total_credits:
            raise UnbalancedEntryError(unbalanced_entry(total_debits, total_credits))

        return drafts

    def reverse(
        self,
        entry_id: int,
        entry_date: Optional[date] = None,
        description: Optional[str] = None,
    ) -> JournalEntry:
        """Post a new entry that cancels a posted entry.

        Args:
            entry_id: ID of the entry to reverse
            entry_date: Date of the reversal; defaults to today, or the
                original date if that is later
            description: Optional description; defaults to "Reversal of <code>"

        Returns:
            The reversing journal entry

        Raises:
            EntryNotFoundError: If the entry doesn't exist
            AlreadyReversedError: If the entry has already been reversed
        """
        original = self.db.get_journal_entry(entry_id)
        if original is None:
            raise EntryNotFoundError(entry_not_found(entry_id))
        if self.db.get_reversal_of(entry_id) is not None:
            raise AlreadyReversedError(f"Journal entry {original.code} has already been reversed")

        drafts = [
            JournalLineDraft(
                account_id=line.account_id,
                direction=line.direction.opposite,
                amount=line.amount,
                description=f"Reversal: {line.description}" if line.description else "Reversal",
            )
            for line in original.lines
        ]
        if entry_date is None:
            entry_date = max(date.today(), original.date)
        if description is None:
            description = f"Reversal of {original.code}"
            if original.description:
                description = f"{description}: {original.description}"

        reversal = self._with_retries(
            lambda: self._apply(
                entry_date, drafts, original.code, description, reversal_of_id=original.id
            ),
            operation="reverse",
        )
        logger.info(
            "Reversed journal entry",
            extra={"entry_code": original.code, "reversal_code": reversal.code},
        )
        return reversal

    def get_entry(self, entry_id: int) -> Optional[JournalEntry]:
        """Get journal entry by ID.

        Returns:
            Journal entry or None if not found
        """
        return self.db.get_journal_entry(entry_id)

    def get_entry_by_code(self, code: str) -> Optional[JournalEntry]:
        """Get journal entry by code (e.g. "JE-000001")."""
        return self.db.get_journal_entry_by_code(code)

    def get_reversal(self, entry_id: int) -> Optional[JournalEntry]:
        """Get the entry that reversed the given entry, if any."""
        return self.db.get_reversal_of(entry_id)

    def list_entries(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        account_id: Optional[int] = None,
    ) -> list[JournalEntry]:
        """List journal entries with filters.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            account_id: Optional account the entries must touch
        """
        return self.db.list_journal_entries(
            start_date=start_date, end_date=end_date, account_id=account_id
        )

    def _apply(
        self,
        entry_date: date,
        drafts: list[JournalLineDraft],
        reference: Optional[str],
        description: Optional[str],
        reversal_of_id: Optional[int] = None,
    ) -> JournalEntry:
        account_ids = {draft.account_id for draft in drafts}
        with self.locks.hold(account_ids, timeout=self.lock_timeout):
            # Accounts may have been deleted between validation and locking
            for account_id in sorted(account_ids):
                if self.db.get_account(account_id) is None:
                    raise UnknownAccountError(account_not_found(account_id))

            with self.db.atomic():
                if reversal_of_id is not None and self.db.get_reversal_of(reversal_of_id) is not None:
                    raise AlreadyReversedError(
                        f"Journal entry {reversal_of_id} has already been reversed"
                    )
                code = format_entry_code(self.db.next_sequence_value(ENTRY_SEQUENCE))
                entry_id = self.db.insert_journal_entry(
                    code=code,
                    entry_date=entry_date,
                    lines=drafts,
                    reference=reference,
                    description=description,
                    reversal_of_id=reversal_of_id,
                )
                for draft in drafts:
                    self.db.apply_delta(draft.account_id, draft.direction, draft.amount)

        return self.db.get_journal_entry(entry_id)

    def _with_retries(self, action: Callable[[], T], operation: str) -> T:
        attempt = 0
        while True:
            try:
                return action()
            except ConcurrencyError as exc:
                if attempt >= self.max_retries:
                    logger.warning(
                        "Giving up after concurrency conflicts",
                        extra={"operation": operation, "attempts": attempt + 1},
                    )
                    raise
                attempt += 1
                logger.warning(
                    "Retrying after concurrency conflict",
                    extra={"operation": operation, "attempt": attempt, "error": str(exc)},
                )
                time.sleep(self.retry_backoff * attempt)

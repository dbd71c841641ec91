"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling. Domain errors are
    client-correctable and never retried.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DependencyError(DomainError):
    """Operation blocked due to dependent domain data."""


class ConfigurationError(ValidationError):
    """Invalid ledger configuration value."""


# Account directory errors
class DuplicateCodeError(ConflictError):
    """An account with the same code already exists."""


class ParentNotFoundError(NotFoundError):
    """The requested parent account does not exist."""


class CycleDetectedError(ValidationError):
    """Re-parenting would make an account its own ancestor."""


class AccountInUseError(DependencyError):
    """The account is referenced by posted journal entry lines."""


class AccountNotFoundError(NotFoundError):
    """The account does not exist."""


# Journal posting errors
class InsufficientLinesError(ValidationError):
    """A journal entry needs at least two lines."""


class InvalidAmountError(ValidationError):
    """A line amount is not a strictly positive two-place decimal."""


class UnknownAccountError(ValidationError):
    """A journal line references an account that does not exist."""


class UnbalancedEntryError(ValidationError):
    """Total debits differ from total credits."""


class EntryNotFoundError(NotFoundError):
    """The journal entry does not exist."""


class AlreadyReversedError(ConflictError):
    """The journal entry already has a reversal."""


class ConcurrencyError(RuntimeError):
    """Transient failure caused by concurrent access; safe to retry."""


class BusyError(ConcurrencyError):
    """Account locks or the database could not be acquired in time."""


class LedgerIntegrityError(RuntimeError):
    """The ledger violates a structural invariant.

    This signals corruption (for example a trial balance whose debit and
    credit totals differ) and must never be reported as a normal result.
    """


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def account_code_not_found(code: str) -> str:
    """Return message for missing account code."""
    return f"Account '{code}' not found"


def duplicate_account_code(code: str) -> str:
    """Return message for duplicate account code."""
    return f"Account with code '{code}' already exists"


def entry_not_found(entry_id: int | str) -> str:
    """Return message for missing journal entry."""
    return f"Journal entry {entry_id} not found"


def account_delete_blocked(account_id: int, line_count: int, child_count: int = 0) -> str:
    """Return message when an account has journal lines or sub-accounts."""
    parts = []
    if line_count > 0:
        parts.append(f"{line_count} journal line{'s' if line_count != 1 else ''}")
    if child_count > 0:
        parts.append(f"{child_count} sub-account{'s' if child_count != 1 else ''}")
    return f"Cannot delete account {account_id}: it has {', '.join(parts)}."


def unbalanced_entry(total_debits: Decimal, total_credits: Decimal) -> str:
    """Return message for an entry whose sides differ."""
    return (
        f"Journal entry is unbalanced: debits={total_debits} credits={total_credits}"
    )

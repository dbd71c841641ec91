"""Utility for resolving account codes to IDs."""

from ledgerkit.domain.account import AccountService
from ledgerkit.domain.errors import AccountNotFoundError, account_code_not_found, account_not_found


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve an account code or ID to an account ID.

    Codes are tried first, so an account coded "1000" wins over the account
    whose ID happens to be 1000.

    Raises:
        AccountNotFoundError: If nothing matches
    """
    if isinstance(account, int):
        if account_service.get_account(account) is None:
            raise AccountNotFoundError(account_not_found(account))
        return account

    text = str(account).strip()
    by_code = account_service.get_account_by_code(text)
    if by_code is not None:
        return by_code.id

    try:
        account_id = int(text)
    except ValueError:
        raise AccountNotFoundError(account_code_not_found(text)) from None

    if account_service.get_account(account_id) is None:
        raise AccountNotFoundError(account_code_not_found(text))
    return account_id

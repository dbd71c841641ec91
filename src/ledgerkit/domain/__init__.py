"""Domain layer for ledgerkit application."""

from importlib import import_module

# Services load on first access so that entities and errors can be imported
# by the database and config modules without pulling the services in
_SERVICES = {
    "AccountService": "ledgerkit.domain.account",
    "JournalService": "ledgerkit.domain.journal",
    "BalanceService": "ledgerkit.domain.balance",
    "StatementService": "ledgerkit.domain.statements",
    "ReconciliationService": "ledgerkit.domain.reconciliation",
    "LedgerService": "ledgerkit.domain.ledger",
}

__all__ = list(_SERVICES)


def __getattr__(name):
    module = _SERVICES.get(name)
    if module is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    return getattr(import_module(module), name)

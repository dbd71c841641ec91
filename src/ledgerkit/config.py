"""Ledger configuration loaded from environment variables.

Environment variables:
- LEDGERKIT_DB_PATH: SQLite database file
- LEDGERKIT_LOCK_TIMEOUT: Seconds a posting waits for account locks (default 5.0)
- LEDGERKIT_MAX_RETRIES: Internal retries of transient concurrency errors (default 3)
- LEDGERKIT_FISCAL_YEAR_START_MONTH: 1-12; unset means reports without a
  start date cover all activity up to the end date
- LEDGERKIT_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: WARNING)
- LEDGERKIT_LOG_FORMAT: "console" or "json" (default: console)
- LEDGERKIT_CASH_ACCOUNTS: Comma-separated codes of cash-equivalent accounts
- LEDGERKIT_CASH_FLOW_MAP: Comma-separated "code=category" pairs, where
  category is operating, investing or financing
"""

import os
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional

from dateutil.relativedelta import relativedelta

from ledgerkit.domain.entities import CashFlowCategory
from ledgerkit.domain.errors import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("console", "json")


@dataclass(frozen=True)
class CashFlowConfig:
    """Which accounts hold cash and how counterpart accounts are classified."""

    cash_account_codes: frozenset[str] = frozenset()
    category_by_code: Mapping[str, CashFlowCategory] = field(default_factory=dict)
    default_category: CashFlowCategory = CashFlowCategory.OPERATING


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for the ledger services and CLI."""

    database_path: Optional[str] = None
    lock_timeout: float = 5.0
    max_retries: int = 3
    fiscal_year_start_month: Optional[int] = None
    log_level: str = "WARNING"
    log_format: str = "console"
    cash_flow: CashFlowConfig = field(default_factory=CashFlowConfig)

    def period_start(self, end_date: date) -> Optional[date]:
        """Default start of a reporting period ending on end_date.

        Returns the first day of the fiscal year containing end_date, or None
        (inception-to-date) when no fiscal year start is configured.
        """
        if self.fiscal_year_start_month is None:
            return None
        start = end_date.replace(month=self.fiscal_year_start_month, day=1)
        if start > end_date:
            start -= relativedelta(years=1)
        return start


def parse_cash_flow_map(raw: str) -> dict[str, CashFlowCategory]:
    """Parse "code=category" pairs separated by commas.

    Raises:
        ConfigurationError: If a pair is malformed or names an unknown category
    """
    mapping: dict[str, CashFlowCategory] = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair:
            continue
        code, sep, category = pair.partition("=")
        if not sep or not code.strip():
            raise ConfigurationError(f"Invalid cash flow mapping '{pair}', expected CODE=CATEGORY")
        try:
            mapping[code.strip()] = CashFlowCategory(category.strip().lower())
        except ValueError as exc:
            raise ConfigurationError(
                f"Unknown cash flow category '{category.strip()}' for account '{code.strip()}'"
            ) from exc
    return mapping


def _parse_codes(raw: str) -> frozenset[str]:
    return frozenset(code.strip() for code in raw.split(",") if code.strip())


def _env_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got '{raw}'")
    return value


def _env_int(environ: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'") from exc


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides) -> LedgerSettings:
    """Build settings from environment variables, then apply non-None overrides.

    Args:
        environ: Mapping to read instead of os.environ
        **overrides: LedgerSettings field values, typically from CLI options

    Raises:
        ConfigurationError: If any value is invalid
    """
    if environ is None:
        environ = os.environ

    values = {
        "database_path": environ.get("LEDGERKIT_DB_PATH") or None,
        "lock_timeout": _env_float(environ, "LEDGERKIT_LOCK_TIMEOUT", 5.0),
        "max_retries": _env_int(environ, "LEDGERKIT_MAX_RETRIES", 3),
        "fiscal_year_start_month": _env_int(environ, "LEDGERKIT_FISCAL_YEAR_START_MONTH", None),
        "log_level": environ.get("LEDGERKIT_LOG_LEVEL", "WARNING"),
        "log_format": environ.get("LEDGERKIT_LOG_FORMAT", "console"),
        "cash_flow": CashFlowConfig(
            cash_account_codes=_parse_codes(environ.get("LEDGERKIT_CASH_ACCOUNTS", "")),
            category_by_code=parse_cash_flow_map(environ.get("LEDGERKIT_CASH_FLOW_MAP", "")),
        ),
    }
    values.update({key: value for key, value in overrides.items() if value is not None})

    settings = LedgerSettings(**values)
    validate_settings(settings)
    return settings


def validate_settings(settings: LedgerSettings) -> None:
    """Raise ConfigurationError if settings are out of range."""
    if settings.max_retries < 0:
        raise ConfigurationError("max_retries must not be negative")
    if settings.lock_timeout <= 0:
        raise ConfigurationError("lock_timeout must be positive")
    month = settings.fiscal_year_start_month
    if month is not None and not 1 <= month <= 12:
        raise ConfigurationError(f"Fiscal year start month must be 1-12, got {month}")
    if settings.log_level.upper() not in LOG_LEVELS:
        raise ConfigurationError(f"Unknown log level '{settings.log_level}'")
    if settings.log_format not in LOG_FORMATS:
        raise ConfigurationError(f"Unknown log format '{settings.log_format}'")

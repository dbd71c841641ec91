"""Parsing and lookup helpers shared by the CLI and services."""

from ledgerkit.utils.date_parser import PERIODS, get_date_range, parse_date
from ledgerkit.utils.amount_parser import parse_amount
from ledgerkit.utils.account_resolver import resolve_account

__all__ = ["PERIODS", "get_date_range", "parse_date", "parse_amount", "resolve_account"]

"""Text formatting helpers shared by CLI commands."""

from decimal import Decimal
from typing import Optional


def format_money(amount: Optional[Decimal]) -> str:
    """Format an amount with thousands separators and two decimals."""
    if amount is None:
        return ""
    return f"{amount:,.2f}"


def format_column(amount: Decimal) -> str:
    """Format a report column value, leaving zeros blank."""
    return format_money(amount) if amount else ""

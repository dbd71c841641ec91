"""Amount parsing utilities."""

import re
from decimal import Decimal, InvalidOperation

CURRENCY_SYMBOLS = re.compile(r"[$€£¥]")


def parse_amount(amount_str: str) -> Decimal:
    """Parse a user-entered amount into a Decimal.

    Handles "1234.50", "$1,234.50", "-20" and accounting-style "(20.00)".
    Precision is left to the caller; posting rejects more than two places.

    Raises:
        ValueError: If the string is empty or not a number
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    text = amount_str.strip()
    negative = False
    if text.startswith("(") and text.endswith(")"):
        negative = True
        text = text[1:-1]

    text = CURRENCY_SYMBOLS.sub("", text).replace(",", "").strip()
    if text.startswith("-"):
        negative = not negative
        text = CURRENCY_SYMBOLS.sub("", text[1:]).strip()

    try:
        amount = Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}'") from e
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if negative else amount

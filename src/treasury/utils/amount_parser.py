"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


_THOUSANDS_ONLY = re.compile(r"^\d{1,3}(,\d{3})+$")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles the formats found on bank statements:
    - "123.45", "-123.45", "+123.45"
    - "€123.45", "123,45 EUR"
    - "1,234.56" (comma thousands)
    - "1.234,56" (dot thousands, comma decimals)
    - "(123.45)" (negative in parentheses)
    - "123.45-" (trailing minus)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    original = str(amount_str)
    amount_str = original.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and codes
    amount_str = re.sub(r"[$€£¥]|\b(EUR|USD|GBP)\b", "", amount_str, flags=re.IGNORECASE)
    amount_str = amount_str.replace(" ", "").replace("\u00a0", "")

    if amount_str.endswith("-"):
        is_negative = not is_negative
        amount_str = amount_str[:-1]

    amount_str = _normalize_separators(amount_str)

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{original}'")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{original}'")
    return -amount if is_negative else amount


def _normalize_separators(amount_str: str) -> str:
    """Rewrite thousands and decimal separators to the plain "1234.56" form."""
    sign = ""
    if amount_str[:1] in "+-":
        sign, amount_str = amount_str[0], amount_str[1:]

    if "," in amount_str and "." in amount_str:
        # The rightmost separator is the decimal one
        if amount_str.rfind(",") > amount_str.rfind("."):
            amount_str = amount_str.replace(".", "").replace(",", ".")
        else:
            amount_str = amount_str.replace(",", "")
    elif "," in amount_str:
        if _THOUSANDS_ONLY.match(amount_str):
            amount_str = amount_str.replace(",", "")
        else:
            amount_str = amount_str.replace(",", ".")
    elif amount_str.count(".") > 1:
        amount_str = amount_str.replace(".", "")

    return sign + amount_str

"""
Phone number normalization.

Phones are the primary customer resolution key, so every stored phone and
every lookup uses the same separator-free form.
"""

from typing import Optional

from sqlalchemy import func

# Separators dropped by normalize_phone; mirrored in the SQL expression below
PHONE_SEPARATORS = (" ", "-", "(", ")", ".")


def normalize_phone(phone: str) -> str:
    """
    Strip whitespace and common separators from a phone number.

    Args:
        phone: Phone number string (may contain spaces, dashes, parentheses, etc.)

    Returns:
        Digits, plus a leading '+' if one was given
    """
    return "".join(ch for ch in phone.strip() if ch.isdigit() or ch == "+")


def normalize_phone_optional(phone: Optional[str]) -> Optional[str]:
    """Normalize an optional phone; blank values become None."""
    if phone is None:
        return None
    normalized = normalize_phone(phone)
    return normalized or None


def normalized_phone_column(column):
    """
    SQL expression that strips the same separators from a stored phone.

    Rows written outside the ORM (imports, manual fixes) may still hold
    formatted numbers; comparing against this expression matches them too.
    """
    expression = column
    for separator in PHONE_SEPARATORS:
        expression = func.replace(expression, separator, "")
    return expression

"""Formatting utilities for currency, dates and amount input."""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional, Union

from .config import CURRENCY_SYMBOL
from .exceptions import InvalidAmount

_CENT = Decimal("0.01")


def format_currency(amount: Union[Decimal, float, int], include_sign: bool = True) -> str:
    """Format a currency amount for display.

    Rounding to cents happens here and only here; totals are accumulated
    unrounded.

    Args:
        amount: The amount to format
        include_sign: Whether to include the currency symbol

    Returns:
        Formatted currency string (e.g., "₱1,234.56" or "1,234.56")

    Example:
        >>> format_currency(Decimal("1234.565"))
        '₱1,234.57'
        >>> format_currency(-50, include_sign=False)
        '-50.00'
    """
    value = Decimal(str(amount)).quantize(_CENT, rounding=ROUND_HALF_UP)
    formatted = f"{abs(value):,.2f}"
    sign = "-" if value < 0 else ""
    return f"{sign}{CURRENCY_SYMBOL}{formatted}" if include_sign else f"{sign}{formatted}"


def format_date(value: Optional[Union[date, str]]) -> str:
    """Format a calendar date as M/D/YYYY, or "Not set" when missing."""
    if value is None or value == "":
        return "Not set"
    if isinstance(value, str):
        value = parse_date(value)
    return f"{value.month}/{value.day}/{value.year}"


def parse_date(value: Union[date, datetime, str]) -> date:
    """Parse an ISO date or timestamp string into a calendar date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if len(text) > 10:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def parse_amount(text: Union[str, Decimal, int, float]) -> Decimal:
    """Parse user input into an exact Decimal amount.

    Thousands separators and surrounding whitespace are tolerated.
    Anything else that is not a finite number raises ``InvalidAmount``.

    Example:
        >>> parse_amount(" 1,250.50 ")
        Decimal('1250.50')
    """
    raw = str(text)
    cleaned = raw.strip().replace(",", "")
    if cleaned.startswith(CURRENCY_SYMBOL):
        cleaned = cleaned[len(CURRENCY_SYMBOL):].strip()
    try:
        value = Decimal(cleaned)
    except (InvalidOperation, ValueError):
        raise InvalidAmount(raw) from None
    if not value.is_finite():
        raise InvalidAmount(raw)
    return value

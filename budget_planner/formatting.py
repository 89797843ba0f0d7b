"""Formatting utilities for amounts and budget months.

Months are handled as ``YYYY-MM`` strings throughout the package.
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Optional, Tuple, Union


def format_currency(amount: Union[float, int], currency: Optional[str] = None) -> str:
    """Format an amount with thousands separators and two decimals.

    Args:
        amount: The amount to format
        currency: Optional currency code appended after the number

    Returns:
        Formatted string (e.g., "1,234.56" or "1,234.56 EUR")

    Example:
        >>> format_currency(1234.5)
        '1,234.50'
        >>> format_currency(-20, 'EUR')
        '-20.00 EUR'
    """
    formatted = f"{amount:,.2f}"
    return f"{formatted} {currency}" if currency else formatted


def format_signed(amount: Union[float, int]) -> str:
    """Format an amount with an explicit ``+`` for non-negative values."""
    return f"+{format_currency(amount)}" if amount >= 0 else format_currency(amount)


def _parse_month(month: str) -> Tuple[int, int]:
    year, mon = month.split('-')[:2]
    return int(year), int(mon)


def current_month(today: Optional[date] = None) -> str:
    return (today or date.today()).strftime('%Y-%m')


def offset_month(month: str, offset: int) -> str:
    """Shift a ``YYYY-MM`` month by ``offset`` months.

    Example:
        >>> offset_month('2025-01', -1)
        '2024-12'
    """
    year, mon = _parse_month(month)
    index = year * 12 + (mon - 1) + offset
    return f"{index // 12:04d}-{index % 12 + 1:02d}"


def month_to_date_range(month: str) -> Tuple[str, str]:
    """Return the inclusive ``(first day, last day)`` ISO dates of ``month``."""
    year, mon = _parse_month(month)
    last_day = calendar.monthrange(year, mon)[1]
    return f"{year:04d}-{mon:02d}-01", f"{year:04d}-{mon:02d}-{last_day:02d}"


def format_month_label(month: str) -> str:
    """Format a month for display (e.g. ``'March 2025'``)."""
    year, mon = _parse_month(month)
    return f"{calendar.month_name[mon]} {year}"

"""
Display formatting for amounts and percentages.

Stateless: currency symbol and separators are parameters, nothing is kept
at module level.
  format_currency(1463.7)   -> "€1,463.70"
  format_currency(-5)       -> "-€5.00"
  format_percent(88.3856)   -> "88.4%"
  format_multiplier(1.1)    -> "1.10x"
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from proposal_crm.core.money import ZERO, to_decimal

CENTS = Decimal("0.01")
TENTHS = Decimal("0.1")


def _group_thousands(int_str: str, sep: str) -> str:
    """Group the integer part in threes from the right."""
    s = "".join(ch for ch in int_str if ch.isdigit())
    if len(s) <= 3:
        return s
    parts = []
    while s:
        parts.append(s[-3:])
        s = s[:-3]
    return sep.join(reversed(parts))


def format_currency(
    amount: Any,
    *,
    symbol: str = "€",
    thousands: str = ",",
    decimal: str = ".",
) -> str:
    value = to_decimal(amount, default=ZERO).quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if value < ZERO else ""
    int_part, dec_part = f"{abs(value):.2f}".split(".")
    return f"{sign}{symbol}{_group_thousands(int_part, thousands)}{decimal}{dec_part}"


def format_percent(value: Any) -> str:
    """value is already a percentage (88.4, not 0.884)."""
    v = to_decimal(value, default=ZERO).quantize(TENTHS, rounding=ROUND_HALF_UP)
    if v == ZERO:
        v = abs(v)
    return f"{v:.1f}%"


def format_multiplier(value: Any) -> str:
    v = to_decimal(value, default=ZERO).quantize(CENTS, rounding=ROUND_HALF_UP)
    return f"{v:.2f}x"

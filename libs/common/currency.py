"""Currency utilities for Noor.

Storage and API unit: dirham (Decimal, 2 places, e.g. 149.50 = AED 149.50).
Stripe unit: fils (int, smallest AED unit, 100 fils = AED 1).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

# ─── constants ───────────────────────────────────────────────────────────────

CURRENCY_CODE: str = "AED"
FILS_PER_DIRHAM: int = 100
CENT = Decimal("0.01")

Number = Union[Decimal, int, float, str]


# ─── conversion helpers ───────────────────────────────────────────────────────


def to_money(value: Number) -> Decimal:
    """Coerce to Decimal rounded half-up to 2 places."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def dirham_to_fils(amount: Number) -> int:
    """Convert dirham to fils for Stripe. AED 1 = 100 fils."""
    return int(to_money(amount) * FILS_PER_DIRHAM)


def format_aed(amount: Number) -> str:
    """Display string, e.g. ``AED 1,250.00``."""
    return f"{CURRENCY_CODE} {to_money(amount):,.2f}"

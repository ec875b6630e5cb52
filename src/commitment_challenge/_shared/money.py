# Area: Shared
"""
commitment_challenge._shared.money — Minor-unit money helpers
=============================================================

All amounts are stored as integer cents: $10.50 == 1050.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

_CURRENCY_NOISE = re.compile(r"[$,\s]")


def dollars_to_cents(dollars) -> int:
    """Convert dollars to cents: 10.50 -> 1050."""
    amount = Decimal(str(dollars)) * 100
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def cents_to_dollars(cents: int) -> float:
    """Convert cents to dollars: 1050 -> 10.5."""
    return cents / 100


def format_cents(cents: int) -> str:
    """Format cents as a currency string: 1050 -> "$10.50"."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), 100)
    return f"{sign}${whole}.{frac:02d}"


def parse_currency(text: str) -> int:
    """Parse a currency string to cents: "$1,010.50" -> 101050."""
    cleaned = _CURRENCY_NOISE.sub("", text)
    try:
        return dollars_to_cents(Decimal(cleaned))
    except InvalidOperation:
        raise ValueError(f"Not a currency amount: {text!r}")

"""Currency codec for the single supported locale (pt-BR / BRL).

Covers:
  - Decimal / float / string amounts → integer cents
  - Display formatting: 1234.56 → "R$ 1.234,56"
  - Keystroke-driven goal entry: "12345" → "R$ 123,45"
  - Display parsing back to Decimal (digits only, divided by 100)

Amounts are carried as integer cents internally so that the keystroke
round-trip is exact.
"""

import decimal
import re
from decimal import Decimal
from typing import Union

Number = Union[int, float, Decimal, str, None]

CURRENCY_SYMBOL = "R$"
MINOR_UNITS = 100
ZERO_DISPLAY = "R$ 0,00"

_NON_DIGIT_RE = re.compile(r"\D")


# ─────────────────────────────────────────────────────────────────────────────
# Cents helpers
# ─────────────────────────────────────────────────────────────────────────────


def to_cents(amount: Number) -> int:
    """Convert an amount in reais to integer cents (ROUND_HALF_UP).

    Missing or unparsable values count as zero.
    """
    if amount is None or isinstance(amount, bool):
        return 0
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except decimal.InvalidOperation:
        return 0
    if not value.is_finite():
        return 0
    return int((value * MINOR_UNITS).quantize(Decimal("1"), rounding=decimal.ROUND_HALF_UP))


def cents_to_decimal(cents: int) -> Decimal:
    return Decimal(cents) / MINOR_UNITS


def _digits(text: str) -> str:
    return _NON_DIGIT_RE.sub("", text or "")


# ─────────────────────────────────────────────────────────────────────────────
# Formatting
# ─────────────────────────────────────────────────────────────────────────────


def format_cents(cents: int) -> str:
    """Render integer cents as "R$ 1.234,56"."""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), MINOR_UNITS)
    # "1,234" → "1.234"
    grouped = f"{whole:,}".replace(",", ".")
    return f"{sign}{CURRENCY_SYMBOL} {grouped},{frac:02d}"


def format_brl(amount: Number) -> str:
    """Locale-formatted currency string for an amount in reais."""
    return format_cents(to_cents(amount))


def format_from_keystrokes(raw_digits: str) -> str:
    """Treat the typed characters as a stream of digits in cents.

    "12345" → "R$ 123,45", "R$ 1.234,5" → "R$ 123,45", "abc" → "R$ 0,00".
    """
    digits = _digits(raw_digits)
    return format_cents(int(digits) if digits else 0)


# ─────────────────────────────────────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────────────────────────────────────


def parse_cents(display: str) -> int:
    digits = _digits(display)
    return int(digits) if digits else 0


def parse_display(display: str) -> Decimal:
    """Inverse of format_from_keystrokes: digits only, divided by 100."""
    return cents_to_decimal(parse_cents(display))

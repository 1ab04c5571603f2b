"""Decimal helpers for money values that travel as strings."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def parse_decimal(raw: Any) -> Decimal | None:
    """Convert a decimal string (or number) to ``Decimal``.

    Returns ``None`` for missing, empty or non-numeric input, and for
    NaN/Infinity.  Floats go through ``str`` so ``0.1`` stays ``0.1``.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, Decimal):
        value = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = Decimal(text)
        except (InvalidOperation, ValueError):
            return None
    if not value.is_finite():
        return None
    return value


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    """Render a money value with exactly two fraction digits."""
    return f"{quantize_money(value):.2f}"

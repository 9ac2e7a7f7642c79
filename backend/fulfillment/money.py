"""
Money helpers.

Amounts are stored as integer cents. Request values (JSON numbers or
strings) go through ``Decimal(str(value))`` so a float never participates in
arithmetic.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")

# 999,999,999,999.99 keeps every total inside a signed 64-bit column
MAX_AMOUNT_CENTS = 99_999_999_999_999


def to_decimal(value, field: str = "amount") -> Decimal:
    from .errors import ValidationError

    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        dec = value
    else:
        try:
            dec = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number")
    if not dec.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return dec


def to_cents(value, field: str = "amount", *, allow_negative: bool = False) -> int:
    """Parse a money value into integer cents (half-up to the nearest cent)."""
    from .errors import ValidationError

    dec = to_decimal(value, field)
    if dec != dec.quantize(CENT, rounding=ROUND_HALF_UP):
        raise ValidationError(f"{field} may have at most two decimal places")
    cents = int(dec.quantize(CENT, rounding=ROUND_HALF_UP) * 100)
    if cents < 0 and not allow_negative:
        raise ValidationError(f"{field} must be >= 0")
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} is too large")
    return cents


def from_cents(cents: int | None) -> Decimal | None:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENT)


def format_cents(cents: int | None) -> str:
    if cents is None:
        return "-"
    return f"{from_cents(cents):,}"

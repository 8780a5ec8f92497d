# Overview: Integer-cent money helpers; no float ever touches a stored amount.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")


def format_cents(cents: int | None) -> str:
    """1250 -> "12.50". None is rendered as "0.00"."""
    if cents is None:
        cents = 0
    return str((Decimal(cents) / 100).quantize(CENT))


def parse_price(value) -> int:
    """
    Convert a decimal price ("2.5", 2.50, "2.50") to integer cents.

    Raises ValueError for non-numeric input or more than two decimals.
    """
    if isinstance(value, bool):
        raise ValueError("price must be a number")
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError("price must be a number")
    if not amount.is_finite():
        raise ValueError("price must be a number")
    if amount != amount.quantize(CENT):
        raise ValueError("price cannot have more than two decimals")
    return int((amount * 100).to_integral_value())


def divide_cents(total_cents: int, count: int) -> int:
    """Mean in cents, rounded half-up (0 when count is 0)."""
    if count <= 0:
        return 0
    return int((Decimal(total_cents) / Decimal(count)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

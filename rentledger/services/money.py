"""Fixed-point money helpers.

All ledger quantities are `Decimal` values quantized to two places with
half-up rounding. Gateways report minor units (centavos, cents); those are
converted once, here.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    """Convert a value to a two-decimal amount; None becomes zero.

    Floats go through `str()` so 0.1 stays 0.10 instead of its binary expansion.

    Raises:
        ValueError: If the value is not a number
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Invalid monetary amount: {value!r}") from e


def from_minor_units(minor: int | str) -> Decimal:
    """Convert a gateway minor-unit integer (e.g. 550000) to 5500.00."""
    return to_money(Decimal(int(minor)) / 100)


def to_minor_units(amount: Decimal) -> int:
    """Convert 5500.00 to 550000."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def format_money(amount: Decimal, currency: str = "PHP") -> str:
    """Human readable amount for messages, e.g. "PHP 6,000.00"."""
    return f"{currency} {to_money(amount):,.2f}"


__all__ = ["CENTS", "ZERO", "to_money", "from_minor_units", "to_minor_units", "format_money"]

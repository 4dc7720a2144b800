from __future__ import annotations

from decimal import Decimal, InvalidOperation

PENNY_EXPONENT = 2


def format_pennies(quantity: int) -> str:
    return f"{Decimal(quantity).scaleb(-PENNY_EXPONENT):.2f}"


def parse_pennies(raw: str) -> int:
    """Parse a decimal currency figure such as ``"10.50"`` into pennies."""
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as err:
        raise ValueError(f"Invalid amount: {raw!r}") from err
    if not value.is_finite() or value < 0:
        raise ValueError(f"Amount must be a non-negative number: {raw!r}")

    pennies = value.scaleb(PENNY_EXPONENT)
    # Avoid silently rounding away fractions of a penny.
    if pennies != pennies.to_integral_value():
        raise ValueError(f"Amount has more than {PENNY_EXPONENT} decimal places: {raw!r}")
    return int(pennies)

from __future__ import annotations

from decimal import Decimal
from functools import total_ordering
from typing import Iterable, NewType

from pydantic import BaseModel, ConfigDict, Field, model_validator

Currency = NewType("Currency", str)

USD = Currency("USD")
GBP = Currency("GBP")
CHF = Currency("CHF")


class CurrencyMismatchError(ValueError):
    def __init__(self, *, expected: Currency, actual: Currency) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: {actual} vs {expected}")


@total_ordering
class Amount(BaseModel):
    """A non-negative quantity of a single currency.

    Quantities are measured in pennies, the smallest representable unit of the
    currency (not necessarily 1/100th of it). Amounts of different currencies do not
    mix: adding, subtracting or comparing them raises ``CurrencyMismatchError``.
    """

    model_config = ConfigDict(frozen=True)

    quantity: int
    currency: Currency = Field(pattern=r"^[A-Z]{3}$")

    @model_validator(mode="after")
    def _validate_quantity(self) -> Amount:
        # Negative balances exist in some contexts, but never as an amount of cash.
        if self.quantity < 0:
            raise ValueError(f"Negative amounts are not allowed: {self.quantity}")
        return self

    def __add__(self, other: Amount) -> Amount:
        self._check_currency(other)
        return Amount(quantity=self.quantity + other.quantity, currency=self.currency)

    def __sub__(self, other: Amount) -> Amount:
        self._check_currency(other)
        return Amount(quantity=self.quantity - other.quantity, currency=self.currency)

    def __mul__(self, factor: int) -> Amount:
        return Amount(quantity=self.quantity * factor, currency=self.currency)

    def __floordiv__(self, divisor: int) -> Amount:
        return Amount(quantity=self.quantity // divisor, currency=self.currency)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Amount):
            return NotImplemented
        self._check_currency(other)
        return self.quantity < other.quantity

    def __str__(self) -> str:
        return f"{self.currency} {Decimal(self.quantity).scaleb(-2)}"

    def _check_currency(self, other: Amount) -> None:
        if other.currency != self.currency:
            raise CurrencyMismatchError(expected=self.currency, actual=other.currency)


def sum_amounts(amounts: Iterable[Amount]) -> Amount:
    """Add up amounts of one currency. Fails on an empty iterable."""
    total: Amount | None = None
    for amount in amounts:
        total = amount if total is None else total + amount
    if total is None:
        raise ValueError("Cannot sum an empty collection of amounts")
    return total


def sum_amounts_or_zero(amounts: Iterable[Amount], currency: Currency) -> Amount:
    return sum(amounts, start=Amount(quantity=0, currency=currency))  # type: ignore[arg-type]


def dollars(units: int) -> Amount:
    return Amount(quantity=units * 100, currency=USD)


def pounds(units: int) -> Amount:
    return Amount(quantity=units * 100, currency=GBP)


def swiss_francs(units: int) -> Amount:
    return Amount(quantity=units * 100, currency=CHF)

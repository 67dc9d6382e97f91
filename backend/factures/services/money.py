# Overview: Whole-unit FCFA amounts and user-input parsing.

"""
Money arithmetic.

Amounts are whole FCFA held as Python ints; there is no sub-unit. A Money
value may go negative as an intermediate (subtotal + credits - deductions)
and is clamped to zero only when a final total is materialised.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from ..validation import ValidationError, MAX_AMOUNT


class InvalidAmount(ValidationError):
    """Raised when user input cannot become a Money value."""


@dataclass(frozen=True, order=True)
class Money:
    amount: int = 0

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError("Money amount must be an int")

    @classmethod
    def zero(cls) -> "Money":
        return cls(0)

    @classmethod
    def sum(cls, values: Iterable["Money"]) -> "Money":
        total = 0
        for value in values:
            total += value.amount
        return cls(total)

    def add(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def subtract(self, other: "Money") -> "Money":
        return Money(self.amount - other.amount)

    def multiply(self, quantity: int) -> "Money":
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValueError("quantity must be a positive integer")
        return Money(self.amount * quantity)

    def clamp(self) -> "Money":
        """Floor at zero. Only applied to final totals."""
        return self if self.amount >= 0 else Money(0)

    @property
    def is_negative(self) -> bool:
        return self.amount < 0

    @property
    def is_positive(self) -> bool:
        return self.amount > 0

    __add__ = add
    __sub__ = subtract

    def __int__(self) -> int:
        return self.amount

    def __str__(self) -> str:
        return format_fcfa(self.amount)


def _to_decimal(value, field: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidAmount(f"{field} must be a number", details={"field": field})
    if isinstance(value, Money):
        return Decimal(value.amount)
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        # repr() keeps 0.1 as "0.1" instead of the binary expansion
        text = repr(value)
    elif isinstance(value, (str, Decimal)):
        text = str(value)
    else:
        raise InvalidAmount(f"{field} must be a number", details={"field": field})

    for space in (" ", "\u00a0", "\u202f"):
        text = text.replace(space, "")
    text = text.strip().replace(",", ".")
    if not text:
        raise InvalidAmount(f"{field} is required", details={"field": field})
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        raise InvalidAmount(f"{field} must be a number", details={"field": field, "value": str(value)})
    if not parsed.is_finite():
        raise InvalidAmount(f"{field} must be a finite number", details={"field": field})
    return parsed


def parse_money(value, *, field: str = "amount", positive: bool = False) -> Money:
    """
    Parse user input into Money.

    Accepts ints, floats and decimal strings with either "," or "." as the
    decimal separator ("1500", "1500,5", 1499.6). The value is rounded half-up
    to the nearest whole FCFA. Negative input is always rejected; with
    positive=True a value that rounds to 0 is rejected as well.
    """
    parsed = _to_decimal(value, field)

    if parsed < 0:
        raise InvalidAmount(f"{field} must not be negative", details={"field": field})
    if parsed > MAX_AMOUNT:
        raise InvalidAmount(
            f"{field} exceeds maximum allowed ({format_fcfa(MAX_AMOUNT)})",
            details={"field": field},
        )

    rounded = int(parsed.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if positive and rounded <= 0:
        raise InvalidAmount(f"{field} must be greater than zero", details={"field": field})
    return Money(rounded)


def format_fcfa(amount: int | Money) -> str:
    """fr-FR style display: 12500 -> "12 500 FCFA"."""
    if isinstance(amount, Money):
        amount = amount.amount
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(amount):,}".replace(",", " ")
    return f"{sign}{grouped} FCFA"

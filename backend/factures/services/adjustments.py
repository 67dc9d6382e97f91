# Overview: Adjustment ledger; validates credits/deductions and folds them into an invoice total.

"""
Adjustment Ledger

An adjustment is a named amount attached to an invoice:

- CREDIT: the customer owes this on top of the items ("il me doit")
- DEDUCTION: subtracted from what the customer owes ("je lui dois")

reconcile() is the single place where a negative result is floored to
zero. Deductions larger than subtotal + credits are accepted and absorbed;
that is a write-off, not an error.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from ..validation import ValidationError, NAME_MAX_LENGTH
from .money import Money, InvalidAmount, format_fcfa, parse_money


class InvalidAdjustment(ValidationError):
    """Raised for a blank label, a bad amount or an unknown kind."""


class AdjustmentKind(str, enum.Enum):
    CREDIT = "credit"
    DEDUCTION = "deduction"


def parse_kind(value) -> AdjustmentKind:
    """
    Missing kind means DEDUCTION: that is what entries created before
    credits existed always were.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return AdjustmentKind.DEDUCTION
    if isinstance(value, AdjustmentKind):
        return value
    try:
        return AdjustmentKind(str(value).strip().lower())
    except ValueError:
        raise InvalidAdjustment(
            "kind must be 'credit' or 'deduction'",
            details={"field": "kind", "value": str(value)},
        )


def validate(label, amount) -> tuple[str, Money]:
    """Return (clean_label, amount) or raise InvalidAdjustment."""
    if not isinstance(label, str) or not label.strip():
        raise InvalidAdjustment("label is required", details={"field": "label"})
    label = label.strip()
    if len(label) > NAME_MAX_LENGTH:
        raise InvalidAdjustment(
            f"label must be at most {NAME_MAX_LENGTH} characters", details={"field": "label"}
        )
    try:
        money = parse_money(amount, field="amount", positive=True)
    except InvalidAmount as exc:
        raise InvalidAdjustment(str(exc), details=exc.details)
    return label, money


@dataclass(frozen=True)
class Adjustment:
    label: str
    amount: Money
    kind: AdjustmentKind
    id: int | str | None = None

    @classmethod
    def build(cls, label, amount, kind=None, id=None) -> "Adjustment":
        clean_label, money = validate(label, amount)
        return cls(label=clean_label, amount=money, kind=parse_kind(kind), id=id)

    @property
    def is_credit(self) -> bool:
        return self.kind is AdjustmentKind.CREDIT

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "amount": self.amount.amount,
            "kind": self.kind.value,
        }


@dataclass(frozen=True)
class BreakdownLine:
    kind: str  # subtotal, credit, deduction, total
    label: str
    amount: Money

    def to_dict(self) -> dict:
        sign = {"credit": "+ ", "deduction": "- "}.get(self.kind, "")
        return {
            "kind": self.kind,
            "label": self.label,
            "amount": self.amount.amount,
            "display": f"{sign}{format_fcfa(self.amount)}",
        }


@dataclass(frozen=True)
class Breakdown:
    subtotal: Money
    credit_total: Money
    deduction_total: Money
    total: Money
    lines: tuple[BreakdownLine, ...] = field(default_factory=tuple)

    @property
    def is_adjusted(self) -> bool:
        return len(self.lines) > 2

    def to_dict(self) -> dict:
        return {
            "subtotal": self.subtotal.amount,
            "credit_total": self.credit_total.amount,
            "deduction_total": self.deduction_total.amount,
            "total": self.total.amount,
            "lines": [line.to_dict() for line in self.lines],
        }


class AdjustmentLedger:
    def __init__(self, adjustments: Iterable[Adjustment] = ()):
        self._entries: list[Adjustment] = []
        for adjustment in adjustments:
            self.add(adjustment)

    def __iter__(self) -> Iterator[Adjustment]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, adjustment: Adjustment) -> Adjustment:
        """Append. Duplicate labels are kept as separate entries."""
        validate(adjustment.label, adjustment.amount)
        if not isinstance(adjustment.kind, AdjustmentKind):
            raise InvalidAdjustment("kind must be 'credit' or 'deduction'", details={"field": "kind"})
        self._entries.append(adjustment)
        return adjustment

    def remove(self, adjustment_id) -> None:
        """Remove by id; absent ids are ignored."""
        self._entries = [adj for adj in self._entries if adj.id != adjustment_id]

    @property
    def credits(self) -> tuple[Adjustment, ...]:
        return tuple(adj for adj in self._entries if adj.kind is AdjustmentKind.CREDIT)

    @property
    def deductions(self) -> tuple[Adjustment, ...]:
        return tuple(adj for adj in self._entries if adj.kind is AdjustmentKind.DEDUCTION)

    def credit_total(self) -> Money:
        return Money.sum(adj.amount for adj in self.credits)

    def deduction_total(self) -> Money:
        return Money.sum(adj.amount for adj in self.deductions)

    def reconcile(self, subtotal: Money) -> Money:
        """max(0, subtotal + credits - deductions)"""
        return subtotal.add(self.credit_total()).subtract(self.deduction_total()).clamp()

    def breakdown(self, subtotal: Money) -> Breakdown:
        """
        Receipt lines: subtotal, every credit, every deduction, total.
        Within each group entries keep the order they were added in.
        """
        lines = [BreakdownLine("subtotal", "Sous-total", subtotal)]
        lines.extend(BreakdownLine("credit", adj.label, adj.amount) for adj in self.credits)
        lines.extend(BreakdownLine("deduction", adj.label, adj.amount) for adj in self.deductions)
        total = self.reconcile(subtotal)
        lines.append(BreakdownLine("total", "Total", total))
        return Breakdown(
            subtotal=subtotal,
            credit_total=self.credit_total(),
            deduction_total=self.deduction_total(),
            total=total,
            lines=tuple(lines),
        )


def reconcile_total(subtotal: Money, adjustments: Iterable[Adjustment]) -> Money:
    return AdjustmentLedger(adjustments).reconcile(subtotal)

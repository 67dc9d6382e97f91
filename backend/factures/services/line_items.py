# Overview: In-memory line item ledger; prices (product, quantity) selections into a subtotal.

"""
Line Item Ledger

Holds the ordered line items of a cart or invoice. Catalog products merge
into a single line per product; ad-hoc ("custom") lines never merge, even
when two of them carry the same name.

A line's total is derived from unit_price * quantity on every read, so it
cannot drift from its inputs.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Iterable, Iterator

from .money import Money


@dataclass
class LineItem:
    ref: str
    product_id: int | None
    product_name: str
    unit_price: Money
    quantity: int

    @property
    def total(self) -> Money:
        return self.unit_price.multiply(self.quantity)

    @property
    def is_custom(self) -> bool:
        return self.product_id is None

    def to_dict(self) -> dict:
        return {
            "ref": self.ref,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price": self.unit_price.amount,
            "quantity": self.quantity,
            "total": self.total.amount,
        }


def product_ref(product_id: int) -> str:
    return f"product-{product_id}"


def _check_quantity(qty: int) -> None:
    if isinstance(qty, bool) or not isinstance(qty, int) or qty <= 0:
        raise ValueError("quantity must be a positive integer")


class LineItemLedger:
    def __init__(self, items: Iterable[LineItem] = ()):
        self._items: list[LineItem] = list(items)
        # Custom refs only need to be unique within this ledger
        self._custom_refs = itertools.count(1)

    def __iter__(self) -> Iterator[LineItem]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    @property
    def items(self) -> tuple[LineItem, ...]:
        return tuple(self._items)

    def get(self, ref: str) -> LineItem | None:
        for item in self._items:
            if item.ref == ref:
                return item
        return None

    def _next_custom_ref(self) -> str:
        while True:
            ref = f"custom-{next(self._custom_refs)}"
            if self.get(ref) is None:
                return ref

    def add_or_increment(
        self,
        product_id: int | None,
        name: str,
        unit_price: Money,
        delta_qty: int = 1,
    ) -> LineItem:
        """
        Add delta_qty of a product.

        An existing line for the same product_id is incremented in place and
        keeps its first unit price. product_id=None always appends a new
        custom line.
        """
        _check_quantity(delta_qty)

        if product_id is not None:
            existing = self.get(product_ref(product_id))
            if existing is not None:
                existing.quantity += delta_qty
                return existing
            ref = product_ref(product_id)
        else:
            ref = self._next_custom_ref()

        item = LineItem(
            ref=ref,
            product_id=product_id,
            product_name=name,
            unit_price=unit_price,
            quantity=delta_qty,
        )
        self._items.append(item)
        return item

    def set_quantity(self, ref: str, qty: int) -> LineItem | None:
        """Set a line's quantity. qty <= 0 removes the line and returns None."""
        if isinstance(qty, bool) or not isinstance(qty, int):
            raise ValueError("quantity must be an integer")
        if qty <= 0:
            self.remove(ref)
            return None
        item = self.get(ref)
        if item is None:
            return None
        item.quantity = qty
        return item

    def set_unit_price(self, ref: str, unit_price: Money) -> LineItem | None:
        item = self.get(ref)
        if item is None:
            return None
        item.unit_price = unit_price
        return item

    def remove(self, ref: str) -> None:
        self._items = [item for item in self._items if item.ref != ref]

    def subtotal(self) -> Money:
        return Money.sum(item.total for item in self._items)

    def item_count(self) -> int:
        """Number of units across all lines."""
        return sum(item.quantity for item in self._items)


def compute_subtotal(items: Iterable[LineItem]) -> Money:
    return LineItemLedger(items).subtotal()

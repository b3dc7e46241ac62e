"""
Cart and pricing engine.

Totals are never stored: compute_totals() derives them from the current
lines, discount and tax rate on every call, so there is no window in which
they disagree with the cart.

    subtotal = sum(price * quantity)
    tax      = (subtotal - discount) * tax_rate
    total    = subtotal - discount + tax
"""

from __future__ import annotations

import math
from typing import Any, Callable, List, Optional, Tuple

from core.customers import AUTO_WALK_IN
from db.models import CartLine, CartTotals, CatalogItem, Customer
from utils.errors import ValidationError


class Cart:
    def __init__(self, auto_walk_in: bool = False, tax_rate: float = 0.0):
        self.on_change: Optional[Callable[[], Any]] = None
        self._lines: List[CartLine] = []
        self.discount = 0.0
        self.tax_rate = 0.0
        self.set_tax_rate(tax_rate)
        self.auto_walk_in = auto_walk_in
        self.customer: Optional[Customer] = None

    # ---------- lines ----------

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def find_line(self, item_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.item.id == item_id:
                return line
        return None

    def add_item(self, item: CatalogItem) -> CartLine:
        """One more of `item`. No stock check; stock is informational only."""
        was_empty = self.is_empty
        line = self.find_line(item.id)
        if line is not None:
            line.quantity += 1
        else:
            line = CartLine(item=item, quantity=1)
            self._lines.append(line)
        if was_empty:
            self._apply_auto_walk_in()
        self._changed()
        return line

    def set_quantity(self, item_id: str, quantity: int) -> None:
        quantity = int(quantity)
        if quantity <= 0:
            self.remove_item(item_id)
            return
        line = self.find_line(item_id)
        if line is None:
            return
        line.quantity = quantity
        self._changed()

    def remove_item(self, item_id: str) -> None:
        before = len(self._lines)
        self._lines = [line for line in self._lines if line.item.id != item_id]
        if len(self._lines) != before:
            self._changed()

    def clear(self) -> None:
        self._lines = []
        self._changed()

    # ---------- pricing ----------

    def set_discount(self, amount: float) -> None:
        if not math.isfinite(amount):
            raise ValidationError("Discount must be a number.")
        if amount < 0:
            raise ValidationError("Discount cannot be negative.")
        self.discount = float(amount)
        self._changed()

    def set_tax_rate(self, fraction: float) -> None:
        if not math.isfinite(fraction):
            raise ValidationError("Tax rate must be a number.")
        if fraction < 0:
            raise ValidationError("Tax rate cannot be negative.")
        self.tax_rate = float(fraction)
        self._changed()

    def compute_totals(self) -> CartTotals:
        subtotal = sum(line.item.price * line.quantity for line in self._lines)
        taxable = subtotal - self.discount
        tax = taxable * self.tax_rate
        return CartTotals(
            subtotal=subtotal,
            discount=self.discount,
            tax=tax,
            total=taxable + tax,
        )

    # ---------- customer ----------

    def set_customer(self, customer: Optional[Customer]) -> None:
        self.customer = customer
        self._changed()

    def clear_customer(self) -> None:
        self.set_customer(None)

    def set_auto_walk_in(self, enabled: bool) -> None:
        """
        Turning the mode on attaches the walk-in reference if nobody is set;
        turning it off detaches it again (a real customer is left alone).
        """
        self.auto_walk_in = enabled
        if enabled and self.customer is None:
            self.customer = AUTO_WALK_IN
        elif not enabled and self.customer == AUTO_WALK_IN:
            self.customer = None
        self._changed()

    def reset_after_sale(self) -> None:
        self._lines = []
        self.discount = 0.0
        self.customer = None
        self._changed()

    def _apply_auto_walk_in(self) -> None:
        if self.auto_walk_in and self.customer is None:
            self.customer = AUTO_WALK_IN

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

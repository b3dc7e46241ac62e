"""
Thermal receipt rendering (80mm paper, 42 columns of monospace text).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import List, Optional

from db.models import PendingSale
from utils.logger import get_logger
from utils.pure import format_money

_logger = get_logger(__name__)

WIDTH = 42
STORE_NAME = "NNE Convenient Store"
RECEIPT_DIR = os.getenv("POS_RECEIPT_DIR", "data/receipts")


@dataclass(frozen=True)
class ReceiptItem:
    name: str
    quantity: int
    price: float
    total: float


@dataclass(frozen=True)
class ReceiptData:
    invoice_id: str
    date: datetime
    items: List[ReceiptItem]
    subtotal: float
    discount: float
    tax: float
    total: float
    payment_method: str
    customer_name: Optional[str] = None
    tendered_amount: Optional[float] = None
    change_given: Optional[float] = None
    store_name: str = STORE_NAME
    store_lines: List[str] = field(default_factory=list)

    @classmethod
    def from_sale(cls, invoice_id: str, sale: PendingSale) -> "ReceiptData":
        return cls(
            invoice_id=invoice_id,
            date=datetime.fromisoformat(sale.created_at).astimezone(),
            customer_name=sale.customer_name,
            items=[
                ReceiptItem(
                    name=line.product_name,
                    quantity=line.quantity,
                    price=line.unit_price,
                    total=line.total_price,
                )
                for line in sale.items
            ],
            subtotal=sale.subtotal,
            discount=sale.discount,
            tax=sale.tax,
            total=sale.total,
            payment_method=sale.payment_method,
            tendered_amount=sale.tendered_amount,
            change_given=sale.change_given,
        )


def _row(left: str, right: str) -> str:
    space = WIDTH - len(right) - 1
    return f"{left[:space]:<{space}} {right}"


def render_receipt(data: ReceiptData) -> str:
    rule, dashed = "-" * WIDTH, "=" * WIDTH
    lines = [data.store_name.center(WIDTH).rstrip()]
    lines += [extra.center(WIDTH).rstrip() for extra in data.store_lines]
    lines += [
        dashed,
        f"Invoice #: {data.invoice_id[:12]}",
        f"Date: {data.date:%b %d, %Y %I:%M %p}",
    ]
    if data.customer_name:
        lines.append(f"Customer: {data.customer_name}")

    lines += [rule, _row("Item", "Qty     Price"), rule]
    for item in data.items:
        amount = f"{item.quantity:>3}  {format_money(item.total):>9}"
        lines.append(_row(item.name, amount))

    lines += [rule, _row("Subtotal:", format_money(data.subtotal))]
    if data.discount > 0:
        lines.append(_row("Discount:", "-" + format_money(data.discount)))
    if data.tax > 0:
        lines.append(_row("Tax:", format_money(data.tax)))
    lines += [dashed, _row("TOTAL:", format_money(data.total)), dashed]

    lines.append(_row("Payment Method:", data.payment_method.upper()))
    if data.tendered_amount is not None and data.payment_method.lower() == "cash":
        lines.append(_row("Cash Tendered:", format_money(data.tendered_amount)))
        lines.append(_row("Change:", format_money(data.change_given or 0.0)))

    lines += [rule, "Thank you for your business!".center(WIDTH).rstrip(), ""]
    return "\n".join(lines)


class ReceiptPrinter:
    """
    Renders receipts and spools them to `<spool_dir>/<invoice>.txt`
    for the printer daemon to pick up.
    """

    def __init__(self, spool_dir: str = RECEIPT_DIR, store_name: str = STORE_NAME):
        self.spool_dir = spool_dir
        self.store_name = store_name

    def __call__(self, invoice_id: str, sale: PendingSale) -> str:
        return self.print_sale(invoice_id, sale)

    def print_sale(self, invoice_id: str, sale: PendingSale) -> str:
        data = ReceiptData.from_sale(invoice_id, sale)
        if self.store_name != data.store_name:
            data = replace(data, store_name=self.store_name)
        text = render_receipt(data)
        os.makedirs(self.spool_dir, exist_ok=True)
        path = os.path.join(self.spool_dir, f"{invoice_id}.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        _logger.info(f"Receipt for {invoice_id} spooled to {path}")
        return path

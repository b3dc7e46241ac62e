"""
Checkout transaction state machine.

    IDLE -> CUSTOMER_PENDING -> METHOD_SELECTION -> [CASH_ENTRY] -> SUBMITTING
    SUBMITTING -> COMPLETED -> IDLE              (cart, discount, customer cleared)
    SUBMITTING -> FAILED -> METHOD_SELECTION     (everything kept for a retry)

Guard violations raise ValidationError before any transition. Problems
during submission never raise; they come back in SaleOutcome.error.
"""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from core.cart import Cart
from core.identity import AUTH_TIMEOUT_SECONDS, Identity, IdentityProvider, wait_for_identity
from db.models import CartTotals, Customer, PendingSale, SaleLine
from utils.errors import AuthenticationTimeout, CheckoutInProgress, ValidationError
from utils.logger import get_logger
from utils.pure import parse_amount

_logger = get_logger(__name__)

# float noise allowed when comparing a tender to the total
CASH_TOLERANCE = 1e-9

LedgerSink = Callable[[PendingSale], Awaitable[str]]
ReceiptSink = Callable[[str, PendingSale], Any]


class CheckoutState(enum.Enum):
    IDLE = "idle"
    CUSTOMER_PENDING = "customer_pending"
    METHOD_SELECTION = "method_selection"
    CASH_ENTRY = "cash_entry"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    DIGITAL = "digital"


def covers_total(tendered: float, total: float) -> bool:
    """True when the tender pays the full-precision total."""
    return tendered + CASH_TOLERANCE >= total


@dataclass(frozen=True)
class SaleOutcome:
    success: bool
    sale_id: Optional[str] = None
    sale: Optional[PendingSale] = None
    error: Optional[str] = None
    receipt_printed: bool = False


def build_pending_sale(
    cart: Cart,
    totals: CartTotals,
    method: PaymentMethod,
    identity: Identity,
    tendered: Optional[float] = None,
    now: Optional[float] = None,
) -> PendingSale:
    """Snapshot the cart into the write-once sale record."""
    ts = time.time() if now is None else now
    customer: Optional[Customer] = cart.customer
    cash = method is PaymentMethod.CASH and tendered is not None
    return PendingSale(
        items=[
            SaleLine(
                product_id=line.item.id,
                product_name=line.item.name,
                product_number=line.item.product_number,
                quantity=line.quantity,
                unit_price=line.item.price,
                total_price=line.item.price * line.quantity,
            )
            for line in cart.lines
        ],
        subtotal=totals.subtotal,
        discount=totals.discount,
        tax=totals.tax,
        total=totals.total,
        payment_method=method.value,
        customer_id=customer.id if customer else None,
        customer_name=customer.name if customer else "Walk-in Customer",
        employee_id=identity.uid,
        employee_email=identity.email or "no-email",
        employee_type=identity.kind,
        created_at=datetime.fromtimestamp(ts, tz=timezone.utc).isoformat(),
        created_at_ts=int(ts * 1000),
        tendered_amount=tendered if cash else None,
        change_given=tendered - totals.total if cash else None,
    )


class CheckoutMachine:
    def __init__(
        self,
        cart: Cart,
        ledger: LedgerSink,
        identity: IdentityProvider,
        receipts: Optional[ReceiptSink] = None,
        auth_timeout: float = AUTH_TIMEOUT_SECONDS,
        on_state_change: Optional[Callable[[CheckoutState], Any]] = None,
    ):
        self._cart = cart
        self._ledger = ledger
        self._identity = identity
        self._receipts = receipts
        self._auth_timeout = auth_timeout
        self._on_state_change = on_state_change

        self.state = CheckoutState.IDLE
        self.in_flight = False
        self.method: Optional[PaymentMethod] = None
        self.tendered: Optional[float] = None

    @property
    def change(self) -> Optional[float]:
        if self.tendered is None:
            return None
        return self.tendered - self._cart.compute_totals().total

    def _to(self, state: CheckoutState) -> None:
        _logger.debug(f"checkout: {self.state.value} -> {state.value}")
        self.state = state
        if self._on_state_change is not None:
            self._on_state_change(state)

    def _expect(self, *states: CheckoutState) -> None:
        if self.state not in states:
            raise ValidationError(f"Cannot do that while checkout is {self.state.value}.")

    # ---------- transitions ----------

    def begin(self) -> CheckoutState:
        """Open checkout. Asks for a customer first unless one is attached."""
        self._expect(CheckoutState.IDLE)
        if self._cart.is_empty:
            raise ValidationError("Cart is empty!")
        self.method = None
        self.tendered = None
        if self._cart.customer is None:
            self._to(CheckoutState.CUSTOMER_PENDING)
        else:
            self._to(CheckoutState.METHOD_SELECTION)
        return self.state

    def select_customer(self, customer: Customer) -> None:
        self._expect(CheckoutState.CUSTOMER_PENDING)
        self._cart.set_customer(customer)
        self._to(CheckoutState.METHOD_SELECTION)

    def skip_customer(self) -> None:
        self._expect(CheckoutState.CUSTOMER_PENDING)
        self._to(CheckoutState.METHOD_SELECTION)

    def select_method(self, method: PaymentMethod) -> CheckoutState:
        """
        Cash moves to CASH_ENTRY. Card and digital are ready to submit()
        with no tender attached.
        """
        self._expect(CheckoutState.METHOD_SELECTION)
        self.method = PaymentMethod(method)
        self.tendered = None
        if self.method is PaymentMethod.CASH:
            self._to(CheckoutState.CASH_ENTRY)
        return self.state

    def enter_cash(self, text: str) -> float:
        """
        Accept the tendered amount; returns the change due.
        Rejected (state stays CASH_ENTRY) when missing or short of the total.
        """
        self._expect(CheckoutState.CASH_ENTRY)
        tendered = parse_amount(text)
        if tendered is None:
            raise ValidationError("Enter the cash amount received.")
        total = self._cart.compute_totals().total
        if not covers_total(tendered, total):
            raise ValidationError("Insufficient cash received.")
        self.tendered = tendered
        return tendered - total

    def back_to_methods(self) -> None:
        self._expect(CheckoutState.CASH_ENTRY)
        self.method = None
        self.tendered = None
        self._to(CheckoutState.METHOD_SELECTION)

    def cancel(self) -> None:
        self._expect(
            CheckoutState.CUSTOMER_PENDING,
            CheckoutState.METHOD_SELECTION,
            CheckoutState.CASH_ENTRY,
        )
        self.method = None
        self.tendered = None
        self._to(CheckoutState.IDLE)

    async def submit(self) -> SaleOutcome:
        if self.in_flight:
            raise CheckoutInProgress()
        if self.method is None:
            raise ValidationError("Choose a payment method.")
        if self.method is PaymentMethod.CASH:
            self._expect(CheckoutState.CASH_ENTRY)
            if self.tendered is None:
                raise ValidationError("Enter the cash amount received.")
        else:
            self._expect(CheckoutState.METHOD_SELECTION)
        # the cart stays editable behind the checkout dialog
        if self._cart.is_empty:
            raise ValidationError("Cart is empty!")
        if self.method is PaymentMethod.CASH and not covers_total(
            self.tendered, self._cart.compute_totals().total
        ):
            raise ValidationError("Insufficient cash received.")

        self.in_flight = True
        self._to(CheckoutState.SUBMITTING)
        try:
            outcome = await self._write_sale()
        finally:
            self.in_flight = False

        if outcome.success:
            self._to(CheckoutState.COMPLETED)
            printed = self._print_receipt(outcome.sale_id, outcome.sale)
            self._cart.reset_after_sale()
            self.method = None
            self.tendered = None
            self._to(CheckoutState.IDLE)
            return SaleOutcome(
                success=True,
                sale_id=outcome.sale_id,
                sale=outcome.sale,
                receipt_printed=printed,
            )

        self._to(CheckoutState.FAILED)
        self.tendered = None
        self._to(CheckoutState.METHOD_SELECTION)
        return outcome

    async def _write_sale(self) -> SaleOutcome:
        _logger.info(f"Processing payment: {self.method.value}")
        identity = await wait_for_identity(self._identity, self._auth_timeout)
        if identity is None:
            error = AuthenticationTimeout()
            _logger.error(f"Sale failed: {error.message}")
            return SaleOutcome(success=False, error=error.message)

        sale = build_pending_sale(
            self._cart,
            self._cart.compute_totals(),
            self.method,
            identity,
            tendered=self.tendered,
        )
        try:
            sale_id = await self._ledger(sale)
        except Exception as e:
            _logger.error(f"Error processing sale: {e}")
            return SaleOutcome(success=False, sale=sale, error=f"Sale failed: {e}")

        _logger.info(f"Pending transaction created: {sale_id}")
        return SaleOutcome(success=True, sale_id=sale_id, sale=sale)

    def _print_receipt(self, sale_id: str, sale: PendingSale) -> bool:
        if self._receipts is None:
            return False
        try:
            self._receipts(sale_id, sale)
        except Exception as e:
            _logger.error(f"Error printing receipt for {sale_id}: {e}")
            return False
        return True

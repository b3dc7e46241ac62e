from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

from core.checkout import (
    CheckoutMachine,
    CheckoutState,
    PaymentMethod,
    SaleOutcome,
    covers_total,
)
from utils.errors import PosError
from utils.pure import format_money, generate_markdown_table, parse_amount


class CheckoutModal(ModalScreen[Optional[SaleOutcome]]):
    """
    Payment step of checkout: order summary, payment method, cash tender.
    Dismisses with the SaleOutcome of a completed sale, or None when the
    operator backs out.
    """

    def __init__(self, machine: CheckoutMachine):
        super().__init__()
        self.machine = machine

    def compose(self) -> ComposeResult:
        with Vertical(id="div-checkout"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Horizontal(id="div-methods"):
                yield Button("Cash", id="btn-cash", variant="success")
                yield Button("Card", id="btn-card", variant="primary")
                yield Button("Digital", id="btn-digital", variant="primary")
            with Vertical(id="div-cash"):
                yield Label("Cash Received")
                yield Input(placeholder="0.00", id="input-cash", type="number")
                yield Label("", id="label-change")
                with Horizontal():
                    yield Button("Back", id="btn-back")
                    yield Button("Complete Sale", id="btn-complete", variant="success")
            with Horizontal(id="div-checkout-btns"):
                yield Button("Cancel", id="btn-cancel")

    async def on_mount(self):
        cart = self.app.state.cart
        totals = cart.compute_totals()
        headers = ["Item", "Unit Price", "Qty", "Total"]
        rows = [
            [
                line.item.name,
                format_money(line.item.price),
                line.quantity,
                format_money(line.line_total),
            ]
            for line in cart.lines
        ]
        md = "### Order Summary\n\n"
        md += generate_markdown_table(headers, rows, ["l", "r", "c", "r"])
        md += "\n\n"
        md += generate_markdown_table(
            None,
            [
                ["Subtotal", format_money(totals.subtotal)],
                ["Discount", format_money(totals.discount)],
                ["Tax", format_money(totals.tax)],
                ["**Total**", f"**{format_money(totals.total)}**"],
            ],
        )
        if cart.customer is not None:
            md += f"\n\n**Customer:** {cart.customer.name}"
        await self.query_one(MarkdownViewer).document.update(md)
        self.refresh_controls()

    def refresh_controls(self) -> None:
        state = self.machine.state
        busy = self.machine.in_flight
        self.query_one("#div-methods").display = state is CheckoutState.METHOD_SELECTION
        self.query_one("#div-cash").display = state is CheckoutState.CASH_ENTRY
        for button in self.query(Button):
            button.disabled = busy
        if state is CheckoutState.CASH_ENTRY and not busy:
            self.query_one("#input-cash").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.handle_cancel()

    @on(Button.Pressed, "#btn-cash")
    def handle_cash(self) -> None:
        self.machine.select_method(PaymentMethod.CASH)
        self.query_one("#input-cash", Input).value = ""
        self.query_one("#label-change", Label).update("")
        self.refresh_controls()

    @on(Button.Pressed, "#btn-card")
    def handle_card(self) -> None:
        self.machine.select_method(PaymentMethod.CARD)
        self.submit()

    @on(Button.Pressed, "#btn-digital")
    def handle_digital(self) -> None:
        self.machine.select_method(PaymentMethod.DIGITAL)
        self.submit()

    @on(Input.Changed, "#input-cash")
    def handle_cash_changed(self, event: Input.Changed) -> None:
        label = self.query_one("#label-change", Label)
        tendered = parse_amount(event.value)
        if tendered is None:
            label.update("")
            return
        total = self.app.state.cart.compute_totals().total
        if not covers_total(tendered, total):
            label.update(f"Short by {format_money(total - tendered)}")
        else:
            label.update(f"Change: {format_money(tendered - total)}")

    @on(Input.Submitted, "#input-cash")
    @on(Button.Pressed, "#btn-complete")
    def handle_complete(self) -> None:
        if self.machine.in_flight:
            return
        try:
            self.machine.enter_cash(self.query_one("#input-cash", Input).value)
        except PosError as e:
            self.query_one("#input-cash", Input).add_class("-invalid")
            self.notify(e.message, severity=e.severity)
            return
        self.query_one("#input-cash", Input).remove_class("-invalid")
        self.submit()

    @work(exclusive=True, group="checkout-submit")
    async def submit(self) -> None:
        for button in self.query(Button):
            button.disabled = True
        try:
            outcome = await self.machine.submit()
        except PosError as e:
            self.notify(e.message, severity=e.severity)
            self.refresh_controls()
            return

        if outcome.success:
            self.dismiss(outcome)
            return

        self.notify(outcome.error or "Sale failed.", severity="error")
        self.refresh_controls()

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.machine.back_to_methods()
        self.refresh_controls()

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        if self.machine.in_flight:
            self.notify("The sale is being processed.", severity="warning")
            return
        self.machine.cancel()
        self.dismiss(None)

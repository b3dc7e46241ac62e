from typing import List, Optional, Tuple

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Label, ListItem, ListView

from core.catalog import ALL_CATEGORY, CatalogSynchronizer, filter_catalog
from core.checkout import CheckoutState
from core.scanner import BarcodeScanDecoder, KeyPress, KeyTarget
from db.feeds import SqliteCollectionFeed
from db.models import CatalogItem, Customer
from utils.errors import PosError
from utils.logger import get_logger
from utils.messages import (
    CartChangedMessage,
    CatalogChangedMessage,
    CatalogErrorMessage,
    SaleCompletedMessage,
)
from utils.pure import format_money, parse_amount
from utils.timers import AsyncioClock
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_customer import CustomerModal
from views.modal_dialog import DialogModal

_logger = get_logger(__name__)


def key_press(event: events.Key, target: KeyTarget) -> KeyPress:
    key = event.key
    return KeyPress(
        key=key,
        character=event.character,
        ctrl="ctrl+" in key,
        alt="alt+" in key,
        meta="meta+" in key or "super+" in key,
        target=target,
    )


class SearchInput(Input):
    """
    The register's search box. Keys go through the barcode decoder first;
    anything it does not claim falls through to Input's own key handler.
    """

    decoder: Optional[BarcodeScanDecoder] = None

    async def _on_key(self, event: events.Key) -> None:
        if self.decoder is None:
            return
        decision = self.decoder.feed(key_press(event, KeyTarget.SEARCH))
        if decision.consumed:
            # prevent_default keeps Input._on_key from inserting the character
            event.stop()
            event.prevent_default()
            if decision.blur_search:
                self.screen.set_focus(None)


class RegisterScreen(BaseScreen):
    """
    The sales register: catalog browser on the left, cart on the right.
    Barcode scans are picked up anywhere on the screen except in text fields.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Register")
        self._show_services = False
        self._category = ALL_CATEGORY
        self._subcategory: Optional[str] = None
        self._category_rows: List[Tuple[str, Optional[str]]] = []
        self._synchronizer: Optional[CatalogSynchronizer] = None
        self._decoder: Optional[BarcodeScanDecoder] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="div-register"):
            with Vertical(id="div-catalog"):
                yield SearchInput(
                    placeholder="Search products or scan a barcode...", id="input-search"
                )
                with Horizontal(id="div-kind"):
                    yield Button("Products", id="btn-products", variant="primary")
                    yield Button("Services", id="btn-services")
                with Horizontal(id="div-browse"):
                    yield ListView(id="list-categories")
                    yield DataTable(id="table-catalog")
            with Vertical(id="div-cart"):
                yield Label("Cart", id="label-cart-title")
                yield DataTable(id="table-cart")
                with Horizontal(id="div-line-actions"):
                    yield Button("+1", id="btn-qty-up")
                    yield Button("-1", id="btn-qty-down")
                    yield Button("Remove", id="btn-remove-line", variant="warning")
                with Horizontal(id="div-customer-row"):
                    yield Label("Customer: none", id="label-customer")
                    yield Button("Customer", id="btn-customer")
                    yield Button("x", id="btn-clear-customer")
                with Horizontal(id="div-discount-row"):
                    yield Label("Discount $")
                    yield Input("", placeholder="0.00", id="input-discount", type="number")
                yield Label("", id="label-totals")
                with Horizontal(id="div-cart-btns"):
                    yield Button("Clear Cart", id="btn-clear-cart")
                    yield Button("Checkout", id="btn-checkout", variant="success")

    def on_mount(self):
        catalog_table = self.query_one("#table-catalog", DataTable)
        catalog_table.cursor_type = "row"
        catalog_table.zebra_stripes = True
        catalog_table.add_columns("Name", "Category", "Price", "Stock")

        cart_table = self.query_one("#table-cart", DataTable)
        cart_table.cursor_type = "row"
        cart_table.add_columns("Item", "Qty", "Price", "Total")

        state = self.app.state
        clock = AsyncioClock()
        self._decoder = BarcodeScanDecoder(
            clock,
            lambda: self._synchronizer.items if self._synchronizer else [],
            self.handle_scanned_item,
            self.handle_unknown_barcode,
        )
        self.query_one(SearchInput).decoder = self._decoder

        state.cart.on_change = lambda: self.post_message(CartChangedMessage())
        self._synchronizer = CatalogSynchronizer(
            SqliteCollectionFeed("products", clock),
            SqliteCollectionFeed("services", clock),
            lambda _: self.post_message(CatalogChangedMessage()),
            clock=clock,
            on_error=lambda text: self.post_message(CatalogErrorMessage(text)),
        )
        state.catalog = self._synchronizer
        self._synchronizer.start()

        self.refresh_categories()
        self.refresh_cart()
        self.query_one(SearchInput).focus()

    def on_unmount(self):
        if self._synchronizer is not None:
            self._synchronizer.stop()
        if self._decoder is not None:
            self._decoder.reset()
        self.app.state.cart.on_change = None
        self.app.state.catalog = None

    # ---------- barcode input ----------

    def on_key(self, event: events.Key) -> None:
        focused = self.focused
        if isinstance(focused, SearchInput) or self._decoder is None:
            return
        target = KeyTarget.TEXT if isinstance(focused, Input) else KeyTarget.NONE
        decision = self._decoder.feed(key_press(event, target))
        if decision.consumed:
            event.stop()
            event.prevent_default()

    def handle_scanned_item(self, item: CatalogItem) -> None:
        search = self.query_one(SearchInput)
        # characters typed before the burst was detected landed in the box
        if search.value and item.barcode and item.barcode.startswith(search.value.strip()):
            search.value = ""
        self.app.state.cart.add_item(item)
        self.notify(f"Added {item.name}")

    def handle_unknown_barcode(self, code: str) -> None:
        self.notify(f'Product with barcode "{code}" not found', severity="warning")

    # ---------- catalog ----------

    @on(CatalogChangedMessage)
    def handle_catalog_changed(self) -> None:
        self.refresh_categories()
        self.refresh_catalog()

    @on(CatalogErrorMessage)
    def handle_catalog_error(self, message: CatalogErrorMessage) -> None:
        self.notify(message.text, severity="warning")

    @on(Button.Pressed, "#btn-products")
    def handle_show_products(self) -> None:
        self.switch_kind(False)

    @on(Button.Pressed, "#btn-services")
    def handle_show_services(self) -> None:
        self.switch_kind(True)

    def switch_kind(self, services: bool) -> None:
        self._show_services = services
        self._category = ALL_CATEGORY
        self._subcategory = None
        self.query_one("#btn-products", Button).variant = "default" if services else "primary"
        self.query_one("#btn-services", Button).variant = "primary" if services else "default"
        self.refresh_categories()
        self.refresh_catalog()

    @work(exclusive=True, group="categories")
    async def refresh_categories(self) -> None:
        synchronizer = self._synchronizer
        if synchronizer is None:
            return
        categories = (
            synchronizer.service_categories
            if self._show_services
            else synchronizer.categories
        )
        rows: List[Tuple[str, Optional[str]]] = []
        labels: List[str] = []
        for category in categories:
            rows.append((category.name, None))
            labels.append(category.name)
            for sub in category.subcategories:
                rows.append((category.name, sub))
                labels.append(f"  {sub}")

        if (self._category, self._subcategory) not in rows:
            self._category, self._subcategory = ALL_CATEGORY, None
        self._category_rows = rows

        list_view = self.query_one("#list-categories", ListView)
        await list_view.clear()
        await list_view.extend([ListItem(Label(text)) for text in labels])

    @on(ListView.Selected, "#list-categories")
    def handle_category_selected(self, event: ListView.Selected) -> None:
        index = event.list_view.index
        if index is None or index >= len(self._category_rows):
            return
        self._category, self._subcategory = self._category_rows[index]
        self.refresh_catalog()

    @on(Input.Changed, "#input-search")
    def handle_search_changed(self) -> None:
        self.refresh_catalog()

    def refresh_catalog(self) -> None:
        items = self._synchronizer.items if self._synchronizer else []
        visible = filter_catalog(
            items,
            services=self._show_services,
            query=self.query_one(SearchInput).value,
            category=self._category,
            subcategory=self._subcategory,
        )
        table = self.query_one("#table-catalog", DataTable)
        table.clear()
        for item in visible:
            table.add_row(
                item.name,
                item.subcategory if item.is_service else item.category,
                format_money(item.price),
                "-" if item.is_service else str(item.stock),
                key=item.id,
            )

    @on(DataTable.RowSelected, "#table-catalog")
    def handle_catalog_row_selected(self, event: DataTable.RowSelected) -> None:
        items = self._synchronizer.items if self._synchronizer else []
        for item in items:
            if item.id == event.row_key.value:
                self.app.state.cart.add_item(item)
                return

    # ---------- cart ----------

    @on(CartChangedMessage)
    def refresh_cart(self) -> None:
        cart = self.app.state.cart
        table = self.query_one("#table-cart", DataTable)
        cursor = table.cursor_row
        table.clear()
        for line in cart.lines:
            table.add_row(
                line.item.name,
                str(line.quantity),
                format_money(line.item.price),
                format_money(line.line_total),
                key=line.item.id,
            )
        if cart.line_count:
            table.move_cursor(row=min(cursor, cart.line_count - 1))

        customer = cart.customer.name if cart.customer else "none"
        self.query_one("#label-customer", Label).update(f"Customer: {customer}")

        totals = cart.compute_totals()
        lines = [
            f"Items: {cart.item_count}",
            f"Subtotal: {format_money(totals.subtotal)}",
        ]
        if totals.discount > 0:
            lines.append(f"Discount: -{format_money(totals.discount)}")
        lines.append(f"Tax ({cart.tax_rate * 100:.2f}%): {format_money(totals.tax)}")
        lines.append(f"Total: {format_money(totals.total)}")
        self.query_one("#label-totals", Label).update("\n".join(lines))

    def selected_line_id(self) -> Optional[str]:
        cart = self.app.state.cart
        table = self.query_one("#table-cart", DataTable)
        if cart.is_empty or table.cursor_row >= cart.line_count:
            return None
        return cart.lines[table.cursor_row].item.id

    @on(Button.Pressed, "#btn-qty-up")
    def handle_qty_up(self) -> None:
        item_id = self.selected_line_id()
        if item_id is not None:
            line = self.app.state.cart.find_line(item_id)
            self.app.state.cart.set_quantity(item_id, line.quantity + 1)

    @on(Button.Pressed, "#btn-qty-down")
    def handle_qty_down(self) -> None:
        item_id = self.selected_line_id()
        if item_id is not None:
            line = self.app.state.cart.find_line(item_id)
            self.app.state.cart.set_quantity(item_id, line.quantity - 1)

    @on(Button.Pressed, "#btn-remove-line")
    def handle_remove_line(self) -> None:
        item_id = self.selected_line_id()
        if item_id is not None:
            self.app.state.cart.remove_item(item_id)

    @on(Input.Changed, "#input-discount")
    def handle_discount_changed(self, event: Input.Changed) -> None:
        amount = parse_amount(event.value)
        if amount is None:
            amount = 0.0
        try:
            self.app.state.cart.set_discount(amount)
        except PosError as e:
            self.notify(e.message, severity=e.severity)

    @on(Button.Pressed, "#btn-customer")
    @work(exclusive=True, group="customer")
    async def handle_pick_customer(self) -> None:
        choice = await self.app.push_screen_wait(CustomerModal())
        if isinstance(choice, Customer):
            self.app.state.cart.set_customer(choice)

    @on(Button.Pressed, "#btn-clear-customer")
    def handle_clear_customer(self) -> None:
        self.app.state.cart.clear_customer()

    @on(Button.Pressed, "#btn-clear-cart")
    @work(exclusive=True, group="clear-cart")
    async def handle_clear_cart(self) -> None:
        cart = self.app.state.cart
        if cart.is_empty:
            self.notify("Cart is empty.", severity="warning")
            return
        if await self.app.push_screen_wait(
            DialogModal(
                "Remove all items from the cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
                detail=f"{cart.item_count} item(s) on {cart.line_count} line(s).",
            )
        ):
            cart.clear()

    # ---------- checkout ----------

    @on(Button.Pressed, "#btn-checkout")
    @work(exclusive=True, group="checkout")
    async def handle_checkout(self) -> None:
        machine = self.app.state.checkout
        try:
            state = machine.begin()
        except PosError as e:
            self.notify(e.message, severity=e.severity)
            return

        if state is CheckoutState.CUSTOMER_PENDING:
            choice = await self.app.push_screen_wait(CustomerModal(allow_skip=True))
            if choice is None:
                machine.cancel()
                return
            if isinstance(choice, Customer):
                machine.select_customer(choice)
            else:
                machine.skip_customer()

        outcome = await self.app.push_screen_wait(CheckoutModal(machine))
        if outcome is None:
            return

        text = f"Sale completed! Transaction ID: {outcome.sale_id}"
        if outcome.sale.change_given is not None:
            text += f"\nChange: {format_money(outcome.sale.change_given)}"
        self.notify(text, timeout=8)
        if not outcome.receipt_printed:
            self.notify("Receipt could not be printed.", severity="warning")
        self.post_message(SaleCompletedMessage(outcome.sale_id))

    @on(SaleCompletedMessage)
    def handle_sale_completed(self, message: SaleCompletedMessage) -> None:
        _logger.info(f"Register ready for next sale after {message.sale_id}")
        self.query_one("#input-discount", Input).value = ""
        search = self.query_one(SearchInput)
        search.value = ""
        search.focus()

from typing import List, Optional, Union

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, ListItem, ListView, TabbedContent, TabPane

from core.customers import walk_in_customer
from db.models import Customer
from utils.errors import PosError
from utils.timers import AsyncioClock, Debouncer

SKIP = "skip"
SEARCH_DEBOUNCE_SECONDS = 0.3

CustomerChoice = Union[Customer, str, None]


class CustomerModal(ModalScreen[CustomerChoice]):
    """
    Pick a customer for the sale: search the directory, create one, or
    use a walk-in. Dismisses with the Customer, SKIP (continue without one,
    only offered during checkout) or None when cancelled.
    """

    def __init__(self, allow_skip: bool = False):
        super().__init__()
        self.allow_skip = allow_skip
        self._results: List[Customer] = []
        self._debouncer: Optional[Debouncer] = None

    def compose(self) -> ComposeResult:
        with Vertical(id="div-customer"):
            with TabbedContent(id="tabs-customer"):
                with TabPane("Search", id="tab-search"):
                    yield Input(
                        placeholder="Search by name or phone...", id="input-cust-search"
                    )
                    yield ListView(id="list-cust-results")
                with TabPane("New", id="tab-create"):
                    yield Label("Name *")
                    yield Input(placeholder="Jane Doe", id="input-cust-name")
                    yield Label("Phone *")
                    yield Input(placeholder="555-0100", id="input-cust-phone")
                    yield Label("Email")
                    yield Input(placeholder="user@example.com", id="input-cust-email")
                    yield Label("Address")
                    yield Input(placeholder="123 Main St", id="input-cust-address")
                    yield Button("Create Customer", id="btn-cust-create", variant="primary")
                with TabPane("Walk-In", id="tab-walkin"):
                    yield Label("Name (optional)")
                    yield Input(placeholder="Walk-In Customer", id="input-walkin-name")
                    yield Button("Continue with Walk-In", id="btn-walkin", variant="success")
            with Horizontal(id="div-customer-btns"):
                yield Button("Cancel", id="btn-cust-cancel")
                if self.allow_skip:
                    yield Button("No Customer", id="btn-cust-skip")

    def on_mount(self) -> None:
        self._debouncer = Debouncer(AsyncioClock(), SEARCH_DEBOUNCE_SECONDS, self.run_search)
        self.query_one("#input-cust-search").focus()

    def on_unmount(self) -> None:
        if self._debouncer is not None:
            self._debouncer.cancel()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Input.Changed, "#input-cust-search")
    def handle_search_changed(self, event: Input.Changed) -> None:
        self._debouncer.push(event.value)

    @work(exclusive=True, group="customer-search")
    async def run_search(self, query: str) -> None:
        try:
            self._results = await self.app.state.directory.search(query)
        except PosError as e:
            self.notify(e.message, severity=e.severity)
            self._results = []

        list_view = self.query_one("#list-cust-results", ListView)
        await list_view.clear()
        await list_view.extend(
            [ListItem(Label(f"{c.name}  {c.phone}")) for c in self._results]
        )

    @on(ListView.Selected, "#list-cust-results")
    def handle_result_selected(self, event: ListView.Selected) -> None:
        index = event.list_view.index
        if index is not None and 0 <= index < len(self._results):
            self.dismiss(self._results[index])

    @on(Button.Pressed, "#btn-cust-create")
    @work(exclusive=True)
    async def handle_create(self) -> None:
        values = {
            key: self.query_one(f"#input-cust-{key}", Input).value
            for key in ("name", "phone", "email", "address")
        }
        if not values["name"].strip() or not values["phone"].strip():
            self.notify("Name and phone are required.", severity="error")
            return

        customer, created = await self.app.state.directory.create_or_keep_local(
            values["name"], values["phone"], values["email"], values["address"]
        )
        if not created:
            self.notify(
                "Customer saved for this sale only; the directory is unreachable.",
                severity="warning",
            )
        self.dismiss(customer)

    @on(Button.Pressed, "#btn-walkin")
    def handle_walk_in(self) -> None:
        name = self.query_one("#input-walkin-name", Input).value
        self.dismiss(walk_in_customer(name))

    @on(Button.Pressed, "#btn-cust-skip")
    def handle_skip(self) -> None:
        self.dismiss(SKIP)

    @on(Button.Pressed, "#btn-cust-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import db.crud as crud
from core.cart import Cart
from core.catalog import CatalogSynchronizer
from core.checkout import CheckoutMachine
from core.customers import CustomerDirectory
from core.identity import Identity, IdentityProvider
from db.models import Employee
from utils.receipt import ReceiptPrinter
from utils.settings import CrudSettingsStore, SettingsStore, TerminalSettings


@dataclass
class TerminalState:
    """
    Centralized terminal state shared by screens.

    Fields:
      - employee: operator signed in on this terminal, None before login
      - identity: identity provider the checkout waits on
      - settings: auto walk-in / default tax rate, loaded once at startup
      - cart: the one cart on this terminal
      - checkout: checkout state machine bound to the cart
      - catalog: synchronizer, set up by the app once the loop runs
    """

    identity: IdentityProvider = field(default_factory=IdentityProvider)
    settings: TerminalSettings = field(default_factory=TerminalSettings)
    store: SettingsStore = field(default_factory=CrudSettingsStore)
    directory: CustomerDirectory = field(default_factory=CustomerDirectory)
    cart: Cart = field(default_factory=Cart)
    checkout: Optional[CheckoutMachine] = None
    catalog: Optional[CatalogSynchronizer] = None
    employee: Optional[Employee] = None

    def __post_init__(self):
        if self.checkout is None:
            self.checkout = CheckoutMachine(
                self.cart, crud.create_pending_sale, self.identity, ReceiptPrinter()
            )

    async def load_settings(self) -> None:
        await self.settings.load(self.store)
        self.cart.set_tax_rate(self.settings.default_tax_rate)
        # attach nothing yet; the walk-in is applied when the first item lands
        self.cart.auto_walk_in = self.settings.auto_walk_in

    async def save_settings(self) -> None:
        await self.settings.save(self.store)

    async def login(self, uid: str, pwd: str) -> Optional[Employee]:
        """Sign the operator in; returns None on bad credentials."""
        employee = await crud.login(uid, pwd)
        if employee is None:
            return None
        self.employee = employee
        self.identity.set(
            Identity(uid=employee.uid, email=employee.email, anonymous=employee.anonymous)
        )
        return employee

    def logout(self) -> None:
        self.employee = None
        self.identity.clear()

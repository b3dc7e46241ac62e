from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the operator logs out
    """

    bubble = True


class CatalogChangedMessage(Message):
    """
    Posted to the register screen by the catalog synchronizer callback.
    The register screen rebuilds its category list and product table.
    """

    bubble = True


class CatalogErrorMessage(Message):
    """
    A catalog feed failed; the last known items stay on screen.
    """

    bubble = True

    def __init__(self, text: str) -> None:
        super().__init__()
        self.text = text


class CartChangedMessage(Message):
    """
    Fired by the cart's on_change hook after any mutation
    (lines, discount, tax rate, customer). Refreshes the cart panel and totals.
    """

    bubble = True


class SaleCompletedMessage(Message):
    """
    Fired when a pending sale was written.
    """

    bubble = True

    def __init__(self, sale_id: str) -> None:
        super().__init__()
        self.sale_id = sale_id

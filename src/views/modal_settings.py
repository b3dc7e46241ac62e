from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Switch

from utils.logger import get_logger
from utils.pure import parse_percent

_logger = get_logger(__name__)


class SettingsModal(ModalScreen[None]):
    """
    Terminal settings. Every change is applied to the cart and saved at once.
    """

    def compose(self) -> ComposeResult:
        settings = self.app.state.settings
        with Vertical(id="div-settings"):
            yield Label("Terminal Settings", id="label-settings-title")
            with Horizontal(classes="settings-row"):
                yield Label("Auto walk-in customer")
                yield Switch(value=settings.auto_walk_in, id="switch-walk-in")
            with Horizontal(classes="settings-row"):
                yield Label("Default tax rate (%)")
                yield Input(
                    f"{settings.default_tax_rate * 100:.2f}",
                    id="input-tax-rate",
                    type="number",
                )
            yield Button("Close", id="btn-close", variant="primary")

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss()

    @on(Switch.Changed, "#switch-walk-in")
    def handle_walk_in(self, event: Switch.Changed) -> None:
        self.app.state.settings.auto_walk_in = event.value
        self.app.state.cart.set_auto_walk_in(event.value)
        self.save()

    @on(Input.Changed, "#input-tax-rate")
    def handle_tax_rate(self, event: Input.Changed) -> None:
        rate = parse_percent(event.value)
        if rate is None:
            return
        self.app.state.settings.default_tax_rate = rate
        self.app.state.cart.set_tax_rate(rate)
        self.save()

    @work(exclusive=True, group="settings-save")
    async def save(self) -> None:
        try:
            await self.app.state.save_settings()
        except Exception as e:
            _logger.error(f"Error saving settings: {e}")
            self.notify("Settings could not be saved.", severity="error")

    @on(Button.Pressed, "#btn-close")
    def handle_close(self) -> None:
        self.dismiss()

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from utils.logger import get_logger
from utils.messages import QuitRequestedMessage, UserLogoutMessage
from utils.state import TerminalState
from views.scr_login import LoginScreen
from views.scr_register import RegisterScreen

_logger = get_logger(__name__)


class PosApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    CSS = """
    Sidebar {
        dock: left;
        width: 30;
        padding: 1;
        border-right: solid $primary;
    }
    #div-login {
        width: 50;
        height: auto;
        margin: 2 4;
    }
    #div-register {
        height: 1fr;
    }
    #div-catalog {
        width: 2fr;
    }
    #div-kind, #div-line-actions, #div-customer-row, #div-discount-row, #div-cart-btns {
        height: auto;
    }
    #list-categories {
        width: 26;
    }
    #div-cart {
        width: 1fr;
        padding: 0 1;
        border-left: solid $primary;
    }
    #table-cart {
        height: 1fr;
    }
    #input-discount {
        width: 14;
    }
    #div-dialog, #div-checkout, #div-customer, #div-settings {
        width: 72;
        height: auto;
        max-height: 90%;
        padding: 1 2;
        border: thick $primary;
        background: $surface;
    }
    DialogModal, CheckoutModal, CustomerModal, SettingsModal {
        align: center middle;
    }
    #div-checkout MarkdownViewer {
        height: 18;
    }
    #div-methods, #div-checkout-btns, #div-customer-btns, .settings-row {
        height: auto;
    }
    #list-cust-results {
        height: 10;
    }
    """

    state: TerminalState

    def __init__(self):
        super().__init__()
        self.state = TerminalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        try:
            await self.state.load_settings()
        except Exception as e:
            _logger.error(f"Error loading terminal settings, using defaults: {e}")
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        self.state.logout()
        self.notify("Logout successful.")
        await self.pop_screen()
        self.main_flow()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.exit()

    @work(exclusive=True)
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        await self.push_screen(RegisterScreen())


def main() -> None:
    PosApp().run()


if __name__ == "__main__":
    main()

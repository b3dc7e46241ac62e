from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label

from utils.logger import get_logger
from views.base_screen import BaseScreen
from views.modal_dialog import QuitDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Operator sign-in. Dismisses once the identity is set.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-login"):
            yield Label("Operator ID")
            yield Input(placeholder="cashier1", id="input-login-uid")
            yield Label("Password")
            yield Input(placeholder="*********", password=True, id="input-login-pwd")
            with Horizontal(id="div-login-btns"):
                yield Button("Quit", id="btn-quit")
                yield Button("Login", id="btn-login", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-uid").focus()

    def on_key(self, event: Key) -> None:
        if event.key == "enter" and self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        uid = self.query_one("#input-login-uid", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value.strip()

        if not uid or not pwd:
            self.notify("Operator ID or password cannot be empty!", severity="error")
            return

        try:
            employee = await self.app.state.login(uid, pwd)
        except Exception as e:
            _logger.error(f"Login failed: {e}")
            self.notify("Could not reach the store database.", severity="error")
            return

        if employee:
            self.notify(f"Hello {employee.uid}!")
            self.dismiss()
        else:
            self.notify("Invalid operator ID or password.", severity="error")
            input_login_pwd = self.query_one("#input-login-pwd", Input)
            input_login_pwd.value = ""
            input_login_pwd.focus()
            input_login_pwd.add_class("-invalid")

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())

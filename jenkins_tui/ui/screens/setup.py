"""
SetupScreen: first-run form for the Jenkins connection.

Widget tree::

    Header
    #setup-root  (Container)
      #setup-title        (Label)
      Input #setup-url / #setup-user / #setup-token
      #setup-result       (Label)
      .setup-nav          (Container, Test Connection & Save button)
    Footer

The screen only collects values; validation, the connection test and
saving the config are done by the controller, which reports back through
``update_form``.
"""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.message import Message
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Input, Label

from ...setup_form import SetupForm


class SetupScreen(Screen):
    """Collects URL, username and API token."""

    class Submitted(Message):
        """The user asked to test and save the entered values."""

        def __init__(self, base_url: str, username: str, token: str) -> None:
            super().__init__()
            self.base_url = base_url
            self.username = username
            self.token = token

    def __init__(self, form: SetupForm) -> None:
        super().__init__()
        self._form = form

    def compose(self) -> ComposeResult:
        yield Header(show_clock=False)
        with Container(id="setup-root"):
            yield Label("Jenkins TUI Setup", id="setup-title")
            yield Label("Jenkins URL", classes="field-label")
            yield Input(value=self._form.base_url, placeholder="https://jenkins.example.com", id="setup-url")
            yield Label("Username", classes="field-label")
            yield Input(value=self._form.username, id="setup-user")
            yield Label("API token", classes="field-label")
            yield Input(value=self._form.token, password=True, id="setup-token")
            yield Label("", id="setup-result")
            with Container(classes="setup-nav"):
                yield Button("Test Connection & Save", id="btn-save", variant="success")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#setup-url", Input).focus()
        self.update_form(self._form)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-save":
            self._submit()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "setup-token":
            self._submit()
        else:
            self.focus_next()

    def _submit(self) -> None:
        if self._form.testing:
            return
        self.post_message(self.Submitted(
            self.query_one("#setup-url", Input).value,
            self.query_one("#setup-user", Input).value,
            self.query_one("#setup-token", Input).value,
        ))

    def update_form(self, form: SetupForm) -> None:
        self._form = form
        result = self.query_one("#setup-result", Label)
        button = self.query_one("#btn-save", Button)
        button.disabled = form.testing
        result.remove_class("setup-error", "setup-ok")
        if form.testing:
            result.update("Testing connection…")
        elif form.error:
            result.update(form.result or form.error)
            result.add_class("setup-error")
        else:
            result.update(form.result)
            if form.result:
                result.add_class("setup-ok")

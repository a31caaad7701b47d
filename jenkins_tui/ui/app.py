"""Jenkins TUI: Textual app.

Launch with: jenkins-tui (or python -m jenkins_tui)

The app is a thin shell around ``AppController``: key presses and timer
ticks become Messages, Commands returned by the controller run in thread
workers, and every delivered Message is followed by a re-render.
"""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.events import Key
from textual.widgets import Footer, Header, Static

from ..commands import Command
from ..config import Profile, save_config
from ..controller import AppController
from ..messages import AutoRefreshTick, KeyPressed, Message, SetupSubmitted
from ..state import AppState
from .render import render_footer, render_help, render_tab, render_tab_bar
from .screens.setup import SetupScreen
from .widgets.status_badge import StatusBadge

logger = logging.getLogger(__name__)


class JenkinsTUI(App):
    """Dashboard, Views and Builds tabs over one Jenkins server."""

    CSS_PATH = Path(__file__).parent / "styles" / "app.tcss"

    TITLE = "Jenkins"
    SUB_TITLE = "TUI"

    # Priority so they reach the controller before focus handling or
    # Textual's own quit binding; disabled on the setup screen via check_action.
    BINDINGS = [
        Binding("ctrl+c", "forward_key('ctrl+c')", "Quit", show=False, priority=True),
        Binding("tab", "forward_key('tab')", "Next tab", show=False, priority=True),
        Binding("shift+tab", "forward_key('shift+tab')", "Previous tab", show=False, priority=True),
    ]

    def __init__(self, profile: Profile, config_path: Path | None = None, **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.controller = AppController(
            profile,
            arm_refresh=self._arm_refresh,
            config_saver=partial(save_config, path=config_path),
        )
        self._setup_screen: SetupScreen | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="tab-bar"):
            yield Static("", id="tabs")
            yield StatusBadge("loading", id="badge")
        with Container(id="body"):
            yield Static("", id="content")
        yield Static("", id="status-line")
        yield Footer()

    def on_mount(self) -> None:
        # Widgets of the main screen; the setup screen may be on top when rendering
        self._content_view = self.query_one("#content", Static)
        self._status_line = self.query_one("#status-line", Static)
        self._tab_bar = self.query_one("#tabs", Static)
        self._status_badge = self.query_one("#badge", StatusBadge)
        self._run(self.controller.start())
        self._render()

    # ------------------------------------------------------------------
    # Controller plumbing
    # ------------------------------------------------------------------

    def _run(self, commands: list[Command]) -> None:
        for command in commands:
            self._execute(command)

    @work(thread=True)
    def _execute(self, command: Command) -> None:
        """Run one Command off the UI thread and hand its Message back."""
        message = command.execute()
        self.call_from_thread(self._deliver, message)

    def _deliver(self, message: Message) -> None:
        """Apply a Message on the UI thread."""
        try:
            commands = self.controller.handle(message)
        except Exception:
            logger.exception("Failed to handle %s", type(message).__name__)
            self.notify("Internal error, see the log file", severity="error", timeout=4)
            return
        self._run(commands)
        for text, severity in self.controller.drain_notices():
            self.notify(text, severity=severity, timeout=4)
        if self.controller.terminated:
            self.exit()
            return
        self._render()

    def _arm_refresh(self, delay: float, generation: int) -> None:
        self.set_timer(delay, lambda: self._deliver(AutoRefreshTick(generation=generation)))

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def check_action(self, action: str, parameters: tuple[object, ...]) -> bool | None:
        if action == "forward_key" and self.controller.state is AppState.SETUP:
            return parameters == ("ctrl+c",)
        return True

    def action_forward_key(self, key: str) -> None:
        self._deliver(KeyPressed(key=key))

    def on_key(self, event: Key) -> None:
        if self.controller.state is AppState.SETUP:
            return
        key = event.character if event.is_printable and event.character else event.key
        event.stop()
        self._deliver(KeyPressed(key=key, character=event.character))

    def on_setup_screen_submitted(self, event: SetupScreen.Submitted) -> None:
        self._deliver(SetupSubmitted(base_url=event.base_url, username=event.username, token=event.token))

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _render(self) -> None:
        controller = self.controller
        state = controller.state

        if state is AppState.SETUP:
            if self._setup_screen is None:
                self._setup_screen = SetupScreen(controller.form)
                self.push_screen(self._setup_screen)
            elif self._setup_screen.is_mounted:
                self._setup_screen.update_form(controller.form)
            return
        if self._setup_screen is not None:
            self._setup_screen = None
            self.pop_screen()

        content, status, badge = self._content_view, self._status_line, self._status_badge
        self._tab_bar.update(render_tab_bar(controller.active_tab))

        if state is AppState.LOADING:
            badge.set_status("loading")
            content.update(f"Connecting to {controller.profile.base_url}…")
            status.update("")
            return
        if state is AppState.ERROR:
            badge.set_status("error")
            content.update(
                f"Error: {controller.error}\n\n"
                "Press r to retry, q to quit. Check the config file if the problem persists."
            )
            status.update("")
            return

        tab = controller.active
        if tab.loading:
            badge.set_status("loading")
        elif tab.last_error is not None:
            badge.set_status("error")
        else:
            badge.set_status("live" if controller.refresh.enabled else "paused")
        content.update(render_help() if controller.show_help else render_tab(tab))
        status.update(render_footer(tab))

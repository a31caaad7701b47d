"""Application controller: lifecycle state machine and message routing.

    SETUP --check ok--> LOADING --client ready--> READY
                           |                        ^
                      client failed                 |
                           v                        |
                         ERROR ------- r ------> LOADING

The controller never blocks: everything that touches the network is
returned as a Command for the UI to run in a worker. Each Command's Message
comes back through ``handle`` on the UI thread, one at a time.
"""

from __future__ import annotations

import logging
from functools import singledispatchmethod
from typing import Callable

from jenkins_sdk import JenkinsClient, JenkinsError

from .browser import open_url
from .commands import Command
from .config import Profile, build_client, save_config
from .messages import (
    AutoRefreshTick,
    ClientFailed,
    ClientReady,
    CommandFailed,
    KeyPressed,
    Message,
    SetupChecked,
    SetupSubmitted,
    TabData,
)
from .refresh import AutoRefreshScheduler
from .setup_form import SetupForm
from .state import TAB_ORDER, AppState, TabID
from .tabs import BuildsTab, DashboardTab, TabController, ViewsTab

logger = logging.getLogger(__name__)

TAB_KEYS = {"1": TabID.DASHBOARD, "2": TabID.VIEWS, "3": TabID.BUILDS}

TAB_CLASSES: dict[TabID, type[TabController]] = {
    TabID.DASHBOARD: DashboardTab,
    TabID.VIEWS: ViewsTab,
    TabID.BUILDS: BuildsTab,
}


class AppController:
    """Owns application state; turns Messages into state changes and Commands.

    Args:
        profile: Loaded configuration profile.
        arm_refresh: ``arm(delay, generation)`` timer hook for auto-refresh.
        client_factory: Builds a client from a profile (network-free).
        config_saver: Persists a profile completed in setup.
        opener: Opens URLs in a browser.
    """

    def __init__(
        self,
        profile: Profile,
        arm_refresh: Callable[[float, int], None],
        client_factory: Callable[[Profile], JenkinsClient] = build_client,
        config_saver: Callable[[Profile], object] = save_config,
        opener: Callable[[str], bool] = open_url,
    ) -> None:
        self.profile = profile
        self.state = AppState.SETUP
        self.error: Exception | None = None
        self.terminated = False
        self.show_help = False
        self.form = SetupForm(base_url=profile.base_url, username=profile.username)
        self.client: JenkinsClient | None = None
        self.tabs: dict[TabID, TabController] = {}
        self.active_tab = TabID.DASHBOARD
        self.refresh = AutoRefreshScheduler(profile.refresh_interval, arm_refresh)
        self._client_factory = client_factory
        self._config_saver = config_saver
        self._opener = opener

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> list[Command]:
        if self.profile.is_configured:
            return self._begin_loading()
        logger.info("No complete profile, starting setup")
        self.state = AppState.SETUP
        return []

    def _begin_loading(self) -> list[Command]:
        self.state = AppState.LOADING
        self.error = None
        profile = self.profile
        factory = self._client_factory

        def connect() -> Message:
            client = None
            try:
                client = factory(profile)
                client.test_connection()
            except JenkinsError as exc:
                logger.error("Could not connect to %s: %s", profile.base_url, exc)
                if client is not None:
                    client.close()
                return ClientFailed(error=exc)
            return ClientReady(client=client)

        return [Command("connect", connect)]

    def _become_ready(self, client: JenkinsClient) -> list[Command]:
        if self.client is not None and self.client is not client:
            self.client.close()
        self.client = client
        self.state = AppState.READY
        self.tabs = {
            tab: cls(client, self.profile, opener=self._opener)
            for tab, cls in TAB_CLASSES.items()
        }
        commands = self.tabs[self.active_tab].load()
        self.refresh.start()
        return commands

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def active(self) -> TabController | None:
        return self.tabs.get(self.active_tab)

    def drain_notices(self) -> list[tuple[str, str]]:
        notices = []
        for tab in self.tabs.values():
            notices.extend(tab.drain_notices())
        return notices

    # ------------------------------------------------------------------
    # Message handling
    # ------------------------------------------------------------------

    def handle(self, message: Message) -> list[Command]:
        """Apply one message; returns the Commands to run next."""
        try:
            return self._dispatch(message)
        finally:
            # A handler that raises still settles its command
            if message.command_id is not None:
                self.refresh.settled(message.command_id)

    @singledispatchmethod
    def _dispatch(self, message: Message) -> list[Command]:
        raise TypeError(f"Unhandled message type: {type(message).__name__}")

    @_dispatch.register
    def _(self, message: KeyPressed) -> list[Command]:
        return self._handle_key(message.key, message.character)

    @_dispatch.register
    def _(self, message: SetupSubmitted) -> list[Command]:
        if self.state is not AppState.SETUP:
            logger.debug("Ignoring setup submission in state %s", self.state.value)
            return []
        self.form = self.form.with_values(message.base_url, message.username, message.token)
        problem = self.form.validate()
        if problem:
            self.form.error = problem
            self.form.result = problem
            return []

        self.form.testing = True
        profile = self.form.to_profile(self.profile)
        factory = self._client_factory

        def check() -> Message:
            try:
                client = factory(profile)
                try:
                    info = client.test_connection()
                finally:
                    client.close()
            except JenkinsError as exc:
                return SetupChecked(profile=profile, error=exc)
            return SetupChecked(profile=profile, info=info)

        return [Command("setup-check", check)]

    @_dispatch.register
    def _(self, message: SetupChecked) -> list[Command]:
        if self.state is not AppState.SETUP:
            logger.debug("Ignoring setup check result in state %s", self.state.value)
            return []
        self.form.testing = False
        if message.error is not None:
            self.form.error = str(message.error)
            self.form.result = f"Connection failed: {message.error}"
            return []

        self.form.result = "Connection successful!"
        self.profile = message.profile
        self.refresh.interval = self.profile.refresh_interval
        try:
            self._config_saver(self.profile)
        except (OSError, ValueError) as exc:
            logger.error("Could not save config: %s", exc)
            self.state = AppState.ERROR
            self.error = exc
            return []
        return self._begin_loading()

    @_dispatch.register
    def _(self, message: ClientReady) -> list[Command]:
        if self.state is not AppState.LOADING:
            logger.debug("Ignoring client in state %s", self.state.value)
            message.client.close()
            return []
        return self._become_ready(message.client)

    @_dispatch.register
    def _(self, message: ClientFailed) -> list[Command]:
        if self.state is not AppState.LOADING:
            logger.debug("Ignoring client failure in state %s", self.state.value)
            return []
        self.state = AppState.ERROR
        self.error = message.error
        return []

    @_dispatch.register
    def _(self, message: AutoRefreshTick) -> list[Command]:
        if self.state is not AppState.READY or not self.refresh.accept_tick(message.generation):
            return []
        commands = self.tabs[self.active_tab].load()
        logger.debug("Auto-refresh of %s: %d commands", self.active_tab.value, len(commands))
        self.refresh.tick_dispatched(c.id for c in commands)
        return commands

    @_dispatch.register
    def _(self, message: TabData) -> list[Command]:
        tab = self.tabs.get(message.tab)
        if tab is None:
            logger.debug("Dropping %s data: tabs not initialised", message.tab.value)
            return []
        return tab.apply(message)

    @_dispatch.register
    def _(self, message: CommandFailed) -> list[Command]:
        if message.tab is not None and message.tab in self.tabs:
            self.tabs[message.tab].apply_failure(message)
        elif self.state is AppState.SETUP:
            self.form.testing = False
            self.form.error = self.form.result = f"Connection failed: {message.error}"
        elif self.state is AppState.LOADING:
            self.state = AppState.ERROR
            self.error = message.error
        else:
            logger.error("Command %s failed: %s", message.name, message.error)
        return []

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def _handle_key(self, key: str, character: str | None) -> list[Command]:
        if key == "ctrl+c":
            self.terminated = True
            return []

        if self.state is AppState.SETUP:
            # Typing goes to the setup form, so 'q' is just a letter here
            return []

        searching = self.active is not None and self.active.searching
        if key == "q" and not searching:
            self.terminated = True
            return []

        if self.state is AppState.ERROR:
            if key == "r":
                return self._begin_loading()
            return []

        if self.state is not AppState.READY:
            return []

        if searching:
            return self.active.handle_key(key, character)

        if self.show_help:
            if key in ("?", "escape"):
                self.show_help = False
            return []

        if key == "?":
            self.show_help = True
            return []
        if key == "ctrl+r":
            self.refresh.toggle()
            return []
        if key in TAB_KEYS:
            return self.switch_tab(TAB_KEYS[key])
        if key == "tab":
            return self.switch_tab(TAB_ORDER[(TAB_ORDER.index(self.active_tab) + 1) % len(TAB_ORDER)])
        if key == "shift+tab":
            return self.switch_tab(TAB_ORDER[(TAB_ORDER.index(self.active_tab) - 1) % len(TAB_ORDER)])

        return self.active.handle_key(key, character)

    def switch_tab(self, tab: TabID) -> list[Command]:
        self.active_tab = tab
        controller = self.tabs[tab]
        if controller.loaded:
            return []
        return controller.load()

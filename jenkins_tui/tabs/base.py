"""Base class for all tab sub-controllers.

A tab owns a stack of levels (list -> detail -> ...). Entering an item
pushes a level and fetches its data; ``escape`` pops exactly one level and
drops the data that level held. Fetches run as Commands; their TabData
messages come back through ``apply`` and are matched to the level they were
issued for by (mode, key), so an answer for a level the user already left
is discarded instead of overwriting newer state.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from jenkins_sdk import JenkinsClient

from ..browser import open_url
from ..commands import FETCH_TIMEOUT, Command, fetch
from ..config import Profile
from ..messages import CommandFailed, TabData
from ..projections import PAGE_SIZE, clamp_index, filter_by_name, next_match, search_lines
from ..state import TabID

logger = logging.getLogger(__name__)


@dataclass
class Level:
    """One step of a tab's navigation stack and the data fetched for it."""

    mode: Enum
    key: Any = None
    data: Any = None
    selected: int = 0
    filter_text: str = ""
    loading: bool = False
    error: Exception | None = None
    updated_at: float | None = None
    matches: list[int] = field(default_factory=list)


class TabController:
    """Shared navigation, search and fetch bookkeeping.

    Subclasses set ``tab``, ``ROOT_MODE`` and ``KIND_MODES`` (fetch kind ->
    the mode whose level receives it) and implement ``_fetch_level``,
    ``items`` and ``item_name``.
    """

    tab: TabID
    ROOT_MODE: Enum
    KIND_MODES: dict[str, Enum] = {}
    LOG_MODES: frozenset = frozenset()

    def __init__(
        self,
        client: JenkinsClient,
        profile: Profile,
        opener: Callable[[str], bool] = open_url,
    ) -> None:
        self.client = client
        self.profile = profile
        self._open = opener
        self.stack: list[Level] = [Level(self.ROOT_MODE)]
        self.searching = False
        self.loaded = False
        self.last_error: Exception | None = None
        self.last_update: float | None = None
        self.notices: list[tuple[str, str]] = []

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def level(self) -> Level:
        return self.stack[-1]

    @property
    def mode(self) -> Enum:
        return self.level.mode

    @property
    def loading(self) -> bool:
        return any(level.loading for level in self.stack)

    @property
    def in_log(self) -> bool:
        return self.mode in self.LOG_MODES

    def items(self, level: Level) -> list:
        """All items a level lists (before filtering)."""
        return []

    def item_name(self, item: Any) -> str:
        return getattr(item, "name", str(item))

    def item_url(self, item: Any) -> str:
        return getattr(item, "url", "")

    def visible_items(self, level: Level | None = None) -> list:
        level = level or self.level
        if level.mode in self.LOG_MODES:
            return self.items(level)
        return filter_by_name(self.items(level), level.filter_text, self.item_name)

    def selected_item(self) -> Any | None:
        visible = self.visible_items()
        if not visible:
            return None
        return visible[clamp_index(self.level.selected, len(visible))]

    def current_url(self) -> str:
        """URL opened by 'o' at the current level."""
        item = self.selected_item()
        return self.item_url(item) if item is not None else ""

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> list[Command]:
        """Fetch (or re-fetch) the data of the level the user is on."""
        self.loaded = True
        return self._fetch_level(self.level)

    def _fetch_level(self, level: Level) -> list[Command]:
        raise NotImplementedError

    def _issue(self, level: Level, kind: str, fn: Callable[..., Any]) -> Command:
        level.loading = True
        client = self.client
        # One budget for everything the fetch does, counted from when it runs
        return fetch(
            self.tab, kind, lambda: fn(deadline=client.deadline(FETCH_TIMEOUT)), key=level.key
        )

    def enter(self, mode: Enum, key: Any) -> list[Command]:
        """Push a new level and fetch it."""
        self.searching = False
        level = Level(mode, key)
        self.stack.append(level)
        return self._fetch_level(level)

    def back(self) -> bool:
        """Pop one level; False when already at the root."""
        if len(self.stack) == 1:
            return False
        self.stack.pop()
        self.searching = False
        return True

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def apply(self, message: TabData) -> list[Command]:
        mode = self.KIND_MODES.get(message.kind)
        if mode is None:
            return self._apply_other(message)

        level = self._find_level(mode, message.key)
        if level is None:
            logger.debug("Dropping %s for %r: no longer displayed", message.kind, message.key)
            return []

        level.loading = False
        if message.error is not None:
            level.error = message.error
            self.last_error = message.error
            return []

        level.data = self._prepare(message.kind, message.payload)
        level.error = None
        level.updated_at = self.last_update = time.time()
        self.last_error = None
        self._after_data(level)
        level.selected = clamp_index(level.selected, len(self.visible_items(level)))
        return []

    def apply_failure(self, message: CommandFailed) -> None:
        for level in self.stack:
            level.loading = False
        self.level.error = message.error
        self.last_error = message.error

    def _find_level(self, mode: Enum, key: Any) -> Level | None:
        for level in self.stack:
            if level.mode is mode and level.key == key:
                return level
        return None

    def _prepare(self, kind: str, payload: Any) -> Any:
        return payload

    def _after_data(self, level: Level) -> None:
        pass

    def _apply_other(self, message: TabData) -> list[Command]:
        logger.warning("%s tab got unknown data kind %r", self.tab.value, message.kind)
        return []

    def notify(self, text: str, severity: str = "information") -> None:
        self.notices.append((text, severity))

    def drain_notices(self) -> list[tuple[str, str]]:
        notices, self.notices = self.notices, []
        return notices

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def handle_key(self, key: str, character: str | None = None) -> list[Command]:
        if self.searching:
            self._handle_search_key(key, character)
            return []

        level = self.level
        if key == "/":
            self.searching = True
            level.filter_text = ""
            level.matches = []
        elif key == "escape":
            self.back()
        elif key == "backspace":
            level.filter_text = ""
            level.matches = []
        elif key in ("down", "j"):
            self._move(1)
        elif key in ("up", "k"):
            self._move(-1)
        elif key in ("g", "home"):
            level.selected = 0
        elif key in ("G", "end"):
            level.selected = max(0, len(self.visible_items()) - 1)
        elif key in ("pagedown", "ctrl+f"):
            self._move(PAGE_SIZE)
        elif key in ("pageup", "ctrl+b"):
            self._move(-PAGE_SIZE)
        elif key in ("n", "N") and self.in_log:
            target = next_match(level.matches, level.selected, backwards=key == "N")
            if target is not None:
                level.selected = target
        elif key == "r":
            return self.load()
        elif key == "o":
            url = self.current_url()
            if url:
                self._open(url)
        elif key == "enter":
            return self.select()
        else:
            return self.handle_tab_key(key)
        return []

    def handle_tab_key(self, key: str) -> list[Command]:
        """Keys specific to one tab."""
        return []

    def select(self) -> list[Command]:
        """Enter the selected item."""
        return []

    def _move(self, delta: int) -> None:
        self.level.selected = clamp_index(self.level.selected + delta, len(self.visible_items()))

    def _handle_search_key(self, key: str, character: str | None) -> None:
        level = self.level
        if key == "escape":
            self.searching = False
            level.filter_text = ""
            level.matches = []
        elif key == "enter":
            self.searching = False
            if self.in_log:
                level.matches = search_lines(self._log_text(level), level.filter_text)
                if level.matches:
                    level.selected = level.matches[0]
        elif key == "backspace":
            level.filter_text = level.filter_text[:-1]
        elif character and character.isprintable():
            level.filter_text += character
        if not self.in_log:
            level.selected = clamp_index(level.selected, len(self.visible_items()))

    def _log_text(self, level: Level) -> str:
        return level.data if isinstance(level.data, str) else ""

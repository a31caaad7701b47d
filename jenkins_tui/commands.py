"""Commands: units of blocking work run off the UI thread.

A Command wraps a callable that performs network I/O and returns one
Message. The UI runs ``execute()`` in a thread worker and hands the result
back to the controller on the UI thread.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import replace
from typing import Any, Callable

from jenkins_sdk import JenkinsError

from .messages import CommandFailed, Message, TabData
from .state import TabID

logger = logging.getLogger(__name__)

# Per-fetch timeout for tab data, in seconds
FETCH_TIMEOUT = 30.0

_ids = itertools.count(1)


class Command:
    """A named unit of work that always yields exactly one Message."""

    def __init__(self, name: str, fn: Callable[[], Message], tab: TabID | None = None):
        self.id = next(_ids)
        self.name = name
        self.fn = fn
        self.tab = tab

    def __repr__(self) -> str:
        return f"Command({self.id}, {self.name!r})"

    def execute(self) -> Message:
        try:
            message = self.fn()
        except Exception as exc:
            logger.exception("Command %s crashed", self.name)
            message = CommandFailed(name=self.name, tab=self.tab, error=exc)
        return replace(message, command_id=self.id)


def fetch(tab: TabID, kind: str, fn: Callable[[], Any], key: Any = None) -> Command:
    """Command that runs fn and wraps its result (or client error) as TabData."""

    def run() -> Message:
        try:
            payload = fn()
        except JenkinsError as exc:
            logger.warning("%s %s fetch failed: %s", tab.value, kind, exc)
            return TabData(tab=tab, kind=kind, key=key, error=exc)
        return TabData(tab=tab, kind=kind, key=key, payload=payload)

    return Command(f"{tab.value}:{kind}", run, tab)

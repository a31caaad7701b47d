"""Messages delivered to the application controller.

A message is the single result of a Command, or an input event (key press,
refresh tick). Messages are processed one at a time on the UI thread.
``command_id`` is stamped by the Command that produced the message and is
None for input events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from jenkins_sdk import JenkinsClient
from jenkins_sdk.models import RootInfo

from .config import Profile
from .state import TabID


@dataclass(frozen=True)
class Message:
    command_id: int | None = field(default=None, kw_only=True)


@dataclass(frozen=True)
class KeyPressed(Message):
    key: str
    character: str | None = None


@dataclass(frozen=True)
class SetupSubmitted(Message):
    base_url: str
    username: str
    token: str


@dataclass(frozen=True)
class SetupChecked(Message):
    """Result of testing the connection with the profile entered in setup."""

    profile: Profile
    info: RootInfo | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class ClientReady(Message):
    client: JenkinsClient


@dataclass(frozen=True)
class ClientFailed(Message):
    error: Exception


@dataclass(frozen=True)
class AutoRefreshTick(Message):
    generation: int


@dataclass(frozen=True)
class TabData(Message):
    """Payload (or error) of one fetch issued by a tab.

    ``kind`` names the fetch ("jobs", "job_detail", ...); ``key``
    identifies what was fetched (a view name, a job name, a build number)
    so a late answer for something the user already left can be dropped.
    """

    tab: TabID
    kind: str
    key: Any = None
    payload: Any = None
    error: Exception | None = None


@dataclass(frozen=True)
class CommandFailed(Message):
    """A Command raised something it did not expect."""

    name: str
    tab: TabID | None
    error: Exception

"""Application lifecycle and tab identifiers."""

from __future__ import annotations

from enum import Enum


class AppState(Enum):
    SETUP = "setup"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class TabID(Enum):
    DASHBOARD = "dashboard"
    VIEWS = "views"
    BUILDS = "builds"

    @property
    def title(self) -> str:
        return self.value.capitalize()


TAB_ORDER: list[TabID] = [TabID.DASHBOARD, TabID.VIEWS, TabID.BUILDS]

"""Status badges for build results and the connection indicator."""

from __future__ import annotations

from rich.text import Text
from textual.widgets import Static

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

# Build result / stage status -> (badge text, color)
_RESULT_BADGES: dict[str, tuple[str, str]] = {
    "SUCCESS": ("OK", "#66bb6a"),
    "FAILURE": ("FAIL", "#ef5350"),
    "FAILED": ("FAIL", "#ef5350"),
    "UNSTABLE": ("UNST", "#ffa726"),
    "ABORTED": ("ABRT", "#9e9e9e"),
    "RUNNING": ("RUN", "#4fc3f7"),
    "IN_PROGRESS": ("RUN", "#4fc3f7"),
    "NOT_BUILT": ("NONE", "#616161"),
    "SKIPPED": ("SKIP", "#616161"),
}


def result_badge(status: str | None) -> Text:
    """A short colored tag for a build result or pipeline stage status."""
    tag, color = _RESULT_BADGES.get((status or "").upper(), ("----", "#616161"))
    return Text(f"{tag:<4}", style=f"bold {color}")


class StatusBadge(Static):
    """Connection indicator shown in the tab bar.

    Possible states and their badges:
    - "loading"  → "⠋ LOAD" (animated spinner)
    - "live"     → "LIVE"   auto-refresh on
    - "paused"   → "PAUSED" auto-refresh off
    - "error"    → "ERROR"
    """

    def __init__(self, status: str = "live", **kwargs: object) -> None:
        self._status = status
        self._spinner_index = 0
        text, css_class = _badge_for(status)
        super().__init__(text, **kwargs)
        self.add_class("status-badge")
        self.add_class(css_class)

    def on_mount(self) -> None:
        self.set_interval(0.1, self._tick_spinner)

    def set_status(self, status: str) -> None:
        if status == self._status:
            return
        _, old_class = _badge_for(self._status)
        self._status = status
        text, css_class = _badge_for(status)
        self.remove_class(old_class)
        self.add_class(css_class)
        self.update(text)

    def _tick_spinner(self) -> None:
        if self._status != "loading":
            return
        self._spinner_index = (self._spinner_index + 1) % len(SPINNER_FRAMES)
        frame = SPINNER_FRAMES[self._spinner_index]
        self.update(f"{frame} LOAD")


def _badge_for(status: str) -> tuple[str, str]:
    """Return (badge_text, css_class) for a given status string."""
    if status == "loading":
        frame = SPINNER_FRAMES[0]
        return f"{frame} LOAD", "badge--loading"
    elif status == "paused":
        return "PAUSED", "badge--paused"
    elif status == "error":
        return "ERROR", "badge--error"
    else:
        return "LIVE", "badge--live"

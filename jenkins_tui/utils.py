"""Shared formatting helpers for the jenkins-tui package."""

from __future__ import annotations

import time


def format_age(timestamp_ms: int | None, now: float | None = None) -> str:
    """Format an epoch-millis timestamp as a human-readable age like '2h', '15m'."""
    if not timestamp_ms:
        return ""
    now = now if now is not None else time.time()
    secs = now - timestamp_ms / 1000
    if secs < 0:
        return "now"
    if secs < 60:
        return f"{int(secs)}s"
    if secs < 3600:
        return f"{int(secs // 60)}m"
    if secs < 86400:
        return f"{int(secs // 3600)}h"
    return f"{int(secs // 86400)}d"


def time_ago(timestamp_ms: int | None, now: float | None = None) -> str | None:
    """Convert an epoch-millis timestamp to a relative time string like '5m ago'."""
    if not timestamp_ms:
        return None
    now = now if now is not None else time.time()
    mins = int((now - timestamp_ms / 1000) / 60)
    if mins < 0:
        return "just now"
    if mins < 60:
        return f"{mins}m ago"
    hours = mins // 60
    remaining = mins % 60
    if hours < 24:
        return f"{hours}h {remaining}m ago"
    days = hours // 24
    return f"{days}d {hours % 24}h ago"


def format_duration(millis: int | float | None) -> str:
    """'< 1s', '42s', '3m 5s' or '2h 10m'."""
    secs = int((millis or 0) // 1000)
    if secs < 1:
        return "< 1s"
    if secs < 60:
        return f"{secs}s"
    if secs < 3600:
        return f"{secs // 60}m {secs % 60}s"
    return f"{secs // 3600}h {(secs // 60) % 60}m"


def status_to_color(status: str | None) -> str:
    """Map a build result onto the Jenkins ball color naming."""
    return {
        "SUCCESS": "blue",
        "FAILURE": "red",
        "UNSTABLE": "yellow",
        "ABORTED": "aborted",
        "RUNNING": "blue_anime",
    }.get(status or "", "notbuilt")


def truncate(text: str, width: int) -> str:
    """Shorten text to width characters, marking the cut with '...'."""
    if width <= 0:
        return ""
    if len(text) <= width:
        return text
    if width <= 3:
        return text[:width]
    return text[: width - 3] + "..."


def classify_log_line(line: str) -> str:
    """Return 'error', 'warning', 'success', 'info' or '' for a console line."""
    lower = line.lower()
    if "error" in lower or "failed" in lower or "exception" in lower:
        return "error"
    if "warn" in lower:
        return "warning"
    if "success" in lower or "passed" in lower:
        return "success"
    if line.startswith("[Pipeline]") or line.startswith("[INFO]"):
        return "info"
    return ""

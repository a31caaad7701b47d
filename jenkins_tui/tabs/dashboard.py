"""Dashboard tab: server overview in four panels.

Panels: running builds (from node executors), nodes, build queue and recent
builds (the last build of every job). ``load`` issues four independent
fetches; each answer fills its own part of the snapshot, so the result is
the same whatever order they arrive in.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from jenkins_sdk.models import (
    Job,
    Node,
    QueueItem,
    RootInfo,
    RunningBuild,
    running_builds,
    sort_jobs_by_last_build,
)

from ..commands import Command
from ..messages import TabData
from ..projections import clamp_index
from ..state import TabID
from .base import Level, TabController

logger = logging.getLogger(__name__)


class DashboardMode(Enum):
    OVERVIEW = "overview"


class Panel(Enum):
    RUNNING = 0
    NODES = 1
    QUEUE = 2
    RECENT = 3


PARTS = ("info", "nodes", "queue", "jobs")


@dataclass
class RecentBuild:
    job_name: str
    number: int
    result: str
    color: str
    timestamp: int
    duration: int
    url: str

    @property
    def failed(self) -> bool:
        return self.result == "FAILURE" or self.color in ("red", "red_anime")


@dataclass
class Summary:
    running: int = 0
    queued: int = 0
    blocked: int = 0
    nodes_online: int = 0
    nodes_total: int = 0
    executors_busy: int = 0
    executors_total: int = 0
    failed: int = 0


@dataclass
class DashboardSnapshot:
    info: RootInfo | None = None
    nodes: list[Node] = field(default_factory=list)
    queue: list[QueueItem] = field(default_factory=list)
    running: list[RunningBuild] = field(default_factory=list)
    recent: list[RecentBuild] = field(default_factory=list)
    errors: dict[str, Exception] = field(default_factory=dict)
    pending: set[str] = field(default_factory=set)

    def summary(self) -> Summary:
        online = [n for n in self.nodes if not n.offline]
        return Summary(
            running=len(self.running),
            queued=len(self.queue),
            blocked=sum(1 for q in self.queue if q.blocked),
            nodes_online=len(online),
            nodes_total=len(self.nodes),
            executors_busy=sum(n.busy_executors for n in online),
            executors_total=sum(n.num_executors for n in online),
            failed=sum(1 for b in self.recent if b.failed),
        )


def recent_builds(jobs: list[Job]) -> list[RecentBuild]:
    """Last build of each job, newest first; running jobs without a result show RUNNING."""
    recent = []
    for job in sort_jobs_by_last_build(jobs):
        build = job.last_build
        if build is None:
            continue
        result = build.result
        if not result and job.is_running:
            result = "RUNNING"
        recent.append(RecentBuild(
            job_name=job.name,
            number=build.number,
            result=result,
            color=job.color,
            timestamp=build.timestamp,
            duration=build.duration,
            url=job.url,
        ))
    return recent


class DashboardTab(TabController):
    tab = TabID.DASHBOARD
    ROOT_MODE = DashboardMode.OVERVIEW

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.snapshot = DashboardSnapshot()
        self.level.data = self.snapshot
        self.panel = Panel.RUNNING
        self._panel_selection = {panel: 0 for panel in Panel}

    def _fetch_level(self, level: Level) -> list[Command]:
        self.snapshot.pending = set(PARTS)
        level.loading = True
        return [
            self._issue(level, "info", self.client.server.info),
            self._issue(level, "nodes", self.client.nodes.list),
            self._issue(level, "queue", self.client.queue.get),
            self._issue(level, "jobs", self.client.jobs.list),
        ]

    def apply(self, message: TabData) -> list[Command]:
        if message.kind not in PARTS:
            return self._apply_other(message)

        snap = self.snapshot
        snap.pending.discard(message.kind)
        self.level.loading = bool(snap.pending)

        if message.error is not None:
            snap.errors[message.kind] = message.error
            self.last_error = message.error
            return []

        snap.errors.pop(message.kind, None)
        payload = message.payload
        if message.kind == "info":
            snap.info = payload
        elif message.kind == "nodes":
            snap.nodes = payload
            snap.running = running_builds(payload)
        elif message.kind == "queue":
            snap.queue = payload
        elif message.kind == "jobs":
            snap.recent = recent_builds(payload)

        if not snap.errors:
            self.last_error = None
        self.level.error = next(iter(snap.errors.values()), None)
        self.last_update = self.level.updated_at = time.time()
        self._clamp_panels()
        return []

    # ------------------------------------------------------------------
    # Panels
    # ------------------------------------------------------------------

    def panel_items(self, panel: Panel) -> list:
        snap = self.snapshot
        return {
            Panel.RUNNING: snap.running,
            Panel.NODES: snap.nodes,
            Panel.QUEUE: snap.queue,
            Panel.RECENT: snap.recent,
        }[panel]

    def panel_selection(self, panel: Panel) -> int:
        return self._panel_selection[panel]

    def items(self, level: Level) -> list:
        return self.panel_items(self.panel)

    def item_name(self, item: Any) -> str:
        for attr in ("job_name", "full_display_name", "display_name", "task_name"):
            value = getattr(item, attr, "")
            if value:
                return value
        return ""

    def item_url(self, item: Any) -> str:
        return getattr(item, "url", "") or getattr(item, "task_url", "")

    def selected_item(self) -> Any | None:
        items = self.visible_items()
        if not items:
            return None
        return items[clamp_index(self._panel_selection[self.panel], len(items))]

    def handle_key(self, key: str, character: str | None = None) -> list[Command]:
        # Selection is kept per panel; sync it around the shared key handling
        panel = self.panel
        self.level.selected = self._panel_selection[panel]
        commands = super().handle_key(key, character)
        self._panel_selection[panel] = self.level.selected
        return commands

    def handle_tab_key(self, key: str) -> list[Command]:
        if key in ("right", "l"):
            self.panel = Panel((self.panel.value + 1) % len(Panel))
        elif key in ("left", "h"):
            self.panel = Panel((self.panel.value - 1) % len(Panel))
        return []

    def _clamp_panels(self) -> None:
        for panel in Panel:
            self._panel_selection[panel] = clamp_index(
                self._panel_selection[panel], len(self.panel_items(panel))
            )

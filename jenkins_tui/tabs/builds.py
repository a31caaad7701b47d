"""Builds tab: job list, build history, build detail and logs.

Navigation:
    JOB_LIST --enter--> BUILD_LIST --enter--> BUILD_DETAIL --enter--> STAGE_LOG
                        BUILD_LIST / BUILD_DETAIL --l--> LOG (console output)

``b`` triggers a new build of the selected job (the only write operation);
``s`` toggles follow mode in the log views, keeping the last line in view
whenever the log is reloaded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any

from jenkins_sdk.models import Build, JobDetail, PipelineRun, Stage, sort_builds_by_number, sort_jobs_by_last_build

from ..commands import FETCH_TIMEOUT, Command, fetch
from ..messages import TabData
from ..projections import PAGE_SIZE, page_count, page_of
from ..state import TabID
from .base import Level, TabController

logger = logging.getLogger(__name__)


class BuildsMode(Enum):
    JOB_LIST = "jobs"
    BUILD_LIST = "builds"
    BUILD_DETAIL = "build_detail"
    STAGE_LOG = "stage_log"
    LOG = "log"


@dataclass
class BuildDetail:
    build: Build
    pipeline: PipelineRun | None = None

    @property
    def stages(self) -> list[Stage]:
        return self.pipeline.stages if self.pipeline else []


class BuildsTab(TabController):
    tab = TabID.BUILDS
    ROOT_MODE = BuildsMode.JOB_LIST
    KIND_MODES = {
        "jobs": BuildsMode.JOB_LIST,
        "job_detail": BuildsMode.BUILD_LIST,
        "build_detail": BuildsMode.BUILD_DETAIL,
        "stage_log": BuildsMode.STAGE_LOG,
        "console_log": BuildsMode.LOG,
    }
    LOG_MODES = frozenset({BuildsMode.STAGE_LOG, BuildsMode.LOG})

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.follow = False

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def _fetch_level(self, level: Level) -> list[Command]:
        mode = level.mode
        if mode is BuildsMode.JOB_LIST:
            return [self._issue(level, "jobs", self.client.jobs.list)]
        if mode is BuildsMode.BUILD_LIST:
            return [self._issue(level, "job_detail", partial(self.client.jobs.get, level.key))]
        if mode is BuildsMode.BUILD_DETAIL:
            job_name, number = level.key
            return [self._issue(level, "build_detail", partial(self._fetch_build_detail, job_name, number))]
        if mode is BuildsMode.STAGE_LOG:
            job_name, number, stage_id = level.key
            return [self._issue(
                level, "stage_log", partial(self.client.pipelines.stage_log, job_name, number, stage_id)
            )]
        job_name, number = level.key
        return [self._issue(
            level,
            "console_log",
            partial(self.client.builds.console_log, job_name, number, self.profile.max_log_bytes),
        )]

    def _fetch_build_detail(self, job_name: str, number: int, deadline: float) -> BuildDetail:
        # Build first; stages are optional (freestyle jobs have none)
        build = self.client.builds.get(job_name, number, deadline=deadline)
        pipeline = self.client.pipelines.run(job_name, number, deadline=deadline)
        return BuildDetail(build=build, pipeline=pipeline)

    def _prepare(self, kind: str, payload: Any) -> Any:
        if kind == "jobs":
            return sort_jobs_by_last_build(payload)
        if kind == "job_detail":
            detail: JobDetail = payload
            detail.builds = sort_builds_by_number(detail.builds)[: self.profile.max_builds_per_job]
            return detail
        return payload

    def _after_data(self, level: Level) -> None:
        if level.mode in self.LOG_MODES and self.follow:
            level.selected = max(0, len(self.items(level)) - 1)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def items(self, level: Level) -> list:
        data = level.data
        if data is None:
            return []
        if level.mode is BuildsMode.JOB_LIST:
            return data
        if level.mode is BuildsMode.BUILD_LIST:
            return data.builds
        if level.mode is BuildsMode.BUILD_DETAIL:
            return data.stages
        return data.splitlines()

    def item_name(self, item: Any) -> str:
        if hasattr(item, "number") and not hasattr(item, "name"):
            return str(item.number)
        return super().item_name(item)

    @property
    def job_name(self) -> str | None:
        """Job whose builds are being browsed, if any."""
        for level in self.stack:
            if level.mode is BuildsMode.BUILD_LIST:
                return level.key
        return None

    @property
    def page(self) -> int:
        return page_of(self.level.selected, PAGE_SIZE)

    @property
    def pages(self) -> int:
        return page_count(len(self.visible_items()), PAGE_SIZE)

    def current_url(self) -> str:
        mode = self.mode
        data = self.level.data
        if mode is BuildsMode.BUILD_DETAIL:
            return data.build.url if data else ""
        if mode in self.LOG_MODES:
            parent = self._find_parent_build_url()
            return f"{parent}console" if parent else ""
        return super().current_url()

    def _find_parent_build_url(self) -> str:
        for level in reversed(self.stack[:-1]):
            if level.mode is BuildsMode.BUILD_DETAIL and level.data:
                return level.data.build.url
            if level.mode is BuildsMode.BUILD_LIST and level.data:
                number = self.level.key[1]
                for build in level.data.builds:
                    if build.number == number:
                        return build.url
        return ""

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def select(self) -> list[Command]:
        item = self.selected_item()
        if item is None:
            return []
        if self.mode is BuildsMode.JOB_LIST:
            return self.enter(BuildsMode.BUILD_LIST, item.name)
        if self.mode is BuildsMode.BUILD_LIST:
            return self.enter(BuildsMode.BUILD_DETAIL, (self.level.key, item.number))
        if self.mode is BuildsMode.BUILD_DETAIL:
            job_name, number = self.level.key
            return self.enter(BuildsMode.STAGE_LOG, (job_name, number, item.id))
        return []

    def handle_tab_key(self, key: str) -> list[Command]:
        if key == "l":
            return self._open_console_log()
        if key == "s" and self.in_log:
            self.follow = not self.follow
            if self.follow:
                self.level.selected = max(0, len(self.items(self.level)) - 1)
            return []
        if key == "b":
            return self._trigger_selected()
        return []

    def _open_console_log(self) -> list[Command]:
        if self.mode is BuildsMode.BUILD_LIST:
            build = self.selected_item()
            if build is None:
                return []
            return self.enter(BuildsMode.LOG, (self.level.key, build.number))
        if self.mode is BuildsMode.BUILD_DETAIL:
            return self.enter(BuildsMode.LOG, self.level.key)
        return []

    def _trigger_selected(self) -> list[Command]:
        if self.mode is BuildsMode.JOB_LIST:
            job = self.selected_item()
            job_name = job.name if job is not None else None
        elif self.mode is BuildsMode.BUILD_LIST:
            job_name = self.level.key
        else:
            return []
        if not job_name:
            return []
        logger.info("Triggering build of %s", job_name)
        return [fetch(
            self.tab,
            "trigger",
            partial(self.client.builds.trigger, job_name, timeout=FETCH_TIMEOUT),
            key=job_name,
        )]

    def _apply_other(self, message: TabData) -> list[Command]:
        if message.kind != "trigger":
            return super()._apply_other(message)
        if message.error is not None:
            self.last_error = message.error
            self.notify(f"Failed to trigger {message.key}: {message.error}", "error")
            return []
        self.notify(f"Build of {message.key} queued")
        # Refresh the build history if the user is still looking at it
        if self.mode is BuildsMode.BUILD_LIST and self.level.key == message.key:
            return self.load()
        return []

"""Views tab: browse views, the jobs in a view, then one job's detail."""

from __future__ import annotations

from enum import Enum
from functools import partial
from typing import Any

from jenkins_sdk.models import sort_jobs_by_last_build

from ..commands import Command
from ..state import TabID
from .base import Level, TabController


class ViewsMode(Enum):
    VIEW_LIST = "views"
    JOB_LIST = "jobs"
    JOB_DETAIL = "job_detail"


class ViewsTab(TabController):
    tab = TabID.VIEWS
    ROOT_MODE = ViewsMode.VIEW_LIST
    KIND_MODES = {
        "views": ViewsMode.VIEW_LIST,
        "view_jobs": ViewsMode.JOB_LIST,
        "job_detail": ViewsMode.JOB_DETAIL,
    }

    def _fetch_level(self, level: Level) -> list[Command]:
        if level.mode is ViewsMode.VIEW_LIST:
            return [self._issue(level, "views", self.client.views.list)]
        if level.mode is ViewsMode.JOB_LIST:
            return [self._issue(level, "view_jobs", partial(self.client.views.jobs, level.key))]
        return [self._issue(level, "job_detail", partial(self.client.jobs.get, level.key))]

    def _prepare(self, kind: str, payload: Any) -> Any:
        if kind == "view_jobs":
            return sort_jobs_by_last_build(payload)
        return payload

    def items(self, level: Level) -> list:
        if level.mode is ViewsMode.JOB_DETAIL or level.data is None:
            return []
        return level.data

    def current_url(self) -> str:
        if self.mode is ViewsMode.JOB_DETAIL:
            return self.level.data.url if self.level.data else ""
        return super().current_url()

    def select(self) -> list[Command]:
        item = self.selected_item()
        if item is None:
            return []
        if self.mode is ViewsMode.VIEW_LIST:
            return self.enter(ViewsMode.JOB_LIST, item.name)
        if self.mode is ViewsMode.JOB_LIST:
            return self.enter(ViewsMode.JOB_DETAIL, item.name)
        return []

"""Typed views of the Jenkins remote API payloads.

Each model is built from the decoded JSON with ``from_dict``; fields the
server leaves out (because the ``tree`` selector did not ask for them, or
the plugin is not installed) fall back to empty defaults.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

ANIMATED_COLORS = frozenset({
    "blue_anime",
    "red_anime",
    "yellow_anime",
    "grey_anime",
    "aborted_anime",
    "notbuilt_anime",
})


def _now_ms() -> int:
    return int(time.time() * 1000)


def _list(data: dict, key: str) -> list:
    value = data.get(key)
    return value if isinstance(value, list) else []


def _clamp_percent(value: int) -> int:
    return max(0, min(100, value))


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@dataclass
class RootInfo:
    mode: str = ""
    node_description: str = ""
    node_name: str = ""
    num_executors: int = 0
    description: str = ""
    use_crumbs: bool = False
    use_security: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RootInfo:
        return cls(
            mode=data.get("mode") or "",
            node_description=data.get("nodeDescription") or "",
            node_name=data.get("nodeName") or "",
            num_executors=data.get("numExecutors") or 0,
            description=data.get("description") or "",
            use_crumbs=bool(data.get("useCrumbs")),
            use_security=bool(data.get("useSecurity")),
        )


# ---------------------------------------------------------------------------
# Views and jobs
# ---------------------------------------------------------------------------


@dataclass
class View:
    name: str
    url: str = ""
    job_names: list[str] = field(default_factory=list)

    @property
    def job_count(self) -> int:
        return len(self.job_names)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> View:
        return cls(
            name=data.get("name") or "",
            url=data.get("url") or "",
            job_names=[j.get("name", "") for j in _list(data, "jobs")],
        )


@dataclass
class HealthReport:
    description: str = ""
    score: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthReport:
        return cls(description=data.get("description") or "", score=data.get("score") or 0)


@dataclass
class Stage:
    id: str
    name: str
    status: str = ""
    result: str = ""
    start_time_millis: int = 0
    duration_millis: int = 0
    pause_duration_millis: int = 0
    exec_node: str = ""

    @classmethod
    def from_wfapi(cls, data: dict[str, Any]) -> Stage:
        status = data.get("status") or ""
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            status=status,
            # the workflow API reports the outcome in the status field
            result=status,
            start_time_millis=data.get("startTimeMillis") or 0,
            duration_millis=data.get("durationMillis") or 0,
            pause_duration_millis=data.get("pauseDurationMillis") or 0,
            exec_node=data.get("execNode") or "",
        )

    @classmethod
    def from_blue_ocean(cls, data: dict[str, Any]) -> Stage:
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("displayName") or data.get("name") or "",
            status=data.get("status") or data.get("state") or "",
            result=data.get("result") or "",
            start_time_millis=data.get("startTimeMillis") or 0,
            duration_millis=data.get("durationInMillis") or data.get("durationMillis") or 0,
        )


@dataclass
class BuildRef:
    number: int
    result: str = ""
    timestamp: int = 0
    duration: int = 0
    url: str = ""
    building: bool = False
    stages: list[Stage] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BuildRef | None:
        if not data:
            return None
        return cls(
            number=data.get("number") or 0,
            result=data.get("result") or "",
            timestamp=data.get("timestamp") or 0,
            duration=data.get("duration") or 0,
            url=data.get("url") or "",
            building=bool(data.get("building")),
        )


@dataclass
class Job:
    name: str
    url: str = ""
    color: str = ""
    last_build: BuildRef | None = None
    health_report: list[HealthReport] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Job:
        return cls(
            name=data.get("name") or "",
            url=data.get("url") or "",
            color=data.get("color") or "",
            last_build=BuildRef.from_dict(data.get("lastBuild")),
            health_report=[HealthReport.from_dict(h) for h in _list(data, "healthReport")],
        )

    @property
    def is_running(self) -> bool:
        return self.color in ANIMATED_COLORS

    @property
    def is_disabled(self) -> bool:
        return self.color in ("disabled", "disabled_anime")

    @property
    def health_score(self) -> int:
        """Primary health score, or -1 when the server reports none."""
        if self.health_report:
            return self.health_report[0].score
        return -1

    @property
    def last_build_timestamp(self) -> int:
        return self.last_build.timestamp if self.last_build else 0


@dataclass
class JobDetail(Job):
    description: str = ""
    buildable: bool = False
    in_queue: bool = False
    last_successful_build: BuildRef | None = None
    last_failed_build: BuildRef | None = None
    builds: list[BuildRef] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobDetail:
        builds = [BuildRef.from_dict(b) for b in _list(data, "builds")]
        return cls(
            name=data.get("name") or "",
            url=data.get("url") or "",
            color=data.get("color") or "",
            last_build=BuildRef.from_dict(data.get("lastBuild")),
            health_report=[HealthReport.from_dict(h) for h in _list(data, "healthReport")],
            description=data.get("description") or "",
            buildable=bool(data.get("buildable")),
            in_queue=bool(data.get("inQueue")),
            last_successful_build=BuildRef.from_dict(data.get("lastSuccessfulBuild")),
            last_failed_build=BuildRef.from_dict(data.get("lastFailedBuild")),
            builds=[b for b in builds if b is not None],
        )


# ---------------------------------------------------------------------------
# Builds
# ---------------------------------------------------------------------------


@dataclass
class Artifact:
    file_name: str
    relative_path: str = ""


@dataclass
class ChangeItem:
    msg: str
    author: str = ""
    commit_id: str = ""
    timestamp: int = 0


@dataclass
class BuildCause:
    short_description: str
    user_name: str = ""
    user_id: str = ""


@dataclass
class Build:
    number: int
    result: str = ""
    timestamp: int = 0
    duration: int = 0
    estimated_duration: int = 0
    url: str = ""
    building: bool = False
    display_name: str = ""
    description: str = ""
    artifacts: list[Artifact] = field(default_factory=list)
    changes: list[ChangeItem] = field(default_factory=list)
    causes: list[BuildCause] = field(default_factory=list)
    parameters: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Build:
        changes = []
        for change_set in _list(data, "changeSets"):
            for item in _list(change_set, "items"):
                changes.append(ChangeItem(
                    msg=item.get("msg") or "",
                    author=(item.get("author") or {}).get("fullName") or "",
                    commit_id=item.get("commitId") or "",
                    timestamp=item.get("timestamp") or 0,
                ))

        # Causes and parameters arrive either top-level or nested in actions
        raw_causes = list(_list(data, "causes"))
        parameters: dict[str, Any] = {}
        for action in _list(data, "actions"):
            if not isinstance(action, dict):
                continue
            raw_causes.extend(_list(action, "causes"))
            for param in _list(action, "parameters"):
                parameters[param.get("name", "")] = param.get("value")

        return cls(
            number=data.get("number") or 0,
            result=data.get("result") or "",
            timestamp=data.get("timestamp") or 0,
            duration=data.get("duration") or 0,
            estimated_duration=data.get("estimatedDuration") or 0,
            url=data.get("url") or "",
            building=bool(data.get("building")),
            display_name=data.get("displayName") or "",
            description=data.get("description") or "",
            artifacts=[
                Artifact(file_name=a.get("fileName") or "", relative_path=a.get("relativePath") or "")
                for a in _list(data, "artifacts")
            ],
            changes=changes,
            causes=[
                BuildCause(
                    short_description=c.get("shortDescription") or "",
                    user_name=c.get("userName") or "",
                    user_id=c.get("userId") or "",
                )
                for c in raw_causes
            ],
            parameters=parameters,
        )

    @property
    def status_text(self) -> str:
        if self.building:
            return "RUNNING"
        return self.result or "UNKNOWN"

    def progress(self, now_ms: int | None = None) -> int:
        """Estimated completion percentage; finished builds are at 100."""
        if not self.building or not self.estimated_duration:
            return 100
        elapsed = (now_ms if now_ms is not None else _now_ms()) - self.timestamp
        return _clamp_percent(elapsed * 100 // self.estimated_duration)


@dataclass
class PipelineRun:
    id: str = ""
    name: str = ""
    status: str = ""
    result: str = ""
    state: str = ""
    start_time_millis: int = 0
    end_time_millis: int = 0
    duration_millis: int = 0
    stages: list[Stage] = field(default_factory=list)

    @classmethod
    def from_wfapi(cls, data: dict[str, Any]) -> PipelineRun:
        status = data.get("status") or ""
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            status=status,
            result=status,
            start_time_millis=data.get("startTimeMillis") or 0,
            end_time_millis=data.get("endTimeMillis") or 0,
            duration_millis=data.get("durationMillis") or 0,
            stages=[Stage.from_wfapi(s) for s in _list(data, "stages")],
        )

    @classmethod
    def from_blue_ocean(cls, build_number: int, nodes: list[dict[str, Any]]) -> PipelineRun:
        """Assemble a run from Blue Ocean's flat list of stage nodes.

        The overall status is derived from the stages: any failure wins,
        then anything still running, then unstable; otherwise the first
        stage's status is used.
        """
        stages = sort_stages_by_start_time([Stage.from_blue_ocean(n) for n in nodes])
        run = cls(id=str(build_number), stages=stages)

        for stage in stages:
            if stage.status in ("FAILED", "FAILURE"):
                run.status = "FAILED"
                run.result = "FAILURE"
                break
            if stage.status in ("RUNNING", "IN_PROGRESS"):
                run.status = "RUNNING"
                run.state = "RUNNING"
            elif stage.status == "UNSTABLE" and run.status != "RUNNING":
                run.status = "UNSTABLE"
                run.result = "UNSTABLE"
            elif not run.status:
                run.status = stage.status
                run.result = stage.result

        if stages:
            run.start_time_millis = stages[0].start_time_millis
            last = stages[-1]
            run.end_time_millis = last.start_time_millis + last.duration_millis
            run.duration_millis = run.end_time_millis - run.start_time_millis
        return run


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


@dataclass
class QueueItem:
    id: int
    task_name: str = ""
    task_url: str = ""
    why: str = ""
    in_queue_since: int = 0
    buildable: bool = False
    blocked: bool = False
    stuck: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QueueItem:
        task = data.get("task") or {}
        return cls(
            id=data.get("id") or 0,
            task_name=task.get("name") or "",
            task_url=task.get("url") or "",
            why=data.get("why") or "",
            in_queue_since=data.get("inQueueSince") or 0,
            buildable=bool(data.get("buildable")),
            blocked=bool(data.get("blocked")),
            stuck=bool(data.get("stuck")),
        )

    def wait_seconds(self, now_ms: int | None = None) -> float:
        """How long the item has been queued."""
        if not self.in_queue_since:
            return 0.0
        now = now_ms if now_ms is not None else _now_ms()
        return max(0, now - self.in_queue_since) / 1000


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


@dataclass
class Executable:
    url: str = ""
    number: int = 0
    display_name: str = ""
    full_display_name: str = ""
    timestamp: int = 0
    estimated_duration: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Executable:
        data = data or {}
        return cls(
            url=data.get("url") or "",
            number=data.get("number") or 0,
            display_name=data.get("displayName") or "",
            full_display_name=data.get("fullDisplayName") or "",
            timestamp=data.get("timestamp") or 0,
            estimated_duration=data.get("estimatedDuration") or 0,
        )

    def progress(self, now_ms: int | None = None) -> int:
        if not self.estimated_duration or not self.timestamp:
            return 0
        elapsed = (now_ms if now_ms is not None else _now_ms()) - self.timestamp
        return _clamp_percent(elapsed * 100 // self.estimated_duration)


@dataclass
class Executor:
    current_executable: Executable = field(default_factory=Executable)
    idle: bool = False
    likely_stuck: bool = False
    number: int = 0
    progress: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Executor:
        return cls(
            current_executable=Executable.from_dict(data.get("currentExecutable")),
            idle=bool(data.get("idle")),
            likely_stuck=bool(data.get("likelyStuck")),
            number=data.get("number") or 0,
            progress=data.get("progress") or 0,
        )

    @property
    def busy(self) -> bool:
        return bool(self.current_executable.url)


@dataclass
class Node:
    display_name: str
    offline: bool = False
    temporarily_offline: bool = False
    num_executors: int = 0
    executors: list[Executor] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)
    offline_cause_reason: str = ""
    idle: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        return cls(
            display_name=data.get("displayName") or "",
            offline=bool(data.get("offline")),
            temporarily_offline=bool(data.get("temporarilyOffline")),
            num_executors=data.get("numExecutors") or 0,
            executors=[Executor.from_dict(e) for e in _list(data, "executors")],
            labels=[label.get("name", "") for label in _list(data, "assignedLabels")],
            offline_cause_reason=data.get("offlineCauseReason") or "",
            idle=bool(data.get("idle")),
        )

    @property
    def busy_executors(self) -> int:
        return sum(1 for e in self.executors if e.busy)


@dataclass
class RunningBuild:
    url: str
    number: int
    node_name: str
    full_display_name: str = ""
    progress: int = 0


def running_builds(nodes: list[Node], now_ms: int | None = None) -> list[RunningBuild]:
    """Builds currently occupying an executor, in node/executor order."""
    result = []
    for node in nodes:
        for executor in node.executors:
            exe = executor.current_executable
            if exe.url:
                result.append(RunningBuild(
                    url=exe.url,
                    number=exe.number,
                    node_name=node.display_name,
                    full_display_name=exe.full_display_name or exe.display_name or "Unknown",
                    progress=executor.progress if executor.progress > 0 else exe.progress(now_ms),
                ))
    return result


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------


def sort_jobs_by_last_build(jobs: list[Job]) -> list[Job]:
    """Most recently built first; never-built jobs last."""
    return sorted(jobs, key=lambda j: j.last_build_timestamp, reverse=True)


def sort_builds_by_number(builds: list[BuildRef]) -> list[BuildRef]:
    return sorted(builds, key=lambda b: b.number, reverse=True)


def sort_stages_by_start_time(stages: list[Stage]) -> list[Stage]:
    return sorted(stages, key=lambda s: s.start_time_millis)

"""Tests for the Dashboard, Views and Builds tab controllers.

Commands are executed inline: each test runs the Commands a tab returns and
feeds the resulting TabData straight back into the tab.
"""

from unittest.mock import MagicMock

import pytest

from jenkins_sdk import JenkinsClient, NotFoundError
from jenkins_sdk.models import (
    Build,
    BuildRef,
    Executable,
    Executor,
    Job,
    JobDetail,
    Node,
    PipelineRun,
    QueueItem,
    RootInfo,
    Stage,
    View,
)
from jenkins_tui.commands import FETCH_TIMEOUT
from jenkins_tui.messages import CommandFailed, TabData
from jenkins_tui.tabs import BuildsMode, BuildsTab, DashboardTab, Panel, ViewsMode, ViewsTab
from tests.fixtures.mock_jenkins import BASE_URL, make_response


def run(tab, commands):
    """Execute commands and apply their messages; returns the messages."""
    messages = [c.execute() for c in commands]
    for message in messages:
        follow_up = tab.apply(message)
        run(tab, follow_up)
    return messages


def press(tab, *keys):
    commands = []
    for key in keys:
        commands.extend(tab.handle_key(key, key if len(key) == 1 else None))
    return commands


def job(name, ts, number=1, result="SUCCESS", color="blue"):
    return Job(name=name, url=f"https://j/job/{name}/", color=color,
               last_build=BuildRef(number=number, result=result, timestamp=ts))


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def opener():
    return MagicMock(return_value=True)


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@pytest.fixture
def dashboard_client(client):
    client.server.info.return_value = RootInfo(mode="NORMAL", num_executors=2)
    client.nodes.list.return_value = [
        Node(display_name="built-in", num_executors=2, executors=[
            Executor(current_executable=Executable(url="https://j/job/app/5/", number=5,
                                                   full_display_name="app #5"), progress=30),
            Executor(),
        ]),
        Node(display_name="agent", offline=True, num_executors=1),
    ]
    client.queue.get.return_value = [QueueItem(id=1, task_name="lib", blocked=True)]
    client.jobs.list.return_value = [
        job("app", 200, number=5, result="", color="blue_anime"),
        job("lib", 100, result="FAILURE", color="red"),
        Job(name="never"),
    ]
    return client


class TestDashboardTab:
    def test_load_issues_four_fetches(self, dashboard_client, profile):
        tab = DashboardTab(dashboard_client, profile)
        commands = tab.load()
        assert len(commands) == 4
        assert tab.loading
        run(tab, commands)
        assert not tab.loading
        dashboard_client.nodes.list.assert_called_once_with(
            deadline=dashboard_client.deadline.return_value
        )
        dashboard_client.deadline.assert_called_with(FETCH_TIMEOUT)

    @pytest.mark.parametrize("order", [[0, 1, 2, 3], [3, 2, 1, 0], [2, 0, 3, 1], [1, 3, 0, 2]])
    def test_merged_snapshot_independent_of_arrival_order(self, dashboard_client, profile, order):
        tab = DashboardTab(dashboard_client, profile)
        messages = [c.execute() for c in tab.load()]
        for i in order:
            tab.apply(messages[i])

        snap = tab.snapshot
        assert snap.info.mode == "NORMAL"
        assert [r.full_display_name for r in snap.running] == ["app #5"]
        assert [q.task_name for q in snap.queue] == ["lib"]
        assert [r.job_name for r in snap.recent] == ["app", "lib"]
        assert snap.recent[0].result == "RUNNING"
        summary = snap.summary()
        assert summary.running == 1
        assert summary.queued == 1
        assert summary.blocked == 1
        assert (summary.nodes_online, summary.nodes_total) == (1, 2)
        assert (summary.executors_busy, summary.executors_total) == (1, 2)
        assert summary.failed == 1
        assert not tab.loading

    def test_failed_part_keeps_others(self, dashboard_client, profile):
        dashboard_client.queue.get.side_effect = NotFoundError("no queue")
        tab = DashboardTab(dashboard_client, profile)
        run(tab, tab.load())
        assert "queue" in tab.snapshot.errors
        assert tab.snapshot.nodes
        assert isinstance(tab.last_error, NotFoundError)

    def test_error_cleared_on_next_success(self, dashboard_client, profile):
        dashboard_client.queue.get.side_effect = [NotFoundError("no queue"), []]
        tab = DashboardTab(dashboard_client, profile)
        run(tab, tab.load())
        run(tab, tab.load())
        assert tab.snapshot.errors == {}
        assert tab.last_error is None

    def test_panels_cycle_and_keep_selection(self, dashboard_client, profile):
        tab = DashboardTab(dashboard_client, profile)
        run(tab, tab.load())
        press(tab, "right", "right", "right")
        assert tab.panel is Panel.RECENT
        press(tab, "j")
        assert tab.selected_item().job_name == "lib"
        press(tab, "left")
        assert tab.panel is Panel.QUEUE
        press(tab, "l")
        assert tab.panel_selection(Panel.RECENT) == 1

    def test_open_running_build(self, dashboard_client, profile, opener):
        tab = DashboardTab(dashboard_client, profile, opener=opener)
        run(tab, tab.load())
        press(tab, "o")
        opener.assert_called_once_with("https://j/job/app/5/")


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


@pytest.fixture
def views_client(client):
    client.views.list.return_value = [View(name="All", job_names=["a", "b"]), View(name="Infra")]
    client.views.jobs.return_value = [job("old", 1), job("new", 5)]
    client.jobs.get.return_value = JobDetail(name="new", url="https://j/job/new/")
    return client


class TestViewsTab:
    def test_drill_down_and_back(self, views_client, profile):
        tab = ViewsTab(views_client, profile)
        run(tab, tab.load())
        assert [v.name for v in tab.visible_items()] == ["All", "Infra"]

        run(tab, press(tab, "enter"))
        assert tab.mode is ViewsMode.JOB_LIST
        views_client.views.jobs.assert_called_with("All", deadline=views_client.deadline.return_value)
        # Newest build first
        assert [j.name for j in tab.visible_items()] == ["new", "old"]

        run(tab, press(tab, "enter"))
        assert tab.mode is ViewsMode.JOB_DETAIL
        assert tab.level.data.name == "new"

        press(tab, "escape")
        assert tab.mode is ViewsMode.JOB_LIST
        press(tab, "escape")
        assert tab.mode is ViewsMode.VIEW_LIST
        press(tab, "escape")
        assert tab.mode is ViewsMode.VIEW_LIST

    def test_stale_answer_for_left_level_dropped(self, views_client, profile):
        tab = ViewsTab(views_client, profile)
        run(tab, tab.load())
        pending = press(tab, "enter")
        press(tab, "escape")
        run(tab, pending)
        assert tab.mode is ViewsMode.VIEW_LIST
        assert [v.name for v in tab.visible_items()] == ["All", "Infra"]

    def test_answer_for_other_key_dropped(self, views_client, profile):
        tab = ViewsTab(views_client, profile)
        run(tab, tab.load())
        run(tab, press(tab, "enter"))
        tab.apply(TabData(tab=tab.tab, kind="view_jobs", key="Infra", payload=[]))
        assert len(tab.visible_items()) == 2

    def test_filter(self, views_client, profile):
        tab = ViewsTab(views_client, profile)
        run(tab, tab.load())
        press(tab, "/", "i", "n")
        assert tab.searching
        assert [v.name for v in tab.visible_items()] == ["Infra"]
        press(tab, "enter")
        assert not tab.searching
        assert tab.level.filter_text == "in"
        assert tab.selected_item().name == "Infra"
        press(tab, "backspace")
        assert len(tab.visible_items()) == 2

    def test_filter_escape_clears(self, views_client, profile):
        tab = ViewsTab(views_client, profile)
        run(tab, tab.load())
        press(tab, "/", "x", "escape")
        assert not tab.searching
        assert tab.level.filter_text == ""

    def test_fetch_error_recorded_on_level(self, views_client, profile):
        views_client.views.list.side_effect = NotFoundError("gone")
        tab = ViewsTab(views_client, profile)
        run(tab, tab.load())
        assert isinstance(tab.level.error, NotFoundError)
        assert tab.visible_items() == []

    def test_command_failure_stops_loading(self, views_client, profile):
        tab = ViewsTab(views_client, profile)
        tab.load()
        tab.apply_failure(CommandFailed(name="views:views", tab=tab.tab, error=RuntimeError("x")))
        assert not tab.loading
        assert isinstance(tab.last_error, RuntimeError)

    def test_open_job_detail_url(self, views_client, profile, opener):
        tab = ViewsTab(views_client, profile, opener=opener)
        run(tab, tab.load())
        run(tab, press(tab, "enter"))
        run(tab, press(tab, "enter"))
        press(tab, "o")
        opener.assert_called_once_with("https://j/job/new/")


# ---------------------------------------------------------------------------
# Builds
# ---------------------------------------------------------------------------


LOG = "\n".join(f"line {i}" for i in range(50)) + "\nERROR here\nFinished: FAILURE"


@pytest.fixture
def builds_client(client):
    client.jobs.list.return_value = [job("app", 10), job("lib", 20)]
    client.jobs.get.return_value = JobDetail(
        name="app",
        url="https://j/job/app/",
        builds=[BuildRef(number=n, url=f"https://j/job/app/{n}/") for n in range(1, 46)],
    )
    client.builds.get.return_value = Build(number=45, url="https://j/job/app/45/", result="FAILURE")
    client.pipelines.run.return_value = PipelineRun(stages=[
        Stage(id="6", name="Build", status="SUCCESS"),
        Stage(id="12", name="Test", status="FAILED"),
    ])
    client.pipelines.stage_log.return_value = "compiling\ntests failed"
    client.builds.console_log.return_value = LOG
    return client


def open_build_list(tab, name="app"):
    run(tab, tab.load())
    while tab.selected_item().name != name:
        press(tab, "j")
    run(tab, press(tab, "enter"))


class TestBuildsTab:
    def test_jobs_sorted_by_last_build(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        run(tab, tab.load())
        assert [j.name for j in tab.visible_items()] == ["lib", "app"]

    def test_build_list_sorted_and_capped(self, builds_client, profile):
        profile.max_builds_per_job = 30
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        assert tab.mode is BuildsMode.BUILD_LIST
        assert tab.job_name == "app"
        numbers = [b.number for b in tab.visible_items()]
        assert numbers[0] == 45
        assert len(numbers) == 30

    def test_pagination(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        assert tab.pages == 3
        assert tab.page == 0
        press(tab, "pagedown")
        assert tab.page == 1
        press(tab, "G")
        assert tab.page == 2
        press(tab, "g")
        assert tab.page == 0

    def test_build_detail_then_stage_log(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        run(tab, press(tab, "enter"))
        assert tab.mode is BuildsMode.BUILD_DETAIL
        assert tab.level.key == ("app", 45)
        assert [s.name for s in tab.visible_items()] == ["Build", "Test"]

        press(tab, "j")
        run(tab, press(tab, "enter"))
        assert tab.mode is BuildsMode.STAGE_LOG
        builds_client.pipelines.stage_log.assert_called_with(
            "app", 45, "12", deadline=builds_client.deadline.return_value
        )
        assert tab.visible_items() == ["compiling", "tests failed"]

    def test_build_detail_without_pipeline(self, builds_client, profile):
        builds_client.pipelines.run.return_value = None
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        run(tab, press(tab, "enter"))
        assert tab.level.data.stages == []
        assert tab.level.data.build.result == "FAILURE"

    def test_build_detail_requests_share_one_deadline(self, server, clock, profile):
        sdk = JenkinsClient(base_url=BASE_URL, username="alice", token="secret-token",
                            session=server, clock=clock, sleep=clock.sleep)

        def slow_build(req):
            clock.advance(20)
            return make_response(200, json_body={"number": 45, "result": "FAILURE"})

        server.add("GET", "/job/app/45/api/json", slow_build)
        server.add_json("GET", "/job/app/45/wfapi/describe", {
            "id": "45", "stages": [{"id": "6", "name": "Build", "status": "SUCCESS"}],
        })
        tab = BuildsTab(sdk, profile)
        [command] = tab.enter(BuildsMode.BUILD_DETAIL, ("app", 45))
        message = command.execute()

        # The stage lookup gets what the build request left of the budget
        timeouts = [r.timeout for r in server.requests]
        assert timeouts == pytest.approx([FETCH_TIMEOUT, FETCH_TIMEOUT - 20])
        assert [s.name for s in message.payload.stages] == ["Build"]

    def test_console_log_from_build_list(self, builds_client, profile, opener):
        tab = BuildsTab(builds_client, profile, opener=opener)
        open_build_list(tab)
        run(tab, press(tab, "l"))
        assert tab.mode is BuildsMode.LOG
        builds_client.builds.console_log.assert_called_with(
            "app", 45, profile.max_log_bytes, deadline=builds_client.deadline.return_value
        )
        assert len(tab.visible_items()) == 52
        press(tab, "o")
        opener.assert_called_once_with("https://j/job/app/45/console")

    def test_log_search_and_match_navigation(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        run(tab, press(tab, "l"))
        press(tab, "/", "l", "i", "n", "e", " ", "4")
        # Filtering never hides log lines
        assert len(tab.visible_items()) == 52
        press(tab, "enter")
        assert tab.level.matches == [4] + list(range(40, 50))
        assert tab.level.selected == 4
        press(tab, "n")
        assert tab.level.selected == 40
        press(tab, "N")
        assert tab.level.selected == 4
        press(tab, "N")
        assert tab.level.selected == 49

    def test_follow_jumps_to_end_on_reload(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        run(tab, press(tab, "l"))
        press(tab, "s")
        assert tab.follow
        assert tab.level.selected == 51
        builds_client.builds.console_log.return_value = LOG + "\nmore\nlines"
        run(tab, press(tab, "r"))
        assert tab.level.selected == 53

    def test_refresh_reloads_current_level_only(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        builds_client.jobs.list.reset_mock()
        commands = tab.load()
        assert len(commands) == 1
        run(tab, commands)
        builds_client.jobs.list.assert_not_called()
        assert tab.mode is BuildsMode.BUILD_LIST

    def test_trigger_from_job_list(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        run(tab, tab.load())
        run(tab, press(tab, "b"))
        builds_client.builds.trigger.assert_called_once_with("lib", timeout=FETCH_TIMEOUT)
        assert tab.drain_notices() == [("Build of lib queued", "information")]

    def test_trigger_reloads_build_list(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        builds_client.jobs.get.reset_mock()
        run(tab, press(tab, "b"))
        builds_client.builds.trigger.assert_called_once_with("app", timeout=FETCH_TIMEOUT)
        builds_client.jobs.get.assert_called_once_with("app", deadline=builds_client.deadline.return_value)

    def test_trigger_failure_notified(self, builds_client, profile):
        builds_client.builds.trigger.side_effect = NotFoundError("no such job")
        tab = BuildsTab(builds_client, profile)
        run(tab, tab.load())
        run(tab, press(tab, "b"))
        (text, severity), = tab.drain_notices()
        assert severity == "error"
        assert "lib" in text

    def test_trigger_not_offered_in_logs(self, builds_client, profile):
        tab = BuildsTab(builds_client, profile)
        open_build_list(tab)
        run(tab, press(tab, "l"))
        assert press(tab, "b") == []

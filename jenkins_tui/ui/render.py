"""Rich renderables for each tab.

Pure functions of the tab controllers' state; the app calls them after
every message and pushes the result into Static widgets.
"""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.panel import Panel as RichPanel
from rich.table import Table
from rich.text import Text

from ..projections import PAGE_SIZE, page_count, page_of, paginate
from ..state import TAB_ORDER, TabID
from ..tabs import BuildsMode, BuildsTab, DashboardTab, Panel, TabController, ViewsMode, ViewsTab
from ..utils import classify_log_line, format_age, format_duration, time_ago, truncate
from .widgets.status_badge import result_badge

# Lines of log shown at once
LOG_WINDOW = 40

_LOG_STYLES = {
    "error": "#ef5350",
    "warning": "#ffa726",
    "success": "#66bb6a",
    "info": "#4fc3f7",
}

_SELECTED = "reverse"
_MUTED = "#616161"

HELP_TEXT = """\
Global
  1 / 2 / 3        Dashboard / Views / Builds
  tab, shift+tab   Next / previous tab
  ctrl+r           Toggle auto-refresh
  ?                Toggle this help
  q, ctrl+c        Quit

Lists
  j/k, up/down     Move selection
  g / G            First / last item
  pgup / pgdown    Previous / next page
  enter            Open selected item
  escape           Back one level
  /                Filter (enter keeps it, escape clears)
  backspace        Clear filter
  r                Reload
  o                Open in browser

Dashboard
  left / right     Switch panel

Builds
  b                Trigger a build of the selected job
  l                Console log of the selected build
  s                Follow log
  n / N            Next / previous search match in a log
"""


def render_help() -> RenderableType:
    return RichPanel(Text(HELP_TEXT), title="Keys", border_style="#4fc3f7")


def render_tab_bar(active: TabID) -> Text:
    bar = Text()
    for index, tab in enumerate(TAB_ORDER, start=1):
        style = "bold reverse #4fc3f7" if tab is active else "#e0e0e0"
        bar.append(f" {index} {tab.title} ", style=style)
        bar.append(" ")
    return bar


def render_footer(tab: TabController) -> Text:
    """Status line: filter/search prompt, last update and last error."""
    line = Text()
    level = tab.level
    if tab.searching:
        line.append(f"/{level.filter_text}", style="bold #ffa726")
        line.append("▏", style="blink")
    elif level.filter_text:
        line.append(f"filter: {level.filter_text}  ", style="#ffa726")
    if tab.loading:
        line.append("loading…  ", style="#4fc3f7")
    if tab.last_update:
        line.append(f"updated {format_age(int(tab.last_update * 1000))} ago  ", style=_MUTED)
    if tab.last_error is not None:
        line.append(f"error: {truncate(str(tab.last_error), 80)}", style="#ef5350")
    return line


def render_tab(tab: TabController) -> RenderableType:
    if isinstance(tab, DashboardTab):
        return render_dashboard(tab)
    if isinstance(tab, ViewsTab):
        return render_views(tab)
    if isinstance(tab, BuildsTab):
        return render_builds(tab)
    return Text("")


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def render_dashboard(tab: DashboardTab) -> RenderableType:
    snap = tab.snapshot
    summary = snap.summary()

    kpis = Text()
    for label, value, color in [
        ("Running", str(summary.running), "#4fc3f7"),
        ("Queued", f"{summary.queued} ({summary.blocked} blocked)", "#ffa726"),
        ("Nodes", f"{summary.nodes_online}/{summary.nodes_total}", "#66bb6a"),
        ("Executors", f"{summary.executors_busy}/{summary.executors_total}", "#ce93d8"),
        ("Failed", str(summary.failed), "#ef5350"),
    ]:
        kpis.append(f" {label}: ", style="bold #e0e0e0")
        kpis.append(f"{value}  ", style=f"bold {color}")

    header = Text()
    if snap.info is not None:
        header.append(f"{snap.info.node_description or 'Jenkins'}", style="bold")
        header.append(f"  mode {snap.info.mode}  executors {snap.info.num_executors}", style=_MUTED)

    panels = [
        _panel(tab, Panel.RUNNING, "Running", _running_table(tab)),
        _panel(tab, Panel.NODES, "Nodes", _nodes_table(tab)),
        _panel(tab, Panel.QUEUE, "Queue", _queue_table(tab)),
        _panel(tab, Panel.RECENT, "Recent", _recent_table(tab)),
    ]
    errors = [Text(f"{part}: {err}", style="#ef5350") for part, err in snap.errors.items()]
    return Group(header, kpis, *panels, *errors)


def _panel(tab: DashboardTab, panel: Panel, title: str, body: RenderableType) -> RichPanel:
    focused = tab.panel is panel
    return RichPanel(body, title=title, border_style="#4fc3f7" if focused else _MUTED)


def _selected_style(tab: DashboardTab, panel: Panel, index: int) -> str:
    if tab.panel is panel and index == tab.panel_selection(panel):
        return _SELECTED
    return ""


def _items_for(tab: DashboardTab, panel: Panel) -> list:
    if tab.panel is panel:
        return tab.visible_items()
    return tab.panel_items(panel)


def _running_table(tab: DashboardTab) -> RenderableType:
    items = _items_for(tab, Panel.RUNNING)
    if not items:
        return Text("No builds running", style=_MUTED)
    table = Table(show_header=False, box=None, expand=True)
    for i, build in enumerate(items):
        table.add_row(
            Text(truncate(build.full_display_name, 40)),
            Text(build.node_name, style=_MUTED),
            Text(f"{build.progress:3d}%", style="#4fc3f7"),
            style=_selected_style(tab, Panel.RUNNING, i),
        )
    return table


def _nodes_table(tab: DashboardTab) -> RenderableType:
    items = _items_for(tab, Panel.NODES)
    if not items:
        return Text("No nodes", style=_MUTED)
    table = Table(show_header=False, box=None, expand=True)
    for i, node in enumerate(items):
        state = Text("offline", style="#ef5350") if node.offline else Text("online", style="#66bb6a")
        table.add_row(
            Text(truncate(node.display_name, 30)),
            state,
            Text(f"{node.busy_executors}/{node.num_executors}", style=_MUTED),
            style=_selected_style(tab, Panel.NODES, i),
        )
    return table


def _queue_table(tab: DashboardTab) -> RenderableType:
    items = _items_for(tab, Panel.QUEUE)
    if not items:
        return Text("Queue is empty", style=_MUTED)
    table = Table(show_header=False, box=None, expand=True)
    for i, item in enumerate(items):
        flag = "blocked" if item.blocked else "stuck" if item.stuck else "waiting"
        table.add_row(
            Text(truncate(item.task_name, 30)),
            Text(flag, style="#ffa726"),
            Text(format_duration(item.wait_seconds() * 1000), style=_MUTED),
            Text(truncate(item.why, 40), style=_MUTED),
            style=_selected_style(tab, Panel.QUEUE, i),
        )
    return table


def _recent_table(tab: DashboardTab) -> RenderableType:
    items = _items_for(tab, Panel.RECENT)
    if not items:
        return Text("No builds yet", style=_MUTED)
    table = Table(show_header=False, box=None, expand=True)
    for i, build in enumerate(items[:PAGE_SIZE]):
        table.add_row(
            result_badge(build.result),
            Text(truncate(build.job_name, 40)),
            Text(f"#{build.number}", style=_MUTED),
            Text(time_ago(build.timestamp) or "", style=_MUTED),
            Text(format_duration(build.duration), style=_MUTED),
            style=_selected_style(tab, Panel.RECENT, i),
        )
    return table


# ---------------------------------------------------------------------------
# Lists shared by Views and Builds
# ---------------------------------------------------------------------------


def _paged_rows(tab: TabController) -> tuple[list, int, int, int]:
    """(rows on the current page, index of the selected row within it, page, pages)."""
    visible = tab.visible_items()
    selected = tab.level.selected
    page = page_of(selected, PAGE_SIZE)
    return paginate(visible, page, PAGE_SIZE), selected - page * PAGE_SIZE, page, page_count(len(visible))


def _job_table(tab: TabController, title: str) -> RenderableType:
    rows, cursor, page, pages = _paged_rows(tab)
    if not rows:
        return Text("Loading…" if tab.loading else "No jobs", style=_MUTED)
    table = Table(title=f"{title}  (page {page + 1}/{pages})", expand=True)
    table.add_column("", width=4)
    table.add_column("Job")
    table.add_column("Last build", justify="right")
    table.add_column("When")
    table.add_column("Health", justify="right")
    for i, job in enumerate(rows):
        build = job.last_build
        status = "RUNNING" if job.is_running else (build.result if build else "")
        score = job.health_score
        table.add_row(
            result_badge(status),
            Text(job.name, style=_MUTED if job.is_disabled else ""),
            f"#{build.number}" if build else "-",
            (time_ago(build.timestamp) or "") if build else "",
            f"{score}%" if score >= 0 else "",
            style=_SELECTED if i == cursor else "",
        )
    return table


def _job_detail(detail) -> RenderableType:
    if detail is None:
        return Text("Loading…", style=_MUTED)
    text = Text()
    text.append(f"{detail.name}\n", style="bold")
    if detail.description:
        text.append(f"{detail.description}\n", style=_MUTED)
    text.append(f"buildable: {'yes' if detail.buildable else 'no'}   in queue: {'yes' if detail.in_queue else 'no'}\n")
    for label, ref in [
        ("Last build", detail.last_build),
        ("Last success", detail.last_successful_build),
        ("Last failure", detail.last_failed_build),
    ]:
        if ref is not None:
            text.append(f"{label}: #{ref.number} {time_ago(ref.timestamp) or ''}\n")
    for report in detail.health_report:
        text.append(f"Health {report.score}%: {report.description}\n", style=_MUTED)
    return text


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def render_views(tab: ViewsTab) -> RenderableType:
    if tab.mode is ViewsMode.VIEW_LIST:
        rows, cursor, page, pages = _paged_rows(tab)
        if not rows:
            return Text("Loading…" if tab.loading else "No views", style=_MUTED)
        table = Table(title=f"Views  (page {page + 1}/{pages})", expand=True)
        table.add_column("View")
        table.add_column("Jobs", justify="right")
        for i, view in enumerate(rows):
            table.add_row(view.name, str(view.job_count), style=_SELECTED if i == cursor else "")
        return table
    if tab.mode is ViewsMode.JOB_LIST:
        return _job_table(tab, f"View {tab.level.key}")
    return _job_detail(tab.level.data)


# ---------------------------------------------------------------------------
# Builds
# ---------------------------------------------------------------------------


def render_builds(tab: BuildsTab) -> RenderableType:
    mode = tab.mode
    if mode is BuildsMode.JOB_LIST:
        return _job_table(tab, "Jobs")
    if mode is BuildsMode.BUILD_LIST:
        return Group(_job_detail(tab.level.data), _build_table(tab))
    if mode is BuildsMode.BUILD_DETAIL:
        return _build_detail(tab)
    return _log_view(tab)


def _build_table(tab: BuildsTab) -> RenderableType:
    rows, cursor, page, pages = _paged_rows(tab)
    if not rows:
        return Text("" if tab.loading else "No builds", style=_MUTED)
    table = Table(title=f"Builds  (page {page + 1}/{pages})", expand=True)
    table.add_column("", width=4)
    table.add_column("#", justify="right")
    table.add_column("Started")
    table.add_column("Duration", justify="right")
    table.add_column("Stages")
    for i, build in enumerate(rows):
        stages = Text()
        for stage in build.stages:
            stages.append_text(result_badge(stage.status))
            stages.append(" ")
        table.add_row(
            result_badge("RUNNING" if build.building else build.result),
            str(build.number),
            time_ago(build.timestamp) or "",
            format_duration(build.duration),
            stages,
            style=_SELECTED if i == cursor else "",
        )
    return table


def _build_detail(tab: BuildsTab) -> RenderableType:
    detail = tab.level.data
    if detail is None:
        return Text("Loading…", style=_MUTED)
    build = detail.build
    text = Text()
    text.append(f"{build.display_name or '#' + str(build.number)}  ", style="bold")
    text.append_text(result_badge(build.status_text))
    text.append(f"\nStarted {time_ago(build.timestamp) or '-'}, took {format_duration(build.duration)}")
    if build.building:
        text.append(f"  ({build.progress()}% of estimate)", style="#4fc3f7")
    text.append("\n")
    for cause in build.causes:
        text.append(f"Cause: {cause.short_description}\n", style=_MUTED)
    for name, value in build.parameters.items():
        text.append(f"Param {name} = {value}\n", style=_MUTED)
    for change in build.changes:
        text.append(f"{change.commit_id[:8]} {change.author}: {truncate(change.msg, 60)}\n", style=_MUTED)
    for artifact in build.artifacts:
        text.append(f"Artifact {artifact.relative_path or artifact.file_name}\n", style=_MUTED)

    if not detail.stages:
        return text
    stages = Table(title="Stages", expand=True)
    stages.add_column("", width=4)
    stages.add_column("Stage")
    stages.add_column("Duration", justify="right")
    for i, stage in enumerate(tab.visible_items()):
        stages.add_row(
            result_badge(stage.status),
            stage.name,
            format_duration(stage.duration_millis),
            style=_SELECTED if i == tab.level.selected else "",
        )
    return Group(text, stages)


def _log_view(tab: BuildsTab) -> RenderableType:
    level = tab.level
    if level.data is None:
        return Text("Loading log…", style=_MUTED)
    lines = tab.items(level)
    cursor = level.selected
    top = (cursor // LOG_WINDOW) * LOG_WINDOW
    matches = set(level.matches)
    width = len(str(len(lines)))

    text = Text()
    title = "Stage log" if tab.mode is BuildsMode.STAGE_LOG else "Console"
    text.append(f"{title}  lines {top + 1}-{min(top + LOG_WINDOW, len(lines))} of {len(lines)}", style="bold")
    if tab.follow:
        text.append("  [follow]", style="#66bb6a")
    if level.matches:
        text.append(f"  {len(level.matches)} matches", style="#ffa726")
    text.append("\n")
    for number in range(top, min(top + LOG_WINDOW, len(lines))):
        line = lines[number]
        text.append(f"{number + 1:>{width}}│ ", style=_MUTED)
        style = _LOG_STYLES.get(classify_log_line(line), "")
        if number in matches:
            style = f"{style} underline".strip()
        if number == cursor:
            style = f"{style} reverse".strip()
        text.append(line + "\n", style=style)
    return text

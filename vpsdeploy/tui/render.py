"""Rich renderables for the dashboard."""

from typing import List

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from vpsdeploy.models.status import ACTIVE_STATE
from vpsdeploy.tui.state import AppState, Tab
from vpsdeploy.utils import format_duration

KEY_HELP = "q/Esc quit · ←/→ h/l tabs · b build · d deploy · m monitor · c clear"
VISIBLE_LOG_LINES = 12


def render_tabs(state: AppState) -> Text:
    text = Text(" ")
    for tab in Tab:
        style = "bold black on color(214)" if tab is state.tab else "dim"
        text.append(f" {tab.title} ", style=style)
        text.append(" ")
    return text


def _progress(label: str, percent: float, running: bool) -> Table:
    grid = Table.grid(padding=(0, 1))
    grid.add_column(no_wrap=True)
    grid.add_column(ratio=1)
    grid.add_column(no_wrap=True, justify="right")
    bar = ProgressBar(total=100, completed=percent, pulse=running and percent <= 0)
    grid.add_row(Text(label, style="cyan"), bar, Text(f"{percent:>3.0f}%"))
    return grid


def _log_pane(title: str, lines: List[str]) -> Panel:
    visible = lines[-VISIBLE_LOG_LINES:]
    body = Text("\n".join(visible) if visible else "No output yet", style="dim" if not visible else "")
    return Panel(body, title=title, title_align="left", border_style="dim")


def render_build(state: AppState) -> RenderableType:
    pane = state.build
    parts: List[RenderableType] = [
        _progress("Building" if pane.is_building else "Build", pane.progress, pane.is_building)
    ]
    if pane.info is not None:
        info = pane.info
        summary = Table.grid(padding=(0, 2))
        summary.add_row("Mode", info.build_mode)
        summary.add_row("Binary", info.binary_path or "not built")
        summary.add_row("Size", info.format_size())
        parts.append(summary)
    parts.append(_log_pane("Build output", pane.logs))
    return Group(*parts)


def render_deploy(state: AppState) -> RenderableType:
    pane = state.deploy
    return Group(
        _progress(pane.current_step, pane.progress, pane.is_deploying),
        _log_pane("Deploy steps", pane.logs),
    )


def _mark(ok: bool) -> Text:
    return Text("✓", style="green") if ok else Text("✗", style="red")


def render_monitor(state: AppState) -> RenderableType:
    pane = state.monitor
    heading = Text(
        "Monitoring (press m to stop)" if pane.is_monitoring else "Idle (press m to start)",
        style="green" if pane.is_monitoring else "dim",
    )
    parts: List[RenderableType] = [heading]

    status = pane.status
    if status is not None:
        table = Table(show_header=False, box=None, padding=(0, 1))
        table.add_column(style="cyan")
        table.add_column()
        table.add_column(style="dim")
        table.add_row("Health", _mark(status.health_ok), status.summary())
        table.add_row("SSH", _mark(status.reachable_ok), "")
        table.add_row(
            "Service",
            _mark(status.service_state == ACTIVE_STATE),
            status.service_state or "unknown",
        )
        if status.response_latency is not None:
            table.add_row("Latency", "", format_duration(status.response_latency))
        table.add_row("Checked", "", status.checked_at.strftime("%H:%M:%S UTC"))
        if status.last_error:
            table.add_row("Last error", "", status.last_error)
        parts.append(table)

    if pane.last_error:
        parts.append(Text(f"✗ {pane.last_error}", style="red"))

    parts.append(_log_pane("Application log", pane.logs))
    return Group(*parts)


def render_config(state: AppState) -> RenderableType:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="cyan", no_wrap=True)
    table.add_column()
    for key, value in state.config_summary.items():
        table.add_row(key, value)
    return table


def render_exit(state: AppState) -> RenderableType:
    running = " Background tasks will be stopped." if state.has_running_tasks else ""
    return Text(f"Press → or q to leave the dashboard.{running}")


BODIES = {
    Tab.BUILD: render_build,
    Tab.DEPLOY: render_deploy,
    Tab.MONITOR: render_monitor,
    Tab.CONFIG: render_config,
    Tab.EXIT: render_exit,
}


def render_status_line(state: AppState) -> Text:
    text = Text(" ")
    if state.status_message:
        text.append(state.status_message, style="bold")
        text.append("  ")
    text.append(KEY_HELP, style="dim")
    return text


def render(state: AppState) -> RenderableType:
    """The whole dashboard for one frame."""
    title = Text.assemble((" vpsdeploy ", "bold color(214)"), ("dashboard", "dim"))
    if state.dry_run:
        title.append(" [dry run]", style="yellow")
    body = Panel(
        BODIES[state.tab](state),
        title=state.tab.title,
        title_align="left",
        border_style="cyan",
    )
    return Group(title, render_tabs(state), body, render_status_line(state))

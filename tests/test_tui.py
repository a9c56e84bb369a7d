import queue
import threading

import pytest
from rich.console import Console

from vpsdeploy.config import VPSDeployConfig
from vpsdeploy.constants import MAX_PANE_LOG_LINES
from vpsdeploy.models.results import BuildInfo
from vpsdeploy.models.status import ApplicationStatus
from vpsdeploy.tui.app import Dashboard, summarize_config
from vpsdeploy.tui.messages import (
    BuildCompleted,
    BuildFailed,
    BuildProgress,
    DeployCompleted,
    DeployFailed,
    DeployProgress,
    MonitorFailed,
    MonitorUpdate,
)
from vpsdeploy.tui.render import render
from vpsdeploy.tui.scheduler import TaskScheduler
from vpsdeploy.tui.state import Action, AppState, Effect, Tab, key_to_action


class _Key(str):
    """Stand-in for a blessed Keystroke."""

    def __new__(cls, text="", name=None):
        key = super().__new__(cls, text)
        key.name = name
        return key


@pytest.fixture
def state():
    return AppState()


@pytest.fixture
def config(config_file):
    return VPSDeployConfig.from_file(config_file)


@pytest.mark.parametrize(
    "key, action",
    [
        (_Key("q"), Action.QUIT),
        (_Key("\x1b", "KEY_ESCAPE"), Action.QUIT),
        (_Key("\x1b[C", "KEY_RIGHT"), Action.NEXT_TAB),
        (_Key("l"), Action.NEXT_TAB),
        (_Key("\x1b[D", "KEY_LEFT"), Action.PREV_TAB),
        (_Key("h"), Action.PREV_TAB),
        (_Key("b"), Action.START_BUILD),
        (_Key("d"), Action.START_DEPLOY),
        (_Key("m"), Action.START_MONITOR),
        (_Key("c"), Action.CLEAR_STATUS),
        (_Key("x"), None),
        (_Key(""), None),
    ],
)
def test_key_bindings(key, action):
    assert key_to_action(key) is action


def test_tabs_cycle_in_order():
    assert [t.title for t in Tab] == ["Build", "Deploy", "Monitor", "Config", "Exit"]
    assert Tab.BUILD.prev() is Tab.EXIT
    assert Tab.EXIT.next() is Tab.BUILD


def test_next_tab_on_exit_quits(state):
    for _ in range(4):
        state.handle_action(Action.NEXT_TAB)
    assert state.tab is Tab.EXIT
    assert not state.should_quit

    state.handle_action(Action.NEXT_TAB)

    assert state.should_quit


def test_prev_tab_wraps(state):
    state.handle_action(Action.PREV_TAB)

    assert state.tab is Tab.EXIT


def test_build_action_spawns_once(state):
    assert state.handle_action(Action.START_BUILD) is Effect.SPAWN_BUILD
    assert state.build.is_building
    assert state.handle_action(Action.START_BUILD) is None
    assert state.status_message == "Build already running"


def test_deploy_action_switches_tab(state):
    assert state.handle_action(Action.START_DEPLOY) is Effect.SPAWN_DEPLOY
    assert state.tab is Tab.DEPLOY
    assert state.deploy.current_step == "Starting"


def test_monitor_action_toggles(state):
    assert state.handle_action(Action.START_MONITOR) is Effect.SPAWN_MONITOR
    assert state.handle_action(Action.START_MONITOR) is Effect.STOP_MONITOR
    assert not state.monitor.is_monitoring


def test_clear_status(state):
    state.status_message = "Build completed in 3.0s"

    state.handle_action(Action.CLEAR_STATUS)

    assert state.status_message is None


def test_build_messages_fold_into_pane(state):
    state.handle_action(Action.START_BUILD)
    info = BuildInfo("my-app", "release", True, 2048, "/tmp/my-app")

    state.apply_message(BuildProgress(50.0, "Compiling my-app"))
    state.apply_message(BuildCompleted(info, 3.0))

    assert state.build.logs == ["Compiling my-app"]
    assert state.build.progress == 100.0
    assert state.build.info == info
    assert not state.build.is_building
    assert state.status_message == "Build completed in 3.0s"


def test_failures_end_running_tasks(state):
    state.handle_action(Action.START_BUILD)
    state.handle_action(Action.START_DEPLOY)
    state.handle_action(Action.START_MONITOR)

    state.apply_message(BuildFailed("cargo exploded"))
    state.apply_message(DeployFailed("host unreachable"))
    state.apply_message(MonitorFailed("no route"))

    assert not state.has_running_tasks
    assert state.build.logs[-1] == "✗ cargo exploded"
    assert state.deploy.current_step == "Failed"
    assert state.monitor.last_error == "no route"
    assert state.status_message == "Monitoring failed: no route"


def test_deploy_progress_and_completion(state):
    state.handle_action(Action.START_DEPLOY)

    state.apply_message(DeployProgress(12.5, "Validating prerequisites", " 12% Validating prerequisites"))
    assert state.deploy.current_step == "Validating prerequisites"

    state.apply_message(DeployCompleted("Successfully deployed my-app to vps.test", True, 4.2))
    assert state.deploy.progress == 100.0
    assert state.deploy.logs[-1] == "Successfully deployed my-app to vps.test"
    assert not state.deploy.is_deploying


def test_monitor_update_keeps_previous_logs_when_empty(state):
    state.handle_action(Action.START_MONITOR)
    status = ApplicationStatus(True, True, "active")
    state.apply_message(MonitorUpdate(status, None, ("line 1", "line 2")))
    state.apply_message(MonitorUpdate(status, None, ()))

    assert state.monitor.status is status
    assert state.monitor.logs == ["line 1", "line 2"]


def test_monitor_update_after_stop_is_ignored(state):
    state.handle_action(Action.START_MONITOR)
    state.apply_message(MonitorUpdate(ApplicationStatus(True, True, "active"), None, ("line 1",)))
    state.handle_action(Action.START_MONITOR)

    state.apply_message(MonitorUpdate(ApplicationStatus(), None, ("late line",)))

    assert not state.monitor.is_monitoring
    assert state.monitor.status.is_healthy()
    assert state.monitor.logs == ["line 1"]


def test_monitor_update_before_start_is_ignored(state):
    state.apply_message(MonitorUpdate(ApplicationStatus(True, True, "active"), None, ("line 1",)))

    assert state.monitor.status is None
    assert state.monitor.logs == []


def test_pane_logs_are_capped(state):
    for i in range(MAX_PANE_LOG_LINES + 25):
        state.apply_message(BuildProgress(0.0, f"line {i}"))

    assert len(state.build.logs) == MAX_PANE_LOG_LINES
    assert state.build.logs[-1] == f"line {MAX_PANE_LOG_LINES + 24}"


def test_unknown_message_is_rejected(state):
    with pytest.raises(TypeError):
        state.apply_message("not a message")


def test_scheduler_turns_exceptions_into_failure_messages():
    outbox = queue.Queue()
    scheduler = TaskScheduler(outbox)

    def explode(cancel):
        raise RuntimeError("Binary not found")

    handle = scheduler.spawn("deploy", explode)

    assert handle.join(timeout=5)
    assert outbox.get(timeout=5) == DeployFailed("Binary not found")


def test_scheduler_rejects_unknown_kind():
    with pytest.raises(ValueError):
        TaskScheduler(queue.Queue()).spawn("explode", lambda cancel: None)


def test_cancel_and_join_a_task():
    scheduler = TaskScheduler(queue.Queue())
    started = threading.Event()

    def wait_for_cancel(cancel):
        started.set()
        cancel.wait(5)

    handle = scheduler.spawn("monitor", wait_for_cancel)
    assert started.wait(5)
    assert scheduler.running("monitor") == [handle]

    scheduler.cancel("monitor")

    assert handle.join(timeout=5)
    assert handle.cancelled
    scheduler.reap()
    assert scheduler.handles == []


def test_shutdown_waits_for_every_task():
    scheduler = TaskScheduler(queue.Queue())
    handles = [scheduler.spawn("monitor", lambda cancel: cancel.wait(5)) for _ in range(3)]

    scheduler.shutdown(timeout=5)

    assert all(not h.is_alive() for h in handles)
    assert scheduler.handles == []


def test_dashboard_drains_at_most_n_messages_per_frame(config):
    dashboard = Dashboard(config, drain_per_frame=2, tasks={})
    for i in range(5):
        dashboard.messages.put(BuildProgress(float(i), f"line {i}"))

    assert dashboard.drain_messages() == 2
    assert dashboard.state.build.logs == ["line 0", "line 1"]
    assert dashboard.drain_messages() == 2
    assert dashboard.drain_messages() == 1
    assert dashboard.drain_messages() == 0
    assert dashboard.state.build.logs == [f"line {i}" for i in range(5)]


def test_dashboard_rejects_zero_drain(config):
    with pytest.raises(ValueError):
        Dashboard(config, drain_per_frame=0)


def test_dashboard_runs_effects_through_task_table(config):
    spawned = []

    def fake_build(cfg, outbox, dry_run=False):
        def run(cancel):
            spawned.append(cfg)
            outbox.put(BuildFailed("stubbed"))

        return run

    dashboard = Dashboard(config, tasks={Effect.SPAWN_BUILD: ("build", fake_build)})
    dashboard.actions.put(Action.START_BUILD)

    dashboard.apply_pending_actions()
    dashboard.scheduler.shutdown(timeout=5)
    dashboard.drain_messages()

    assert spawned == [config]
    assert not dashboard.state.build.is_building
    assert dashboard.state.status_message == "Build failed: stubbed"


def test_quit_stops_applying_actions(config):
    dashboard = Dashboard(config, tasks={})
    dashboard.actions.put(Action.QUIT)
    dashboard.actions.put(Action.NEXT_TAB)

    dashboard.apply_pending_actions()

    assert dashboard.state.should_quit
    assert dashboard.state.tab is Tab.BUILD


def test_config_summary_hides_password(config):
    config.deploy.password = "hunter2"

    summary = summarize_config(config)

    assert "hunter2" not in " ".join(summary.values())
    assert summary["Host"] == "deploy@vps.test:2222"
    assert summary["Service"] == "my-app.service"


@pytest.mark.parametrize("tab", list(Tab))
def test_every_tab_renders(config, tab):
    state = AppState(config_summary=summarize_config(config), tab=tab)
    state.monitor.is_monitoring = True
    state.apply_message(MonitorUpdate(ApplicationStatus(True, True, "active", response_latency=0.01)))
    console = Console(record=True, width=120, color_system=None)

    console.print(render(state))

    output = console.export_text()
    assert tab.title in output
    assert "q/Esc quit" in output


def test_dashboard_passes_dry_run_to_tasks(config):
    received = []

    def fake_deploy(cfg, outbox, dry_run=False):
        received.append(dry_run)
        return lambda cancel: outbox.put(DeployCompleted("DRY RUN: Would deploy my-app to vps.test", False, 0.0))

    dashboard = Dashboard(config, tasks={Effect.SPAWN_DEPLOY: ("deploy", fake_deploy)}, dry_run=True)
    dashboard.actions.put(Action.START_DEPLOY)

    dashboard.apply_pending_actions()
    dashboard.scheduler.shutdown(timeout=5)
    dashboard.drain_messages()

    assert received == [True]
    assert dashboard.state.deploy.logs == ["DRY RUN: Would deploy my-app to vps.test"]


def test_dry_run_is_shown_in_title(config):
    state = AppState(config_summary=summarize_config(config), dry_run=True)
    console = Console(record=True, width=120, color_system=None)

    console.print(render(state))

    assert "[dry run]" in console.export_text()

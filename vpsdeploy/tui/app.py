"""
Dashboard Event Loop

An input thread turns keystrokes into actions; the render loop applies them,
draws a frame, then folds at most ``drain_per_frame`` background messages into
the state. Only the render loop touches AppState.
"""

import queue
import threading
import time
from typing import Dict, Optional

from blessed import Terminal
from rich.console import Console
from rich.live import Live

from vpsdeploy.constants import (
    DEFAULT_DRAIN_PER_FRAME,
    INPUT_POLL_SECONDS,
    RENDER_FRAMES_PER_SECOND,
)
from vpsdeploy.tui.render import render
from vpsdeploy.tui.scheduler import TaskScheduler
from vpsdeploy.tui.state import AppState, Effect, key_to_action
from vpsdeploy.tui.workers import build_task, deploy_task, monitor_task

TASKS = {
    Effect.SPAWN_BUILD: ("build", build_task),
    Effect.SPAWN_DEPLOY: ("deploy", deploy_task),
    Effect.SPAWN_MONITOR: ("monitor", monitor_task),
}


def summarize_config(config) -> Dict[str, str]:
    """Flat, password-free view of the config for the Config tab."""
    return {
        "Config file": str(config.config_path or "-"),
        "Project": config.project.name,
        "Project path": str(config.project_path),
        "Build mode": config.project.build_mode,
        "Host": config.endpoint().connection_string,
        "Auth": "key" if config.deploy.key_path else "password",
        "Deploy path": config.deploy.deploy_path,
        "Service": config.service_name,
        "Health endpoint": config.monitor.health_endpoint or "not configured",
        "Log path": config.monitor.log_path or "not configured",
        "Interval": f"{config.monitor.interval}s",
    }


class Dashboard:
    """Interactive build/deploy/monitor dashboard."""

    def __init__(
        self,
        config,
        drain_per_frame: int = DEFAULT_DRAIN_PER_FRAME,
        terminal: Optional[Terminal] = None,
        console: Optional[Console] = None,
        tasks=None,
        dry_run: bool = False,
    ):
        """
        Args:
            config: Loaded VPSDeployConfig
            drain_per_frame: Messages folded into the state per frame
            terminal: blessed Terminal used for keyboard input
            console: rich Console used for drawing
            tasks: Effect -> (kind, factory) table (defaults to the real workers)
            dry_run: Passed to every task; build and deploy only report what they would do
        """
        if drain_per_frame < 1:
            raise ValueError("drain_per_frame must be at least 1")

        self.config = config
        self.drain_per_frame = drain_per_frame
        self.terminal = terminal
        self.console = console
        self.tasks = tasks if tasks is not None else TASKS
        self.dry_run = dry_run

        self.state = AppState(config_summary=summarize_config(config), dry_run=dry_run)
        self.messages: "queue.Queue" = queue.Queue()
        self.actions: "queue.Queue" = queue.Queue()
        self.scheduler = TaskScheduler(self.messages)
        self._input_stop = threading.Event()

    def _read_input(self) -> None:
        while not self._input_stop.is_set():
            key = self.terminal.inkey(timeout=INPUT_POLL_SECONDS)
            if not key:
                continue
            action = key_to_action(key)
            if action is not None:
                self.actions.put(action)

    def apply_pending_actions(self) -> None:
        while True:
            try:
                action = self.actions.get_nowait()
            except queue.Empty:
                return
            self._run_effect(self.state.handle_action(action))
            if self.state.should_quit:
                return

    def _run_effect(self, effect: Optional[Effect]) -> None:
        if effect is None:
            return
        if effect is Effect.STOP_MONITOR:
            self.scheduler.cancel("monitor")
            return
        kind, factory = self.tasks[effect]
        self.scheduler.spawn(kind, factory(self.config, self.messages, dry_run=self.dry_run))

    def drain_messages(self) -> int:
        """Fold up to drain_per_frame queued messages into the state."""
        applied = 0
        while applied < self.drain_per_frame:
            try:
                message = self.messages.get_nowait()
            except queue.Empty:
                break
            self.state.apply_message(message)
            applied += 1
        self.scheduler.reap()
        return applied

    def run(self) -> None:
        """Run until the user quits, then stop and wait for background tasks."""
        if self.terminal is None:
            self.terminal = Terminal()
        if self.console is None:
            self.console = Console()

        input_thread = threading.Thread(target=self._read_input, name="dashboard-input", daemon=True)
        frame_delay = 1.0 / RENDER_FRAMES_PER_SECOND

        try:
            with self.terminal.cbreak(), self.terminal.hidden_cursor():
                input_thread.start()
                with Live(
                    render(self.state),
                    console=self.console,
                    screen=True,
                    auto_refresh=False,
                ) as live:
                    while not self.state.should_quit:
                        self.apply_pending_actions()
                        if self.state.should_quit:
                            break
                        live.update(render(self.state), refresh=True)
                        self.drain_messages()
                        time.sleep(frame_delay)
        finally:
            self._input_stop.set()
            self.scheduler.shutdown()
            if input_thread.is_alive():
                input_thread.join()


def run_dashboard(config, drain_per_frame: int = DEFAULT_DRAIN_PER_FRAME, dry_run: bool = False) -> None:
    Dashboard(config, drain_per_frame=drain_per_frame, dry_run=dry_run).run()

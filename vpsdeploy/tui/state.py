"""
Dashboard State

Owned by the render loop. Mutated only through handle_action (keyboard input)
and apply_message (background task output); neither does any I/O.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from vpsdeploy.constants import MAX_PANE_LOG_LINES
from vpsdeploy.models.results import BuildInfo
from vpsdeploy.models.status import ApplicationStatus, MonitoringMetrics
from vpsdeploy.tui.messages import (
    BuildCompleted,
    BuildFailed,
    BuildProgress,
    DeployCompleted,
    DeployFailed,
    DeployProgress,
    Message,
    MonitorFailed,
    MonitorUpdate,
)
from vpsdeploy.utils import format_duration


class Tab(Enum):
    BUILD = "Build"
    DEPLOY = "Deploy"
    MONITOR = "Monitor"
    CONFIG = "Config"
    EXIT = "Exit"

    @property
    def title(self) -> str:
        return self.value

    def next(self) -> "Tab":
        tabs = list(Tab)
        return tabs[(tabs.index(self) + 1) % len(tabs)]

    def prev(self) -> "Tab":
        tabs = list(Tab)
        return tabs[(tabs.index(self) - 1) % len(tabs)]


class Action(Enum):
    QUIT = "quit"
    NEXT_TAB = "next_tab"
    PREV_TAB = "prev_tab"
    START_BUILD = "start_build"
    START_DEPLOY = "start_deploy"
    START_MONITOR = "start_monitor"
    CLEAR_STATUS = "clear_status"


class Effect(Enum):
    """Work the loop must start or stop after an action was applied."""

    SPAWN_BUILD = "build"
    SPAWN_DEPLOY = "deploy"
    SPAWN_MONITOR = "monitor"
    STOP_MONITOR = "stop_monitor"


KEY_ACTIONS: Dict[str, Action] = {
    "q": Action.QUIT,
    "KEY_ESCAPE": Action.QUIT,
    "KEY_RIGHT": Action.NEXT_TAB,
    "l": Action.NEXT_TAB,
    "KEY_LEFT": Action.PREV_TAB,
    "h": Action.PREV_TAB,
    "b": Action.START_BUILD,
    "d": Action.START_DEPLOY,
    "m": Action.START_MONITOR,
    "c": Action.CLEAR_STATUS,
}


def key_to_action(key) -> Optional[Action]:
    """Map a blessed keystroke (or a plain string) to an Action."""
    name = getattr(key, "name", None)
    if name and name in KEY_ACTIONS:
        return KEY_ACTIONS[name]
    text = str(key)
    if not text:
        return None
    return KEY_ACTIONS.get(text)


def _append_capped(lines: List[str], line: Optional[str]) -> None:
    if not line:
        return
    lines.append(line)
    overflow = len(lines) - MAX_PANE_LOG_LINES
    if overflow > 0:
        del lines[:overflow]


@dataclass
class BuildPane:
    is_building: bool = False
    progress: float = 0.0
    logs: List[str] = field(default_factory=list)
    info: Optional[BuildInfo] = None


@dataclass
class DeployPane:
    is_deploying: bool = False
    progress: float = 0.0
    current_step: str = "Ready"
    logs: List[str] = field(default_factory=list)


@dataclass
class MonitorPane:
    is_monitoring: bool = False
    status: Optional[ApplicationStatus] = None
    metrics: Optional[MonitoringMetrics] = None
    logs: List[str] = field(default_factory=list)
    last_error: Optional[str] = None


@dataclass
class AppState:
    """Everything the dashboard draws."""

    config_summary: Dict[str, str] = field(default_factory=dict)
    dry_run: bool = False
    tab: Tab = Tab.BUILD
    should_quit: bool = False
    status_message: Optional[str] = None
    build: BuildPane = field(default_factory=BuildPane)
    deploy: DeployPane = field(default_factory=DeployPane)
    monitor: MonitorPane = field(default_factory=MonitorPane)

    def handle_action(self, action: Action) -> Optional[Effect]:
        """
        Apply a keyboard action.

        Returns:
            The task to start or stop, if any
        """
        if action is Action.QUIT:
            self.should_quit = True
        elif action is Action.NEXT_TAB:
            if self.tab is Tab.EXIT:
                self.should_quit = True
            else:
                self.tab = self.tab.next()
        elif action is Action.PREV_TAB:
            self.tab = self.tab.prev()
        elif action is Action.CLEAR_STATUS:
            self.status_message = None
        elif action is Action.START_BUILD:
            self.tab = Tab.BUILD
            if self.build.is_building:
                self.status_message = "Build already running"
                return None
            self.build = BuildPane(is_building=True, info=self.build.info)
            self.status_message = "Build started"
            return Effect.SPAWN_BUILD
        elif action is Action.START_DEPLOY:
            self.tab = Tab.DEPLOY
            if self.deploy.is_deploying:
                self.status_message = "Deployment already running"
                return None
            self.deploy = DeployPane(is_deploying=True, current_step="Starting")
            self.status_message = "Deployment started"
            return Effect.SPAWN_DEPLOY
        elif action is Action.START_MONITOR:
            self.tab = Tab.MONITOR
            if self.monitor.is_monitoring:
                self.monitor.is_monitoring = False
                self.status_message = "Monitoring stopped"
                return Effect.STOP_MONITOR
            self.monitor.is_monitoring = True
            self.monitor.last_error = None
            self.status_message = "Monitoring started"
            return Effect.SPAWN_MONITOR
        return None

    def apply_message(self, message: Message) -> None:
        """Fold one background message into the state."""
        if isinstance(message, BuildProgress):
            self.build.progress = message.percent
            _append_capped(self.build.logs, message.line)
        elif isinstance(message, BuildCompleted):
            self.build.is_building = False
            self.build.progress = 100.0
            self.build.info = message.info
            self.status_message = f"Build completed in {format_duration(message.duration_seconds)}"
        elif isinstance(message, BuildFailed):
            self.build.is_building = False
            _append_capped(self.build.logs, f"✗ {message.error}")
            self.status_message = f"Build failed: {message.error}"
        elif isinstance(message, DeployProgress):
            self.deploy.progress = message.percent
            self.deploy.current_step = message.step
            _append_capped(self.deploy.logs, message.line)
        elif isinstance(message, DeployCompleted):
            self.deploy.is_deploying = False
            self.deploy.progress = 100.0
            self.deploy.current_step = "Done"
            _append_capped(self.deploy.logs, message.message)
            self.status_message = "Deployment completed successfully"
        elif isinstance(message, DeployFailed):
            self.deploy.is_deploying = False
            self.deploy.current_step = "Failed"
            _append_capped(self.deploy.logs, f"✗ {message.error}")
            self.status_message = f"Deployment failed: {message.error}"
        elif isinstance(message, MonitorUpdate):
            if not self.monitor.is_monitoring:
                return
            self.monitor.status = message.status
            self.monitor.metrics = message.metrics
            if message.logs:
                self.monitor.logs = list(message.logs)[-MAX_PANE_LOG_LINES:]
        elif isinstance(message, MonitorFailed):
            self.monitor.is_monitoring = False
            self.monitor.last_error = message.error
            self.status_message = f"Monitoring failed: {message.error}"
        else:
            raise TypeError(f"Unknown dashboard message: {message!r}")

    @property
    def has_running_tasks(self) -> bool:
        return self.build.is_building or self.deploy.is_deploying or self.monitor.is_monitoring

"""
vpsdeploy Dashboard

Keyboard-driven view over build, deploy and monitor tasks.
"""

from .app import Dashboard, run_dashboard
from .scheduler import TaskHandle, TaskScheduler
from .state import Action, AppState, Effect, Tab

__all__ = [
    "Dashboard",
    "run_dashboard",
    "TaskHandle",
    "TaskScheduler",
    "Action",
    "AppState",
    "Effect",
    "Tab",
]

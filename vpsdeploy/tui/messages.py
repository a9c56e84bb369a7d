"""
Dashboard Messages

Everything a background task can tell the render loop: one message type per
operation and outcome.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from vpsdeploy.models.results import BuildInfo
from vpsdeploy.models.status import ApplicationStatus, MonitoringMetrics


@dataclass(frozen=True)
class BuildProgress:
    percent: float
    line: Optional[str] = None


@dataclass(frozen=True)
class BuildCompleted:
    info: BuildInfo
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class BuildFailed:
    error: str


@dataclass(frozen=True)
class DeployProgress:
    percent: float
    step: str
    line: Optional[str] = None


@dataclass(frozen=True)
class DeployCompleted:
    message: str
    backup_created: bool = False
    duration_seconds: float = 0.0


@dataclass(frozen=True)
class DeployFailed:
    error: str


@dataclass(frozen=True)
class MonitorUpdate:
    status: ApplicationStatus
    metrics: Optional[MonitoringMetrics] = None
    logs: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MonitorFailed:
    error: str


Message = Union[
    BuildProgress,
    BuildCompleted,
    BuildFailed,
    DeployProgress,
    DeployCompleted,
    DeployFailed,
    MonitorUpdate,
    MonitorFailed,
]

FAILURE_MESSAGES = {
    "build": BuildFailed,
    "deploy": DeployFailed,
    "monitor": MonitorFailed,
}

"""
Status Models

Health snapshots, metrics derived from them, and progress notifications.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any


ACTIVE_STATE = "active"


@dataclass(frozen=True)
class ProgressEvent:
    """One ordered step notification of a multi-stage operation."""

    percent: float
    label: str

    def __post_init__(self):
        if not 0 <= self.percent <= 100:
            raise ValueError(f"Progress must be within 0-100, got {self.percent}")


@dataclass
class ApplicationStatus:
    """A single health check: HTTP health, SSH reachability and unit state."""

    health_ok: bool = False
    reachable_ok: bool = False
    service_state: Optional[str] = None
    last_error: Optional[str] = None
    response_latency: Optional[float] = None
    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_healthy(self) -> bool:
        """True only when health, reachability and an active unit all hold."""
        return self.health_ok and self.reachable_ok and self.service_state == ACTIVE_STATE

    def summary(self) -> str:
        """Get status summary."""
        if self.is_healthy():
            return "All systems operational"

        issues = []
        if not self.health_ok:
            issues.append("Health check failing")
        if not self.reachable_ok:
            issues.append("SSH connection failed")
        if self.service_state != ACTIVE_STATE:
            issues.append("Service not active")
        return f"Issues: {', '.join(issues)}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "healthy": self.is_healthy(),
            "health_ok": self.health_ok,
            "reachable_ok": self.reachable_ok,
            "service_state": self.service_state,
            "last_error": self.last_error,
            "response_latency_ms": (
                round(self.response_latency * 1000) if self.response_latency is not None else None
            ),
            "checked_at": self.checked_at.isoformat(),
        }


@dataclass
class MonitoringMetrics:
    """Coarse metrics computed from one status snapshot."""

    uptime_percentage: float
    average_response_time: Optional[float]
    error_count: int
    last_check: datetime

    @classmethod
    def from_status(cls, status: ApplicationStatus) -> "MonitoringMetrics":
        latency = status.response_latency
        return cls(
            uptime_percentage=100.0 if status.is_healthy() else 0.0,
            average_response_time=latency * 1000 if latency is not None else None,
            error_count=1 if status.last_error else 0,
            last_check=status.checked_at,
        )

"""
vpsdeploy Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .results import (
    ResultStatus,
    SSHResult,
    DeploymentResult,
    ValidationResult,
    BuildInfo,
)
from .deployment import (
    DeploymentDescriptor,
    ServiceUnitDescriptor,
    DeploymentStatus,
)
from .status import (
    ACTIVE_STATE,
    ApplicationStatus,
    MonitoringMetrics,
    ProgressEvent,
)
from .ssh import RemoteEndpoint

__all__ = [
    # Results
    "ResultStatus",
    "SSHResult",
    "DeploymentResult",
    "ValidationResult",
    "BuildInfo",
    # Deployment
    "DeploymentDescriptor",
    "ServiceUnitDescriptor",
    "DeploymentStatus",
    # Status
    "ACTIVE_STATE",
    "ApplicationStatus",
    "MonitoringMetrics",
    "ProgressEvent",
    # SSH
    "RemoteEndpoint",
]

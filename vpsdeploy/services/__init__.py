"""
vpsdeploy Services Layer

Remote sessions, deploy pipeline, monitoring and the local build wrapper.
"""

from .ssh_service import SSHSession, connect_with_retry
from .remote_ops import RemoteOps
from .systemd_service import ServiceLifecycleManager
from .deployment_service import DeploymentPipeline
from .monitor_service import StatusMonitor
from .build_service import BuildService

__all__ = [
    "SSHSession",
    "connect_with_retry",
    "RemoteOps",
    "ServiceLifecycleManager",
    "DeploymentPipeline",
    "StatusMonitor",
    "BuildService",
]

"""
Deployment Models

What gets deployed where, the systemd unit that runs it, and what the
remote host reports about it afterwards.
"""

import posixpath
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Dict, Any

from vpsdeploy.constants import BACKUP_SUFFIX, SYSTEMD_UNIT_DIR


@dataclass(frozen=True)
class DeploymentDescriptor:
    """Local artifact plus its remote destination and service name."""

    local_binary: Path
    deploy_path: str
    binary_name: str
    service_name: str
    local_size: int = 0

    @property
    def remote_binary_path(self) -> str:
        """Live binary path on the remote host."""
        return posixpath.join(self.deploy_path, self.binary_name)

    @property
    def backup_path(self) -> str:
        """The single backup slot next to the live binary."""
        return f"{self.remote_binary_path}{BACKUP_SUFFIX}"

    def with_local_size(self) -> "DeploymentDescriptor":
        """Return a copy whose size reflects the file currently on disk."""
        path = Path(self.local_binary)
        size = path.stat().st_size if path.is_file() else 0
        return replace(self, local_size=size)

    def __repr__(self) -> str:
        return f"DeploymentDescriptor(binary={self.binary_name}, target={self.remote_binary_path})"


@dataclass(frozen=True)
class ServiceUnitDescriptor:
    """Fields of the systemd unit; derived, never configured directly."""

    unit_name: str
    description: str
    exec_path: str
    working_directory: str
    user: str
    syslog_identifier: str
    restart_policy: str = "always"
    restart_sec: int = 5

    @classmethod
    def from_descriptor(cls, descriptor: DeploymentDescriptor, username: str) -> "ServiceUnitDescriptor":
        """Derive the unit from a deployment descriptor and the SSH user."""
        unit_name = descriptor.service_name
        if not unit_name.endswith(".service"):
            unit_name = f"{unit_name}.service"
        return cls(
            unit_name=unit_name,
            description=f"{descriptor.binary_name} - deployed by vpsdeploy",
            exec_path=descriptor.remote_binary_path,
            working_directory=descriptor.deploy_path,
            user=username,
            syslog_identifier=descriptor.binary_name,
        )

    @property
    def unit_path(self) -> str:
        """Final location of the unit file."""
        return posixpath.join(SYSTEMD_UNIT_DIR, self.unit_name)

    def render(self) -> str:
        """Render the unit file text."""
        return f"""[Unit]
Description={self.description}
After=network.target

[Service]
Type=simple
User={self.user}
WorkingDirectory={self.working_directory}
ExecStart={self.exec_path}
Restart={self.restart_policy}
RestartSec={self.restart_sec}
StandardOutput=journal
StandardError=journal
SyslogIdentifier={self.syslog_identifier}

# Security settings
NoNewPrivileges=yes
PrivateTmp=yes
ProtectSystem=strict
ReadWritePaths={self.working_directory}
ProtectHome=yes

[Install]
WantedBy=multi-user.target
"""


@dataclass
class DeploymentStatus:
    """What the remote host reports about the current deployment."""

    service_active: bool
    last_deployment: Optional[str] = None
    version: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "service_active": self.service_active,
            "last_deployment": self.last_deployment,
            "version": self.version,
        }

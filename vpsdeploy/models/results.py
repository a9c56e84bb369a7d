"""
Result Models

Dataclass models for operation results and command outputs.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from enum import Enum


class ResultStatus(Enum):
    """Status of an operation result."""

    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class SSHResult:
    """Result of an SSH command execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    host: str = ""
    command: str = ""
    duration_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        """Check if SSH command succeeded."""
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        """Check if SSH command failed."""
        return self.returncode != 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"SSHResult(host={self.host}, returncode={self.returncode}, duration={self.duration_seconds:.2f}s)"


@dataclass
class DeploymentResult:
    """Outcome of a deploy run (real or dry)."""

    status: ResultStatus
    message: str
    host: str
    binary_name: str
    dry_run: bool = False
    backup_created: bool = False
    planned_actions: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        """Check if deployment succeeded."""
        return self.status == ResultStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "message": self.message,
            "host": self.host,
            "binary": self.binary_name,
            "dry_run": self.dry_run,
            "backup_created": self.backup_created,
            "planned_actions": list(self.planned_actions),
            "duration_seconds": round(self.duration_seconds, 3),
        }

    def __repr__(self) -> str:
        return f"DeploymentResult(status={self.status.value}, host={self.host}, dry_run={self.dry_run})"


@dataclass
class ValidationResult:
    """Result of a validation operation."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if validation has errors."""
        return len(self.errors) > 0

    def add_error(self, error: str) -> None:
        """Add an error to the validation result."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str) -> None:
        """Add a warning to the validation result."""
        self.warnings.append(warning)

    def __repr__(self) -> str:
        return f"ValidationResult(valid={self.is_valid}, errors={len(self.errors)}, warnings={len(self.warnings)})"


@dataclass
class BuildInfo:
    """What the local build produced."""

    project_name: str
    build_mode: str
    binary_exists: bool
    file_size: Optional[int] = None
    binary_path: Optional[str] = None

    def format_size(self) -> str:
        """Format file size for display."""
        if self.file_size is None:
            return "N/A"
        from vpsdeploy.utils import format_size

        return format_size(self.file_size)

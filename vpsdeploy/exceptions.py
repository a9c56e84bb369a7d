"""
vpsdeploy Exception Hierarchy

Every failure the deploy core can surface, with enough context (command,
exit code, stderr, remote path) to diagnose it without re-running.
"""

from typing import Optional


class VPSDeployError(Exception):
    """Base exception for all vpsdeploy errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ConfigurationError(VPSDeployError):
    """Raised when configuration is invalid or missing."""

    pass


class BuildError(VPSDeployError):
    """Raised when the local build fails."""

    pass


class SSHError(VPSDeployError):
    """Raised when SSH operations fail."""

    pass


class SSHConnectionError(SSHError):
    """Raised when a session could not be established within the attempt budget."""

    def __init__(self, host: str, port: int, attempts: int, last_error: Optional[BaseException]):
        self.host = host
        self.port = port
        self.attempts = attempts
        self.last_error = last_error
        message = f"SSH connection to {host}:{port} failed after {attempts} attempt(s)"
        context = f"Last error: {last_error}" if last_error else None
        super().__init__(message, context)


class CommandError(SSHError):
    """Raised when a remote command exits with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str = "", stdout: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        message = f"Command failed with exit code {exit_code}: {command}"
        context = f"stderr: {stderr.strip()}" if stderr.strip() else None
        super().__init__(message, context)


class TransferError(SSHError):
    """Raised when uploading a file to the remote host fails."""

    def __init__(self, local_path: str, remote_path: str, reason: str):
        self.local_path = local_path
        self.remote_path = remote_path
        message = f"Failed to upload {local_path} to {remote_path}"
        super().__init__(message, reason)


class DeploymentError(VPSDeployError):
    """Raised when deployment operations fail."""

    pass


class ServiceStartError(DeploymentError):
    """Raised when a service is not active after being started."""

    def __init__(self, service_name: str, state: str):
        self.service_name = service_name
        self.state = state
        message = f"Service {service_name} failed to start"
        context = f"systemctl is-active reported: {state or '<empty>'}"
        super().__init__(message, context)


class RollbackError(DeploymentError):
    """Raised when a rollback fails."""

    pass


class RollbackUnavailableError(RollbackError):
    """Raised when there is no backup binary to roll back to."""

    def __init__(self, backup_path: str):
        self.backup_path = backup_path
        message = "No backup found for rollback"
        context = f"Backup file: {backup_path}"
        super().__init__(message, context)

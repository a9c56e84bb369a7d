"""
SSH Configuration Models

Dataclass models for remote endpoints.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from vpsdeploy.constants import DEFAULT_SSH_PORT
from vpsdeploy.exceptions import ConfigurationError


@dataclass(frozen=True)
class RemoteEndpoint:
    """Where and as whom to connect: host, port, user and credentials."""

    host: str
    username: str
    port: int = DEFAULT_SSH_PORT
    key_path: Optional[str] = None
    password: Optional[str] = None

    @property
    def key_path_expanded(self) -> Optional[Path]:
        """Get expanded key path (resolves ~)."""
        if self.key_path:
            return Path(self.key_path).expanduser()
        return None

    @property
    def key_exists(self) -> bool:
        """Check if private key file exists."""
        path = self.key_path_expanded
        return path is not None and path.is_file()

    @property
    def has_credentials(self) -> bool:
        """Check that at least one credential form is configured."""
        return bool(self.key_path) or bool(self.password)

    @property
    def connection_string(self) -> str:
        """Get SSH connection string (user@host:port)."""
        return f"{self.username}@{self.host}:{self.port}"

    def validate(self) -> None:
        """
        Check the endpoint before any connection attempt.

        Raises:
            ConfigurationError: If host, user or credentials are missing
        """
        if not self.host or not self.host.strip():
            raise ConfigurationError("SSH host cannot be empty")
        if not self.username or not self.username.strip():
            raise ConfigurationError("SSH user cannot be empty")
        if not self.has_credentials:
            raise ConfigurationError(
                "SSH authentication not configured",
                context="Provide either deploy.key_path or deploy.password",
            )

    def __repr__(self) -> str:
        auth = "key" if self.key_path else "password"
        return f"RemoteEndpoint({self.connection_string}, auth={auth})"

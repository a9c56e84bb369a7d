"""SSH sessions: authenticated transports to the deploy target, with bounded retry."""

import socket
import threading
import time
from typing import Callable, Optional

import paramiko

from vpsdeploy.constants import (
    BACKOFF_BASE,
    DEPLOY_CONNECT_ATTEMPTS,
    SSH_CONNECTION_TIMEOUT,
    SSH_HANDSHAKE_TIMEOUT,
)
from vpsdeploy.exceptions import SSHConnectionError, SSHError
from vpsdeploy.logger import DeployLogger
from vpsdeploy.models.ssh import RemoteEndpoint


class SSHSession:
    """
    An open, authenticated channel to one endpoint.

    Owned by the operation that opened it and closed when that operation
    ends; never shared between concurrent operations.
    """

    def __init__(self, transport: paramiko.Transport, endpoint: RemoteEndpoint):
        self.transport = transport
        self.endpoint = endpoint

    @property
    def host(self) -> str:
        return self.endpoint.host

    @property
    def is_active(self) -> bool:
        return self.transport.is_active()

    def exec_command(self, command: str) -> tuple[int, str, str]:
        """
        Run *command* in a new channel and collect its output fully.

        Returns:
            Tuple of (exit_code, stdout, stderr)
        """
        try:
            channel = self.transport.open_session()
        except paramiko.SSHException as e:
            raise SSHError(f"Failed to open channel for command: {command}", context=str(e)) from e

        try:
            channel.exec_command(command)
            stdout = channel.makefile("rb").read().decode("utf-8", "replace")
            stderr = channel.makefile_stderr("rb").read().decode("utf-8", "replace")
            exit_code = channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            raise SSHError(f"Failed to execute command: {command}", context=str(e)) from e
        finally:
            channel.close()

        return exit_code, stdout, stderr

    def stream_command(
        self,
        command: str,
        on_line: Callable[[str], None],
        stop_event: Optional[threading.Event] = None,
        poll_interval: float = 0.1,
    ) -> int:
        """
        Run a long-lived command and hand each stdout line to *on_line*.

        Returns when the command exits or *stop_event* is set; the exit code is
        -1 when stopped early.
        """
        channel = self.transport.open_session()
        buffer = ""
        try:
            channel.exec_command(command)
            while True:
                if stop_event is not None and stop_event.is_set():
                    return -1
                if channel.recv_ready():
                    chunk = channel.recv(4096)
                    if not chunk:
                        break
                    buffer += chunk.decode("utf-8", "replace")
                    *lines, buffer = buffer.split("\n")
                    for line in lines:
                        if line.strip():
                            on_line(line)
                elif channel.exit_status_ready():
                    break
                else:
                    time.sleep(poll_interval)
            if buffer.strip():
                on_line(buffer)
            return channel.recv_exit_status()
        finally:
            channel.close()

    def open_sftp(self) -> paramiko.SFTPClient:
        """Open an SFTP client over the same authenticated transport."""
        return paramiko.SFTPClient.from_transport(self.transport)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"SSHSession({self.endpoint.connection_string})"


def backoff_delay(attempt: int) -> int:
    """Seconds to wait after failed attempt number *attempt* (1-based)."""
    return BACKOFF_BASE ** (attempt - 1)


def connect_with_retry(
    endpoint: RemoteEndpoint,
    max_attempts: int = DEPLOY_CONNECT_ATTEMPTS,
    logger: Optional[DeployLogger] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SSHSession:
    """
    Establish an SSH session, retrying with exponential backoff.

    Waits 1s, 2s, 4s, ... between attempts and never after the last one.

    Args:
        endpoint: Host, port, user and credentials
        max_attempts: Total number of attempts (at least 1)
        logger: Optional DeployLogger
        sleep: Delay function (injectable for tests)

    Returns:
        An authenticated SSHSession

    Raises:
        ConfigurationError: If the endpoint has no usable credentials
        SSHConnectionError: If every attempt failed
    """
    endpoint.validate()
    max_attempts = max(1, max_attempts)
    last_error: Optional[BaseException] = None

    for attempt in range(1, max_attempts + 1):
        try:
            session = _connect_once(endpoint)
        except (OSError, paramiko.SSHException, SSHError) as e:
            last_error = e
            if attempt < max_attempts:
                delay = backoff_delay(attempt)
                if logger:
                    logger.warning(
                        f"SSH connection to {endpoint.host} failed "
                        f"(attempt {attempt}/{max_attempts}), retrying in {delay}s: {e}"
                    )
                sleep(delay)
            continue

        if logger:
            logger.log(f"SSH connected to {endpoint.connection_string}")
        return session

    raise SSHConnectionError(endpoint.host, endpoint.port, max_attempts, last_error) from last_error


def _connect_once(endpoint: RemoteEndpoint) -> SSHSession:
    """One attempt: TCP connect, handshake, key auth then password auth."""
    sock = socket.create_connection((endpoint.host, endpoint.port), timeout=SSH_CONNECTION_TIMEOUT)
    transport = paramiko.Transport(sock)
    try:
        transport.start_client(timeout=SSH_HANDSHAKE_TIMEOUT)

        authenticated = False
        if endpoint.key_exists:
            authenticated = _auth_with_key(transport, endpoint)

        if not authenticated and endpoint.password:
            authenticated = _auth_with_password(transport, endpoint)

        if not authenticated:
            raise SSHError(f"SSH authentication failed for user {endpoint.username}")
    except BaseException:
        transport.close()
        raise

    return SSHSession(transport, endpoint)


def _auth_with_key(transport: paramiko.Transport, endpoint: RemoteEndpoint) -> bool:
    try:
        key = paramiko.PKey.from_path(str(endpoint.key_path_expanded))
        transport.auth_publickey(endpoint.username, key)
    except (paramiko.SSHException, OSError, ValueError):
        return False
    return transport.is_authenticated()


def _auth_with_password(transport: paramiko.Transport, endpoint: RemoteEndpoint) -> bool:
    try:
        transport.auth_password(endpoint.username, endpoint.password)
    except paramiko.SSHException:
        return False
    return transport.is_authenticated()

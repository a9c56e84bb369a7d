"""Primitive remote actions built on an SSH session."""

import shlex
import threading
import time
from pathlib import Path
from typing import Callable, Optional

import paramiko

from vpsdeploy.constants import UPLOAD_CHUNK_SIZE, UPLOAD_FILE_MODE
from vpsdeploy.exceptions import CommandError, SSHError, TransferError
from vpsdeploy.logger import DeployLogger
from vpsdeploy.models.results import SSHResult


class RemoteOps:
    """
    Run commands and move files on the remote host.

    Every non-zero exit becomes a CommandError. Call sites that want a
    best-effort check catch it explicitly.
    """

    def __init__(self, session, logger: Optional[DeployLogger] = None):
        """
        Args:
            session: An open SSHSession (or anything with the same surface)
            logger: Optional DeployLogger
        """
        self.session = session
        self.logger = logger

    def execute(self, command: str) -> SSHResult:
        """Run *command* and return the raw result without judging the exit code."""
        if self.logger:
            self.logger.log_command(command)

        start_time = time.monotonic()
        exit_code, stdout, stderr = self.session.exec_command(command)
        result = SSHResult(
            returncode=exit_code,
            stdout=stdout,
            stderr=stderr,
            host=self.session.host,
            command=command,
            duration_seconds=time.monotonic() - start_time,
        )

        if self.logger:
            self.logger.log_output(stdout, "stdout")
            self.logger.log_output(stderr, "stderr")
        return result

    def run(self, command: str) -> tuple[str, str]:
        """
        Run *command* on the remote host.

        Returns:
            Tuple of (stdout, stderr)

        Raises:
            CommandError: If the command exits non-zero
        """
        result = self.execute(command)
        if result.is_failure:
            raise CommandError(command, result.returncode, result.stderr, result.stdout)
        return result.stdout, result.stderr

    def upload(self, local_path: Path, remote_path: str) -> int:
        """
        Stream a local file to *remote_path* in fixed-size chunks (mode 0644).

        Returns:
            Number of bytes sent

        Raises:
            TransferError: On any local or remote I/O failure
        """
        sent = 0
        try:
            with open(local_path, "rb") as source, self.session.open_sftp() as sftp:
                with sftp.open(remote_path, "wb") as target:
                    while True:
                        chunk = source.read(UPLOAD_CHUNK_SIZE)
                        if not chunk:
                            break
                        target.write(chunk)
                        sent += len(chunk)
                sftp.chmod(remote_path, UPLOAD_FILE_MODE)
        except (OSError, EOFError, paramiko.SSHException) as e:
            raise TransferError(str(local_path), remote_path, str(e)) from e

        if self.logger:
            self.logger.log(f"Uploaded {local_path} -> {remote_path} ({sent} bytes)")
        return sent

    def exists(self, remote_path: str) -> bool:
        """
        Check whether a regular file exists; any failure counts as absent.
        """
        command = f"[ -f {shlex.quote(remote_path)} ] && echo exists || echo 'not exists'"
        try:
            stdout, _ = self.run(command)
        except SSHError:
            return False
        return stdout.strip() == "exists"

    def ensure_dir(self, remote_path: str) -> None:
        """Create *remote_path* and its parents (idempotent)."""
        self.run(f"mkdir -p {shlex.quote(remote_path)}")

    def copy(self, source: str, target: str) -> None:
        self.run(f"cp {shlex.quote(source)} {shlex.quote(target)}")

    def make_executable(self, remote_path: str) -> None:
        self.run(f"chmod +x {shlex.quote(remote_path)}")

    def tail(self, remote_path: str, lines: int) -> str:
        """Return the last *lines* lines of a remote file."""
        stdout, _ = self.run(f"tail -n {int(lines)} {shlex.quote(remote_path)}")
        return stdout

    def stat_mtime(self, remote_path: str) -> Optional[int]:
        """Modification time as a unix timestamp, or None if unavailable."""
        try:
            stdout, _ = self.run(f"stat -c %Y {shlex.quote(remote_path)}")
        except CommandError:
            return None
        try:
            return int(stdout.strip())
        except ValueError:
            return None

    def list_long(self, remote_path: str) -> Optional[str]:
        """``ls -lh`` line for a path, or None if it cannot be listed."""
        try:
            stdout, _ = self.run(f"ls -lh {shlex.quote(remote_path)}")
        except CommandError:
            return None
        return stdout.strip()

    def follow(
        self,
        remote_path: str,
        lines: int,
        on_line: Callable[[str], None],
        stop_event: Optional[threading.Event] = None,
    ) -> int:
        """Stream a remote file like ``tail -f`` until stopped."""
        command = f"tail -f -n {int(lines)} {shlex.quote(remote_path)}"
        if self.logger:
            self.logger.log_command(command)
        return self.session.stream_command(command, on_line, stop_event)

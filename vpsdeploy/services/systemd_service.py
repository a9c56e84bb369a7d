"""systemd unit installation and service start/stop/verify on the remote host."""

import posixpath
import shlex
from typing import Optional

from vpsdeploy.constants import REMOTE_TMP_DIR, SYSTEMD_UNIT_DIR
from vpsdeploy.exceptions import CommandError, ServiceStartError
from vpsdeploy.logger import DeployLogger
from vpsdeploy.models.deployment import ServiceUnitDescriptor
from vpsdeploy.models.status import ACTIVE_STATE
from vpsdeploy.services.remote_ops import RemoteOps


class ServiceLifecycleManager:
    """Drives ``systemctl`` through RemoteOps."""

    def __init__(self, ops: RemoteOps, logger: Optional[DeployLogger] = None):
        self.ops = ops
        self.logger = logger

    def install(self, unit: ServiceUnitDescriptor) -> None:
        """
        Write the unit file and reload systemd.

        Renders into /tmp, then moves the file into the unit directory with sudo.
        """
        temp_path = posixpath.join(REMOTE_TMP_DIR, unit.unit_name)
        content = unit.render()
        self.ops.run(f"cat > {shlex.quote(temp_path)} << 'EOF'\n{content}\nEOF")
        self.ops.run(f"sudo mv {shlex.quote(temp_path)} {SYSTEMD_UNIT_DIR}/")
        self.ops.run("sudo systemctl daemon-reload")

        if self.logger:
            self.logger.success(f"Created systemd service: {unit.unit_name}")

    def stop(self, name: str, ignore_errors: bool = True) -> bool:
        """Stop a unit. Returns False if stopping failed and errors are ignored."""
        try:
            self.ops.run(f"sudo systemctl stop {shlex.quote(name)}")
        except CommandError as e:
            if not ignore_errors:
                raise
            if self.logger:
                self.logger.log(f"Ignoring stop failure for {name}: {e.message}", "DEBUG")
            return False
        return True

    def start(self, name: str) -> None:
        """
        Stop, enable and start a unit, then require it to report ``active``.

        Raises:
            CommandError: If enable or start exit non-zero
            ServiceStartError: If the unit is not exactly ``active`` afterwards
        """
        self.stop(name, ignore_errors=True)
        self.ops.run(f"sudo systemctl enable {shlex.quote(name)}")
        self.ops.run(f"sudo systemctl start {shlex.quote(name)}")

        state = self.query_state(name)
        if state != ACTIVE_STATE:
            raise ServiceStartError(name, state)

        if self.logger:
            self.logger.success(f"Service {name} started successfully")

    def query_state(self, name: str) -> str:
        """
        Return what ``systemctl is-active`` prints ("active", "inactive", "failed", ...).

        is-active exits non-zero for anything but active, so the output of a
        failed call is still the answer.
        """
        try:
            stdout, _ = self.ops.run(f"sudo systemctl is-active {shlex.quote(name)}")
        except CommandError as e:
            return e.stdout.strip()
        return stdout.strip()

    @staticmethod
    def unit_file_path(name: str) -> str:
        unit_name = name if name.endswith(".service") else f"{name}.service"
        return posixpath.join(SYSTEMD_UNIT_DIR, unit_name)

    def unit_file_mtime(self, unit_name: str) -> Optional[int]:
        return self.ops.stat_mtime(self.unit_file_path(unit_name))

"""
Status Monitor

Health checks for a deployed application: an HTTP check and an SSH check of
the systemd unit, run once or on an interval, plus remote log access.
"""

import threading
import time
from typing import Callable, List, Optional

import requests

from vpsdeploy.constants import (
    DEFAULT_HEALTH_TIMEOUT,
    DEFAULT_LOG_LINES,
    DEFAULT_MONITOR_INTERVAL,
    MONITOR_CONNECT_ATTEMPTS,
)
from vpsdeploy.exceptions import SSHError
from vpsdeploy.logger import DeployLogger
from vpsdeploy.models.ssh import RemoteEndpoint
from vpsdeploy.models.status import ApplicationStatus, MonitoringMetrics
from vpsdeploy.services.remote_ops import RemoteOps
from vpsdeploy.services.ssh_service import connect_with_retry
from vpsdeploy.services.systemd_service import ServiceLifecycleManager
from vpsdeploy.utils import tail_lines

StatusCallback = Callable[[ApplicationStatus], None]


class StatusMonitor:
    """
    Check one deployed service.

    The HTTP and SSH checks are independent: each fills its own fields of the
    ApplicationStatus and a failure in one never changes the other.
    """

    def __init__(
        self,
        endpoint: RemoteEndpoint,
        service_name: str,
        health_endpoint: Optional[str] = None,
        log_path: Optional[str] = None,
        interval: float = DEFAULT_MONITOR_INTERVAL,
        health_timeout: float = DEFAULT_HEALTH_TIMEOUT,
        logger: Optional[DeployLogger] = None,
        connect=connect_with_retry,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.endpoint = endpoint
        self.service_name = service_name
        self.health_endpoint = health_endpoint
        self.log_path = log_path
        self.interval = interval
        self.health_timeout = health_timeout
        self.logger = logger
        self.connect = connect
        self.sleep = sleep

    @classmethod
    def from_config(cls, config, logger: Optional[DeployLogger] = None, **kwargs) -> "StatusMonitor":
        """Build a monitor from a loaded VPSDeployConfig."""
        return cls(
            endpoint=config.endpoint(),
            service_name=config.service_name,
            health_endpoint=config.monitor.health_endpoint,
            log_path=config.monitor.log_path,
            interval=config.monitor.interval,
            health_timeout=config.monitor.health_timeout,
            logger=logger,
            **kwargs,
        )

    def check(self) -> ApplicationStatus:
        """Run both checks once and combine them."""
        status = ApplicationStatus()

        if self.health_endpoint:
            self._check_health(status)
        else:
            status.last_error = "No health endpoint configured"

        self._check_service(status)

        if self.logger:
            self.logger.log(f"Status: {status.summary()}")
        return status

    def _check_health(self, status: ApplicationStatus) -> None:
        start_time = time.monotonic()
        try:
            response = requests.get(self.health_endpoint, timeout=self.health_timeout)
        except requests.RequestException as e:
            status.last_error = f"Health check error: {e}"
            return

        status.response_latency = time.monotonic() - start_time
        if 200 <= response.status_code < 300:
            status.health_ok = True
        else:
            status.last_error = f"Health check failed with status: {response.status_code}"

    def _check_service(self, status: ApplicationStatus) -> None:
        try:
            with self.connect(self.endpoint, MONITOR_CONNECT_ATTEMPTS, logger=self.logger) as session:
                status.reachable_ok = True
                services = ServiceLifecycleManager(RemoteOps(session, self.logger), self.logger)
                status.service_state = services.query_state(self.service_name)
        except SSHError as e:
            ssh_error = f"SSH error: {e.message}"
            status.last_error = f"{status.last_error}; {ssh_error}" if status.last_error else ssh_error

    def run_continuous(
        self,
        iterations: Optional[int] = None,
        stop_event: Optional[threading.Event] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> List[ApplicationStatus]:
        """
        Check, report, then wait *interval* seconds, repeatedly.

        Args:
            iterations: Number of checks to run (None runs until stopped)
            stop_event: Ends the loop at the next check or during the wait
            on_status: Receives every status as it is produced

        Returns:
            All statuses collected, oldest first
        """
        history: List[ApplicationStatus] = []
        count = 0

        while iterations is None or count < iterations:
            if stop_event is not None and stop_event.is_set():
                break

            status = self.check()
            history.append(status)
            count += 1
            if on_status is not None:
                on_status(status)

            if iterations is not None and count >= iterations:
                break

            if stop_event is not None:
                if stop_event.wait(self.interval):
                    break
            else:
                self.sleep(self.interval)

        return history

    def run_once(self, lines: int = DEFAULT_LOG_LINES) -> tuple[ApplicationStatus, List[str]]:
        """One check plus the last *lines* lines of the application log."""
        status = self.check()
        logs: List[str] = []
        if self.log_path:
            try:
                logs = self.tail_logs(lines)
            except SSHError as e:
                if self.logger:
                    self.logger.warning(f"Could not read logs: {e.message}")
        return status, logs

    def tail_logs(self, lines: int = DEFAULT_LOG_LINES) -> List[str]:
        """
        Fetch the last *lines* non-empty lines of the remote log.

        Raises:
            SSHError: If connecting or reading fails
        """
        if not self.log_path:
            return []
        with self.connect(self.endpoint, MONITOR_CONNECT_ATTEMPTS, logger=self.logger) as session:
            output = RemoteOps(session, self.logger).tail(self.log_path, lines)
        return tail_lines(output, lines)

    def stream_logs(
        self,
        on_line: Callable[[str], None],
        stop_event: Optional[threading.Event] = None,
        lines: int = DEFAULT_LOG_LINES,
    ) -> int:
        """Follow the remote log until the command ends or *stop_event* is set."""
        if not self.log_path:
            return 0
        with self.connect(self.endpoint, MONITOR_CONNECT_ATTEMPTS, logger=self.logger) as session:
            return RemoteOps(session, self.logger).follow(self.log_path, lines, on_line, stop_event)

    @staticmethod
    def metrics(status: ApplicationStatus) -> MonitoringMetrics:
        return MonitoringMetrics.from_status(status)

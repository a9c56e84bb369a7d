"""
Deployment Pipeline

backup -> upload -> permissions -> unit install -> start, plus rollback to
the single backup slot and a read-only status check.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional

from vpsdeploy.constants import DEPLOY_CONNECT_ATTEMPTS
from vpsdeploy.exceptions import (
    ConfigurationError,
    DeploymentError,
    RollbackUnavailableError,
    SSHConnectionError,
)
from vpsdeploy.logger import DeployLogger
from vpsdeploy.models.deployment import (
    DeploymentDescriptor,
    DeploymentStatus,
    ServiceUnitDescriptor,
)
from vpsdeploy.models.results import DeploymentResult, ResultStatus
from vpsdeploy.models.ssh import RemoteEndpoint
from vpsdeploy.models.status import ACTIVE_STATE, ProgressEvent
from vpsdeploy.services.remote_ops import RemoteOps
from vpsdeploy.services.ssh_service import connect_with_retry
from vpsdeploy.services.systemd_service import ServiceLifecycleManager
from vpsdeploy.utils import measure

ProgressCallback = Callable[[ProgressEvent], None]

DEPLOY_STAGES = (
    "Validating prerequisites",
    "Connecting to server",
    "Creating remote directory",
    "Backing up existing binary",
    "Uploading binary",
    "Setting executable permissions",
    "Installing systemd service",
    "Starting service",
)


class DeploymentPipeline:
    """
    Sequential deploy procedure for one binary on one host.

    Stages run in order; the first failure aborts the rest and propagates.
    Only the connect stage retries. Each stage emits a ProgressEvent before
    it runs.
    """

    def __init__(
        self,
        logger: Optional[DeployLogger] = None,
        connect=connect_with_retry,
        connect_attempts: int = DEPLOY_CONNECT_ATTEMPTS,
    ):
        """
        Args:
            logger: Optional DeployLogger
            connect: Session factory with the signature of connect_with_retry
            connect_attempts: Attempts for the connect stage
        """
        self.logger = logger
        self.connect = connect
        self.connect_attempts = connect_attempts

    def deploy(
        self,
        descriptor: DeploymentDescriptor,
        endpoint: RemoteEndpoint,
        skip_build: bool = False,
        dry_run: bool = False,
        build: Optional[Callable[[], Path]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> DeploymentResult:
        """
        Deploy *descriptor* to *endpoint*.

        Args:
            descriptor: What to deploy and where
            endpoint: Target host and credentials
            skip_build: Use the existing binary instead of calling *build*
            dry_run: Report the planned actions without connecting
            build: Callable producing the binary path (run unless skip_build)
            on_progress: Receives one ProgressEvent per stage

        Returns:
            DeploymentResult (a synthetic success for dry runs)
        """
        if self.logger:
            self.logger.log(f"Deploying '{descriptor.binary_name}' to {endpoint.host}")

        if dry_run:
            return self._simulate(descriptor, endpoint, on_progress)

        if not skip_build and build is not None:
            built_path = build()
            descriptor = DeploymentDescriptor(
                local_binary=Path(built_path),
                deploy_path=descriptor.deploy_path,
                binary_name=descriptor.binary_name,
                service_name=descriptor.service_name,
            ).with_local_size()
        elif skip_build and self.logger:
            self.logger.log("Skipping build as requested")

        with measure() as watch:
            backup_created = self._execute(descriptor, endpoint, on_progress)

        message = f"Successfully deployed {descriptor.binary_name} to {endpoint.host}"
        if self.logger:
            self.logger.success(f"Deployment completed in {watch}")

        return DeploymentResult(
            status=ResultStatus.SUCCESS,
            message=message,
            host=endpoint.host,
            binary_name=descriptor.binary_name,
            backup_created=backup_created,
            duration_seconds=watch.elapsed or 0.0,
        )

    def _execute(
        self,
        descriptor: DeploymentDescriptor,
        endpoint: RemoteEndpoint,
        on_progress: Optional[ProgressCallback],
    ) -> bool:
        stages = iter(range(1, len(DEPLOY_STAGES) + 1))

        self._enter_stage(next(stages), on_progress)
        self.validate_prerequisites(descriptor, endpoint)

        self._enter_stage(next(stages), on_progress)
        session = self.connect(endpoint, self.connect_attempts, logger=self.logger)

        with session:
            ops = RemoteOps(session, self.logger)
            services = ServiceLifecycleManager(ops, self.logger)

            self._enter_stage(next(stages), on_progress)
            ops.ensure_dir(descriptor.deploy_path)

            self._enter_stage(next(stages), on_progress)
            backup_created = False
            if ops.exists(descriptor.remote_binary_path):
                ops.copy(descriptor.remote_binary_path, descriptor.backup_path)
                backup_created = True
                if self.logger:
                    self.logger.success(f"Backed up existing binary to {descriptor.backup_path}")

            self._enter_stage(next(stages), on_progress)
            ops.upload(descriptor.local_binary, descriptor.remote_binary_path)

            self._enter_stage(next(stages), on_progress)
            ops.make_executable(descriptor.remote_binary_path)

            self._enter_stage(next(stages), on_progress)
            unit = ServiceUnitDescriptor.from_descriptor(descriptor, endpoint.username)
            services.install(unit)

            self._enter_stage(next(stages), on_progress)
            services.start(descriptor.service_name)

        return backup_created

    def _enter_stage(self, index: int, on_progress: Optional[ProgressCallback]) -> None:
        label = DEPLOY_STAGES[index - 1]
        if self.logger:
            self.logger.step(label)
        if on_progress is not None:
            on_progress(ProgressEvent(percent=index / len(DEPLOY_STAGES) * 100, label=label))

    def plan(self, descriptor: DeploymentDescriptor, endpoint: RemoteEndpoint) -> List[str]:
        """The actions a deploy would take, one per stage."""
        return [
            f"validate binary {descriptor.local_binary}",
            f"connect to {endpoint.connection_string}",
            f"create directory {descriptor.deploy_path}",
            f"back up {descriptor.remote_binary_path} to {descriptor.backup_path} if it exists",
            f"upload {descriptor.binary_name} to {descriptor.remote_binary_path}",
            f"chmod +x {descriptor.remote_binary_path}",
            f"install systemd service {descriptor.service_name}",
            f"start systemd service {descriptor.service_name}",
        ]

    def _simulate(
        self,
        descriptor: DeploymentDescriptor,
        endpoint: RemoteEndpoint,
        on_progress: Optional[ProgressCallback],
    ) -> DeploymentResult:
        actions = self.plan(descriptor, endpoint)
        for index, action in enumerate(actions, start=1):
            if self.logger:
                self.logger.dry_run(action)
            if on_progress is not None:
                on_progress(
                    ProgressEvent(
                        percent=index / len(DEPLOY_STAGES) * 100,
                        label=f"[dry run] {DEPLOY_STAGES[index - 1]}",
                    )
                )

        return DeploymentResult(
            status=ResultStatus.SUCCESS,
            message=f"DRY RUN: Would deploy {descriptor.binary_name} to {endpoint.host}",
            host=endpoint.host,
            binary_name=descriptor.binary_name,
            dry_run=True,
            planned_actions=actions,
        )

    def validate_prerequisites(self, descriptor: DeploymentDescriptor, endpoint: RemoteEndpoint) -> None:
        """
        Check the local binary and credentials before connecting.

        Raises:
            DeploymentError: If the binary is missing or empty
            ConfigurationError: If no credential is configured
        """
        binary = Path(descriptor.local_binary)
        if not binary.is_file():
            raise DeploymentError(f"Binary not found: {binary}", context="Run build first")

        if binary.stat().st_size == 0:
            raise DeploymentError(f"Binary file is empty: {binary}")

        if not endpoint.has_credentials:
            raise ConfigurationError(
                "SSH authentication not configured",
                context="Provide either deploy.key_path or deploy.password",
            )

    def rollback(self, descriptor: DeploymentDescriptor, endpoint: RemoteEndpoint) -> None:
        """
        Restore the backup slot over the live binary and restart the service.

        The unit file is left as installed by the last deploy.

        Raises:
            RollbackUnavailableError: If no backup exists
            ServiceStartError: If the service is not active afterwards
        """
        if self.logger:
            self.logger.log(f"Rolling back '{descriptor.binary_name}' on {endpoint.host}")

        session = self.connect(endpoint, self.connect_attempts, logger=self.logger)
        with session:
            ops = RemoteOps(session, self.logger)
            services = ServiceLifecycleManager(ops, self.logger)

            if self.logger:
                self.logger.step("Stopping current service")
            services.stop(descriptor.service_name, ignore_errors=True)

            if not ops.exists(descriptor.backup_path):
                raise RollbackUnavailableError(descriptor.backup_path)

            if self.logger:
                self.logger.step("Restoring backup")
            ops.copy(descriptor.backup_path, descriptor.remote_binary_path)
            ops.make_executable(descriptor.remote_binary_path)

            if self.logger:
                self.logger.step("Restarting service")
            services.start(descriptor.service_name)

        if self.logger:
            self.logger.success("Rollback completed successfully")

    def check_deployment_status(
        self, descriptor: DeploymentDescriptor, endpoint: RemoteEndpoint
    ) -> DeploymentStatus:
        """Report unit state, last deploy time and binary info; unreachable hosts report inactive."""
        try:
            session = self.connect(endpoint, self.connect_attempts, logger=self.logger)
        except SSHConnectionError as e:
            if self.logger:
                self.logger.warning(str(e.message))
            return DeploymentStatus(service_active=False)

        with session:
            ops = RemoteOps(session, self.logger)
            services = ServiceLifecycleManager(ops, self.logger)

            service_active = services.query_state(descriptor.service_name) == ACTIVE_STATE

            unit = ServiceUnitDescriptor.from_descriptor(descriptor, endpoint.username)
            last_deployment = None
            timestamp = services.unit_file_mtime(unit.unit_name)
            if timestamp is not None:
                last_deployment = datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(
                    "%Y-%m-%d %H:%M:%S UTC"
                )

            version = None
            listing = ops.list_long(descriptor.remote_binary_path)
            if listing is not None:
                parts = listing.split()
                if len(parts) >= 8:
                    version = f"Size: {parts[4]}, Modified: {' '.join(parts[5:8])}"
                else:
                    version = "Version info unavailable"

        return DeploymentStatus(
            service_active=service_active,
            last_deployment=last_deployment,
            version=version,
        )

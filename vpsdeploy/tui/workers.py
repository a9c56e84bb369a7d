"""Background work for the dashboard: build, deploy and monitor tasks."""

import queue
import threading

from vpsdeploy.exceptions import SSHError
from vpsdeploy.logger import DeployLogger
from vpsdeploy.constants import DEFAULT_LOG_LINES, LOG_DIR_NAME
from vpsdeploy.models.status import ApplicationStatus, ProgressEvent
from vpsdeploy.services import BuildService, DeploymentPipeline, StatusMonitor
from vpsdeploy.tui.messages import (
    BuildCompleted,
    BuildProgress,
    DeployCompleted,
    DeployProgress,
    MonitorUpdate,
)
from vpsdeploy.utils import measure


def _silent_logger(config, operation: str) -> DeployLogger:
    return DeployLogger(
        config.project.name,
        operation,
        log_root=config.project_path / LOG_DIR_NAME,
        console_output=False,
    )


def build_task(config, outbox: "queue.Queue", dry_run: bool = False):
    """Return a task target that builds the project."""

    def run(_cancel: threading.Event) -> None:
        with _silent_logger(config, "build") as logger:
            builder = BuildService(config, logger)
            outbox.put(BuildProgress(0.0, " ".join(builder.build_command())))
            with measure() as watch:
                binary = builder.build(dry_run=dry_run)
            if binary is None:
                outbox.put(BuildProgress(100.0, "Dry run: nothing was built"))
            else:
                outbox.put(BuildProgress(100.0, f"Built {binary}"))
            outbox.put(BuildCompleted(builder.build_info(), watch.elapsed or 0.0))

    return run


def deploy_task(config, outbox: "queue.Queue", dry_run: bool = False):
    """Return a task target that builds if needed and deploys."""

    def run(_cancel: threading.Event) -> None:
        with _silent_logger(config, "deploy") as logger:
            builder = BuildService(config, logger)
            pipeline = DeploymentPipeline(logger)
            binary = builder.find_binary() or (
                config.project_path / "target" / config.project.build_mode / config.binary_name
            )

            def on_progress(event: ProgressEvent) -> None:
                outbox.put(DeployProgress(event.percent, event.label, f"{event.percent:>3.0f}% {event.label}"))

            result = pipeline.deploy(
                config.descriptor(binary),
                config.endpoint(),
                skip_build=dry_run or not builder.needs_rebuild(),
                dry_run=dry_run,
                build=builder.build,
                on_progress=on_progress,
            )
            outbox.put(DeployCompleted(result.message, result.backup_created, result.duration_seconds))

    return run


def monitor_task(config, outbox: "queue.Queue", dry_run: bool = False, lines: int = DEFAULT_LOG_LINES):
    """
    Return a task target that checks status until cancelled.

    Monitoring only reads, so it runs the same way under dry_run.
    """

    def run(cancel: threading.Event) -> None:
        with _silent_logger(config, "monitor") as logger:
            monitor = StatusMonitor.from_config(config, logger)

            def on_status(status: ApplicationStatus) -> None:
                logs = ()
                if config.monitor.log_path and status.reachable_ok:
                    try:
                        logs = tuple(monitor.tail_logs(lines))
                    except SSHError as e:
                        logger.warning(f"Could not read logs: {e.message}")
                outbox.put(MonitorUpdate(status, monitor.metrics(status), logs))

            monitor.run_continuous(stop_event=cancel, on_status=on_status)

    return run

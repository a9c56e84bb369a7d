"""Monitor and logs commands"""

import json
from typing import Optional

import click
from rich.table import Table

from vpsdeploy.base import ConfigCommand
from vpsdeploy.constants import DEFAULT_LOG_LINES
from vpsdeploy.models.status import ApplicationStatus
from vpsdeploy.utils import format_duration


class MonitorCommand(ConfigCommand):
    """
    Check application health.

    Runs a single check (with recent logs) by default, or keeps checking at
    the configured interval with --continuous.
    """

    def __init__(
        self,
        continuous: bool = False,
        iterations: Optional[int] = None,
        lines: int = DEFAULT_LOG_LINES,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.continuous = continuous
        self.iterations = iterations
        self.lines = lines

    def execute(self) -> None:
        """Execute monitor command."""
        self.init_project_logger("monitor")
        monitor = self.monitor()

        if self.continuous:
            self._run_continuous(monitor)
            return

        status, logs = monitor.run_once(self.lines)

        if self.json_output:
            metrics = monitor.metrics(status)
            self.output_json(
                {
                    "status": status.to_dict(),
                    "metrics": {
                        "uptime_percentage": metrics.uptime_percentage,
                        "average_response_time_ms": metrics.average_response_time,
                        "error_count": metrics.error_count,
                    },
                    "logs": logs,
                },
                exit_code=0 if status.is_healthy() else 1,
            )
            return

        self.show_header(title="Monitor", project=self.project_name, host=self.config.deploy.host)
        self.console.print(self._status_table(status))

        if logs:
            self.console.print(f"\n[bold]Recent logs[/bold] [dim]({self.config.monitor.log_path})[/dim]")
            for line in logs:
                self.console.print(f"  [dim]{line}[/dim]", markup=False, highlight=False)
        self.console.print()

        if not status.is_healthy():
            raise SystemExit(1)

    def _run_continuous(self, monitor) -> None:
        if not self.json_output:
            limit = f"{self.iterations} checks" if self.iterations else "until Ctrl+C"
            self.show_header(
                title="Monitor",
                project=self.project_name,
                host=self.config.deploy.host,
                details={"Interval": f"{monitor.interval}s", "Running": limit},
            )

        try:
            monitor.run_continuous(iterations=self.iterations, on_status=self._report)
        except KeyboardInterrupt:
            self.print_dim("\nMonitoring stopped")

    def _report(self, status: ApplicationStatus) -> None:
        if self.json_output:
            print(json.dumps(status.to_dict()), flush=True)
            return

        stamp = status.checked_at.strftime("%H:%M:%S")
        marker = "[green]●[/green]" if status.is_healthy() else "[red]●[/red]"
        latency = (
            f" [dim]{format_duration(status.response_latency)}[/dim]"
            if status.response_latency is not None
            else ""
        )
        self.console.print(f"[dim]{stamp}[/dim] {marker} {status.summary()}{latency}")
        if status.last_error and not status.is_healthy():
            self.console.print(f"         [color(208)]{status.last_error}[/color(208)]")

    def _status_table(self, status: ApplicationStatus) -> Table:
        table = Table(title="Application Status", title_justify="left", padding=(0, 1))
        table.add_column("Check", style="cyan", no_wrap=True)
        table.add_column("Result")
        table.add_column("Details", style="dim")

        def mark(ok: bool) -> str:
            return "[green]✓[/green]" if ok else "[red]✗[/red]"

        table.add_row(
            "Health endpoint",
            mark(status.health_ok),
            self.config.monitor.health_endpoint or "not configured",
        )
        table.add_row("SSH", mark(status.reachable_ok), self.config.endpoint().connection_string)
        table.add_row(
            "Service",
            mark(status.service_state == "active"),
            status.service_state or "unknown",
        )
        if status.response_latency is not None:
            table.add_row("Latency", "", format_duration(status.response_latency))
        table.add_row("Summary", mark(status.is_healthy()), status.summary())
        if status.last_error:
            table.add_row("Last error", "", status.last_error)
        return table


class LogsCommand(ConfigCommand):
    """Show or follow the remote application log."""

    def __init__(self, lines: int = DEFAULT_LOG_LINES, follow: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.lines = lines
        self.follow = follow

    def execute(self) -> None:
        """Execute logs command."""
        log_path = self.config.monitor.log_path
        if not log_path:
            self.print_error("monitor.log_path is not configured")
            raise SystemExit(1)

        self.init_project_logger("logs")
        monitor = self.monitor()

        if not self.follow:
            for line in monitor.tail_logs(self.lines):
                self.console.print(line, markup=False, highlight=False)
            return

        self.print_dim(f"Following {log_path} on {self.config.deploy.host} (Ctrl+C to stop)")
        try:
            monitor.stream_logs(
                lambda line: self.console.print(line, markup=False, highlight=False),
                lines=self.lines,
            )
        except KeyboardInterrupt:
            self.print_dim("\nStopped following logs")


@click.command()
@click.option("--continuous", "-c", is_flag=True, help="Keep checking at the configured interval")
@click.option("--iterations", "-i", type=click.IntRange(min=1), help="Stop after N checks (with --continuous)")
@click.option("--lines", "-n", type=click.IntRange(min=1), default=DEFAULT_LOG_LINES, help="Log lines to show")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.pass_obj
def monitor(obj, continuous, iterations, lines, verbose, json_output):
    """
    Check application health

    \b
    Examples:
      vpsdeploy monitor
      vpsdeploy monitor --continuous
      vpsdeploy monitor -c --iterations 10 --json
    """
    cmd = MonitorCommand(
        continuous=continuous,
        iterations=iterations,
        lines=lines,
        config_path=obj["config"],
        verbose=verbose,
        json_output=json_output,
    )
    cmd.run()


@click.command()
@click.option("--lines", "-n", type=click.IntRange(min=1), default=DEFAULT_LOG_LINES, help="Number of lines")
@click.option("--follow", "-f", is_flag=True, help="Stream new lines as they are written")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.pass_obj
def logs(obj, lines, follow, verbose):
    """Show the remote application log"""
    cmd = LogsCommand(lines=lines, follow=follow, config_path=obj["config"], verbose=verbose)
    cmd.run()

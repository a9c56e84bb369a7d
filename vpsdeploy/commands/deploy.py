"""Deploy and rollback commands"""

from pathlib import Path

import click
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn

from vpsdeploy.base import ConfigCommand
from vpsdeploy.logger import console as log_console
from vpsdeploy.models.status import ProgressEvent


class DeployCommand(ConfigCommand):
    """
    Build (when needed) and deploy the binary to the configured host.

    Features:
    - Skips the build when the binary is newer than its sources
    - Single-slot backup of the previous binary
    - systemd unit install and start verification
    """

    def __init__(self, skip_build: bool = False, force: bool = False, **kwargs):
        super().__init__(**kwargs)
        self.skip_build = skip_build
        self.force = force

    def _expected_binary(self) -> Path:
        builder = self.build_service()
        found = builder.find_binary()
        if found is not None:
            return found
        return self.config.project_path / "target" / self.config.project.build_mode / self.config.binary_name

    def _build(self) -> Path:
        builder = self.build_service()
        if not self.force and not builder.needs_rebuild():
            self.logger.success("Binary is up to date, skipping build")
            return builder.find_binary()
        return builder.build()

    def execute(self) -> None:
        """Execute deploy command."""
        endpoint = self.config.endpoint()
        self.show_header(
            title="Deploy",
            project=self.project_name,
            host=endpoint.connection_string,
            details={"Path": self.config.deploy.deploy_path, "Service": self.config.service_name},
        )

        logger = self.init_project_logger("deploy")
        binary = self._expected_binary()
        if not self.skip_build and not self.dry_run:
            # cargo's spinner is a live display; it must finish before Progress starts
            binary = self._build()
        descriptor = self.config.descriptor(binary)
        pipeline = self.pipeline()

        if self.verbose:
            result = pipeline.deploy(
                descriptor,
                endpoint,
                skip_build=True,
                dry_run=self.dry_run,
            )
        else:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TextColumn("{task.percentage:>3.0f}%"),
                console=log_console,
                transient=True,
            ) as progress:
                task = progress.add_task("[cyan]Deploying...", total=100)

                def on_progress(event: ProgressEvent) -> None:
                    progress.update(task, completed=event.percent, description=f"[cyan]{event.label}")

                result = pipeline.deploy(
                    descriptor,
                    endpoint,
                    skip_build=True,
                    dry_run=self.dry_run,
                    on_progress=on_progress,
                )

        if result.dry_run:
            self.console.print(f"\n[cyan]{result.message}[/cyan]")
            for action in result.planned_actions:
                self.print_dim(f"  • {action}")
            self.console.print()
            return

        self.console.print(f"\n[green]✓ {result.message}[/green]")
        if result.backup_created:
            self.print_dim(f"Previous binary kept at {descriptor.backup_path}")
        self.console.print("\n[dim]Next steps:[/dim]")
        self.console.print("  [cyan]vpsdeploy status[/cyan]")
        self.console.print("  [cyan]vpsdeploy logs -f[/cyan]")
        self.console.print(f"\n[dim]Logs saved to:[/dim] {logger.log_path}\n")


class RollbackCommand(ConfigCommand):
    """Restore the previous binary from the backup slot."""

    def execute(self) -> None:
        """Execute rollback command."""
        endpoint = self.config.endpoint()
        self.show_header(title="Rollback", project=self.project_name, host=endpoint.connection_string)

        logger = self.init_project_logger("rollback")
        descriptor = self.config.descriptor(self.build_service().find_binary() or Path(self.config.binary_name))

        if self.dry_run:
            logger.dry_run(f"stop {descriptor.service_name}")
            logger.dry_run(f"restore {descriptor.backup_path} to {descriptor.remote_binary_path}")
            logger.dry_run(f"start {descriptor.service_name}")
            return

        self.pipeline().rollback(descriptor, endpoint)
        self.print_success(f"Rolled back {descriptor.binary_name} on {endpoint.host}")
        self.print_log_location()


@click.command()
@click.option("--skip-build", is_flag=True, help="Deploy the existing binary without building")
@click.option("--force", is_flag=True, help="Rebuild even if the binary is up to date")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.pass_obj
def deploy(obj, skip_build, force, verbose):
    """
    Build and deploy the binary to the VPS

    \b
    Examples:
      vpsdeploy deploy
      vpsdeploy deploy --skip-build
      vpsdeploy --dry-run deploy
    """
    cmd = DeployCommand(
        skip_build=skip_build,
        force=force,
        config_path=obj["config"],
        dry_run=obj["dry_run"],
        verbose=verbose,
    )
    cmd.run()


@click.command()
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.pass_obj
def rollback(obj, verbose):
    """Restore the previously deployed binary"""
    cmd = RollbackCommand(config_path=obj["config"], dry_run=obj["dry_run"], verbose=verbose)
    cmd.run()

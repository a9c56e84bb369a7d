"""Status command - local build and remote deployment state"""

from pathlib import Path

import click
from rich.table import Table

from vpsdeploy.base import ConfigCommand


class StatusCommand(ConfigCommand):
    """Show build, service and deployment status."""

    def execute(self) -> None:
        """Execute status command."""
        endpoint = self.config.endpoint()
        self.init_project_logger("status")

        info = self.build_service().build_info()
        descriptor = self.config.descriptor(
            Path(info.binary_path) if info.binary_path else Path(self.config.binary_name)
        )
        status = self.pipeline().check_deployment_status(descriptor, endpoint)

        if self.json_output:
            self.output_json(
                {
                    "project": self.project_name,
                    "host": endpoint.host,
                    "service": self.config.service_name,
                    "build": {
                        "mode": info.build_mode,
                        "binary_exists": info.binary_exists,
                        "binary_path": info.binary_path,
                        "size": info.file_size,
                    },
                    "deployment": status.to_dict(),
                }
            )
            return

        self.show_header(title="Status", project=self.project_name, host=endpoint.connection_string)

        table = Table(
            title=f"{self.project_name} - Deployment Status",
            title_justify="left",
            padding=(0, 1),
        )
        table.add_column("Component", style="cyan", no_wrap=True)
        table.add_column("Status", style="green")
        table.add_column("Details", style="dim")

        table.add_row(
            "Local binary",
            "[green]built[/green]" if info.binary_exists else "[red]missing[/red]",
            f"{info.build_mode}, {info.format_size()}",
        )
        table.add_row(
            "Service",
            "[green]active[/green]" if status.service_active else "[red]inactive[/red]",
            self.config.service_name,
        )
        table.add_row("Last deployment", status.last_deployment or "[dim]unknown[/dim]", "unit file mtime")
        table.add_row("Remote binary", status.version or "[dim]unknown[/dim]", self.config.deploy.deploy_path)

        self.console.print(table)
        self.console.print()


@click.command()
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.pass_obj
def status(obj, verbose, json_output):
    """Show deployment status"""
    cmd = StatusCommand(config_path=obj["config"], verbose=verbose, json_output=json_output)
    cmd.run()

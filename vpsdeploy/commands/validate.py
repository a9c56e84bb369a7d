"""Validate command - check a configuration file"""

from pathlib import Path
from typing import Optional

import click

from vpsdeploy.base import BaseCommand
from vpsdeploy.config import VPSDeployConfig
from vpsdeploy.constants import CONFIG_FILE_NAMES
from vpsdeploy.utils import find_first_existing


class ValidateCommand(BaseCommand):
    """Load a configuration and report every problem in it."""

    def __init__(self, path: Optional[Path], verbose: bool = False, json_output: bool = False):
        super().__init__(verbose=verbose, json_output=json_output)
        self.path = path

    def _load(self) -> VPSDeployConfig:
        if self.path is None:
            return VPSDeployConfig.from_default_location()
        if self.path.is_dir():
            found = find_first_existing(self.path, CONFIG_FILE_NAMES)
            return VPSDeployConfig.from_file(found or self.path / CONFIG_FILE_NAMES[0])
        return VPSDeployConfig.from_file(self.path)

    def execute(self) -> None:
        """Execute validate command."""
        config = self._load()
        result = config.check()

        if self.json_output:
            self.output_json(
                {
                    "config": str(config.config_path),
                    "valid": result.is_valid,
                    "errors": result.errors,
                    "warnings": result.warnings,
                },
                exit_code=0 if result.is_valid else 1,
            )
            return

        self.show_header(title="Validate Configuration", subtitle=str(config.config_path))

        for error in result.errors:
            self.print_error(error)
        for warning in result.warnings:
            self.print_warning(warning)

        if not result.is_valid:
            self.console.print(f"\n[bold red]{len(result.errors)} error(s) found[/bold red]\n")
            raise SystemExit(1)

        self.print_success("Configuration is valid")
        self.print_dim(f"Project: {config.project.name} ({config.project.build_mode})")
        self.print_dim(f"Target: {config.endpoint().connection_string}:{config.deploy.deploy_path}")
        self.print_dim(f"Service: {config.service_name}")


@click.command()
@click.argument("path", type=click.Path(path_type=Path), required=False)
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def validate(path, verbose, json_output):
    """
    Validate a configuration file

    PATH may be a config file or a directory holding one.
    """
    cmd = ValidateCommand(path, verbose=verbose, json_output=json_output)
    cmd.run()

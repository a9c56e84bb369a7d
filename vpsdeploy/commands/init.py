"""Init command - create a vpsdeploy.yml for a project"""

import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click
import inquirer
from rich.prompt import Prompt

from vpsdeploy.base import BaseCommand
from vpsdeploy.config import VPSDeployConfig
from vpsdeploy.constants import BUILD_MODES, CONFIG_FILE_NAMES, DEFAULT_BUILD_MODE


@dataclass
class InitOptions:
    """Options for init command."""

    path: Path
    name: Optional[str] = None
    host: Optional[str] = None
    build_mode: Optional[str] = None


class InitCommand(BaseCommand):
    """Write a default configuration file, asking for missing values on a terminal."""

    def __init__(self, options: InitOptions, verbose: bool = False):
        super().__init__(verbose=verbose)
        self.options = options

    @property
    def target(self) -> Path:
        path = self.options.path
        if path.suffix in (".yml", ".yaml"):
            return path
        return path / CONFIG_FILE_NAMES[0]

    def execute(self) -> None:
        """Execute init command."""
        self.show_header(title="Initialize Project", subtitle=str(self.target))

        name = self.options.name
        host = self.options.host
        build_mode = self.options.build_mode

        if sys.stdin.isatty():
            name, host, build_mode = self._ask_missing(name, host, build_mode)

        config = VPSDeployConfig.create_default(
            self.target,
            name=name,
            host=host,
            build_mode=build_mode or DEFAULT_BUILD_MODE,
        )

        self.print_success(f"Created {self.target}")
        for warning in config.check().warnings:
            self.print_warning(warning)

        self.console.print("\n[dim]Next steps:[/dim]")
        self.console.print(f"  [cyan]edit {self.target}[/cyan]  [dim]# set host, key and health endpoint[/dim]")
        self.console.print("  [cyan]vpsdeploy validate[/cyan]")
        self.console.print("  [cyan]vpsdeploy deploy[/cyan]\n")

    def _ask_missing(self, name, host, build_mode):
        default_name = self.target.resolve().parent.name or "my-app"

        if not name:
            name = Prompt.ask("[?] Project name (binary name)", default=default_name)
        if not host:
            host = Prompt.ask("[?] VPS host", default="your-vps.example.com")
        if not build_mode:
            questions = [
                inquirer.List(
                    "build_mode",
                    message="Build mode",
                    choices=list(BUILD_MODES),
                    default=DEFAULT_BUILD_MODE,
                    carousel=True,
                )
            ]
            answers = inquirer.prompt(questions, raise_keyboard_interrupt=True)
            build_mode = answers["build_mode"] if answers else DEFAULT_BUILD_MODE

        return name, host, build_mode


@click.command()
@click.argument("path", type=click.Path(path_type=Path), default=".")
@click.option("--name", help="Project (binary) name")
@click.option("--host", help="VPS hostname or IP")
@click.option("--mode", "build_mode", type=click.Choice(BUILD_MODES), help="Build mode")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
def init(path, name, host, build_mode, verbose):
    """
    Create a vpsdeploy.yml configuration

    \b
    Examples:
      vpsdeploy init
      vpsdeploy init ./my-app --name my-app --host vps.example.com
    """
    options = InitOptions(path=path, name=name, host=host, build_mode=build_mode)
    cmd = InitCommand(options, verbose=verbose)
    cmd.run()

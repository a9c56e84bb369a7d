"""Build commands - cargo build, clean and rebuild check"""

import click

from vpsdeploy.base import ConfigCommand
from vpsdeploy.constants import BUILD_MODES


class BuildCommand(ConfigCommand):
    """Compile the project binary."""

    def __init__(self, mode=None, **kwargs):
        super().__init__(**kwargs)
        self.mode = mode

    def execute(self) -> None:
        mode = self.mode or self.config.project.build_mode
        self.show_header(
            title="Build",
            project=self.project_name,
            details={"Mode": mode, "Path": self.config.project_path},
        )

        self.init_project_logger("build")
        binary = self.build_service().build(mode, dry_run=self.dry_run)

        if binary is None:
            self.print_dim("Dry run: nothing was built")
            return

        info = self.build_service().build_info(mode)
        self.console.print(f"\n[color(248)]Binary:[/color(248)] {binary} [dim]({info.format_size()})[/dim]")
        self.print_log_location()


class CleanCommand(ConfigCommand):
    """Remove build artifacts."""

    def execute(self) -> None:
        self.show_header(title="Clean", project=self.project_name)
        self.init_project_logger("clean")
        self.build_service().clean(dry_run=self.dry_run)
        if not self.dry_run:
            self.print_success("Build artifacts removed")


class CheckRebuildCommand(ConfigCommand):
    """Report whether sources changed since the last build."""

    def execute(self) -> None:
        service = self.build_service()
        needs_rebuild = service.needs_rebuild()
        info = service.build_info()

        if self.json_output:
            self.output_json(
                {
                    "needs_rebuild": needs_rebuild,
                    "binary_exists": info.binary_exists,
                    "binary_path": info.binary_path,
                    "size": info.file_size,
                    "mode": info.build_mode,
                }
            )
            return

        if not info.binary_exists:
            self.print_warning(f"No {info.build_mode} binary found; a build is required")
        elif needs_rebuild:
            self.print_warning("Sources changed since the last build; rebuild needed")
        else:
            self.print_success(f"Binary is up to date ({info.format_size()})")


@click.command()
@click.option("--mode", type=click.Choice(BUILD_MODES), help="Override project.build_mode")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.pass_obj
def build(obj, mode, verbose):
    """Build the project binary with cargo"""
    cmd = BuildCommand(mode=mode, config_path=obj["config"], dry_run=obj["dry_run"], verbose=verbose)
    cmd.run()


@click.command()
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.pass_obj
def clean(obj, verbose):
    """Remove cargo build artifacts"""
    cmd = CleanCommand(config_path=obj["config"], dry_run=obj["dry_run"], verbose=verbose)
    cmd.run()


@click.command("check-rebuild")
@click.option("--verbose", "-v", is_flag=True, help="Show all command output")
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.pass_obj
def check_rebuild(obj, verbose, json_output):
    """Check whether the binary is older than its sources"""
    cmd = CheckRebuildCommand(config_path=obj["config"], verbose=verbose, json_output=json_output)
    cmd.run()

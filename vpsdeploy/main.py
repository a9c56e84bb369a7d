#!/usr/bin/env python3
"""vpsdeploy CLI - Main entry point"""

import functools
import os
import sys
from pathlib import Path

from rich.console import Console

import rich_click as click

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.USE_MARKDOWN = False
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

click.rich_click.STYLE_COMMAND = "bold cyan"
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_ARGUMENT = "bold yellow"
click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_USAGE_COMMAND = "bold cyan"
click.rich_click.STYLE_HELPTEXT_FIRST_LINE = "bold white"
click.rich_click.STYLE_METAVAR = "bold yellow"
click.rich_click.STYLE_OPTION_DEFAULT = "dim cyan"
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"
click.rich_click.ERRORS_EPILOGUE = ""

from vpsdeploy import __version__
from vpsdeploy.commands import build, deploy, init, monitor, status, tui, validate

console = Console()


def handle_cli_errors(func):
    """Decorator to handle CLI errors gracefully."""
    from click.exceptions import ClickException, UsageError

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UsageError as e:
            console.print(f"\n[bold red]✗ Error:[/bold red] {e.format_message()}\n")
            if e.ctx and e.ctx.command:
                console.print(
                    f"[dim]Run[/dim] [cyan]vpsdeploy {e.ctx.command.name} --help[/cyan] "
                    "[dim]for usage information[/dim]\n"
                )
            sys.exit(2)
        except ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except KeyboardInterrupt:
            console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            sys.exit(130)
        except Exception as e:
            console.print(f"\n[bold red]✗ Unexpected error:[/bold red] {e}\n")
            if os.environ.get("DEBUG") or os.environ.get("VERBOSE"):
                import traceback

                console.print("[dim]Traceback:[/dim]")
                traceback.print_exc()
            sys.exit(1)

    return wrapper


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    envvar="VPSDEPLOY_CONFIG",
    help="Config file (default: ./vpsdeploy.yml, ./.vpsdeploy.yml, ~/.vpsdeploy.yml)",
)
@click.option("--dry-run", is_flag=True, help="Show what would happen without changing anything")
@click.pass_context
def cli(ctx: click.Context, config_path, dry_run) -> None:
    """
    vpsdeploy - Build, deploy and monitor a binary on your own VPS.

    \b
    Quick Start:
      vpsdeploy init              # Create vpsdeploy.yml
      vpsdeploy deploy            # Build, upload, install and start
      vpsdeploy status            # Service and deployment state
      vpsdeploy monitor -c        # Watch health

    \b
    Running without a command opens the interactive dashboard.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config_path
    ctx.obj["dry_run"] = dry_run

    if ctx.invoked_subcommand is None:
        ctx.invoke(tui.tui)


cli.add_command(init.init)
cli.add_command(validate.validate)
cli.add_command(build.build)
cli.add_command(build.clean)
cli.add_command(build.check_rebuild)
cli.add_command(deploy.deploy)
cli.add_command(deploy.rollback)
cli.add_command(status.status)
cli.add_command(monitor.monitor)
cli.add_command(monitor.logs)
cli.add_command(tui.tui)


@handle_cli_errors
def main():
    """Main entry point with error handling."""
    cli(obj={})


if __name__ == "__main__":
    main()

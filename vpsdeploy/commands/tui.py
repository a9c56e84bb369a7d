"""Dashboard command - interactive build, deploy and monitor"""

import click

from vpsdeploy.base import ConfigCommand
from vpsdeploy.constants import DEFAULT_DRAIN_PER_FRAME
from vpsdeploy.tui import run_dashboard


class DashboardCommand(ConfigCommand):
    """Open the interactive dashboard."""

    def __init__(self, drain: int = DEFAULT_DRAIN_PER_FRAME, **kwargs):
        super().__init__(**kwargs)
        self.drain = drain

    def execute(self) -> None:
        run_dashboard(self.config, drain_per_frame=self.drain, dry_run=self.dry_run)


@click.command()
@click.option(
    "--drain",
    type=click.IntRange(min=1),
    default=DEFAULT_DRAIN_PER_FRAME,
    show_default=True,
    help="Background messages applied per frame",
)
@click.pass_obj
def tui(obj, drain):
    """Open the interactive dashboard (default command)"""
    cmd = DashboardCommand(drain=drain, config_path=obj["config"], dry_run=obj["dry_run"])
    cmd.run()

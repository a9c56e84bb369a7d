"""
vpsdeploy - UI Components
Standardized headers and colors for command output
"""

from rich.console import Console

BRAND = "vpsdeploy"

# Color scheme
BRAND_COLOR = "cyan"
SUCCESS_COLOR = "green"
WARNING_COLOR = "yellow"
ERROR_COLOR = "red"


def show_header(
    title: str,
    subtitle: str = None,
    project: str = None,
    host: str = None,
    details: dict = None,
    console: Console = None,
):
    """
    Display a standardized command header.

    Args:
        title: Main title (e.g., "Deploy", "Rollback")
        subtitle: Optional subtitle line
        project: Project name (if applicable)
        host: Target host (if applicable)
        details: Additional key-value pairs to display
        console: Rich Console instance (creates new if None)

    Example:
        show_header(
            title="Deploy",
            project="my-app",
            host="vps.example.com",
            details={"Mode": "release"}
        )
    """
    if console is None:
        console = Console()

    prefix = f" [bold color(214)]{BRAND}[/bold color(214)] [dim]›[/dim]"

    console.print(f"{prefix} [bold white]{title}[/bold white]")

    if subtitle:
        console.print(f"{prefix} [dim]{subtitle}[/dim]")

    if project:
        console.print(f"{prefix} Project: [{BRAND_COLOR}]{project}[/{BRAND_COLOR}]")
    if host:
        console.print(f"{prefix} Host: [{BRAND_COLOR}]{host}[/{BRAND_COLOR}]")

    if details:
        for key, value in details.items():
            console.print(f"{prefix} {key}: [{BRAND_COLOR}]{value}[/{BRAND_COLOR}]")

    console.print()

"""
Base Command Class

Abstract base for all vpsdeploy commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Any, Dict
import json
from rich.console import Console
from vpsdeploy.exceptions import VPSDeployError
from vpsdeploy.ui_components import show_header
from vpsdeploy.logger import DeployLogger


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Error handling
    - JSON output support
    """

    def __init__(self, verbose: bool = False, json_output: bool = False):
        self.verbose = verbose
        self.json_output = json_output
        self.console = Console()
        self.logger: Optional[DeployLogger] = None

    def init_logger(
        self, project_name: str, command_name: str, log_root: Optional[Path] = None
    ) -> Optional[DeployLogger]:
        """
        Initialize command logger (skip in JSON mode).

        Args:
            project_name: Project name
            command_name: Command name
            log_root: Directory holding the logs tree

        Returns:
            DeployLogger instance or None if JSON mode
        """
        if self.json_output:
            return None
        self.logger = DeployLogger(project_name, command_name, verbose=self.verbose, log_root=log_root)
        return self.logger

    def output_json(self, data: Dict[str, Any], exit_code: int = 0) -> None:
        """
        Output data as JSON and exit on error.

        Args:
            data: Data to output as JSON
            exit_code: Exit code (0 for success, non-zero for error)
        """
        print(json.dumps(data, indent=2, default=str))
        if exit_code != 0:
            raise SystemExit(exit_code)

    def output_json_error(
        self, error: str, details: Optional[Dict[str, Any]] = None, exit_code: int = 1
    ) -> None:
        error_data = {"error": error}
        if details:
            error_data["details"] = details
        self.output_json(error_data, exit_code=exit_code)

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        project: Optional[str] = None,
        host: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skip in JSON or verbose mode)."""
        if not self.verbose and not self.json_output:
            show_header(
                title=title,
                subtitle=subtitle,
                project=project,
                host=host,
                details=details,
                console=self.console,
            )

    def print_success(self, message: str) -> None:
        """Print success message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[green]✓ {message}[/green]")

    def print_error(self, message: str) -> None:
        """Print error message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[red]✗ {message}[/red]")

    def print_warning(self, message: str) -> None:
        """Print warning message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[yellow]⚠ {message}[/yellow]")

    def print_dim(self, message: str) -> None:
        """Print dim message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[dim]{message}[/dim]")

    def print_log_location(self) -> None:
        if self.logger and not self.json_output:
            self.console.print(f"[dim]Logs saved to:[/dim] {self.logger.log_path}\n")

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def _fail(self, title: str, error: Exception, context: Optional[str] = None) -> None:
        if self.json_output:
            details = {"context": context} if context else None
            self.output_json_error(f"{title}: {error}", details=details)

        self.console.print(f"\n[bold red]✗ {title}:[/bold red] {error}")
        if context:
            self.console.print(f"  [color(208)]{context}[/color(208)]")
        self.console.print()
        if self.logger:
            self.logger.log_error(f"{title}: {error}", context=context)
            self.print_log_location()
            self.logger.close()
        raise SystemExit(1)

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        Args:
            **kwargs: Command arguments
        """
        try:
            self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            self.print_log_location()
            if self.logger:
                self.logger.close()
            raise SystemExit(130)
        except SystemExit:
            if self.logger:
                self.logger.close()
            raise
        except VPSDeployError as e:
            self._fail(type(e).__name__, e.message, e.context)
        except FileNotFoundError as e:
            self._fail("File not found", e)
        except PermissionError as e:
            self._fail("Permission denied", e, "Try running with appropriate permissions")
        except Exception as e:
            self._fail(type(e).__name__, e)
        else:
            if self.logger:
                self.logger.close()

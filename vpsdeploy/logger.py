"""
Logging system for vpsdeploy
Provides real-time logging to files with clean console output
"""

import re
import subprocess
from pathlib import Path
from datetime import datetime
from typing import Optional, TextIO
from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.text import Text
from rich.padding import Padding

from vpsdeploy.constants import LOG_DIR_NAME, LOG_DATE_FORMAT

console = Console()

ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


class DeployLogger:
    """
    Manages logging for deploy, rollback and monitor operations
    - Writes all output to log files in real-time
    - Shows clean progress UI in console (unless verbose or console_output=False)
    - Captures errors with context
    """

    def __init__(
        self,
        project_name: str,
        operation: str,
        verbose: bool = False,
        log_root: Optional[Path] = None,
        console_output: bool = True,
    ):
        """
        Initialize logger

        Args:
            project_name: Name of the deployed project
            operation: Operation name (e.g., 'deploy', 'rollback', 'monitor')
            verbose: If True, show all output in console
            log_root: Directory holding the logs tree (default: ./.vpsdeploy)
            console_output: If False, only the log file is written (dashboard mode)
        """
        self.project_name = project_name
        self.operation = operation
        self.verbose = verbose
        self.console_output = console_output
        self.log_file: Optional[TextIO] = None
        self.log_path: Optional[Path] = None
        self.current_step = ""
        self.has_errors = False

        if log_root is None:
            log_root = Path.cwd() / LOG_DIR_NAME

        # Structure: logs/{project}/{date}/{time}_{operation}.log
        now = datetime.now()
        date_str = now.strftime(LOG_DATE_FORMAT)
        time_str = now.strftime("%H-%M-%S")

        project_logs_dir = Path(log_root) / "logs" / project_name / date_str
        project_logs_dir.mkdir(parents=True, exist_ok=True)

        log_filename = f"{time_str}_{operation}.log"
        self.log_path = project_logs_dir / log_filename

        # Line buffered so the file can be tailed while an operation runs
        self.log_file = open(self.log_path, "a", buffering=1, encoding="utf-8")

        self._write_log_header()

    def _write_log_header(self):
        """Write log file header"""
        header = f"""
{"=" * 80}
vpsdeploy Operation Log
{"=" * 80}
Project: {self.project_name}
Operation: {self.operation}
Started: {datetime.now().isoformat()}
{"=" * 80}

"""
        self.log_file.write(header)
        self.log_file.flush()

    @property
    def show_progress(self) -> bool:
        return self.console_output and not self.verbose

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, DEBUG)
        """
        timestamp = datetime.now().strftime("%H:%M:%S")
        log_line = f"[{timestamp}] [{level}] {message}\n"

        if self.log_file:
            self.log_file.write(log_line)
            self.log_file.flush()

        if self.verbose and self.console_output:
            if level == "ERROR":
                console.print(f"[red]{message}[/red]")
            elif level == "WARNING":
                console.print(f"[yellow]{message}[/yellow]")
            elif level == "DEBUG":
                console.print(f"[dim]{message}[/dim]")
            else:
                console.print(message)

    def log_command(self, command: str):
        """Log a command being executed"""
        self.log(f"Executing: {command}", "DEBUG")

    def log_output(self, output: str, stream: str = "stdout"):
        """
        Log command output

        Always written to the log file; echoed to the console only in verbose mode.

        Args:
            output: Command output (single line or multiline)
            stream: Stream name (stdout, stderr)
        """
        if not output:
            return

        clean_output = ANSI_ESCAPE.sub("", output)

        if self.log_file:
            try:
                for line in clean_output.splitlines():
                    self.log_file.write(f"  [{stream}] {line}\n")
                self.log_file.flush()
            except (BlockingIOError, OSError):
                # Terminal responsiveness matters more than this batch
                pass

        if self.verbose and self.console_output:
            console.print(output)

    def log_error(self, error: str, context: Optional[str] = None):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., command that failed)
        """
        self.has_errors = True

        error_block = f"""
{"!" * 80}
ERROR OCCURRED
{"!" * 80}
{error}
"""
        if context:
            error_block += f"\nContext: {context}\n"

        error_block += f"{'!' * 80}\n\n"

        if self.log_file:
            self.log_file.write(error_block)
            self.log_file.flush()

        if not self.console_output:
            return

        if not self.verbose:
            console.print()

        console.print(f"[bold red]✗ {error}[/bold red]")
        if context:
            console.print(f"  [color(208)]{context}[/color(208)]")

    def step(self, step_name: str):
        """
        Start a new step

        Args:
            step_name: Name of the step
        """
        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")

        if self.show_progress:
            console.print(f"[color(214)]▶[/color(214)] [white]{step_name}[/white]")

    def success(self, message: str):
        """Log a success message"""
        self.log(message, "INFO")

        if self.show_progress:
            console.print(f"  [dim]✓ {message}[/dim]")

    def warning(self, message: str):
        """Log a warning message"""
        self.log(message, "WARNING")

        if self.show_progress:
            console.print(f"  [yellow]⚠[/yellow] [dim]{message}[/dim]")

    def dry_run(self, action: str):
        """Record an action that a dry run skipped"""
        self.log(f"DRY RUN: {action}", "INFO")

        if self.show_progress:
            console.print(f"  [cyan]○[/cyan] [dim]would {action}[/dim]")

    def close(self):
        """Close log file"""
        if self.log_file:
            footer = f"""
{"=" * 80}
Completed: {datetime.now().isoformat()}
Status: {"FAILED" if self.has_errors else "SUCCESS"}
{"=" * 80}
"""
            self.log_file.write(footer)
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        """Context manager exit"""
        if exc_type is not None and exc_type != SystemExit:
            self.log_error(
                str(exc_val) if exc_val else "Operation failed",
                context=f"{exc_type.__name__}",
            )
        self.close()
        return False


def run_with_progress(
    logger: DeployLogger, command: list[str], description: str, cwd: Optional[Path] = None
) -> tuple[int, str, str]:
    """
    Run a local command with progress indicator

    Args:
        logger: DeployLogger instance
        command: Command argv to run
        description: Description for progress indicator
        cwd: Working directory

    Returns:
        Tuple of (return_code, stdout, stderr)
    """
    logger.log_command(" ".join(command))

    if not logger.show_progress:
        result = subprocess.run(command, cwd=cwd, capture_output=True, text=True)
        logger.log_output(result.stdout, "stdout")
        logger.log_output(result.stderr, "stderr")
        return result.returncode, result.stdout, result.stderr

    spinner = Spinner("dots", text=f"[cyan]{description}...[/cyan]")
    padded_spinner = Padding(spinner, (0, 0, 0, 2))

    with Live(
        padded_spinner,
        console=console,
        refresh_per_second=10,
    ) as live:
        result = subprocess.run(command, cwd=cwd, capture_output=True, text=True)

        logger.log_output(result.stdout, "stdout")
        logger.log_output(result.stderr, "stderr")

        if result.returncode == 0:
            checkmark = Text("  ✓ ", style="dim")
            checkmark.append(description, style="dim")
            live.update(checkmark)
        else:
            x_mark = Text("  ✗ ", style="red")
            x_mark.append(description, style="dim")
            live.update(x_mark)

    return result.returncode, result.stdout, result.stderr

"""Local cargo build wrapper: build, clean, locate the binary and decide on rebuilds."""

from pathlib import Path
from typing import Optional

from vpsdeploy.exceptions import BuildError
from vpsdeploy.logger import DeployLogger, run_with_progress
from vpsdeploy.models.results import BuildInfo


class BuildService:
    """Builds the project binary with cargo."""

    def __init__(self, config, logger: Optional[DeployLogger] = None):
        """
        Args:
            config: Loaded VPSDeployConfig
            logger: Optional DeployLogger (a silent one is needed to run cargo)
        """
        self.config = config
        self.logger = logger

    @property
    def project_path(self) -> Path:
        return self.config.project_path

    def _mode(self, mode: Optional[str]) -> str:
        return mode or self.config.project.build_mode

    def find_binary(self, mode: Optional[str] = None) -> Optional[Path]:
        """Return target/<mode>/<name> (or its .exe twin) if it exists."""
        target_dir = self.project_path / "target" / self._mode(mode)
        for candidate in (
            target_dir / self.config.binary_name,
            target_dir / f"{self.config.binary_name}.exe",
        ):
            if candidate.is_file():
                return candidate
        return None

    def needs_rebuild(self, mode: Optional[str] = None) -> bool:
        """True when the binary is missing or older than any source file or Cargo.toml."""
        binary = self.find_binary(mode)
        if binary is None:
            return True

        binary_mtime = binary.stat().st_mtime

        manifest = self.project_path / "Cargo.toml"
        if manifest.is_file() and manifest.stat().st_mtime > binary_mtime:
            return True

        src_dir = self.project_path / "src"
        if not src_dir.is_dir():
            return False

        latest = max(
            (p.stat().st_mtime for p in src_dir.rglob("*") if p.is_file()),
            default=0.0,
        )
        return latest > binary_mtime

    def build_command(self, mode: Optional[str] = None) -> list[str]:
        command = ["cargo", "build"]
        if self._mode(mode) == "release":
            command.append("--release")
        command.extend(["--bin", self.config.binary_name])
        return command

    def build(self, mode: Optional[str] = None, dry_run: bool = False) -> Optional[Path]:
        """
        Run cargo build and return the produced binary.

        Returns:
            Path to the binary (None for dry runs)

        Raises:
            BuildError: If cargo fails or no binary appears afterwards
        """
        mode = self._mode(mode)
        command = self.build_command(mode)

        if not (self.project_path / "Cargo.toml").is_file():
            raise BuildError(
                f"Cargo.toml not found in {self.project_path}",
                context="Set project.path to the crate directory",
            )

        if dry_run:
            if self.logger:
                self.logger.dry_run(" ".join(command))
            return None

        if self.logger is None:
            raise BuildError("Building requires a logger")

        self.logger.step(f"Building {self.config.binary_name} ({mode})")
        try:
            returncode, _, stderr = run_with_progress(
                self.logger, command, f"cargo build ({mode})", cwd=self.project_path
            )
        except FileNotFoundError as e:
            raise BuildError("cargo not found on PATH", context=str(e)) from e

        if returncode != 0:
            raise BuildError(
                f"Build failed with exit code {returncode}",
                context=stderr.strip().splitlines()[-1] if stderr.strip() else None,
            )

        binary = self.find_binary(mode)
        if binary is None:
            raise BuildError(
                f"Build succeeded but binary '{self.config.binary_name}' was not found",
                context=str(self.project_path / "target" / mode),
            )

        self.logger.success(f"Built {binary}")
        return binary

    def clean(self, dry_run: bool = False) -> None:
        """
        Run cargo clean.

        Raises:
            BuildError: If cargo fails
        """
        command = ["cargo", "clean"]
        if dry_run:
            if self.logger:
                self.logger.dry_run(" ".join(command))
            return

        if self.logger is None:
            raise BuildError("Cleaning requires a logger")

        try:
            returncode, _, stderr = run_with_progress(
                self.logger, command, "cargo clean", cwd=self.project_path
            )
        except FileNotFoundError as e:
            raise BuildError("cargo not found on PATH", context=str(e)) from e

        if returncode != 0:
            raise BuildError(f"cargo clean failed with exit code {returncode}", context=stderr.strip() or None)

    def build_info(self, mode: Optional[str] = None) -> BuildInfo:
        mode = self._mode(mode)
        binary = self.find_binary(mode)
        return BuildInfo(
            project_name=self.config.project.name,
            build_mode=mode,
            binary_exists=binary is not None,
            file_size=binary.stat().st_size if binary else None,
            binary_path=str(binary) if binary else None,
        )

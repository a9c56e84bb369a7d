"""
Config Command Base Class

Base class for commands that operate on a configured project.
Provides config loading and service construction.
"""

from pathlib import Path
from typing import Optional

from .base_command import BaseCommand
from vpsdeploy.config import VPSDeployConfig
from vpsdeploy.constants import LOG_DIR_NAME
from vpsdeploy.logger import DeployLogger
from vpsdeploy.services import BuildService, DeploymentPipeline, StatusMonitor


class ConfigCommand(BaseCommand):
    """
    Base class for project commands.

    Provides:
    - Config discovery and validation
    - Logger rooted in the project directory
    - Pre-configured build, deploy and monitor services
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        dry_run: bool = False,
        verbose: bool = False,
        json_output: bool = False,
    ):
        super().__init__(verbose=verbose, json_output=json_output)
        self.config_path = config_path
        self.dry_run = dry_run
        self._config: Optional[VPSDeployConfig] = None

    @property
    def config(self) -> VPSDeployConfig:
        """Load and validate the configuration on first use."""
        if self._config is None:
            config = VPSDeployConfig.from_default_location(self.config_path)
            result = config.validate()
            for warning in result.warnings:
                self.print_warning(warning)
            self._config = config
        return self._config

    @property
    def project_name(self) -> str:
        return self.config.project.name

    def init_project_logger(self, command_name: str) -> Optional[DeployLogger]:
        return self.init_logger(
            self.project_name, command_name, log_root=self.config.project_path / LOG_DIR_NAME
        )

    def build_service(self) -> BuildService:
        return BuildService(self.config, self.logger)

    def pipeline(self) -> DeploymentPipeline:
        return DeploymentPipeline(self.logger)

    def monitor(self) -> StatusMonitor:
        return StatusMonitor.from_config(self.config, self.logger)

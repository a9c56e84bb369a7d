"""Configuration management for vpsdeploy projects"""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import dotenv_values

from vpsdeploy.constants import (
    BUILD_MODES,
    CONFIG_FILE_NAMES,
    DEFAULT_BUILD_MODE,
    DEFAULT_DEPLOY_PATH,
    DEFAULT_HEALTH_TIMEOUT,
    DEFAULT_LOG_PATH,
    DEFAULT_MONITOR_INTERVAL,
    DEFAULT_PROJECT_NAME,
    DEFAULT_SSH_KEY_PATH,
    DEFAULT_SSH_PORT,
    DEFAULT_SSH_USER,
    HOME_CONFIG_FILE_NAME,
    SSH_PASSWORD_ENV,
)
from vpsdeploy.exceptions import ConfigurationError
from vpsdeploy.models.deployment import DeploymentDescriptor
from vpsdeploy.models.results import ValidationResult
from vpsdeploy.models.ssh import RemoteEndpoint
from vpsdeploy.utils import find_first_existing


@dataclass
class ProjectSection:
    """Local project configuration"""

    name: str = DEFAULT_PROJECT_NAME
    path: str = "."
    build_mode: str = DEFAULT_BUILD_MODE


@dataclass
class DeploySection:
    """Remote target configuration"""

    host: str = ""
    user: str = DEFAULT_SSH_USER
    key_path: Optional[str] = DEFAULT_SSH_KEY_PATH
    password: Optional[str] = None
    deploy_path: str = DEFAULT_DEPLOY_PATH
    service_name: Optional[str] = None
    port: int = DEFAULT_SSH_PORT


@dataclass
class MonitorSection:
    """Health check configuration"""

    health_endpoint: Optional[str] = None
    log_path: Optional[str] = DEFAULT_LOG_PATH
    interval: int = DEFAULT_MONITOR_INTERVAL
    health_timeout: int = DEFAULT_HEALTH_TIMEOUT


def _section(cls, raw: Any, section_name: str):
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigurationError(f"Invalid '{section_name}' section: must be a mapping")

    known = set(cls.__dataclass_fields__)
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in '{section_name}': {', '.join(unknown)}",
            context=f"Allowed keys: {', '.join(sorted(known))}",
        )
    return cls(**raw)


@dataclass
class VPSDeployConfig:
    """Represents a loaded project configuration"""

    project: ProjectSection = field(default_factory=ProjectSection)
    deploy: DeploySection = field(default_factory=DeploySection)
    monitor: MonitorSection = field(default_factory=MonitorSection)
    config_path: Optional[Path] = None

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], config_path: Optional[Path] = None) -> "VPSDeployConfig":
        """
        Build a config from a parsed YAML document.

        Raises:
            ConfigurationError: If a section is malformed
        """
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        return cls(
            project=_section(ProjectSection, raw.get("project"), "project"),
            deploy=_section(DeploySection, raw.get("deploy"), "deploy"),
            monitor=_section(MonitorSection, raw.get("monitor"), "monitor"),
            config_path=config_path,
        )

    @classmethod
    def from_file(cls, path: Path) -> "VPSDeployConfig":
        """
        Load configuration from a YAML file.

        A missing deploy.password is filled from VPSDEPLOY_SSH_PASSWORD, read
        from the environment or a .env file next to the config.

        Raises:
            ConfigurationError: If the file is missing or not valid YAML
        """
        path = Path(path).expanduser()
        if not path.is_file():
            raise ConfigurationError(
                f"Config file not found: {path}",
                context="Run 'vpsdeploy init' to create one",
            )

        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}", context=str(e)) from e

        config = cls.from_dict(raw, config_path=path.resolve())

        if not config.deploy.password:
            config.deploy.password = _password_from_env(path.parent)

        return config

    @classmethod
    def from_default_location(cls, explicit: Optional[Path] = None) -> "VPSDeployConfig":
        """
        Load from *explicit*, else ./vpsdeploy.yml, ./.vpsdeploy.yml, ~/.vpsdeploy.yml.

        Raises:
            ConfigurationError: If no config file is found
        """
        if explicit is not None:
            return cls.from_file(Path(explicit))

        found = find_first_existing(Path.cwd(), CONFIG_FILE_NAMES)
        if found is None:
            home_config = Path.home() / HOME_CONFIG_FILE_NAME
            if home_config.is_file():
                found = home_config

        if found is None:
            raise ConfigurationError(
                "No configuration file found",
                context=f"Looked for {', '.join(CONFIG_FILE_NAMES)} and ~/{HOME_CONFIG_FILE_NAME}. "
                "Run 'vpsdeploy init' first",
            )
        return cls.from_file(found)

    @classmethod
    def create_default(
        cls,
        path: Path,
        name: Optional[str] = None,
        host: Optional[str] = None,
        build_mode: str = DEFAULT_BUILD_MODE,
    ) -> "VPSDeployConfig":
        """
        Write a default configuration file and return it.

        Raises:
            ConfigurationError: If the file already exists
        """
        path = Path(path)
        if path.exists():
            raise ConfigurationError(f"Config file already exists: {path}")

        project_name = name or DEFAULT_PROJECT_NAME
        target_host = host or "your-vps.example.com"
        config = cls(
            project=ProjectSection(name=project_name, build_mode=build_mode),
            deploy=DeploySection(host=target_host, deploy_path=f"/opt/{project_name}"),
            monitor=MonitorSection(
                health_endpoint=f"http://{target_host}:8080/health",
                log_path=f"/var/log/{project_name}.log",
            ),
        )
        config.save(path)
        config.config_path = path.resolve()
        return config

    def save(self, path: Path) -> None:
        """Write the configuration as YAML."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (the YAML document, password omitted)."""
        deploy = asdict(self.deploy)
        deploy.pop("password", None)
        return {
            "project": asdict(self.project),
            "deploy": deploy,
            "monitor": asdict(self.monitor),
        }

    def check(self) -> ValidationResult:
        """Collect every validation problem without raising."""
        result = ValidationResult(is_valid=True)

        if not self.project.name or not self.project.name.strip():
            result.add_error("project.name cannot be empty")
        if self.project.build_mode not in BUILD_MODES:
            result.add_error(
                f"project.build_mode must be one of {', '.join(BUILD_MODES)}, got '{self.project.build_mode}'"
            )

        if not self.deploy.host or not self.deploy.host.strip():
            result.add_error("deploy.host cannot be empty")
        if not self.deploy.user or not self.deploy.user.strip():
            result.add_error("deploy.user cannot be empty")
        if self.deploy.key_path is not None and not str(self.deploy.key_path).strip():
            result.add_error("deploy.key_path cannot be empty")
        if not self.deploy.key_path and not self.deploy.password:
            result.add_error(
                f"No SSH credential: set deploy.key_path or deploy.password (or {SSH_PASSWORD_ENV})"
            )
        if not isinstance(self.deploy.port, int) or not 0 < self.deploy.port < 65536:
            result.add_error(f"deploy.port must be between 1 and 65535, got {self.deploy.port}")
        if not self.deploy.deploy_path or not self.deploy.deploy_path.startswith("/"):
            result.add_error("deploy.deploy_path must be an absolute path")

        endpoint = self.monitor.health_endpoint
        if endpoint and not endpoint.startswith(("http://", "https://")):
            result.add_error("monitor.health_endpoint must start with http:// or https://")
        if not isinstance(self.monitor.interval, (int, float)) or self.monitor.interval <= 0:
            result.add_error("monitor.interval must be greater than 0")
        if not isinstance(self.monitor.health_timeout, (int, float)) or self.monitor.health_timeout <= 0:
            result.add_error("monitor.health_timeout must be greater than 0")

        if self.deploy.key_path and not self.endpoint_key_exists():
            result.add_warning(f"SSH key not found: {self.deploy.key_path}")
        if not endpoint:
            result.add_warning("monitor.health_endpoint not set; health checks will report failing")

        return result

    def validate(self) -> ValidationResult:
        """
        Validate the configuration.

        Raises:
            ConfigurationError: Listing every problem found
        """
        result = self.check()
        if result.has_errors:
            raise ConfigurationError(
                "Invalid configuration",
                context="; ".join(result.errors),
            )
        return result

    def endpoint_key_exists(self) -> bool:
        return bool(self.deploy.key_path) and Path(self.deploy.key_path).expanduser().is_file()

    @property
    def binary_name(self) -> str:
        return self.project.name

    @property
    def service_name(self) -> str:
        return self.deploy.service_name or f"{self.project.name}.service"

    @property
    def project_path(self) -> Path:
        """Project directory, resolved relative to the config file."""
        path = Path(self.project.path).expanduser()
        if not path.is_absolute() and self.config_path is not None:
            path = Path(self.config_path).parent / path
        return path.resolve()

    def endpoint(self) -> RemoteEndpoint:
        return RemoteEndpoint(
            host=self.deploy.host,
            username=self.deploy.user,
            port=self.deploy.port,
            key_path=self.deploy.key_path or None,
            password=self.deploy.password or None,
        )

    def descriptor(self, binary_path: Path) -> DeploymentDescriptor:
        """Deployment descriptor for *binary_path* under this config."""
        return DeploymentDescriptor(
            local_binary=Path(binary_path),
            deploy_path=self.deploy.deploy_path,
            binary_name=self.binary_name,
            service_name=self.service_name,
        ).with_local_size()


def _password_from_env(config_dir: Path) -> Optional[str]:
    password = os.environ.get(SSH_PASSWORD_ENV)
    if password:
        return password

    env_file = config_dir / ".env"
    if env_file.is_file():
        return dotenv_values(env_file).get(SSH_PASSWORD_ENV) or None
    return None

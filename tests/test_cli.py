import json
import subprocess

import pytest
from click.testing import CliRunner

from vpsdeploy import logger as logger_module
from vpsdeploy.base import ConfigCommand
from vpsdeploy.config import VPSDeployConfig
from vpsdeploy.constants import SSH_PASSWORD_ENV
from vpsdeploy.main import cli
from vpsdeploy.services.deployment_service import DeploymentPipeline


@pytest.fixture
def runner(monkeypatch):
    monkeypatch.delenv("VPSDEPLOY_CONFIG", raising=False)
    monkeypatch.delenv(SSH_PASSWORD_ENV, raising=False)
    return CliRunner()


def test_init_writes_config(runner, tmp_path):
    result = runner.invoke(cli, ["init", str(tmp_path), "--name", "api", "--host", "vps.test"])

    assert result.exit_code == 0, result.output
    config = VPSDeployConfig.from_file(tmp_path / "vpsdeploy.yml")
    assert config.project.name == "api"
    assert config.deploy.host == "vps.test"


def test_init_refuses_existing_file(runner, config_file):
    result = runner.invoke(cli, ["init", str(config_file.parent), "--name", "api", "--host", "h"])

    assert result.exit_code == 1
    assert "already exists" in result.output


def test_validate_json_reports_valid_config(runner, config_file):
    result = runner.invoke(cli, ["validate", str(config_file), "--json"])

    assert result.exit_code == 0, result.output
    report = json.loads(result.output)
    assert report["valid"] is True
    assert report["errors"] == []


def test_validate_reports_errors_with_exit_code(runner, tmp_path):
    (tmp_path / "vpsdeploy.yml").write_text("deploy:\n  host: ''\n  port: 0\n")

    result = runner.invoke(cli, ["validate", str(tmp_path)])

    assert result.exit_code == 1
    assert "deploy.host cannot be empty" in result.output


def test_dry_run_deploy_prints_plan(runner, config_file):
    result = runner.invoke(cli, ["--config", str(config_file), "--dry-run", "deploy", "--skip-build"])

    assert result.exit_code == 0, result.output
    assert "DRY RUN: Would deploy my-app to vps.test" in result.output


def test_missing_config_is_reported(runner, tmp_path):
    result = runner.invoke(cli, ["--config", str(tmp_path / "missing.yml"), "status"])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


def test_deploy_builds_before_showing_progress(runner, config_file, tmp_path, remote_host, fake_connect, monkeypatch):
    (tmp_path / "Cargo.toml").write_text('[package]\nname = "my-app"\n')
    built = tmp_path / "target" / "release" / "my-app"
    cargo_calls = []

    def fake_cargo(command, cwd=None, capture_output=False, text=False):
        live_stack = getattr(logger_module.console, "_live_stack", None)
        if live_stack is not None:
            assert len(live_stack) == 1
        cargo_calls.append((list(command), len(remote_host.commands)))
        built.parent.mkdir(parents=True, exist_ok=True)
        built.write_bytes(b"binary-built")
        return subprocess.CompletedProcess(command, 0, "Compiling my-app\n", "")

    monkeypatch.setattr(logger_module.subprocess, "run", fake_cargo)
    monkeypatch.setattr(ConfigCommand, "pipeline", lambda self: DeploymentPipeline(self.logger, connect=fake_connect))

    result = runner.invoke(cli, ["--config", str(config_file), "deploy"])

    assert result.exit_code == 0, result.output
    assert cargo_calls == [(["cargo", "build", "--release", "--bin", "my-app"], 0)]
    assert remote_host.files["/opt/my-app/my-app"] == b"binary-built"
    assert "Successfully deployed my-app to vps.test" in result.output

from dataclasses import replace

import pytest

from conftest import ConnectRecorder
from vpsdeploy.exceptions import (
    DeploymentError,
    RollbackUnavailableError,
    ServiceStartError,
    SSHConnectionError,
    TransferError,
)
from vpsdeploy.services.deployment_service import DEPLOY_STAGES, DeploymentPipeline

LIVE = "/opt/my-app/my-app"
BACKUP = "/opt/my-app/my-app.backup"


@pytest.fixture
def pipeline(fake_connect, logger):
    return DeploymentPipeline(logger, connect=fake_connect)


def _redeploy(pipeline, descriptor, endpoint, content: bytes):
    descriptor.local_binary.write_bytes(content)
    return pipeline.deploy(descriptor.with_local_size(), endpoint, skip_build=True)


def test_fresh_host_deploy_creates_no_backup(pipeline, remote_host, descriptor, endpoint):
    result = pipeline.deploy(descriptor, endpoint, skip_build=True)

    assert result.is_success
    assert result.backup_created is False
    assert BACKUP not in remote_host.files
    assert remote_host.files[LIVE] == b"binary-v1"
    assert remote_host.modes[LIVE] & 0o111
    assert remote_host.services["my-app.service"] == "active"
    assert "/opt/my-app" in remote_host.dirs


def test_backup_holds_previous_binary(pipeline, remote_host, descriptor, endpoint):
    pipeline.deploy(descriptor, endpoint, skip_build=True)

    result = _redeploy(pipeline, descriptor, endpoint, b"binary-v2")

    assert result.backup_created is True
    assert remote_host.files[BACKUP] == b"binary-v1"
    assert remote_host.files[LIVE] == b"binary-v2"


def test_deploy_twice_then_rollback_restores_first_binary(pipeline, remote_host, descriptor, endpoint):
    pipeline.deploy(descriptor, endpoint, skip_build=True)
    _redeploy(pipeline, descriptor, endpoint, b"binary-v2")
    unit_before = remote_host.files["/etc/systemd/system/my-app.service"]
    reloads_before = remote_host.daemon_reloads

    pipeline.rollback(descriptor, endpoint)

    assert remote_host.files[LIVE] == b"binary-v1"
    assert remote_host.services["my-app.service"] == "active"
    assert remote_host.files["/etc/systemd/system/my-app.service"] == unit_before
    assert remote_host.daemon_reloads == reloads_before


def test_rollback_without_backup_raises(pipeline, remote_host, descriptor, endpoint):
    pipeline.deploy(descriptor, endpoint, skip_build=True)

    with pytest.raises(RollbackUnavailableError) as excinfo:
        pipeline.rollback(descriptor, endpoint)

    assert excinfo.value.backup_path == BACKUP
    assert remote_host.files[LIVE] == b"binary-v1"


def test_rollback_on_empty_host_raises(pipeline, descriptor, endpoint):
    with pytest.raises(RollbackUnavailableError, match="No backup found"):
        pipeline.rollback(descriptor, endpoint)


def test_progress_events_follow_stage_order(pipeline, descriptor, endpoint):
    events = []

    pipeline.deploy(descriptor, endpoint, skip_build=True, on_progress=events.append)

    assert [e.label for e in events] == list(DEPLOY_STAGES)
    percents = [e.percent for e in events]
    assert percents == sorted(percents)
    assert percents[0] == pytest.approx(100 / len(DEPLOY_STAGES))
    assert percents[-1] == pytest.approx(100.0)


def test_dry_run_without_binary_never_connects(logger, descriptor, endpoint, tmp_path):
    def refuse(*args, **kwargs):
        raise AssertionError("dry run must not connect")

    pipeline = DeploymentPipeline(logger, connect=refuse)
    missing = replace(descriptor, local_binary=tmp_path / "does-not-exist")
    events = []

    result = pipeline.deploy(missing, endpoint, dry_run=True, on_progress=events.append)

    assert result.is_success
    assert result.dry_run
    assert len(result.planned_actions) == len(DEPLOY_STAGES)
    assert "DRY RUN" in result.message
    assert len(events) == len(DEPLOY_STAGES)


def test_dry_run_skips_build(pipeline, descriptor, endpoint, remote_host):
    def build():
        raise AssertionError("dry run must not build")

    pipeline.deploy(descriptor, endpoint, dry_run=True, build=build)

    assert remote_host.commands == []


def test_build_runs_first_and_its_binary_is_deployed(pipeline, remote_host, descriptor, endpoint, tmp_path):
    built = tmp_path / "fresh-build"
    built.write_bytes(b"binary-built")
    calls = []

    def build():
        calls.append(len(remote_host.commands))
        return built

    pipeline.deploy(descriptor, endpoint, build=build)

    assert calls == [0]
    assert remote_host.files[LIVE] == b"binary-built"


def test_skip_build_ignores_builder(pipeline, descriptor, endpoint):
    def build():
        raise AssertionError("skip_build must not build")

    assert pipeline.deploy(descriptor, endpoint, skip_build=True, build=build).is_success


def test_missing_binary_fails_before_connecting(pipeline, fake_connect, descriptor, endpoint, tmp_path):
    missing = replace(descriptor, local_binary=tmp_path / "nope")

    with pytest.raises(DeploymentError, match="Binary not found"):
        pipeline.deploy(missing, endpoint, skip_build=True)

    assert fake_connect.calls == []


def test_connect_stage_uses_three_attempts(pipeline, fake_connect, descriptor, endpoint):
    pipeline.deploy(descriptor, endpoint, skip_build=True)

    assert fake_connect.calls == [(endpoint, 3)]


def test_failed_start_aborts_deploy(pipeline, remote_host, descriptor, endpoint):
    remote_host.start_state = "failed"

    with pytest.raises(ServiceStartError):
        pipeline.deploy(descriptor, endpoint, skip_build=True)


def test_upload_failure_stops_before_permissions(pipeline, remote_host, descriptor, endpoint):
    remote_host.fail_uploads = True

    with pytest.raises(TransferError):
        pipeline.deploy(descriptor, endpoint, skip_build=True)

    assert not any(c.startswith("chmod") for c in remote_host.commands)
    assert not any("systemctl" in c for c in remote_host.commands)


def test_status_of_running_deployment(pipeline, remote_host, descriptor, endpoint):
    pipeline.deploy(descriptor, endpoint, skip_build=True)
    remote_host.mtimes["/etc/systemd/system/my-app.service"] = 1705314600

    status = pipeline.check_deployment_status(descriptor, endpoint)

    assert status.service_active is True
    assert status.last_deployment == "2024-01-15 10:30:00 UTC"
    assert status.version.startswith("Size: 9,")


def test_status_of_unreachable_host_is_all_negative(logger, remote_host, descriptor, endpoint):
    connect = ConnectRecorder(remote_host, error=SSHConnectionError("vps.test", 22, 3, OSError("timed out")))
    pipeline = DeploymentPipeline(logger, connect=connect)

    status = pipeline.check_deployment_status(descriptor, endpoint)

    assert status.service_active is False
    assert status.last_deployment is None
    assert status.version is None

import pytest

from vpsdeploy.exceptions import CommandError, SSHError, TransferError
from vpsdeploy.services.remote_ops import RemoteOps


@pytest.fixture
def ops(remote_host, logger):
    return RemoteOps(remote_host, logger)


def test_run_returns_output_on_success(ops, remote_host):
    remote_host.files["/var/log/app.log"] = b"one\ntwo\nthree\n"

    stdout, stderr = ops.run("tail -n 2 /var/log/app.log")

    assert stdout == "two\nthree\n"
    assert stderr == ""


def test_non_zero_exit_raises_command_error_with_details(ops):
    with pytest.raises(CommandError) as excinfo:
        ops.run("cp /missing /elsewhere")

    error = excinfo.value
    assert error.exit_code == 1
    assert error.command == "cp /missing /elsewhere"
    assert "No such file" in error.stderr
    assert "exit code 1" in error.message


def test_execute_does_not_raise(ops):
    result = ops.execute("no-such-tool --version")

    assert result.is_failure
    assert result.returncode == 127
    assert result.host == "vps.test"


def test_exists_reports_files(ops, remote_host):
    remote_host.files["/opt/my-app/my-app"] = b"x"

    assert ops.exists("/opt/my-app/my-app")
    assert not ops.exists("/opt/my-app/other")


def test_exists_treats_failed_check_as_absent(ops, remote_host):
    remote_host.failures["[ -f"] = (255, "connection reset")

    assert ops.exists("/opt/my-app/my-app") is False


def test_upload_streams_bytes_with_mode_0644(ops, remote_host, tmp_path):
    local = tmp_path / "blob"
    payload = bytes(range(256)) * 100
    local.write_bytes(payload)

    sent = ops.upload(local, "/opt/my-app/blob")

    assert sent == len(payload)
    assert remote_host.files["/opt/my-app/blob"] == payload
    assert remote_host.modes["/opt/my-app/blob"] == 0o644


def test_upload_of_missing_local_file_is_a_transfer_error(ops, tmp_path):
    with pytest.raises(TransferError) as excinfo:
        ops.upload(tmp_path / "nope", "/opt/my-app/nope")

    assert excinfo.value.remote_path == "/opt/my-app/nope"


def test_upload_remote_failure_is_a_transfer_error(ops, remote_host, binary):
    remote_host.fail_uploads = True

    with pytest.raises(TransferError, match="Failed to upload"):
        ops.upload(binary, "/opt/my-app/my-app")


def test_paths_are_shell_quoted(ops, remote_host):
    ops.ensure_dir("/opt/my app")

    assert remote_host.commands[-1] == "mkdir -p '/opt/my app'"
    assert "/opt/my app" in remote_host.dirs


def test_stat_and_listing_are_best_effort(ops, remote_host):
    remote_host.files["/opt/my-app/my-app"] = b"12345"
    remote_host.mtimes["/opt/my-app/my-app"] = 1705314600

    assert ops.stat_mtime("/opt/my-app/my-app") == 1705314600
    assert ops.stat_mtime("/opt/my-app/missing") is None
    assert ops.list_long("/opt/my-app/missing") is None
    assert ops.list_long("/opt/my-app/my-app").split()[4] == "5"


def test_follow_hands_lines_to_callback(ops, remote_host):
    remote_host.files["/var/log/app.log"] = b"a\nb\nc\n"
    seen = []

    ops.follow("/var/log/app.log", 2, seen.append)

    assert seen == ["b", "c"]


class _BrokenChannelSession:
    host = "vps.test"

    def exec_command(self, command):
        raise SSHError(f"Failed to open channel for command: {command}")


def test_exists_treats_session_error_as_absent():
    assert RemoteOps(_BrokenChannelSession()).exists("/opt/app/app") is False


def test_run_lets_session_errors_through():
    with pytest.raises(SSHError, match="Failed to open channel"):
        RemoteOps(_BrokenChannelSession()).run("mkdir -p /opt/app")

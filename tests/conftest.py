from __future__ import annotations

import posixpath
import shlex
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from vpsdeploy.logger import DeployLogger  # noqa: E402
from vpsdeploy.models.deployment import DeploymentDescriptor  # noqa: E402
from vpsdeploy.models.ssh import RemoteEndpoint  # noqa: E402

UNIT_DIR = "/etc/systemd/system"


class FakeRemoteFile:
    def __init__(self, host: "FakeRemoteHost", path: str):
        self.host = host
        self.path = path
        self.buffer = bytearray()

    def write(self, data: bytes) -> None:
        self.buffer.extend(data)

    def close(self) -> None:
        self.host.files[self.path] = bytes(self.buffer)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeSFTP:
    def __init__(self, host: "FakeRemoteHost"):
        self.host = host

    def open(self, path: str, mode: str = "r"):
        if self.host.fail_uploads:
            raise OSError("Permission denied")
        return FakeRemoteFile(self.host, path)

    def chmod(self, path: str, mode: int) -> None:
        self.host.modes[path] = mode

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeRemoteHost:
    """In-memory stand-in for an SSHSession: a tiny shell plus SFTP."""

    def __init__(self, host: str = "vps.test"):
        self.host = host
        self.files: Dict[str, bytes] = {}
        self.modes: Dict[str, int] = {}
        self.dirs = set()
        self.services: Dict[str, str] = {}
        self.enabled = set()
        self.mtimes: Dict[str, int] = {}
        self.commands: List[str] = []
        self.failures: Dict[str, Tuple[int, str]] = {}
        self.start_state = "active"
        self.fail_uploads = False
        self.daemon_reloads = 0
        self.closed = False
        self.sessions_opened = 0

    # session surface

    def exec_command(self, command: str) -> Tuple[int, str, str]:
        self.commands.append(command)
        for prefix, (code, stderr) in self.failures.items():
            if command.startswith(prefix):
                return code, "", stderr

        if command.startswith("cat > ") and "<< 'EOF'" in command:
            header, _, rest = command.partition("\n")
            path = shlex.split(header)[2]
            self.files[path] = rest[: rest.rfind("\nEOF")].encode()
            return 0, "", ""

        argv = shlex.split(command)
        if argv[0] == "[" and argv[1] == "-f":
            return 0, "exists\n" if argv[2] in self.files else "not exists\n", ""

        if argv[0] == "sudo":
            argv = argv[1:]
            if argv[0] == "systemctl":
                return self._systemctl(argv[1], argv[2] if len(argv) > 2 else None)

        handler = getattr(self, f"_cmd_{argv[0]}", None)
        if handler is None:
            return 127, "", f"{argv[0]}: command not found"
        return handler(argv[1:])

    def open_sftp(self) -> FakeSFTP:
        return FakeSFTP(self)

    def stream_command(self, command, on_line, stop_event=None, poll_interval=0.1) -> int:
        code, stdout, _ = self.exec_command(command.replace("tail -f ", "tail ", 1))
        for line in stdout.splitlines():
            if stop_event is not None and stop_event.is_set():
                return -1
            on_line(line)
        return code

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        self.closed = False
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    # helpers

    def file_text(self, path: str) -> str:
        return self.files[path].decode()

    def unit_installed(self, name: str) -> bool:
        unit = name if name.endswith(".service") else f"{name}.service"
        return posixpath.join(UNIT_DIR, unit) in self.files

    # commands

    def _systemctl(self, verb: str, name: Optional[str]) -> Tuple[int, str, str]:
        if verb == "daemon-reload":
            self.daemon_reloads += 1
            return 0, "", ""
        if verb == "stop":
            self.services[name] = "inactive"
            return 0, "", ""
        if verb == "enable":
            if not self.unit_installed(name):
                return 1, "", f"Failed to enable unit: Unit file {name} does not exist."
            self.enabled.add(name)
            return 0, "", ""
        if verb == "start":
            if not self.unit_installed(name):
                return 5, "", f"Failed to start {name}: Unit {name} not found."
            self.services[name] = self.start_state
            return 0, "", ""
        if verb == "is-active":
            state = self.services.get(name, "inactive")
            return (0 if state == "active" else 3), f"{state}\n", ""
        return 1, "", f"Unknown command verb {verb}."

    def _cmd_mkdir(self, args):
        self.dirs.add(args[-1])
        return 0, "", ""

    def _cmd_cp(self, args):
        source, target = args
        if source not in self.files:
            return 1, "", f"cp: cannot stat '{source}': No such file or directory"
        self.files[target] = self.files[source]
        return 0, "", ""

    def _cmd_mv(self, args):
        source, target = args
        if source not in self.files:
            return 1, "", f"mv: cannot stat '{source}': No such file or directory"
        if target.endswith("/"):
            target = posixpath.join(target, posixpath.basename(source))
        self.files[target] = self.files.pop(source)
        return 0, "", ""

    def _cmd_chmod(self, args):
        mode, path = args
        if path not in self.files:
            return 1, "", f"chmod: cannot access '{path}': No such file or directory"
        if mode == "+x":
            self.modes[path] = self.modes.get(path, 0o644) | 0o111
        return 0, "", ""

    def _cmd_tail(self, args):
        lines = int(args[args.index("-n") + 1])
        path = args[-1]
        if path not in self.files:
            return 1, "", f"tail: cannot open '{path}' for reading: No such file or directory"
        content = self.file_text(path).splitlines()[-lines:]
        return 0, "\n".join(content) + "\n", ""

    def _cmd_stat(self, args):
        path = args[-1]
        if path not in self.files:
            return 1, "", f"stat: cannot statx '{path}': No such file or directory"
        return 0, f"{self.mtimes.get(path, 1700000000)}\n", ""

    def _cmd_ls(self, args):
        path = args[-1]
        if path not in self.files:
            return 2, "", f"ls: cannot access '{path}': No such file or directory"
        size = len(self.files[path])
        return 0, f"-rwxr-xr-x 1 deploy deploy {size} Jan 15 10:30 {path}\n", ""


class ConnectRecorder:
    """Replacement for connect_with_retry that hands out one FakeRemoteHost."""

    def __init__(self, host: FakeRemoteHost, error: Optional[Exception] = None):
        self.host = host
        self.error = error
        self.calls: List[Tuple[RemoteEndpoint, int]] = []

    def __call__(self, endpoint, max_attempts=3, logger=None):
        self.calls.append((endpoint, max_attempts))
        if self.error is not None:
            raise self.error
        self.host.sessions_opened += 1
        return self.host


@pytest.fixture
def remote_host() -> FakeRemoteHost:
    return FakeRemoteHost()


@pytest.fixture
def fake_connect(remote_host) -> ConnectRecorder:
    return ConnectRecorder(remote_host)


@pytest.fixture
def endpoint() -> RemoteEndpoint:
    return RemoteEndpoint(host="vps.test", username="deploy", password="secret")


@pytest.fixture
def binary(tmp_path) -> Path:
    path = tmp_path / "target" / "release" / "my-app"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"binary-v1")
    return path


@pytest.fixture
def descriptor(binary) -> DeploymentDescriptor:
    return DeploymentDescriptor(
        local_binary=binary,
        deploy_path="/opt/my-app",
        binary_name="my-app",
        service_name="my-app.service",
    ).with_local_size()


@pytest.fixture
def logger(tmp_path):
    log = DeployLogger("my-app", "test", log_root=tmp_path / ".vpsdeploy", console_output=False)
    yield log
    log.close()


@pytest.fixture
def config_file(tmp_path) -> Path:
    path = tmp_path / "vpsdeploy.yml"
    path.write_text(
        """
project:
  name: my-app
  path: .
  build_mode: release
deploy:
  host: vps.test
  user: deploy
  key_path: ~/.ssh/id_ed25519
  deploy_path: /opt/my-app
  port: 2222
monitor:
  health_endpoint: http://vps.test:8080/health
  log_path: /var/log/my-app.log
  interval: 5
  health_timeout: 2
""".lstrip()
    )
    return path

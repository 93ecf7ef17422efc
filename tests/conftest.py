import os as _os
import sys

import pytest

# Ensure project root is importable (so `import chw` and `import cli` work without installing)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from chw import db  # noqa: E402
from chw.docker_ops import ContainerRef  # noqa: E402
from chw.settings import ProbeConfig, Settings  # noqa: E402


class FakeRuntime:
    """In-memory stand-in for DockerRuntime."""

    def __init__(self, containers=None, fail_restart=None, list_error=None):
        self.containers = list(containers or [])
        self.fail_restart = dict(fail_restart or {})  # container id -> exception
        self.list_error = list_error
        self.list_calls = 0
        self.restarted = []

    def available(self):
        return self.list_error is None

    def list_containers(self):
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        return list(self.containers)

    def restart(self, container_id):
        exc = self.fail_restart.get(container_id)
        if exc is not None:
            raise exc
        self.restarted.append(container_id)


@pytest.fixture
def fake_runtime():
    return FakeRuntime(
        containers=[
            ContainerRef(id="id-a", names=("/a",), state="running"),
            ContainerRef(id="id-b", names=("/b",), state="exited"),
        ]
    )


@pytest.fixture
def make_settings():
    def _make(**overrides):
        values = dict(
            probe=ProbeConfig(url="http://service.local/health", timeout_s=1.0),
            check_interval_ms=1000,
            failure_threshold=3,
            containers=("a", "b"),
            docker_socket="unix:///var/run/docker.sock",
        )
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture(autouse=True)
def no_event_db():
    db.init_db(None)
    yield
    db.init_db(None)

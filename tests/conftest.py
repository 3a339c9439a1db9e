"""Shared pytest fixtures for autossh wrapper tests."""

import shutil
import sys
import tempfile
import threading
from pathlib import Path
from unittest.mock import Mock

import pytest

from autossh_wrapper.common.context_config import SupervisorConfig
from autossh_wrapper.health.models import ProbeOutcome
from autossh_wrapper.health.responder import HealthResponder
from autossh_wrapper.rendezvous import RendezvousPaths

FAKE_SSH = Path(__file__).parent / "fake_ssh.py"


@pytest.fixture
def short_dir():
    """Private directory with a short path.

    pytest's tmp_path can exceed the ~104 byte limit of Unix socket paths.
    """
    directory = tempfile.mkdtemp(prefix="aw-")
    yield Path(directory)
    shutil.rmtree(directory, ignore_errors=True)


@pytest.fixture
def rendezvous(short_dir):
    """Rendezvous paths inside short_dir for a fixed uid"""
    return RendezvousPaths.for_directory(short_dir, "1000")


@pytest.fixture
def responder(rendezvous):
    """Running HealthResponder bound to the rendezvous listen socket"""
    server = HealthResponder(rendezvous.listen_path).start()
    yield server
    server.stop()


@pytest.fixture
def fake_ssh_command():
    """Command prefix of the stand-in ssh that relays -L to -R locally"""
    return [sys.executable, str(FAKE_SSH)]


@pytest.fixture
def fast_config():
    """Config with timings small enough for unit tests"""
    return SupervisorConfig(
        probe_timeout=0.01,
        probe_interval=0.02,
        startup_timeout=0,
        terminate_timeout=1.0,
        backoff_initial=0.01,
        backoff_max=0.05,
        backoff_jitter=0,
    )


@pytest.fixture
def mock_subprocess(monkeypatch):
    """Mock subprocess.Popen for testing process management.

    Returns:
        Mock: Mocked Popen class
    """
    mock_popen = Mock()
    monkeypatch.setattr("subprocess.Popen", mock_popen)
    return mock_popen


@pytest.fixture
def mock_process():
    """Create a mock process object for testing.

    Returns:
        Mock: Mock process with common attributes
    """
    process = Mock()
    process.pid = 12345
    process.poll.return_value = None  # Process is running
    process.terminate.return_value = None
    process.kill.return_value = None
    process.wait.return_value = 0
    return process


@pytest.fixture
def fake_binary(tmp_path):
    """Executable file that resolve_binary() accepts"""
    binary_path = tmp_path / "ssh"
    binary_path.write_text("#!/bin/sh\nexit 0\n")
    binary_path.chmod(0o755)
    return binary_path


class FakeProcess:
    """Stand-in for SSHProcess that records its lifecycle"""

    def __init__(self, command, terminate_timeout=5.0):
        self.command = list(command)
        self.terminate_timeout = terminate_timeout
        self.pid = 4242
        self.started = False
        self.stopped = threading.Event()

    def start(self):
        self.started = True
        return True

    def stop(self):
        self.stopped.set()
        return True

    def wait(self, timeout=None):
        if self.stopped.wait(timeout):
            return -15
        return None

    def is_running(self):
        return self.started and not self.stopped.is_set()


class FakeProcessFactory:
    """Process factory that keeps every FakeProcess it creates"""

    def __init__(self):
        self.instances: list[FakeProcess] = []

    def __call__(self, command, terminate_timeout=5.0):
        process = FakeProcess(command, terminate_timeout)
        self.instances.append(process)
        return process


@pytest.fixture
def process_factory():
    return FakeProcessFactory()


class ScriptedProber:
    """Prober returning a fixed sequence of outcomes, repeating the last one"""

    def __init__(self, outcomes, on_probe=None):
        self.outcomes = list(outcomes)
        self.on_probe = on_probe
        self.calls = 0

    def probe(self, ctx=None):
        index = min(self.calls, len(self.outcomes) - 1)
        self.calls += 1
        if self.on_probe is not None:
            self.on_probe(self.calls, ctx)
        return self.outcomes[index]


def ok_outcome():
    return ProbeOutcome.success("pong\n", 200, 0.001)


def failed_outcome(error="ConnectError: refused"):
    return ProbeOutcome.failure(error, 0.001)

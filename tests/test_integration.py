"""End-to-end tests with a stand-in ssh that loops -L back to -R locally."""

import os
import signal
import threading
import time

import pytest

from autossh_wrapper.common.context import CancelContext
from autossh_wrapper.common.context_config import SupervisorConfig
from autossh_wrapper.common.exceptions import HealthCheckError, OperationCancelled
from autossh_wrapper.health.prober import HealthProber
from autossh_wrapper.supervisor.restart import RestartLoop
from autossh_wrapper.supervisor.tunnel import TunnelSupervisor

pytestmark = pytest.mark.integration


@pytest.fixture
def integration_config(fake_ssh_command):
    return SupervisorConfig(
        ssh_command=fake_ssh_command,
        probe_timeout=0.5,
        probe_interval=0.6,
        startup_timeout=10.0,
        terminate_timeout=2.0,
        backoff_initial=0.05,
        backoff_max=0.2,
        backoff_jitter=0,
    )


class RunInThread:
    """Runs a blocking call in a thread and keeps the exception it raised"""

    def __init__(self, target, *args):
        self.error = None
        self._thread = threading.Thread(target=self._run, args=(target, *args), daemon=True)

    def _run(self, target, *args):
        try:
            target(*args)
        except BaseException as e:
            self.error = e

    def start(self):
        self._thread.start()
        return self

    def join(self, timeout):
        self._thread.join(timeout)
        return not self._thread.is_alive()


def wait_until(predicate, timeout=10.0, interval=0.05):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return False


class TestTunnelEndToEnd:
    def test_probe_round_trips_through_forwarded_sockets(
        self, integration_config, rendezvous, responder
    ):
        with HealthProber(rendezvous.send_path, timeout=0.5) as prober:
            supervisor = TunnelSupervisor(integration_config, prober)
            ctx = CancelContext()
            runner = RunInThread(supervisor.run, ctx, rendezvous, ["example.invalid"]).start()
            try:
                with HealthProber(rendezvous.send_path, timeout=0.5) as outside:
                    assert wait_until(lambda: outside.probe().ok)
                    outcome = outside.probe()
                process = supervisor.process
                assert process is not None and process.is_running()
            finally:
                ctx.cancel("test finished")
                assert runner.join(10.0)

        assert outcome.body == "pong\n"
        assert isinstance(runner.error, OperationCancelled)
        assert not process.is_running()

    def test_hung_tunnel_is_detected(self, integration_config, rendezvous, responder):
        config = integration_config.model_copy(update={"startup_timeout": 1.0})

        with HealthProber(rendezvous.send_path, timeout=0.2) as prober:
            supervisor = TunnelSupervisor(config, prober)
            started = time.monotonic()
            with pytest.raises(HealthCheckError) as exc_info:
                supervisor.run(CancelContext(), rendezvous, ["example.invalid", "--hang"])
            elapsed = time.monotonic() - started

        assert exc_info.value.was_healthy is False
        assert "Timeout" in exc_info.value.outcome.error
        assert elapsed < 5.0

    def test_killed_ssh_is_restarted(self, integration_config, rendezvous, responder):
        with HealthProber(rendezvous.send_path, timeout=0.5) as prober:
            supervisor = TunnelSupervisor(integration_config, prober)
            loop = RestartLoop(supervisor, integration_config)
            ctx = CancelContext()
            runner = RunInThread(loop.run, ctx, rendezvous, ["example.invalid"]).start()
            try:
                with HealthProber(rendezvous.send_path, timeout=0.5) as outside:
                    assert wait_until(lambda: outside.probe().ok)
                    first_pid = supervisor.process.pid

                    os.kill(first_pid, signal.SIGKILL)

                    def restarted():
                        process = supervisor.process
                        return (
                            process is not None
                            and process.pid != first_pid
                            and outside.probe().ok
                        )

                    assert wait_until(restarted)
            finally:
                ctx.cancel("test finished")
                assert runner.join(10.0)

        assert loop.cycles >= 2
        assert isinstance(runner.error, OperationCancelled)

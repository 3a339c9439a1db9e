"""Supervision of a single ssh tunnel cycle."""

import threading
import time
from collections.abc import Callable, Sequence

from ..common.context import CancelContext
from ..common.context_config import SupervisorConfig
from ..common.exceptions import HealthCheckError, OperationCancelled
from ..common.logging import get_logger
from ..health.prober import HealthProber
from ..rendezvous import RendezvousPaths
from .process import SSHProcess

logger = get_logger(__name__)

ProcessFactory = Callable[..., SSHProcess]


def build_ssh_command(
    ssh_command: Sequence[str],
    rendezvous: RendezvousPaths,
    extra_args: Sequence[str],
) -> list[str]:
    """ssh command line: forwarding directives first, caller arguments unchanged after"""
    return [*ssh_command, *rendezvous.forward_args(), *extra_args]


class TunnelSupervisor:
    """Runs ssh with the health forwards and watches the tunnel.

    Each call to run() is one restart cycle: spawn, monitor, terminate.
    The ssh exit status is only logged; the health probe alone decides
    whether the tunnel is alive.
    """

    def __init__(
        self,
        config: SupervisorConfig,
        prober: HealthProber,
        process_factory: ProcessFactory = SSHProcess,
    ):
        self.config = config
        self.prober = prober
        self._process_factory = process_factory
        self._process: SSHProcess | None = None
        self._cycle_ctx: CancelContext | None = None

    @property
    def process(self) -> SSHProcess | None:
        """ssh process of the running cycle"""
        return self._process

    @property
    def cycle_context(self) -> CancelContext | None:
        """Context of the current or most recent cycle"""
        return self._cycle_ctx

    def run(
        self,
        ctx: CancelContext,
        rendezvous: RendezvousPaths,
        extra_args: Sequence[str],
    ) -> None:
        """Spawn ssh and block while the tunnel stays healthy.

        The ssh process is terminated and reaped before this returns, for
        every exit path.

        Raises:
            OperationCancelled: If ctx is cancelled
            HealthCheckError: If a health probe fails
            ProcessError: If ssh cannot be spawned
        """
        ctx.raise_if_cancelled()

        cycle_ctx = ctx.child("ssh-cycle")
        self._cycle_ctx = cycle_ctx
        try:
            rendezvous.clear_send_endpoint()
            command = build_ssh_command(self.config.ssh_command, rendezvous, extra_args)
            process = self._process_factory(
                command, terminate_timeout=self.config.terminate_timeout
            )
            process.start()
            self._process = process
            self._supervise(cycle_ctx, process)
        finally:
            cycle_ctx.cancel("ssh cycle finished")
            self._process = None

    def _supervise(self, ctx: CancelContext, process: SSHProcess) -> None:
        watcher = threading.Thread(
            target=self._watch,
            args=(process,),
            name=f"ssh-watch-{process.pid}",
            daemon=True,
        )
        watcher.start()
        try:
            self._monitor(ctx, started_at=time.monotonic())
        finally:
            # Terminate and reap before the next cycle may spawn
            ctx.cancel("ssh cycle finished")
            process.stop()
            watcher.join(timeout=self.config.terminate_timeout)

    def _watch(self, process: SSHProcess) -> None:
        returncode = process.wait()
        logger.info("ssh process exited", pid=process.pid, returncode=returncode)

    def _monitor(self, ctx: CancelContext, started_at: float) -> None:
        delay = self.config.initial_probe_delay
        healthy = False

        while True:
            if ctx.wait(delay):
                raise OperationCancelled(ctx.reason or "context cancelled")

            outcome = self.prober.probe(ctx)
            if outcome.ok:
                if not healthy:
                    logger.info(
                        "Tunnel healthy",
                        startup_seconds=round(time.monotonic() - started_at, 3),
                    )
                    healthy = True
            elif ctx.is_cancelled:
                raise OperationCancelled(ctx.reason or "context cancelled")
            elif healthy:
                raise HealthCheckError(
                    f"Health check failed: {outcome.error}",
                    outcome=outcome,
                    was_healthy=True,
                )
            elif time.monotonic() - started_at >= self.config.startup_timeout:
                raise HealthCheckError(
                    f"Tunnel not healthy within {self.config.startup_timeout}s: "
                    f"{outcome.error}",
                    outcome=outcome,
                )
            else:
                logger.debug("Tunnel not ready yet", error=outcome.error)

            delay = self.config.probe_interval

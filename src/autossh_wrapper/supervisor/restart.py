"""Top-level restart loop."""

from collections.abc import Sequence

from ..common.context import CancelContext
from ..common.context_config import SupervisorConfig
from ..common.exceptions import HealthCheckError, OperationCancelled
from ..common.logging import get_logger
from ..common.utils import Backoff
from ..rendezvous import RendezvousPaths
from .tunnel import TunnelSupervisor

logger = get_logger(__name__)


class RestartLoop:
    """Restarts the tunnel whenever its health check fails.

    The loop is the only place that decides to restart. Delays between
    attempts grow exponentially up to backoff_max and start over after a
    cycle that had become healthy.
    """

    def __init__(self, supervisor: TunnelSupervisor, config: SupervisorConfig):
        self.supervisor = supervisor
        self.config = config
        self.backoff = Backoff(
            initial=config.backoff_initial,
            maximum=config.backoff_max,
            multiplier=config.backoff_multiplier,
            jitter=config.backoff_jitter,
        )
        self._cycles = 0

    @property
    def cycles(self) -> int:
        """Number of supervision cycles started so far"""
        return self._cycles

    def run(
        self,
        ctx: CancelContext,
        rendezvous: RendezvousPaths,
        extra_args: Sequence[str],
    ) -> None:
        """Supervise the tunnel until ctx is cancelled.

        Raises:
            OperationCancelled: Always, once ctx is cancelled
        """
        while True:
            ctx.raise_if_cancelled()
            self._cycles += 1
            logger.info("Starting tunnel", cycle=self._cycles)

            try:
                self.supervisor.run(ctx, rendezvous, extra_args)
            except HealthCheckError as e:
                if ctx.is_cancelled:
                    raise OperationCancelled(ctx.reason or "context cancelled") from e
                if e.was_healthy:
                    self.backoff.reset()

                delay = self.backoff.next_delay()
                logger.warning(
                    "Tunnel unhealthy, restarting",
                    cycle=self._cycles,
                    error=str(e),
                    retry_in=round(delay, 2),
                )
                if ctx.wait(delay):
                    raise OperationCancelled(ctx.reason or "context cancelled") from e

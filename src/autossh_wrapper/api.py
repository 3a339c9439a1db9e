"""High-level API for autossh wrapper.

Wires the rendezvous directory, the health channel and the restart loop
together for one run.
"""

from collections.abc import Sequence
from contextlib import ExitStack

from .common.context import CancelContext, interrupt_context
from .common.context_config import SupervisorConfig
from .common.exceptions import ConfigurationError
from .common.logging import get_logger
from .health.prober import HealthProber
from .health.responder import HealthResponder
from .rendezvous import RendezvousAllocator
from .supervisor.process import resolve_binary
from .supervisor.restart import RestartLoop
from .supervisor.tunnel import TunnelSupervisor

logger = get_logger(__name__)


def run_autossh(
    extra_args: Sequence[str],
    config: SupervisorConfig | None = None,
    ctx: CancelContext | None = None,
) -> None:
    """Keep an ssh session alive until cancelled.

    Args:
        extra_args: Arguments forwarded unchanged to ssh after the
            forwarding directives; must include the destination
        config: Supervision settings (defaults if omitted)
        ctx: Outer context; SIGINT cancels a fresh one if omitted

    Raises:
        ConfigurationError: If no arguments were given
        StartupError: If the binary, the user id, the rendezvous directory
            or the health listener cannot be set up
        OperationCancelled: When the run ends through cancellation

    Example:
        >>> run_autossh(["-t", "user@example.com", "tmux", "attach"])
    """
    if not extra_args:
        raise ConfigurationError("No ssh destination given")

    config = config or SupervisorConfig()
    resolve_binary(config.ssh_command[0])

    with ExitStack() as stack:
        if ctx is None:
            ctx = stack.enter_context(interrupt_context())

        rendezvous = stack.enter_context(
            RendezvousAllocator(remote_dir=config.remote_socket_dir)
        )
        stack.enter_context(HealthResponder(rendezvous.listen_path))
        prober = stack.enter_context(
            HealthProber(rendezvous.send_path, timeout=config.probe_timeout)
        )

        logger.info(
            "Supervising ssh tunnel",
            args=list(extra_args),
            remote_socket=rendezvous.remote_path,
        )
        supervisor = TunnelSupervisor(config, prober)
        RestartLoop(supervisor, config).run(ctx, rendezvous, extra_args)

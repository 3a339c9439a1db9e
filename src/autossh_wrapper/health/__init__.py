"""Health channel: responder on the listen socket, prober on the send socket."""

from .models import PING_PATH, PONG_BODY, ProbeOutcome
from .prober import HealthProber
from .responder import HealthResponder

__all__ = [
    "HealthProber",
    "HealthResponder",
    "ProbeOutcome",
    "PING_PATH",
    "PONG_BODY",
]

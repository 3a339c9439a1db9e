"""Utility functions for autossh wrapper."""

import random


def calculate_backoff(
    attempt: int,
    initial: float,
    maximum: float,
    multiplier: float = 2.0,
    jitter: float = 0.0,
) -> float:
    """Calculate the restart delay for an attempt.

    Uses capped exponential backoff with symmetric jitter.

    Args:
        attempt: Current attempt number (1-indexed)
        initial: Delay of the first attempt in seconds
        maximum: Cap applied before jitter
        multiplier: Growth factor between attempts
        jitter: Random +/- fraction applied to the capped delay

    Returns:
        Delay in seconds, never negative

    Raises:
        ValueError: If attempt is smaller than 1
    """
    if attempt < 1:
        raise ValueError("attempt must be at least 1")

    capped = min(maximum, initial * (multiplier ** (attempt - 1)))
    if jitter:
        capped *= random.uniform(1 - jitter, 1 + jitter)
    return max(0.0, capped)


class Backoff:
    """Stateful restart delay sequence"""

    def __init__(
        self,
        initial: float,
        maximum: float,
        multiplier: float = 2.0,
        jitter: float = 0.0,
    ):
        self.initial = initial
        self.maximum = maximum
        self.multiplier = multiplier
        self.jitter = jitter
        self._attempts = 0

    @property
    def attempts(self) -> int:
        return self._attempts

    def next_delay(self) -> float:
        self._attempts += 1
        return calculate_backoff(
            self._attempts, self.initial, self.maximum, self.multiplier, self.jitter
        )

    def reset(self) -> None:
        self._attempts = 0

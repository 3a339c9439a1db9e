import os
import shlex
from collections.abc import Mapping
from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

ENV_PREFIX = "AUTOSSH_WRAPPER_"

# Environment variable suffix -> SupervisorConfig field
_ENV_FIELDS = {
    "PROBE_TIMEOUT": "probe_timeout",
    "PROBE_INTERVAL": "probe_interval",
    "INITIAL_PROBE_DELAY": "initial_probe_delay",
    "STARTUP_TIMEOUT": "startup_timeout",
    "TERMINATE_TIMEOUT": "terminate_timeout",
    "BACKOFF_INITIAL": "backoff_initial",
    "BACKOFF_MAX": "backoff_max",
    "BACKOFF_MULTIPLIER": "backoff_multiplier",
    "BACKOFF_JITTER": "backoff_jitter",
    "REMOTE_SOCKET_DIR": "remote_socket_dir",
}


class SupervisorConfig(BaseModel):
    """Pydantic configuration for tunnel supervision and restart behavior"""

    model_config = ConfigDict(
        str_strip_whitespace=True,
        validate_assignment=True,
        extra='forbid'
    )

    ssh_command: List[str] = Field(default_factory=lambda: ["ssh"], min_length=1, description="Command prefix used to launch ssh")

    probe_timeout: float = Field(default=0.1, gt=0, le=10.0, description="Deadline of a single health probe in seconds")
    probe_interval: float = Field(default=1.0, gt=0, le=300.0, description="Seconds between probes of a running tunnel")
    initial_probe_delay: float = Field(default=0.0, ge=0, le=60.0, description="Delay before the first probe of a cycle")
    startup_timeout: float = Field(default=15.0, ge=0, le=600.0, description="Seconds a new ssh may fail probes before its first success; 0 restarts on the first failed probe")
    terminate_timeout: float = Field(default=5.0, gt=0, le=60.0, description="Grace period between SIGTERM and SIGKILL")

    backoff_initial: float = Field(default=1.0, ge=0, le=300.0, description="First restart delay in seconds")
    backoff_max: float = Field(default=30.0, ge=0, le=3600.0, description="Restart delay cap in seconds")
    backoff_multiplier: float = Field(default=2.0, ge=1.0, le=10.0, description="Exponential growth of the restart delay")
    backoff_jitter: float = Field(default=0.1, ge=0, lt=1.0, description="Random +/- fraction applied to restart delays")

    remote_socket_dir: str = Field(default="/tmp", min_length=1, description="Directory of the remote rendezvous socket")

    @field_validator('ssh_command')
    @classmethod
    def validate_ssh_command(cls, v: List[str]) -> List[str]:
        """Reject blank command items"""
        if any(not part.strip() for part in v):
            raise ValueError("ssh_command items cannot be empty")
        return v

    @model_validator(mode='after')
    def validate_timings(self) -> "SupervisorConfig":
        """Probe deadline must fit in the probe cadence, backoff must be ordered"""
        if self.probe_timeout >= self.probe_interval:
            raise ValueError("probe_timeout must be smaller than probe_interval")
        if self.backoff_initial > self.backoff_max:
            raise ValueError("backoff_initial must not exceed backoff_max")
        return self

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: Any) -> "SupervisorConfig":
        """Build a config from AUTOSSH_WRAPPER_* environment variables.

        AUTOSSH_WRAPPER_SSH is split with shell rules into ssh_command.
        Keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        ssh = env.get(f"{ENV_PREFIX}SSH")
        if ssh:
            values["ssh_command"] = shlex.split(ssh)

        for suffix, field_name in _ENV_FIELDS.items():
            raw = env.get(f"{ENV_PREFIX}{suffix}")
            if raw is not None and raw.strip():
                values[field_name] = raw

        values.update(overrides)
        return cls(**values)

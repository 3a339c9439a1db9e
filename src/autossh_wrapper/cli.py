"""Command line entry point.

Every argument is passed to ssh unchanged; the wrapper itself is tuned
through AUTOSSH_WRAPPER_* environment variables.
"""

import os
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from .api import run_autossh
from .common.context_config import ENV_PREFIX, SupervisorConfig
from .common.exceptions import AutosshWrapperError
from .common.logging import get_logger, setup_logging

logger = get_logger(__name__)

USAGE = "usage: autossh-wrapper [ssh options] destination [command]"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the wrapper and return the process exit code"""
    args = list(sys.argv[1:] if argv is None else argv)

    level = os.environ.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO")
    json_format = _env_flag(f"{ENV_PREFIX}LOG_JSON")
    log_file = os.environ.get(f"{ENV_PREFIX}LOG_FILE") or None
    try:
        setup_logging(level=level, json_format=json_format, log_file=log_file)
    except ValueError:
        setup_logging(json_format=json_format, log_file=log_file)
        logger.warning("Unknown log level, using INFO", level=level)

    if not args:
        print(USAGE, file=sys.stderr)
        return 1

    try:
        config = SupervisorConfig.from_env()
    except ValidationError as e:
        logger.error("Invalid configuration", error=str(e))
        return 1

    try:
        run_autossh(args, config)
    except AutosshWrapperError as e:
        logger.error(str(e), error_type=type(e).__name__)
        return 1
    return 0

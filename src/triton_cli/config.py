"""Defaults shared by the CLI and the public API."""

import logging
import os
import sys
from typing import Optional

from triton_cli.kernel.stark import StarkParameters


DEFAULT_CLAIM_FILE = "triton.claim"
DEFAULT_PROOF_FILE = "triton.proof"

LOG_LEVEL_ENV = "TRITON_CLI_LOG_LEVEL"

_VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def default_stark_parameters() -> StarkParameters:
    return StarkParameters.default()


def _level_from_env(var_name: str) -> Optional[int]:
    raw = os.getenv(var_name)
    if not raw:
        return None
    raw = raw.strip()
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    if isinstance(level, int):
        return level
    return None


def log_level(verbosity: int = 0) -> int:
    """Level for `-v` count; the environment variable wins when it is valid."""
    env_level = _level_from_env(LOG_LEVEL_ENV)
    if env_level is not None:
        return env_level
    return _VERBOSITY_LEVELS[min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)]


def setup_logging(verbosity: int = 0) -> logging.Logger:
    """
    Configure the package logger with a compact stderr handler.

    Replaces any handler installed by an earlier call, so repeated
    invocations in one process (tests) write to the current stderr.
    """
    logger = logging.getLogger("triton_cli")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(log_level(verbosity))
    ch = logging.StreamHandler(sys.stderr)
    ch.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(ch)
    logger.propagate = False
    return logger

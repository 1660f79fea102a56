"""Logging setup for termdeck.

Everything logs under the ``termdeck`` logger. Two extra levels sit around
the stdlib ones: VERBOSE (15) carries the output of hidden sessions and
TRACE (5) everything else worth seeing when debugging. Records go to a
file when one is configured (config ``logging.file`` or TERMDECK_LOG) and
to stderr only when stderr is a terminal.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from termdeck.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

logger = logging.getLogger("termdeck")

_initialized = False

_LEVEL_NAMES = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# logging.verbose: 0 errors only .. 4 everything
_VERBOSITY = (logging.ERROR, logging.WARNING, logging.INFO, VERBOSE, TRACE)

DEFAULT_VERBOSITY = 2


class _LowercaseLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def verbosity_from_flags(count: int) -> int:
    """Map a repeated ``-v`` count onto the 0-4 verbosity scale.

    No flag keeps the default (info); each ``-v`` goes one step further.
    """
    return min(DEFAULT_VERBOSITY + count, len(_VERBOSITY) - 1)


def resolve_level(config: LoggingConfig | None) -> int:
    """Pick the effective log level from a LoggingConfig.

    ``verbose`` (int) takes precedence over ``level`` (str). Unknown level
    names fall back to INFO; verbosity past the scale means TRACE.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY[max(0, min(config.verbose, len(_VERBOSITY) - 1))]
    if config.level:
        return _LEVEL_NAMES.get(config.level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach handlers to the termdeck logger. Only the first call has effect.

    Args:
        config: Level, verbosity and file settings; None means defaults.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)
    formatter = _LowercaseLevelFormatter(
        "%(asctime)s %(levelname)s: %(message)s", datefmt="%H:%M:%S"
    )

    log_path = (config.file if config else None) or os.environ.get("TERMDECK_LOG")
    if log_path:
        try:
            handler: logging.Handler = logging.FileHandler(
                os.path.expanduser(log_path), mode="a", encoding="utf-8"
            )
        except OSError as e:
            if not sys.stderr.isatty():
                return
            print(f"[termdeck] Failed to open log file: {e}", file=sys.stderr)
            handler = logging.StreamHandler(sys.stderr)
    elif sys.stderr.isatty():
        handler = logging.StreamHandler(sys.stderr)
    else:
        return

    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """The termdeck logger, or its child ``termdeck.<name>``."""
    if name:
        return logger.getChild(name)
    return logger


def session_output_logger(session: str) -> logging.Logger:
    """Logger that receives a hidden session's output at VERBOSE.

    Dots in the session name would create extra hierarchy levels, so they
    are replaced.
    """
    return get_logger("terminal").getChild(session.replace(".", "_"))

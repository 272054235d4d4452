"""Logging configuration for the edgemask command line."""

from __future__ import annotations

import logging
import sys
from typing import Iterable

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

LOG_LEVEL_CHOICES: Iterable[str] = tuple(LOG_LEVELS.keys())

# -v/-q move along this ladder, starting from INFO.
_VERBOSITY_LADDER = (logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR)
_DEFAULT_RUNG = 1

# Kernel passes log from worker threads named kernel_0, kernel_1, ...
LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def add_logging_args(parser) -> None:
    """Add --log-level, -v and -q to an argparse parser."""
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVEL_CHOICES,
        help="Set log verbosity (debug, info, warning, error, critical)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v shows per-pass kernel progress)",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="count",
        default=0,
        help="Reduce log verbosity (-q hides the progress bar, -qq shows errors only)",
    )


def resolve_log_level(
    log_level: str | None = None,
    verbose: int = 0,
    quiet: int = 0,
) -> int:
    """Resolve a numeric log level from an explicit name or -v/-q counts.

    An explicit level wins. Otherwise each net -v moves one rung down from
    INFO (to DEBUG at most) and each net -q one rung up (to ERROR at most).
    """
    if log_level:
        return LOG_LEVELS[log_level.lower()]

    rung = _DEFAULT_RUNG + quiet - verbose
    rung = max(0, min(rung, len(_VERBOSITY_LADDER) - 1))
    return _VERBOSITY_LADDER[rung]


def configure_logging(
    log_level: str | None = None,
    verbose: int = 0,
    quiet: int = 0,
) -> int:
    """Configure root logging and return the active level.

    Calling it again only adjusts the level of the existing handlers.
    """
    level = resolve_log_level(log_level=log_level, verbose=verbose, quiet=quiet)
    root_logger = logging.getLogger()

    if root_logger.handlers:
        root_logger.setLevel(level)
        for handler in root_logger.handlers:
            handler.setLevel(level)
        return level

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
    )
    return level


def progress_disabled(logger: logging.Logger | None = None) -> bool:
    """True when progress bars should be hidden (log level above INFO)."""
    logger = logger or logging.getLogger()
    return not logger.isEnabledFor(logging.INFO)

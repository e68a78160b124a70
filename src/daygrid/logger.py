"""Verbosity-controlled logging for daygrid.

The timeline narrates what it does at three depths. Level 1 reports state
that the host would see change: tasks written, the window extended or
evicted, gestures committed. Level 2 adds the guard decisions that made an
operation a no-op. Level 3 traces every pointer delta and event emission.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, TextIO

CHANGES_LEVEL = 25  # Between INFO and WARNING
CHECKS_LEVEL = 15  # Between DEBUG and INFO

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

VERBOSITY_SILENT = 0  # Warnings about failed loads and rejected input only
VERBOSITY_CHANGES = 1
VERBOSITY_CHECKS = 2
VERBOSITY_DEBUG = 3

_LEVELS = {
    VERBOSITY_SILENT: logging.ERROR,
    VERBOSITY_CHANGES: CHANGES_LEVEL,
    VERBOSITY_CHECKS: CHECKS_LEVEL,
    VERBOSITY_DEBUG: logging.DEBUG,
}


class DaygridLogger(logging.Logger):
    """Logger with one method per timeline verbosity level.

    - changes(): tasks added, moved or resized, window extended or evicted
    - checks(): extensions skipped while loading, eviction held off during a
      gesture, drops that landed where they started
    - debug(): pointer deltas, candidate cells and bus emissions
    """

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a visible state change (verbosity 1)."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log why an operation did nothing (verbosity 2)."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)


def get_logger() -> DaygridLogger:
    """The shared ``daygrid`` logger; every module logs through it."""
    logging.setLoggerClass(DaygridLogger)
    logger = logging.getLogger("daygrid")
    assert isinstance(logger, DaygridLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Route timeline messages up to ``verbosity`` to ``stream``.

    The CLI calls this once per invocation from its ``--verbose`` option.
    Calling it again replaces the previous handler.

    Args:
        verbosity: 0=silent, 1=changes, 2=checks, 3=debug
        stream: Destination, stderr by default
    """
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(_LEVELS.get(verbosity, logging.ERROR))

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    # Bare messages, no level prefix
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Detach handlers and go back to errors only."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)


def changes_enabled() -> bool:
    return get_logger().isEnabledFor(CHANGES_LEVEL)


def debug_enabled() -> bool:
    """Whether per-pointer-move tracing is on."""
    return get_logger().isEnabledFor(logging.DEBUG)

"""
Logging for pgmonitor.

The ``pgmonitor`` logger owns the only handler. Modules log through children
obtained with ``get_logger(__name__)``, so each line names the module that
wrote it, and one PGMONITOR_LOG_LEVEL setting governs all of them.
"""

import logging
import os
import sys
from typing import Optional

ROOT_LOGGER = "pgmonitor"
LEVEL_ENV = "PGMONITOR_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class _StdoutHandler(logging.StreamHandler):
    """StreamHandler that always writes to the sys.stdout of the moment (pytest swaps it per test)."""

    @property
    def stream(self):
        return sys.stdout

    @stream.setter
    def stream(self, value):
        pass


def level_from_env(default: int = logging.INFO) -> int:
    """Numeric level named by PGMONITOR_LOG_LEVEL; unknown names give ``default``."""
    level = logging.getLevelName(os.environ.get(LEVEL_ENV, "").strip().upper())
    return level if isinstance(level, int) else default


def configure(log_level: Optional[int] = None) -> logging.Logger:
    """
    Set the level of the ``pgmonitor`` logger and attach the stdout handler.

    Safe to call repeatedly: the level is updated, the handler is added once.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level_from_env() if log_level is None else log_level)
    if not any(isinstance(h, _StdoutHandler) for h in root.handlers):
        handler = _StdoutHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        root.propagate = False
    return root


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """Logger under the ``pgmonitor`` hierarchy; other names are nested below it."""
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    if not logging.getLogger(ROOT_LOGGER).handlers:
        configure()
    return logging.getLogger(name)

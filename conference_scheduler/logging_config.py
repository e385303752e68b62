"""Logging setup for the service.

``setup_logging`` configures the root logger once with a console handler
and, optionally, a file handler. Modules log through
``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO", logfile: str | None = None) -> None:
    """Configure the root logger unless it already has handlers.

    *level* is a logging level name and is case insensitive. *logfile* is
    resolved relative to the current working directory.
    """
    root = logging.getLogger()
    if root.handlers:
        # Already configured (test runners, repeated imports).
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

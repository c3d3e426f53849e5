# Copyright (c) 2024 Yilin Zou
"""Logger setup for scripts using ``mshoot``.

The package only creates module loggers under the ``mshoot`` namespace and
never configures handlers itself. Scripts, such as the example of the blog
post, call :func:`setup_logging` once to see the transcription sizes
(``DEBUG``) and the solver outcome (``INFO`` / ``WARNING``).
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
"""Format of every handler installed by :func:`setup_logging`."""


def setup_logging(
    level: int = logging.INFO, log_file: Optional[str] = None
) -> logging.Logger:
    """Attach handlers to the ``mshoot`` logger.

    Handlers installed by an earlier call are removed first, so calling it
    again changes the level or the file instead of duplicating output.

    Args:
        level: Level of the logger and of its handlers.
        log_file: If given, records are also written to this file
            (overwritten).

    Returns:
        The ``mshoot`` logger.
    """
    logger = logging.getLogger("mshoot")
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S")
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.debug("logging to %d handler(s)", len(handlers))
    return logger

"""Audiodup — Console logging for the command-line tool.

The library itself only creates module loggers; attaching handlers is left
to whoever runs it, which for the ``audiodup`` script is :func:`setup_logger`.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s | %(filename)s:%(lineno)d | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str | None = None, level: int | str = logging.INFO) -> logging.Logger:
    """Return logger *name* writing to stderr at *level*.

    Calling it again for the same logger only updates the level; the
    console handler is attached once.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in logger.handlers:
        handler.setLevel(level)
    if logger.handlers:
        return logger

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console)
    return logger

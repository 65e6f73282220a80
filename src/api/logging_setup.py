from __future__ import annotations

import logging
import sys

_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Chatty third-party loggers; our own request logging covers the same ground.
_QUIET = ("uvicorn.access", "httpx", "httpcore")


# PUBLIC_INTERFACE
def setup_logging(level: str | int = logging.INFO) -> None:
    """
    Configure the root logger with a single stderr handler.

    Safe to call more than once: handlers installed by a previous call (or by
    another tool) are replaced rather than duplicated.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
    root.addHandler(handler)

    for name in _QUIET:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.captureWarnings(True)

"""
Pustak - Logging
=================
Every Pustak logger hangs off the ``pustak`` package logger, which owns
the only stdout handler.  Module loggers carry no handlers of their own
and propagate to it, so the server, the embedding job and the retrieval
check all print one line per record in the same format.

Verbosity follows ``settings.ENV``:
  • ``"dev"``  → DEBUG
  • ``"prod"`` → WARNING

The HTTP / SDK client libraries log every request at INFO; they are held
at WARNING so per-chunk embedding calls do not flood the job output.

Usage:
    from pustak.src.utils.logger import get_logger
    logger = get_logger(__name__)
    logger.info("[RANK] %d candidate(s)", n)
"""

import logging
import sys

from pustak.config.settings import settings

ROOT_LOGGER_NAME = "pustak"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_LEVEL_BY_ENV = {"dev": logging.DEBUG, "prod": logging.WARNING}
_CHATTY_LIBRARIES = ("httpx", "httpcore", "google_genai", "urllib3")


def _package_logger() -> logging.Logger:
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if root.handlers:
        return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    root.addHandler(handler)
    root.setLevel(_LEVEL_BY_ENV.get(settings.ENV, logging.INFO))
    # Records stop here and never reach the root logger
    root.propagate = False

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Return a logger under the ``pustak`` hierarchy.

    ``__name__`` of a package module is used as is; any other name
    (``__main__`` when a script runs with ``-m``) is nested under
    ``pustak.`` so it still reaches the package handler.  *level*
    overrides the ENV-derived level for this logger only.
    """
    _package_logger()
    if name != ROOT_LOGGER_NAME and not name.startswith(ROOT_LOGGER_NAME + "."):
        name = f"{ROOT_LOGGER_NAME}.{name}"

    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger

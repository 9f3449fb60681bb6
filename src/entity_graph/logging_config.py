"""
Logging configuration for entity-graph.

Library modules only create loggers under ``entity_graph``. Handlers are
attached to that logger (never the root logger) by ``setup_logging``, which
``build_graph`` calls when the configured verbosity is not ``normal``.
Calling it again replaces the handlers it installed earlier.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "entity_graph"

VERBOSITY_LEVELS = {
    "quiet": logging.ERROR,
    "normal": logging.WARNING,
    "verbose": logging.DEBUG,
}

_FILE_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Marks handlers owned by setup_logging so a later call can remove them
_OWNED = "_entity_graph_handler"


def setup_logging(verbosity: str = "normal", log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach a rich stderr handler (and optionally a file handler) to the package logger.

    Args:
        verbosity: One of ``quiet``, ``normal``, ``verbose``
        log_file: Optional file path that also receives every record

    Returns:
        The ``entity_graph`` logger
    """
    level = VERBOSITY_LEVELS.get(verbosity, logging.WARNING)
    verbose = level == logging.DEBUG
    logger = logging.getLogger(ROOT_LOGGER)

    for handler in list(logger.handlers):
        if getattr(handler, _OWNED, False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,
        show_time=verbose,
        show_path=verbose,
    )
    handlers: list[logging.Handler] = [console_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        handlers.append(file_handler)

    for handler in handlers:
        setattr(handler, _OWNED, True)
        logger.addHandler(handler)

    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger namespaced under ``entity_graph``.

    Args:
        name: Module name (``entity_graph.walker`` or just ``walker``).
              If None, returns the package logger

    Returns:
        Logger instance
    """
    if name is None:
        return logging.getLogger(ROOT_LOGGER)
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)

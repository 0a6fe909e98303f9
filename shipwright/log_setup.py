"""Logging configuration for the ``shipwright`` CLI.

Library modules only create ``logging.getLogger(__name__)`` loggers; the
CLI installs a single Rich handler on the ``shipwright`` logger.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_NAME = "shipwright-rich"


def configure_logging(level: str = "INFO", console: Console | None = None) -> logging.Logger:
    """Attach a ``RichHandler`` to the ``shipwright`` logger at *level*.

    Calling this again replaces the handler instead of stacking a second one.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level {level!r}")

    logger = logging.getLogger("shipwright")
    for handler in list(logger.handlers):
        if handler.get_name() == _HANDLER_NAME:
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(numeric)
    logger.propagate = False
    return logger

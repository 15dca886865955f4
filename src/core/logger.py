"""Logging setup.

Modules log through `logging.getLogger(__name__)`; the CLI calls
`setup_logger` once so records render through Rich on stderr and never mix
with tables printed to stdout.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "atm_deploy"

_HANDLER_MARK = "_atm_deploy_handler"


def setup_logger(*, debug: bool = False, console: Console | None = None) -> logging.Logger:
    """Configure the root handlers for our packages and return the app logger."""

    level = logging.DEBUG if debug else logging.INFO

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=debug,
        rich_tracebacks=debug,
        markup=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(handler, _HANDLER_MARK, True)

    for name in (LOGGER_NAME, "core", "adapters", "cli"):
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.handlers = [h for h in logger.handlers if not getattr(h, _HANDLER_MARK, False)]
        logger.addHandler(handler)
        logger.propagate = False

    app_logger = logging.getLogger(LOGGER_NAME)
    if debug:
        app_logger.debug("Debug mode is active.")
    return app_logger

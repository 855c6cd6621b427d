"""
Logging configuration for lintdesk.

Library modules log through ``get_logger(__name__)`` and never configure
handlers themselves; the CLI calls ``setup_logging`` once per invocation.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "lintdesk"


def _level(verbose: bool, quiet: bool) -> int:
    if quiet:
        return logging.ERROR
    if verbose:
        return logging.DEBUG
    return logging.WARNING


def setup_logging(verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """
    Route lintdesk log records to a rich handler on stderr.

    Calling it again replaces the previous handler, so repeated CLI
    invocations in one process do not duplicate output.

    Args:
        verbose: Enable DEBUG level logging (with source locations)
        quiet: Suppress all but ERROR level logging

    Returns:
        The ``lintdesk`` logger
    """
    level = _level(verbose, quiet)
    handler = RichHandler(
        console=Console(stderr=True),
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        markup=False,  # file paths may contain [brackets]
        show_path=verbose,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger(ROOT_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Logger for a lintdesk module; bare names are namespaced under ``lintdesk``."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)

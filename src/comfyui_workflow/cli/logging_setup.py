"""Log stream configuration for the CLI.

All diagnostics go through the ``comfyui_workflow`` logger hierarchy to
stderr.  Rich renders them when it is installed; otherwise a plain
stream handler is used, mirroring :mod:`comfyui_workflow.cli.console`.
"""

from __future__ import annotations

import logging
import sys

from comfyui_workflow.cli.console import get_rich_console
from comfyui_workflow.exceptions import MissingDependencyError
from comfyui_workflow.utils.log_levels import TRACE

PACKAGE_LOGGER: str = "comfyui_workflow"

_HANDLER_MARKER: str = "_comfyui_workflow_handler"


def _build_handler() -> logging.Handler:
    """Return a Rich handler on the shared console, or a plain fallback."""
    try:
        console = get_rich_console()
        from rich.logging import RichHandler
    except (MissingDependencyError, ModuleNotFoundError):
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        return handler

    return RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, verbose: bool = False) -> logging.Logger:
    """Install the CLI handler on the package logger and set its level.

    ``INFO`` by default, ``TRACE`` when *verbose*.  Calling this again
    replaces the previously installed handler instead of stacking one.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            logger.removeHandler(existing)

    handler = _build_handler()
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)
    logger.setLevel(TRACE if verbose else logging.INFO)
    return logger

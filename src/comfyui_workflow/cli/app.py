"""CLI application entry point for comfyui-workflow.

This module is the **sole error boundary** for the entire application.
:func:`main` parses and validates the command line and returns an exit
code; :func:`cli` wraps it, catching
:class:`~comfyui_workflow.exceptions.WorkflowCliError`,
``KeyboardInterrupt`` and any unexpected ``Exception``, logging a
user-friendly message and exiting with a well-defined code.

Architecture notes
------------------
* No business logic lives here — mutation and submission are delegated
  to the core and infrastructure layers.
* All output goes through the ``comfyui_workflow`` logger on stderr.
* This module is the only place that translates between the domain world
  and the OS process exit code.
"""

from __future__ import annotations

import argparse
import contextlib
import logging
import sys
from collections.abc import Iterator, Mapping, Sequence
from typing import NoReturn

from comfyui_workflow.cli import exit_codes
from comfyui_workflow.cli.logging_setup import configure_logging
from comfyui_workflow.cli.validation import validate_inputs
from comfyui_workflow.core.protocols import (
    ProgressCallback,
    WorkflowMutator,
    WorkflowSubmitter,
)
from comfyui_workflow.exceptions import (
    ComfyUIError,
    MissingDependencyError,
    UsageError,
    WorkflowCliError,
    WorkflowModificationError,
)
from comfyui_workflow.version import __version__

logger = logging.getLogger(__name__)

PROG: str = "comfyui-workflow"

USAGE: str = f"""
Usage: {PROG} [options] <export-api.json>

Generates image(s) using ComfyUI, with the workflow modified to use the given options.

Options:
  -o, --options  The options to modify the workflow with, in JSON format (default "{{}}").
  -v, --verbose  Log the modified workflow before submitting it.
  -V, --version  Show the program version.
  -h, --help     Show this help message.

The app reads the following environment variables:
  COMFYUI_URL:      The URL of the ComfyUI server (default http://localhost:8188).
  COMFYUI_USERNAME: The username for basic auth.
  COMFYUI_PASSWORD: The password for basic auth.
""".strip()


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

# Recognised even when the rest of the command line fails to parse.
_HELP_FLAGS: frozenset[str] = frozenset({"-h", "--help"})


class _ArgumentParser(argparse.ArgumentParser):
    """Parser that raises :class:`UsageError` instead of exiting with 2."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser.

    ``--help`` is handled by :func:`main` rather than argparse so the
    usage text goes through the log stream and nothing else runs.
    """
    parser = _ArgumentParser(prog=PROG, add_help=False, usage=USAGE)
    parser.add_argument(
        "workflow",
        nargs="?",
        default=None,
        help="Workflow exported from ComfyUI in API format.",
    )
    parser.add_argument(
        "-o",
        "--options",
        default="{}",
        help="JSON object of overrides to apply to the workflow.",
    )
    parser.add_argument(
        "-h",
        "--help",
        action="store_true",
        default=False,
        help="Show this help message and exit.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable trace-level logging.",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        default=False,
        help="Show the program version and exit.",
    )
    return parser


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

def _default_mutator() -> WorkflowMutator:
    from comfyui_workflow.core.workflow_mutator import OptionsMutator

    return OptionsMutator()


def _default_submitter() -> WorkflowSubmitter:
    from comfyui_workflow.infra.comfyui_client import ComfyUIClient

    return ComfyUIClient()


@contextlib.contextmanager
def _progress_display() -> Iterator[ProgressCallback | None]:
    """Yield a Rich spinner hook, or ``None`` when Rich is unavailable."""
    from comfyui_workflow.cli.progress import RichProgressHook

    try:
        hook = RichProgressHook()
    except MissingDependencyError:
        yield None
        return
    with hook:
        yield hook


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(
    argv: Sequence[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
    mutator: WorkflowMutator | None = None,
    submitter: WorkflowSubmitter | None = None,
) -> int:
    """Run the comfyui-workflow CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.
    environ:
        Environment to read connection settings from.  Defaults to
        ``os.environ``.
    mutator, submitter:
        Replacements for the workflow mutator and the ComfyUI client.

    Returns
    -------
    int
        OS process exit code.

    Raises
    ------
    WorkflowModificationError, ComfyUIError
        Downstream failures are not handled here; :func:`cli` reports them.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        configure_logging()
        if _HELP_FLAGS.intersection(argv):
            logger.info("%s", USAGE)
            return exit_codes.SUCCESS
        logger.error("%s", exc)
        logger.error("%s", USAGE)
        return exit_codes.GENERAL_ERROR

    configure_logging(verbose=args.verbose)

    if args.help:
        logger.info("%s", USAGE)
        return exit_codes.SUCCESS

    if args.version:
        logger.info("%s %s", PROG, __version__)
        return exit_codes.SUCCESS

    validated = validate_inputs(args.options, args.workflow)
    if not validated.ok:
        for error in validated.errors:
            logger.error("%s", error)
        logger.error("%s", USAGE)
        return exit_codes.GENERAL_ERROR

    from comfyui_workflow.core.workflow_service import WorkflowService
    from comfyui_workflow.infra.settings import load_connection_config

    connection = load_connection_config(environ)
    service = WorkflowService(
        mutator if mutator is not None else _default_mutator(),
        submitter if submitter is not None else _default_submitter(),
    )

    with _progress_display() as hook:
        result = service.run(
            validated.workflow,
            validated.options,
            connection,
            progress_callback=hook,
        )

    for path in result.saved_paths:
        logger.info("Saved %s", path)
    logger.info("Workflow %s finished", result.prompt_id)
    return exit_codes.SUCCESS


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def _report(exc: WorkflowCliError) -> None:
    """Log *exc*, each of its problems, and its hint."""
    problems = getattr(exc, "problems", ())
    if problems:
        for problem in problems:
            logger.error("%s", problem)
    else:
        logger.error("%s", exc)
    if exc.hint:
        logger.info("Hint: %s", exc.hint)


def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except (WorkflowModificationError, ComfyUIError) as exc:
        _report(exc)
        sys.exit(exit_codes.WORKFLOW_ERROR)
    except WorkflowCliError as exc:
        _report(exc)
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        logger.warning("Aborted by user.")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        logger.critical(
            "Unexpected error. Please report this issue.\n  %s: %s",
            type(exc).__name__,
            exc,
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)

"""CLI console helpers with optional Rich support.

This module intentionally avoids module-level imports of optional UI
dependencies so bootstrap paths (``--help``, ``--version``) remain
functional even when Rich is not installed.
"""

from __future__ import annotations

from typing import Any

from comfyui_workflow.exceptions import MissingDependencyError

_console: Any = None


def _load_rich_console_class() -> type[Any]:
	"""Return ``rich.console.Console`` class or raise ``MissingDependencyError``."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise MissingDependencyError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console


def get_rich_console() -> Any:
	"""Return the shared Rich console targeting stderr.

	Log records and the progress spinner render through the same
	console so live output and log lines do not overwrite each other.
	"""
	global _console
	if _console is None:
		console_class = _load_rich_console_class()
		_console = console_class(stderr=True)
	return _console


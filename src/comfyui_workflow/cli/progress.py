"""Rich-based status display driven by submission progress events.

This module bridges the submitter's ``progress_callback`` mechanism
with a Rich :class:`~rich.progress.Progress` spinner.  It is used by
the CLI layer — the infra layer only emits the raw event dicts.

Design
------
* The :class:`RichProgressHook` manages a Rich Progress context.
* :meth:`__call__` is the callback passed to the submitter.
* Shutdown-safe: if the display is already stopped, calls are
  silently ignored.
* No ``print()`` — Rich handles all rendering.
"""

from __future__ import annotations

from typing import Any

from comfyui_workflow.cli.console import get_rich_console
from comfyui_workflow.exceptions import MissingDependencyError


class RichProgressHook:
    """Callable progress-hook adapter for Rich.

    Usage::

        with RichProgressHook() as hook:
            service.run(workflow, options, connection, progress_callback=hook)
    """

    def __init__(self) -> None:
        try:
            from rich.progress import (
                Progress,
                SpinnerColumn,
                TextColumn,
                TimeElapsedColumn,
            )
        except ModuleNotFoundError as exc:
            raise MissingDependencyError(
                "rich is not installed. Install with: pip install rich",
            ) from exc

        self._progress: Any = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            TimeElapsedColumn(),
            console=get_rich_console(),
            transient=True,
        )
        self._task_id: Any = None
        self._started: bool = False
        self._saved: int = 0

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> RichProgressHook:
        self.start()
        return self

    def __exit__(self, *_args: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the Rich progress display."""
        if not self._started:
            self._progress.start()
            self._started = True

    def stop(self) -> None:
        """Stop the Rich progress display (idempotent)."""
        if self._started:
            self._progress.stop()
            self._started = False

    # ------------------------------------------------------------------
    # Hook callback
    # ------------------------------------------------------------------

    def __call__(self, event: dict[str, Any]) -> None:
        """Submission progress callback.

        Parameters
        ----------
        event:
            A dict with at least a ``"status"`` key.  Possible statuses:
            ``"queued"``, ``"running"``, ``"saved"``, ``"finished"``.
        """
        if not self._started:
            return

        status: str = event.get("status", "")
        prompt_id: str = event.get("prompt_id", "")

        if status == "queued":
            self._describe(f"Queued {prompt_id}")
        elif status == "running":
            self._describe(f"Running {prompt_id}")
        elif status == "saved":
            self._saved += 1
            self._describe(f"Downloaded {self._saved} output file(s)")
        elif status == "finished":
            self._describe(f"Finished {prompt_id}")

    # ------------------------------------------------------------------
    # Internal handlers
    # ------------------------------------------------------------------

    def _describe(self, description: str) -> None:
        """Create the spinner task on first use, then update its text."""
        if self._task_id is None:
            self._task_id = self._progress.add_task(description, total=None)
        else:
            self._progress.update(self._task_id, description=description)

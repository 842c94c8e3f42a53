"""Protocols (interfaces) consumed by the core layer.

These define the contracts the two workflow capabilities must satisfy.
Core code depends ONLY on these protocols — never on concrete
implementations — so the CLI and tests can substitute their own.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from comfyui_workflow.core.models import ConnectionConfig, JsonValue, SubmissionResult

ProgressCallback = Callable[[dict[str, Any]], None]
"""Receives submission progress events such as ``{"status": "queued"}``."""


class WorkflowMutator(Protocol):
    """Contract for applying an options document to a workflow.

    Any object that implements :meth:`modify` with the correct
    signature satisfies this protocol structurally (no explicit
    inheritance required).
    """

    def modify(self, workflow: JsonValue, options: JsonValue) -> JsonValue:
        """Return a modified copy of *workflow* with *options* applied.

        Implementations must leave both arguments untouched.

        Raises
        ------
        WorkflowModificationError
            When the options cannot be applied.
        """
        ...  # pragma: no cover


class WorkflowSubmitter(Protocol):
    """Contract for running a workflow on a ComfyUI server.

    Implementations wrap the HTTP mechanics and must map all
    backend-specific exceptions to
    :class:`~comfyui_workflow.exceptions.ComfyUIError` subclasses.
    """

    def submit(
        self,
        workflow: JsonValue,
        connection: ConnectionConfig,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> SubmissionResult:
        """Queue *workflow* on the server described by *connection*.

        Parameters
        ----------
        workflow:
            The workflow document in API format.
        connection:
            Server URL and optional basic-auth credentials.
        progress_callback:
            Optional callable invoked with progress-event dicts while
            the submission runs.  May be ``None``.

        Raises
        ------
        ComfyUIError
            When the submission fails for any reason.
        """
        ...  # pragma: no cover

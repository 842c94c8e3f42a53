"""Custom exception hierarchy for comfyui-workflow.

All exceptions that cross layer boundaries must inherit from
:class:`WorkflowCliError`.  Raw third-party exceptions (e.g. from
``requests``) must NEVER propagate beyond the infrastructure layer —
they are caught there and re-raised as a typed subclass defined here.

Hierarchy
---------
WorkflowCliError
├── UsageError
├── MissingDependencyError
├── WorkflowModificationError
└── ComfyUIError
    ├── ComfyUIConnectionError
    ├── ComfyUIAuthError
    ├── ComfyUIExecutionError
    └── ComfyUITimeoutError
"""

from __future__ import annotations


class WorkflowCliError(Exception):
    """Base exception for all comfyui-workflow errors.

    Every user-visible error condition maps to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Command line ----------------------------------------------------------

class UsageError(WorkflowCliError):
    """Raised when the command line cannot be parsed."""


# --- Environment / tooling -------------------------------------------------

class MissingDependencyError(WorkflowCliError):
    """Raised when an optional runtime dependency is not installed."""


# --- Workflow mutation -----------------------------------------------------

class WorkflowModificationError(WorkflowCliError):
    """Raised when options cannot be applied to a workflow.

    ``problems`` lists every individual issue found, so a single run
    reports all of them at once.
    """

    def __init__(
        self,
        message: str,
        *,
        problems: tuple[str, ...] = (),
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.problems: tuple[str, ...] = problems


# --- ComfyUI server --------------------------------------------------------

class ComfyUIError(WorkflowCliError):
    """Raised when the ComfyUI server rejects or fails a submission."""


class ComfyUIConnectionError(ComfyUIError):
    """Raised when the ComfyUI server cannot be reached."""


class ComfyUIAuthError(ComfyUIError):
    """Raised when the ComfyUI server refuses the supplied credentials."""


class ComfyUIExecutionError(ComfyUIError):
    """Raised when the server reports an error while running the workflow."""

    def __init__(
        self,
        message: str,
        *,
        node_id: str | None = None,
        node_type: str | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.node_id: str | None = node_id
        self.node_type: str | None = node_type


class ComfyUITimeoutError(ComfyUIError):
    """Raised when a queued workflow does not finish within the wait limit."""


def append_credentials_hint(hint: str) -> str:
    """Append basic-auth guidance to an existing hint text.

    The suggestion is appended only once and preserves the original
    hint content verbatim.
    """
    marker = "Check the server credentials:"
    if marker in hint:
        return hint
    return "\n".join(
        (
            hint,
            marker,
            "    export COMFYUI_USERNAME=... COMFYUI_PASSWORD=...",
        )
    )

"""Domain models for comfyui-workflow.

All models are **frozen** dataclasses — immutable value objects with no
behaviour beyond data access.  They carry zero I/O and zero dependencies
on external packages.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

JsonValue = Any
"""An untyped JSON value as produced by :func:`json.loads`."""

Workflow = dict[str, Any]
"""A ComfyUI workflow in API format: node id → node dict."""


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Where and how to reach the ComfyUI server."""

    url: str
    """Base URL of the server, without a trailing slash."""

    username: str | None = None
    """Basic-auth user name, or ``None`` for an open server."""

    password: str | None = None
    """Basic-auth password.  Only sent together with *username*."""

    @property
    def auth(self) -> tuple[str, str] | None:
        """Return a ``(username, password)`` pair, or ``None`` without a user."""
        if not self.username:
            return None
        return self.username, self.password or ""

    def __repr__(self) -> str:
        # Never leak the password into logs or tracebacks.
        masked = "***" if self.password else None
        return (
            f"ConnectionConfig(url={self.url!r}, username={self.username!r}, "
            f"password={masked!r})"
        )


# ---------------------------------------------------------------------------
# Submission results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class OutputFile:
    """A single file reported in a ComfyUI history entry."""

    node_id: str
    """Id of the node that produced the file (e.g. a ``SaveImage`` node)."""

    filename: str
    """File name on the server."""

    subfolder: str
    """Sub-folder below the server's output directory, possibly empty."""

    type: str
    """Storage bucket on the server: ``output``, ``temp`` or ``input``."""


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """Outcome of one successful workflow submission."""

    prompt_id: str
    """Identifier the server assigned to the queued workflow."""

    outputs: tuple[OutputFile, ...] = ()
    """Files the server reported once execution finished."""

    saved_paths: tuple[Path, ...] = ()
    """Local paths the retrieved output files were written to."""

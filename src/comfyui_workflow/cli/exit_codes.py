"""Exit-code constants used by the CLI layer.

Centralised here so that every exit path uses a well-known, tested
value rather than magic integers scattered across the codebase.
"""

from __future__ import annotations

SUCCESS: int = 0
"""Clean exit — workflow submitted, or help/version shown."""

GENERAL_ERROR: int = 1
"""Invalid arguments or inputs.  Every problem was logged with the usage."""

UNEXPECTED_ERROR: int = 2
"""An unhandled exception escaped all known error boundaries."""

WORKFLOW_ERROR: int = 3
"""The options could not be applied, or the ComfyUI server failed the run."""

KEYBOARD_INTERRUPT: int = 130
"""User pressed Ctrl+C.  Follows POSIX convention (128 + SIGINT=2)."""

"""Allow ``python -m comfyui_workflow`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m comfyui_workflow`` behaves identically to the
``comfyui-workflow`` console script.
"""

from __future__ import annotations

from comfyui_workflow.cli.app import cli

if __name__ == "__main__":
    cli()

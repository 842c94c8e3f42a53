"""Infrastructure layer — external system integration.

This layer wraps all interaction with the ComfyUI HTTP API and the
process environment.  Every raw third-party exception must be caught
here and re-raised as a :class:`~comfyui_workflow.exceptions.WorkflowCliError`
subclass.

Rules
-----
* No imports from ``cli``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the core layer.
"""

from comfyui_workflow.infra.comfyui_client import ComfyUIClient, invoke_comfyui
from comfyui_workflow.infra.settings import DEFAULT_URL, load_connection_config

__all__: list[str] = [
    "DEFAULT_URL",
    "ComfyUIClient",
    "invoke_comfyui",
    "load_connection_config",
]

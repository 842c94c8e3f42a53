"""comfyui-workflow — run ComfyUI API workflows with option overrides.

Loads a workflow exported in API format, patches it with a JSON options
document and submits it to a ComfyUI server.
"""

from comfyui_workflow.version import __version__

__all__: list[str] = ["__version__"]

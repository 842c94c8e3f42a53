"""Core / service layer — pure business logic and data transformations.

Rules
-----
* No ``print()`` calls.
* No filesystem or network I/O.
* No imports from ``cli`` or ``infra``.
"""

from comfyui_workflow.core.models import ConnectionConfig, OutputFile, SubmissionResult
from comfyui_workflow.core.protocols import WorkflowMutator, WorkflowSubmitter
from comfyui_workflow.core.workflow_mutator import OptionsMutator, modify_workflow
from comfyui_workflow.core.workflow_service import WorkflowService

__all__: list[str] = [
    "ConnectionConfig",
    "OptionsMutator",
    "OutputFile",
    "SubmissionResult",
    "WorkflowMutator",
    "WorkflowService",
    "WorkflowSubmitter",
    "modify_workflow",
]

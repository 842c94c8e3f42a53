"""Core workflow service — mutate a workflow, then submit it.

This service delegates both steps to collaborators injected at
construction time:

* a :class:`~comfyui_workflow.core.protocols.WorkflowMutator` that applies
  the options document, and
* a :class:`~comfyui_workflow.core.protocols.WorkflowSubmitter` that runs
  the result on a ComfyUI server.

Guarantees
----------
* Pure orchestration — no ``print()``, no filesystem access.
* Only :class:`~comfyui_workflow.exceptions.WorkflowCliError` subclasses
  escape.
* The modified workflow is logged at ``TRACE`` before submission.
"""

from __future__ import annotations

import json
import logging

from comfyui_workflow.core.models import ConnectionConfig, JsonValue, SubmissionResult
from comfyui_workflow.core.protocols import (
    ProgressCallback,
    WorkflowMutator,
    WorkflowSubmitter,
)
from comfyui_workflow.exceptions import (
    ComfyUIError,
    WorkflowCliError,
    WorkflowModificationError,
)
from comfyui_workflow.utils.log_levels import TRACE

logger = logging.getLogger(__name__)


class WorkflowService:
    """Stateless service that drives one mutate-and-submit run.

    Parameters
    ----------
    mutator:
        Any object satisfying the :class:`WorkflowMutator` protocol.
    submitter:
        Any object satisfying the :class:`WorkflowSubmitter` protocol.
    """

    def __init__(self, mutator: WorkflowMutator, submitter: WorkflowSubmitter) -> None:
        self._mutator: WorkflowMutator = mutator
        self._submitter: WorkflowSubmitter = submitter

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(
        self,
        workflow: JsonValue,
        options: JsonValue,
        connection: ConnectionConfig,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> SubmissionResult:
        """Apply *options* to *workflow* and submit the result.

        Raises
        ------
        WorkflowModificationError
            When the mutator cannot apply the options.
        ComfyUIError
            When the submission fails.
        """
        modified = self.modify(workflow, options)
        if logger.isEnabledFor(TRACE):
            logger.log(TRACE, "Modified workflow:\n%s", json.dumps(modified, indent=2))

        logger.info("Submitting workflow to %s", connection.url)
        return self.submit(modified, connection, progress_callback=progress_callback)

    # ------------------------------------------------------------------
    # Collaborator delegation (safe boundary)
    # ------------------------------------------------------------------

    def modify(self, workflow: JsonValue, options: JsonValue) -> JsonValue:
        """Call the mutator and ensure only our exceptions escape."""
        try:
            return self._mutator.modify(workflow, options)
        except WorkflowCliError:
            # Already a domain error; propagate unchanged.
            raise
        except Exception as exc:
            raise WorkflowModificationError(
                f"Unexpected error while modifying the workflow: {exc}",
            ) from exc

    def submit(
        self,
        workflow: JsonValue,
        connection: ConnectionConfig,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> SubmissionResult:
        """Call the submitter and ensure only our exceptions escape."""
        try:
            return self._submitter.submit(
                workflow,
                connection,
                progress_callback=progress_callback,
            )
        except WorkflowCliError:
            raise
        except Exception as exc:
            raise ComfyUIError(
                f"Unexpected submission error: {exc}",
            ) from exc

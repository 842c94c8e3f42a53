"""Apply an options document to a ComfyUI workflow in API format.

Every function in this module is a **pure** transformation of an
in-memory copy — no I/O, and the caller's documents are never mutated.
The only source of non-determinism is ``"seed": "random"``, which draws
from an injectable :class:`random.Random`.

Application order (enforced by :meth:`OptionsMutator.modify`):

1. **Check** — both documents must be JSON objects, all keys known.
2. **Named options** — in the order they appear in the options document.
3. **Node overrides** — the ``nodes`` mapping, applied last so it wins.
"""

from __future__ import annotations

import copy
import random
import re
from collections.abc import Callable, Iterator
from typing import Any

from comfyui_workflow.core.models import JsonValue, Workflow
from comfyui_workflow.exceptions import WorkflowModificationError

SEED_INPUTS: tuple[str, ...] = ("seed", "noise_seed")
SAMPLER_INPUTS: tuple[str, ...] = ("steps", "cfg", "sampler_name", "scheduler", "denoise")
LATENT_INPUTS: tuple[str, ...] = ("width", "height", "batch_size")
RANDOM_SEED: str = "random"
MAX_SEED: int = 2**48
NODE_OVERRIDES_KEY: str = "nodes"

_LATENT_IMAGE_PATTERN = re.compile(r"Empty\w*LatentImage")


# ---------------------------------------------------------------------------
# Graph helpers
# ---------------------------------------------------------------------------

def is_link(value: object) -> bool:
    """Return ``True`` for an input wired to another node: ``[node_id, index]``."""
    return (
        isinstance(value, list)
        and len(value) == 2
        and isinstance(value[0], (str, int))
        and isinstance(value[1], int)
    )


def iter_nodes(workflow: Workflow) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield ``(node_id, node)`` for every well-formed node.

    Entries that are not dicts, or whose ``inputs`` is not a dict, are
    skipped rather than rejected; workflow validation is the server's job.
    """
    for node_id, node in workflow.items():
        if isinstance(node, dict) and isinstance(node.get("inputs"), dict):
            yield str(node_id), node


def _class_type(node: dict[str, Any]) -> str:
    return str(node.get("class_type", ""))


def _is_sampler(node: dict[str, Any]) -> bool:
    return "Sampler" in _class_type(node)


def _is_latent_image(node: dict[str, Any]) -> bool:
    return _LATENT_IMAGE_PATTERN.fullmatch(_class_type(node)) is not None


def _is_checkpoint_loader(node: dict[str, Any]) -> bool:
    return "CheckpointLoader" in _class_type(node) and "ckpt_name" in node["inputs"]


def conditioning_sources(workflow: Workflow, role: str) -> list[str]:
    """Return ids of the text-encoder nodes feeding samplers' *role* input.

    *role* is ``"positive"`` or ``"negative"``.  Conditioning that passes
    through intermediate nodes (e.g. ``ControlNetApply``) is followed via
    their own ``conditioning`` link until a node with a ``text`` input is
    reached.
    """
    found: list[str] = []
    visited: set[str] = set()
    pending: list[str] = [
        str(node["inputs"][role][0])
        for _, node in iter_nodes(workflow)
        if _is_sampler(node) and is_link(node["inputs"].get(role))
    ]
    while pending:
        node_id = pending.pop(0)
        if node_id in visited:
            continue
        visited.add(node_id)
        node = workflow.get(node_id)
        if not isinstance(node, dict) or not isinstance(node.get("inputs"), dict):
            continue
        inputs = node["inputs"]
        if isinstance(inputs.get("text"), str):
            found.append(node_id)
        elif is_link(inputs.get("conditioning")):
            pending.append(str(inputs["conditioning"][0]))
    return found


def _set_inputs(
    workflow: Workflow,
    name: str,
    value: JsonValue,
    *,
    where: Callable[[dict[str, Any]], bool],
) -> int:
    """Set input *name* on every node matching *where* that already has it.

    Linked inputs are left alone so overrides never cut a graph edge.
    Returns the number of inputs changed.
    """
    changed = 0
    for _, node in iter_nodes(workflow):
        inputs = node["inputs"]
        if name in inputs and not is_link(inputs[name]) and where(node):
            inputs[name] = value
            changed += 1
    return changed


def _any_node(_node: dict[str, Any]) -> bool:
    return True


# ---------------------------------------------------------------------------
# Mutator
# ---------------------------------------------------------------------------

class OptionsMutator:
    """Concrete :class:`~comfyui_workflow.core.protocols.WorkflowMutator`.

    Parameters
    ----------
    rng:
        Random source for ``"seed": "random"``.  Defaults to a fresh
        :class:`random.Random`; tests pass a seeded instance.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng: random.Random = rng or random.Random()
        self._handlers: dict[str, Callable[[Workflow, JsonValue], int]] = {
            "prompt": self._apply_prompt,
            "negative_prompt": self._apply_negative_prompt,
            "seed": self._apply_seed,
            "checkpoint": self._apply_checkpoint,
            "filename_prefix": self._apply_filename_prefix,
        }
        for name in SAMPLER_INPUTS:
            self._handlers[name] = self._sampler_handler(name)
        for name in LATENT_INPUTS:
            self._handlers[name] = self._latent_handler(name)

    @property
    def option_names(self) -> tuple[str, ...]:
        """All recognised option keys, ``nodes`` included."""
        return (*self._handlers, NODE_OVERRIDES_KEY)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def modify(self, workflow: JsonValue, options: JsonValue) -> Workflow:
        """Return a deep copy of *workflow* with *options* applied.

        Raises
        ------
        WorkflowModificationError
            Listing every problem found: non-object documents, unknown
            option keys, options that match no node, bad node overrides.
        """
        if not isinstance(workflow, dict):
            raise WorkflowModificationError(
                "The workflow must be a JSON object keyed by node id.",
                hint="Export the workflow with 'Save (API Format)' in ComfyUI.",
            )
        if not isinstance(options, dict):
            raise WorkflowModificationError("The options must be a JSON object.")

        unknown = sorted(key for key in options if key not in self.option_names)
        if unknown:
            raise WorkflowModificationError(
                f"Unknown option(s): {', '.join(unknown)}",
                problems=tuple(f"Unknown option: {key}" for key in unknown),
                hint=f"Recognised options: {', '.join(self.option_names)}",
            )

        result: Workflow = copy.deepcopy(workflow)
        problems: list[str] = []

        for key, value in options.items():
            if key == NODE_OVERRIDES_KEY or value is None:
                continue
            if self._handlers[key](result, copy.deepcopy(value)) == 0:
                problems.append(f"Option '{key}' does not match any node in the workflow")

        overrides = options.get(NODE_OVERRIDES_KEY)
        if overrides is not None:
            problems.extend(self._apply_node_overrides(result, overrides))

        if problems:
            raise WorkflowModificationError(
                "; ".join(problems),
                problems=tuple(problems),
            )
        return result

    # ------------------------------------------------------------------
    # Named option handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_text(workflow: Workflow, role: str, value: JsonValue) -> int:
        targets = conditioning_sources(workflow, role)
        for node_id in targets:
            workflow[node_id]["inputs"]["text"] = value
        return len(targets)

    def _apply_prompt(self, workflow: Workflow, value: JsonValue) -> int:
        return self._apply_text(workflow, "positive", value)

    def _apply_negative_prompt(self, workflow: Workflow, value: JsonValue) -> int:
        return self._apply_text(workflow, "negative", value)

    def _apply_seed(self, workflow: Workflow, value: JsonValue) -> int:
        changed = 0
        for _, node in iter_nodes(workflow):
            inputs = node["inputs"]
            for name in SEED_INPUTS:
                if name in inputs and not is_link(inputs[name]):
                    inputs[name] = (
                        self._rng.randrange(MAX_SEED) if value == RANDOM_SEED else value
                    )
                    changed += 1
        return changed

    @staticmethod
    def _apply_checkpoint(workflow: Workflow, value: JsonValue) -> int:
        return _set_inputs(workflow, "ckpt_name", value, where=_is_checkpoint_loader)

    @staticmethod
    def _apply_filename_prefix(workflow: Workflow, value: JsonValue) -> int:
        return _set_inputs(workflow, "filename_prefix", value, where=_any_node)

    @staticmethod
    def _sampler_handler(name: str) -> Callable[[Workflow, JsonValue], int]:
        def handler(workflow: Workflow, value: JsonValue) -> int:
            return _set_inputs(workflow, name, value, where=_is_sampler)

        return handler

    @staticmethod
    def _latent_handler(name: str) -> Callable[[Workflow, JsonValue], int]:
        def handler(workflow: Workflow, value: JsonValue) -> int:
            return _set_inputs(workflow, name, value, where=_is_latent_image)

        return handler

    # ------------------------------------------------------------------
    # Explicit node overrides
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_node_overrides(workflow: Workflow, overrides: JsonValue) -> list[str]:
        """Merge ``{node_id: {input: value}}`` into the workflow.

        Returns the problems found; valid entries are still applied.
        """
        if not isinstance(overrides, dict):
            return ["Option 'nodes' must be an object of node id to inputs"]

        problems: list[str] = []
        for node_id, inputs in overrides.items():
            node = workflow.get(str(node_id))
            if not isinstance(node, dict):
                problems.append(f"Node '{node_id}' does not exist in the workflow")
                continue
            if not isinstance(inputs, dict):
                problems.append(f"Overrides for node '{node_id}' must be an object")
                continue
            if not isinstance(node.get("inputs"), dict):
                node["inputs"] = {}
            node["inputs"].update(copy.deepcopy(inputs))
        return problems


_default_mutator = OptionsMutator()


def modify_workflow(workflow: JsonValue, options: JsonValue) -> Workflow:
    """Apply *options* to *workflow* with the default mutator."""
    return _default_mutator.modify(workflow, options)

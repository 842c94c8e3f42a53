"""Tests for the workflow mutator (core/workflow_mutator.py).

All tests are pure — no I/O.  Coverage:
* Each named option reaches the right nodes and inputs.
* Node overrides are applied last.
* Problems are gathered into one ``WorkflowModificationError``.
* Inputs are never mutated; graph links are never overwritten.
"""

from __future__ import annotations

import copy
import random
from typing import Any

import pytest

from comfyui_workflow.core.workflow_mutator import (
    MAX_SEED,
    OptionsMutator,
    conditioning_sources,
    is_link,
    iter_nodes,
    modify_workflow,
)
from comfyui_workflow.exceptions import WorkflowModificationError


def _inputs(workflow: dict[str, Any], node_id: str) -> dict[str, Any]:
    return workflow[node_id]["inputs"]


# ---------------------------------------------------------------------------
# Graph helpers
# ---------------------------------------------------------------------------

class TestGraphHelpers:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (["4", 0], True),
            ([4, 1], True),
            (["4", "0"], False),
            (["4", 0, 1], False),
            ("4", False),
            (None, False),
        ],
    )
    def test_is_link(self, value: object, expected: bool) -> None:
        assert is_link(value) is expected

    def test_iter_nodes_skips_malformed_entries(self) -> None:
        workflow = {
            "1": {"class_type": "A", "inputs": {}},
            "2": "not a node",
            "3": {"class_type": "B"},
            "4": {"class_type": "C", "inputs": []},
        }
        assert [node_id for node_id, _ in iter_nodes(workflow)] == ["1"]

    def test_conditioning_sources(self, workflow: dict[str, Any]) -> None:
        assert conditioning_sources(workflow, "positive") == ["6"]
        assert conditioning_sources(workflow, "negative") == ["7"]

    def test_conditioning_follows_intermediate_nodes(self, workflow: dict[str, Any]) -> None:
        workflow["20"] = {
            "class_type": "ControlNetApply",
            "inputs": {"conditioning": ["6", 0], "control_net": ["21", 0], "strength": 1.0},
        }
        _inputs(workflow, "3")["positive"] = ["20", 0]

        assert conditioning_sources(workflow, "positive") == ["6"]

    def test_conditioning_tolerates_cycles(self) -> None:
        workflow = {
            "1": {"class_type": "KSampler", "inputs": {"positive": ["2", 0]}},
            "2": {"class_type": "Loop", "inputs": {"conditioning": ["3", 0]}},
            "3": {"class_type": "Loop", "inputs": {"conditioning": ["2", 0]}},
        }
        assert conditioning_sources(workflow, "positive") == []


# ---------------------------------------------------------------------------
# Named options
# ---------------------------------------------------------------------------

class TestNamedOptions:
    def test_empty_options_return_equal_copy(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(workflow, {})
        assert result == workflow
        assert result is not workflow

    def test_prompts(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(
            workflow,
            {"prompt": "a lighthouse at dusk", "negative_prompt": "blurry"},
        )
        assert _inputs(result, "6")["text"] == "a lighthouse at dusk"
        assert _inputs(result, "7")["text"] == "blurry"

    def test_sampler_options(self, workflow: dict[str, Any]) -> None:
        options = {
            "steps": 30,
            "cfg": 6.5,
            "sampler_name": "dpmpp_2m",
            "scheduler": "karras",
            "denoise": 0.8,
        }
        result = OptionsMutator().modify(workflow, options)
        for name, value in options.items():
            assert _inputs(result, "3")[name] == value

    def test_latent_options(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(workflow, {"width": 768, "height": 1024, "batch_size": 4})
        assert _inputs(result, "5") == {"batch_size": 4, "height": 1024, "width": 768}

    def test_sd3_latent_node_is_recognised(self) -> None:
        workflow = {"1": {"class_type": "EmptySD3LatentImage", "inputs": {"width": 1024}}}
        result = OptionsMutator().modify(workflow, {"width": 832})
        assert _inputs(result, "1")["width"] == 832

    def test_checkpoint(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(workflow, {"checkpoint": "sdxl.safetensors"})
        assert _inputs(result, "4")["ckpt_name"] == "sdxl.safetensors"

    def test_filename_prefix(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(workflow, {"filename_prefix": "run-42"})
        assert _inputs(result, "9")["filename_prefix"] == "run-42"

    def test_fixed_seed(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(workflow, {"seed": 1234})
        assert _inputs(result, "3")["seed"] == 1234

    def test_noise_seed_is_also_set(self) -> None:
        workflow = {"1": {"class_type": "KSamplerAdvanced", "inputs": {"noise_seed": 1}}}
        result = OptionsMutator().modify(workflow, {"seed": 99})
        assert _inputs(result, "1")["noise_seed"] == 99

    def test_random_seed_is_drawn_from_rng(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator(rng=random.Random(42)).modify(workflow, {"seed": "random"})

        expected = random.Random(42).randrange(MAX_SEED)
        assert _inputs(result, "3")["seed"] == expected
        assert 0 <= expected < MAX_SEED

    def test_null_options_are_ignored(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(workflow, {"prompt": None, "width": None})
        assert result == workflow

    def test_linked_inputs_are_not_overwritten(self) -> None:
        workflow = {
            "1": {"class_type": "KSampler", "inputs": {"seed": ["2", 0], "steps": 20}},
            "2": {"class_type": "PrimitiveInt", "inputs": {"seed": 5}},
        }
        result = OptionsMutator().modify(workflow, {"seed": 7})
        assert _inputs(result, "1")["seed"] == ["2", 0]
        assert _inputs(result, "2")["seed"] == 7

    def test_inputs_are_not_mutated(self, workflow: dict[str, Any]) -> None:
        options = {"prompt": "x", "nodes": {"3": {"steps": 2}}}
        workflow_before = copy.deepcopy(workflow)
        options_before = copy.deepcopy(options)

        result = OptionsMutator().modify(workflow, options)
        _inputs(result, "3")["steps"] = 100

        assert workflow == workflow_before
        assert options == options_before

    def test_module_function(self, workflow: dict[str, Any]) -> None:
        result = modify_workflow(workflow, {"steps": 12})
        assert _inputs(result, "3")["steps"] == 12


# ---------------------------------------------------------------------------
# Node overrides
# ---------------------------------------------------------------------------

class TestNodeOverrides:
    def test_overrides_merge_into_inputs(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(
            workflow, {"nodes": {"9": {"filename_prefix": "custom", "extra": True}}},
        )
        assert _inputs(result, "9") == {
            "filename_prefix": "custom",
            "images": ["8", 0],
            "extra": True,
        }

    def test_overrides_win_over_named_options(self, workflow: dict[str, Any]) -> None:
        result = OptionsMutator().modify(
            workflow, {"nodes": {"3": {"steps": 5}}, "steps": 30},
        )
        assert _inputs(result, "3")["steps"] == 5

    def test_node_without_inputs_gets_them(self) -> None:
        workflow = {"1": {"class_type": "Note"}}
        result = OptionsMutator().modify(workflow, {"nodes": {"1": {"text": "hi"}}})
        assert result["1"]["inputs"] == {"text": "hi"}


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestErrors:
    @pytest.mark.parametrize("workflow", [[], "text", 3, None])
    def test_workflow_must_be_object(self, workflow: Any) -> None:
        with pytest.raises(WorkflowModificationError, match="workflow must be a JSON object"):
            OptionsMutator().modify(workflow, {})

    @pytest.mark.parametrize("options", [[], "seed", 1, None])
    def test_options_must_be_object(self, workflow: dict[str, Any], options: Any) -> None:
        with pytest.raises(WorkflowModificationError, match="options must be a JSON object"):
            OptionsMutator().modify(workflow, options)

    def test_unknown_options(self, workflow: dict[str, Any]) -> None:
        with pytest.raises(WorkflowModificationError) as exc_info:
            OptionsMutator().modify(workflow, {"colour": "red", "size": 3, "steps": 4})

        assert exc_info.value.problems == ("Unknown option: colour", "Unknown option: size")
        assert exc_info.value.hint is not None
        assert "steps" in exc_info.value.hint

    def test_option_matching_no_node(self) -> None:
        workflow = {"1": {"class_type": "LoadImage", "inputs": {"image": "a.png"}}}
        with pytest.raises(WorkflowModificationError) as exc_info:
            OptionsMutator().modify(workflow, {"width": 512})
        assert exc_info.value.problems == (
            "Option 'width' does not match any node in the workflow",
        )

    def test_problems_accumulate(self, workflow: dict[str, Any]) -> None:
        del workflow["5"]
        options = {
            "width": 512,
            "nodes": {"42": {"seed": 1}, "3": "not an object"},
        }
        with pytest.raises(WorkflowModificationError) as exc_info:
            OptionsMutator().modify(workflow, options)

        assert exc_info.value.problems == (
            "Option 'width' does not match any node in the workflow",
            "Node '42' does not exist in the workflow",
            "Overrides for node '3' must be an object",
        )

    def test_nodes_must_be_object(self, workflow: dict[str, Any]) -> None:
        with pytest.raises(WorkflowModificationError, match="'nodes' must be an object"):
            OptionsMutator().modify(workflow, {"nodes": ["3"]})

    def test_option_names_include_nodes(self) -> None:
        names = OptionsMutator().option_names
        assert "nodes" in names
        assert "prompt" in names
        assert "batch_size" in names

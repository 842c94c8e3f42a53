"""Shared pytest fixtures and configuration for the comfyui-workflow test suite.

Guidelines
----------
* No network access in any test — the HTTP session is mocked.
* Core tests must be pure — no side effects.
* Files are only written below ``tmp_path``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest


def _sd15_workflow() -> dict[str, Any]:
    """A stock text-to-image graph, as exported with 'Save (API Format)'."""
    return {
        "3": {
            "class_type": "KSampler",
            "inputs": {
                "cfg": 8,
                "denoise": 1,
                "latent_image": ["5", 0],
                "model": ["4", 0],
                "negative": ["7", 0],
                "positive": ["6", 0],
                "sampler_name": "euler",
                "scheduler": "normal",
                "seed": 8566257,
                "steps": 20,
            },
        },
        "4": {
            "class_type": "CheckpointLoaderSimple",
            "inputs": {"ckpt_name": "v1-5-pruned-emaonly.ckpt"},
        },
        "5": {
            "class_type": "EmptyLatentImage",
            "inputs": {"batch_size": 1, "height": 512, "width": 512},
        },
        "6": {
            "class_type": "CLIPTextEncode",
            "inputs": {"clip": ["4", 1], "text": "masterpiece best quality girl"},
        },
        "7": {
            "class_type": "CLIPTextEncode",
            "inputs": {"clip": ["4", 1], "text": "bad hands"},
        },
        "8": {
            "class_type": "VAEDecode",
            "inputs": {"samples": ["3", 0], "vae": ["4", 2]},
        },
        "9": {
            "class_type": "SaveImage",
            "inputs": {"filename_prefix": "ComfyUI", "images": ["8", 0]},
        },
    }


@pytest.fixture()
def workflow() -> dict[str, Any]:
    """A fresh copy of the stock text-to-image workflow."""
    return _sd15_workflow()


@pytest.fixture()
def workflow_file(tmp_path: Path, workflow: dict[str, Any]) -> Path:
    """The stock workflow written to a temporary ``export-api.json``."""
    path = tmp_path / "export-api.json"
    path.write_text(json.dumps(workflow), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _reset_cli_logging() -> Iterator[None]:
    """Drop the CLI log handler after each test so no stream outlives it."""
    yield
    logger = logging.getLogger("comfyui_workflow")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)

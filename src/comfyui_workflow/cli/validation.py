"""Input validation for the CLI driver.

Every check runs; failures are **accumulated** into a list of messages
rather than raised, so one invocation reports every problem at once.
Checks that depend on an earlier one (file exists → file parses) are
skipped when their precondition already failed.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from comfyui_workflow.core.models import JsonValue


@dataclass(slots=True)
class ValidatedInputs:
    """Outcome of :func:`validate_inputs`.

    ``workflow`` and ``options`` are only meaningful when :attr:`ok` is
    ``True``.
    """

    errors: list[str] = field(default_factory=list)
    workflow: JsonValue = None
    options: JsonValue = None

    @property
    def ok(self) -> bool:
        return not self.errors


def parse_json(text: str) -> tuple[bool, JsonValue]:
    """Return ``(True, value)`` for valid JSON text, else ``(False, None)``."""
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def validate_inputs(options: str | None, workflow_filename: str | None) -> ValidatedInputs:
    """Validate the raw ``--options`` string and the workflow file path.

    Order of checks:

    1. Options are non-empty and valid JSON.
    2. A workflow filename was supplied.
    3. The workflow file exists and is a regular file.
    4. The workflow file is readable and holds valid JSON.
    """
    result = ValidatedInputs()

    if not options or not options.strip():
        result.errors.append("Options are required")
    else:
        valid, parsed = parse_json(options)
        if valid:
            result.options = parsed
        else:
            result.errors.append("Options must be valid JSON")

    if not workflow_filename:
        result.errors.append("A workflow file is required")
        return result

    path = Path(workflow_filename)
    if not path.exists():
        result.errors.append(f"The workflow file {workflow_filename} does not exist")
        return result
    if not path.is_file():
        result.errors.append(f"The workflow file {workflow_filename} is not a file")
        return result

    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        result.errors.append(f"The workflow file {workflow_filename} cannot be read: {exc}")
        return result

    valid, parsed = parse_json(raw)
    if valid:
        result.workflow = parsed
    else:
        result.errors.append("The workflow file must be valid JSON")
    return result

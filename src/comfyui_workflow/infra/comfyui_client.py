"""``requests`` backed implementation of :class:`~comfyui_workflow.core.protocols.WorkflowSubmitter`.

This module is the **only** place in the codebase that talks HTTP.  All
``requests`` exceptions are caught here and re-raised as typed
:class:`~comfyui_workflow.exceptions.ComfyUIError` subclasses — nothing
raw escapes the infrastructure boundary.

Protocol
--------
1. ``POST /prompt`` queues the workflow and returns a ``prompt_id``.
2. ``GET /history/{prompt_id}`` is polled until the entry reports
   completion or an execution error.
3. ``GET /view`` fetches every output file listed in the history entry;
   the bytes are written into the output directory.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

import requests

from comfyui_workflow.core.models import (
    ConnectionConfig,
    JsonValue,
    OutputFile,
    SubmissionResult,
)
from comfyui_workflow.core.protocols import ProgressCallback
from comfyui_workflow.exceptions import (
    ComfyUIAuthError,
    ComfyUIConnectionError,
    ComfyUIError,
    ComfyUIExecutionError,
    ComfyUITimeoutError,
    append_credentials_hint,
)

logger = logging.getLogger(__name__)

# History output keys that list downloadable files.
_OUTPUT_FILE_KEYS: tuple[str, ...] = ("images", "gifs")


class ComfyUIClient:
    """Concrete :class:`WorkflowSubmitter` backed by the ComfyUI HTTP API.

    Usage::

        client = ComfyUIClient(output_dir=Path("renders"))
        result = client.submit(workflow, ConnectionConfig(url="http://localhost:8188"))

    This class satisfies the :class:`~comfyui_workflow.core.protocols.WorkflowSubmitter`
    protocol structurally — no explicit inheritance required.

    Parameters
    ----------
    output_dir:
        Directory that receives the output files.  Defaults to the
        current working directory at submission time.
    request_timeout:
        Per-request timeout in seconds.
    poll_interval:
        Seconds between ``/history`` polls.
    wait_timeout:
        Seconds to wait for the workflow to finish before giving up.
    session_factory, sleep, clock:
        Injection points for tests.
    """

    def __init__(
        self,
        *,
        output_dir: Path | None = None,
        request_timeout: float = 30.0,
        poll_interval: float = 1.0,
        wait_timeout: float = 600.0,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._output_dir = output_dir
        self._request_timeout = request_timeout
        self._poll_interval = poll_interval
        self._wait_timeout = wait_timeout
        self._session_factory = session_factory
        self._sleep = sleep
        self._clock = clock

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    def submit(
        self,
        workflow: JsonValue,
        connection: ConnectionConfig,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> SubmissionResult:
        """Queue *workflow*, wait for it to finish and fetch its outputs.

        Raises
        ------
        ComfyUIConnectionError
            When the server cannot be reached.
        ComfyUIAuthError
            When the server answers 401 or 403.
        ComfyUIExecutionError
            When the server reports a node failure while running.
        ComfyUITimeoutError
            When the workflow does not finish within *wait_timeout*.
        ComfyUIError
            For every other failure.
        """
        emit = progress_callback or _ignore_progress
        session = self._session_factory()
        session.auth = connection.auth
        try:
            prompt_id = self._queue(session, connection.url, workflow)
            emit({"status": "queued", "prompt_id": prompt_id})

            entry = self._wait_for_completion(session, connection.url, prompt_id, emit)
            outputs = parse_output_files(entry)

            saved: list[Path] = []
            for output in outputs:
                path = self._download(session, connection.url, output)
                saved.append(path)
                emit({"status": "saved", "prompt_id": prompt_id, "path": str(path)})
        finally:
            session.close()

        emit({"status": "finished", "prompt_id": prompt_id})
        return SubmissionResult(
            prompt_id=prompt_id,
            outputs=outputs,
            saved_paths=tuple(saved),
        )

    # ------------------------------------------------------------------
    # Protocol steps
    # ------------------------------------------------------------------

    def _queue(self, session: requests.Session, base_url: str, workflow: JsonValue) -> str:
        """``POST /prompt`` and return the server-assigned prompt id."""
        payload = {"prompt": workflow, "client_id": str(uuid.uuid4())}
        response = self._request(session, "POST", f"{base_url}/prompt", json=payload)
        body = _json_body(response)

        prompt_id = body.get("prompt_id") if isinstance(body, dict) else None
        if not prompt_id:
            raise ComfyUIError(
                f"ComfyUI did not return a prompt id: {body!r}",
            )
        logger.debug("Queued prompt %s", prompt_id)
        return str(prompt_id)

    def _wait_for_completion(
        self,
        session: requests.Session,
        base_url: str,
        prompt_id: str,
        emit: ProgressCallback,
    ) -> dict[str, Any]:
        """Poll ``/history/{prompt_id}`` until the entry is complete.

        This waits on a single submission; it never re-queues.
        """
        deadline = self._clock() + self._wait_timeout
        running_reported = False

        while True:
            response = self._request(session, "GET", f"{base_url}/history/{prompt_id}")
            history = _json_body(response)
            entry = history.get(prompt_id) if isinstance(history, dict) else None

            if isinstance(entry, dict):
                status = entry.get("status")
                if not isinstance(status, dict):
                    # Older servers only publish finished entries.
                    return entry
                if status.get("status_str") == "error":
                    raise _execution_error(prompt_id, status)
                if status.get("completed"):
                    return entry

            if not running_reported:
                emit({"status": "running", "prompt_id": prompt_id})
                running_reported = True

            if self._clock() >= deadline:
                raise ComfyUITimeoutError(
                    f"Workflow {prompt_id} did not finish within "
                    f"{self._wait_timeout:g} seconds.",
                    hint="The job is still queued on the server; check its queue.",
                )
            self._sleep(self._poll_interval)

    def _download(
        self,
        session: requests.Session,
        base_url: str,
        output: OutputFile,
    ) -> Path:
        """``GET /view`` for *output* and write it into the output directory."""
        response = self._request(
            session,
            "GET",
            f"{base_url}/view",
            params={
                "filename": output.filename,
                "subfolder": output.subfolder,
                "type": output.type,
            },
        )

        output_dir = self._output_dir if self._output_dir is not None else Path.cwd()
        target = _available_path(_local_path(output_dir, output))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(response.content)
        except OSError as exc:
            raise ComfyUIError(
                f"Could not write output file {target}: {exc}",
            ) from exc

        logger.debug("Saved %s from node %s", target, output.node_id)
        return target

    # ------------------------------------------------------------------
    # HTTP + exception mapping
    # ------------------------------------------------------------------

    def _request(
        self,
        session: requests.Session,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> requests.Response:
        """Send one request and map every failure to a ``ComfyUIError``."""
        logger.debug("%s %s", method, url)
        try:
            response = session.request(method, url, timeout=self._request_timeout, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise ComfyUIConnectionError(
                f"Could not reach ComfyUI at {url}: {exc}",
                hint="Is the server running?  Set COMFYUI_URL to its address.",
            ) from exc
        except requests.RequestException as exc:
            raise ComfyUIError(f"Request to {url} failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise ComfyUIAuthError(
                f"ComfyUI refused the request ({response.status_code}).",
                hint=append_credentials_hint("The server requires basic auth."),
            )
        if response.status_code >= 400:
            message, hint = _describe_error_body(response)
            raise ComfyUIError(
                f"ComfyUI returned {response.status_code}: {message}",
                hint=hint,
            )
        return response


# ---------------------------------------------------------------------------
# Response parsing (pure)
# ---------------------------------------------------------------------------

def parse_output_files(entry: dict[str, Any]) -> tuple[OutputFile, ...]:
    """Collect the downloadable files listed in a history *entry*."""
    outputs = entry.get("outputs")
    if not isinstance(outputs, dict):
        return ()

    files: list[OutputFile] = []
    for node_id, node_output in outputs.items():
        if not isinstance(node_output, dict):
            continue
        for key in _OUTPUT_FILE_KEYS:
            for item in node_output.get(key) or []:
                if not isinstance(item, dict) or not item.get("filename"):
                    continue
                files.append(
                    OutputFile(
                        node_id=str(node_id),
                        filename=str(item["filename"]),
                        subfolder=str(item.get("subfolder") or ""),
                        type=str(item.get("type") or "output"),
                    )
                )
    return tuple(files)


def _safe_parts(path: str) -> list[str]:
    """Split a server-supplied path into parts that stay inside a directory."""
    parts = path.replace("\\", "/").split("/")
    return [part for part in parts if part not in ("", ".", "..") and ":" not in part]


def _local_path(output_dir: Path, output: OutputFile) -> Path:
    """Map *output* to ``output_dir/<subfolder>/<filename>``.

    Only the last part of the filename is used, and subfolder parts that
    would climb out of *output_dir* are dropped.
    """
    name_parts = _safe_parts(output.filename)
    name = name_parts[-1] if name_parts else f"output_{output.node_id}"
    return output_dir.joinpath(*_safe_parts(output.subfolder), name)


def _available_path(path: Path) -> Path:
    """Return *path*, or the first free ``<stem>_<n><suffix>`` beside it."""
    candidate = path
    counter = 1
    while candidate.exists():
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        counter += 1
    return candidate


def _json_body(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise ComfyUIError(
            f"ComfyUI returned a non-JSON response from {response.url}",
        ) from exc


def _describe_error_body(response: requests.Response) -> tuple[str, str | None]:
    """Extract ``error.message`` and any ``node_errors`` from a 4xx/5xx body."""
    try:
        body = response.json()
    except ValueError:
        return (response.text.strip() or response.reason or "no details"), None
    if not isinstance(body, dict):
        return str(body), None

    error = body.get("error")
    if isinstance(error, dict):
        message = str(error.get("message") or error.get("type") or "unknown error")
        details = error.get("details")
        if details:
            message = f"{message}: {details}"
    else:
        message = str(error or "unknown error")

    lines: list[str] = []
    node_errors = body.get("node_errors")
    if isinstance(node_errors, dict):
        for node_id, node_error in node_errors.items():
            if not isinstance(node_error, dict):
                continue
            class_type = node_error.get("class_type", "?")
            for item in node_error.get("errors") or []:
                if isinstance(item, dict):
                    detail = item.get("details") or item.get("message") or ""
                    lines.append(f"node {node_id} ({class_type}): {detail}")
    return message, "\n".join(lines) or None


def _execution_error(prompt_id: str, status: dict[str, Any]) -> ComfyUIExecutionError:
    """Build an exception from the last ``execution_error`` status message."""
    for message in reversed(status.get("messages") or []):
        if (
            isinstance(message, list)
            and len(message) >= 2
            and message[0] == "execution_error"
            and isinstance(message[1], dict)
        ):
            detail = message[1]
            node_id = detail.get("node_id")
            node_type = detail.get("node_type")
            return ComfyUIExecutionError(
                f"Workflow {prompt_id} failed in node {node_id} ({node_type}): "
                f"{detail.get('exception_message', '').strip()}",
                node_id=str(node_id) if node_id is not None else None,
                node_type=str(node_type) if node_type is not None else None,
            )
    return ComfyUIExecutionError(f"Workflow {prompt_id} failed on the server.")


def _ignore_progress(_event: dict[str, Any]) -> None:
    return None


def invoke_comfyui(workflow: JsonValue, connection: ConnectionConfig) -> SubmissionResult:
    """Submit *workflow* to *connection* with a default :class:`ComfyUIClient`."""
    return ComfyUIClient().submit(workflow, connection)

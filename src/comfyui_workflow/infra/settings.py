"""Infrastructure: connection settings from the process environment.

Rules
-----
* Reads environment variables only — no config files.
* Empty values are treated as unset.
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from comfyui_workflow.core.models import ConnectionConfig

DEFAULT_URL: str = "http://localhost:8188"

URL_VAR: str = "COMFYUI_URL"
USERNAME_VAR: str = "COMFYUI_USERNAME"
PASSWORD_VAR: str = "COMFYUI_PASSWORD"


def load_connection_config(environ: Mapping[str, str] | None = None) -> ConnectionConfig:
    """Build a :class:`ConnectionConfig` from *environ* (default ``os.environ``).

    ``COMFYUI_URL`` falls back to :data:`DEFAULT_URL`; a trailing slash
    is stripped so endpoint paths can be appended directly.
    """
    env = os.environ if environ is None else environ
    url = env.get(URL_VAR) or DEFAULT_URL
    return ConnectionConfig(
        url=url.rstrip("/"),
        username=env.get(USERNAME_VAR) or None,
        password=env.get(PASSWORD_VAR) or None,
    )

"""Extra logging levels shared by every layer."""

from __future__ import annotations

import logging

TRACE: int = 5
"""Below ``DEBUG``; used for full workflow document dumps."""

logging.addLevelName(TRACE, "TRACE")

"""Progress reporting for long-running analysis calls.

Pipeline stages never write to a stream directly; they call a
:data:`ProgressCallback`. Lines are diagnostic only and are not part of the
tool's result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

ProgressCallback = Callable[[str], None]

_progress_logger = logging.getLogger("clipsense_mcp.progress")


def log_progress(message: str) -> None:
    """Default callback: log at INFO (stderr under the stdio transport)."""
    _progress_logger.info("%s", message)

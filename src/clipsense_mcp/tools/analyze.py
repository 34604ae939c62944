"""The ``analyze-video`` tool on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_context
from mcp.types import ToolAnnotations
from pydantic import Field

from ..client import ClipSenseClient
from ..config import ServerConfig
from ..errors import ErrorCategory, Failure, render_failure
from ..pipeline import analyze_video

logger = logging.getLogger(__name__)
analyze_server = FastMCP("analyze")

TOOL_NAME = "analyze-video"
TOOL_DESCRIPTION = (
    "Use this tool to analyze video files on the user's computer that show mobile app bugs. "
    "Reads local video files (MP4, MOV, WebM, AVI, MKV, FLV, MPEG, 3GP, WMV) and provides "
    "AI-powered analysis to identify errors, crashes, UI issues, and suggests code fixes. "
    "Works with React Native, iOS (Swift/Objective-C), and Android (Kotlin/Java) apps. "
    "Use this when the user asks you to analyze, examine, or debug a video file showing app behavior."
)
ERROR_PREFIX = "❌ Error: "


def _lifespan_state(ctx: Context) -> tuple[ClipSenseClient, ServerConfig]:
    """Fetch the client and config the server lifespan created."""
    state = ctx.request_context.lifespan_context
    return state["client"], state["config"]


@analyze_server.tool(
    name=TOOL_NAME,
    description=TOOL_DESCRIPTION,
    annotations=ToolAnnotations(
        title="Analyze mobile bug video",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=True,
    ),
)
async def analyze_video_tool(
    videoPath: Annotated[str, Field(
        min_length=1,
        description="Absolute path to the video file on the user's computer "
        "(e.g., /Users/username/Desktop/bug.mp4). Max 500MB, max 10 minutes.",
    )],
    question: Annotated[str | None, Field(
        description="Specific question about the bug (optional). Example: 'Why does the "
        "button not respond when tapped?' If not provided, a general analysis will be performed.",
    )] = None,
    ctx: Context | None = None,
) -> str:
    """Upload a local bug recording, wait for the remote analysis, return the report.

    Any failure, including an unexpected exception, is returned to the
    assistant as an ``isError`` result carrying a diagnosis instead of
    crashing the server.
    """
    try:
        client, config = _lifespan_state(ctx or get_context())
        result = await analyze_video(videoPath, question, client=client, config=config)
    except Exception as exc:
        logger.exception("%s crashed for %s", TOOL_NAME, videoPath)
        result = Failure(
            category=ErrorCategory.UNKNOWN,
            message=str(exc) or type(exc).__name__,
            path=videoPath,
        )

    if isinstance(result, Failure):
        logger.warning("%s failed for %s: %s", TOOL_NAME, videoPath, result.category.value)
        raise ToolError(ERROR_PREFIX + render_failure(result))
    return result

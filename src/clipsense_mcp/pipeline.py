"""End-to-end analyze-and-wait call: validate → upload → job → report."""

from __future__ import annotations

import logging

from .client import ClipSenseClient
from .config import ServerConfig
from .errors import Failure
from .jobs import JobController
from .progress import ProgressCallback, log_progress
from .report import format_report
from .upload import upload_video
from .validation import validate_video

logger = logging.getLogger(__name__)


async def analyze_video(
    video_path: str,
    question: str | None,
    *,
    client: ClipSenseClient,
    config: ServerConfig,
    progress: ProgressCallback = log_progress,
    controller: JobController | None = None,
) -> str | Failure:
    """Run one analysis of a local video.

    Stages run strictly in sequence; the first failure is returned as-is and
    no later stage runs.

    Args:
        video_path: Path to the local recording.
        question: What to ask about the bug. Blank or None uses
            ``config.default_question``.
        client: Authenticated API client.
        config: Poll budget, URLs and defaults.
        progress: Receives human-readable progress lines.
        controller: Pre-built job controller (tests inject one with a fake
            sleep); built from *config* when omitted.

    Returns:
        The Markdown report, or the :class:`Failure` that stopped the call.
    """
    prompt = (question or "").strip() or config.default_question

    video = validate_video(video_path)
    if isinstance(video, Failure):
        logger.info("Rejected %s: %s", video_path, video.category.value)
        return video

    target = await upload_video(client, video, progress=progress)
    if isinstance(target, Failure):
        return target

    if controller is None:
        controller = JobController.from_config(client, config, progress=progress)
    job = await controller.start_and_await(target.video_key, video.filename, prompt)
    if isinstance(job, Failure):
        return job

    return format_report(job)

"""Presign-then-PUT upload of a validated video."""

from __future__ import annotations

import logging

from .client import ClipSenseClient
from .errors import Failure
from .models.analysis import UploadTarget, VideoFile
from .progress import ProgressCallback, log_progress

logger = logging.getLogger(__name__)


async def upload_video(
    client: ClipSenseClient,
    video: VideoFile,
    *,
    progress: ProgressCallback = log_progress,
) -> UploadTarget | Failure:
    """Request an upload target for *video* and stream the file to it.

    The target is single-use: after any failure the whole call must be
    repeated, which requests a fresh target.

    Returns:
        The :class:`UploadTarget` whose ``video_key`` identifies the object
        for the analysis job, or the first :class:`Failure`.
    """
    target = await client.presign(video)
    if isinstance(target, Failure):
        return target
    logger.debug("Presigned upload for %s → key %s", video.filename, target.video_key)

    progress(f"Uploading {video.filename} ({video.size_mb:.2f}MB)...")
    failure = await client.put_file(target, video)
    if failure is not None:
        return failure

    progress("Upload complete. Starting analysis...")
    return target

"""Async ClipSense REST client.

Every method returns its parsed value or a :class:`~.errors.Failure`; httpx
exceptions never escape. Nothing here retries: presigned upload URLs are
single-use and jobs are owned by the server.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from pathlib import Path
from typing import TypeVar

import httpx
from pydantic import BaseModel

from .config import DEFAULT_API_URL, ServerConfig
from .errors import ErrorCategory, Failure, classify_http_error
from .models.analysis import (
    AnalysisJob,
    JobStatusResponse,
    StartJobResponse,
    UploadTarget,
    VideoFile,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

ANALYSIS_TYPE = "mobile_bug"
UPLOAD_CHUNK_SIZE = 1024 * 1024


async def _iter_file(path: Path, chunk_size: int = UPLOAD_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield *path* in chunks without blocking the event loop."""
    with path.open("rb") as f:
        while chunk := await asyncio.to_thread(f.read, chunk_size):
            yield chunk


class ClipSenseClient:
    """Authenticated client for one API key.

    API calls share a pooled ``httpx.AsyncClient`` carrying the bearer
    header. Uploads go through a second, unauthenticated client because the
    presigned URL points at the object store, not the API.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 300.0,
        upload_timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("No ClipSense API key; set CLIPSENSE_API_KEY")
        self._api = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )
        self._uploads = httpx.AsyncClient(timeout=upload_timeout, transport=transport)
        logger.info("Created ClipSense client for %s (key …%s)", base_url, api_key[-4:])

    @classmethod
    def from_config(
        cls,
        api_key: str,
        config: ServerConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ClipSenseClient:
        return cls(
            api_key,
            base_url=config.api_base_url,
            timeout=config.request_timeout,
            upload_timeout=config.upload_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._api.aclose()
        await self._uploads.aclose()

    async def _call(
        self,
        method: str,
        url: str,
        model: type[M],
        *,
        path: str = "",
        **kwargs,
    ) -> M | Failure:
        """Send an API request and parse the JSON body into *model*."""
        try:
            response = await self._api.request(method, url, **kwargs)
            response.raise_for_status()
            return model.model_validate(response.json())
        except httpx.HTTPError as exc:
            failure = classify_http_error(exc, path=path)
            logger.warning("%s %s failed: %s %s", method, url, failure.category.value, failure.message)
            return failure
        except ValueError as exc:
            logger.warning("%s %s returned an unexpected body: %s", method, url, exc)
            return Failure(
                category=ErrorCategory.API_MALFORMED_RESPONSE,
                message=f"{method} {url}: {exc}",
                path=path,
            )

    async def presign(self, video: VideoFile) -> UploadTarget | Failure:
        """Request a one-time upload URL (``POST /upload/presign``)."""
        return await self._call(
            "POST",
            "/upload/presign",
            UploadTarget,
            path=str(video.path),
            json={
                "filename": video.filename,
                "content_type": video.content_type,
                "file_size": video.size_bytes,
            },
        )

    async def put_file(self, target: UploadTarget, video: VideoFile) -> None | Failure:
        """Stream *video* to the presigned URL in a single PUT."""
        headers = {
            "Content-Type": video.content_type,
            "Content-Length": str(video.size_bytes),
        }
        try:
            async with aclosing(_iter_file(video.path)) as body:
                response = await self._uploads.put(target.upload_url, content=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            failure = classify_http_error(exc, path=str(video.path))
            logger.warning("Upload of %s failed: %s %s", video.filename, failure.category.value, failure.message)
            return failure
        except OSError as exc:
            return Failure(
                category=ErrorCategory.FILE_ACCESS_FAILED,
                message=exc.strerror or str(exc),
                path=str(video.path),
            )
        return None

    async def start_job(self, video_key: str, filename: str, question: str) -> str | Failure:
        """Start an analysis job (``POST /analyze/start``); returns its id."""
        started = await self._call(
            "POST",
            "/analyze/start",
            StartJobResponse,
            json={
                "video_key": video_key,
                "filename": filename,
                "question": question,
                "analysis_type": ANALYSIS_TYPE,
            },
        )
        if isinstance(started, Failure):
            return started
        return started.id

    async def job_status(self, job_id: str) -> JobStatusResponse | Failure:
        return await self._call("GET", f"/analyze/jobs/{job_id}/status", JobStatusResponse)

    async def job_detail(self, job_id: str) -> AnalysisJob | Failure:
        return await self._call("GET", f"/analyze/jobs/{job_id}", AnalysisJob)

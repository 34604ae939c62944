"""Remote analysis job start and status polling.

The server owns job state. The client only observes it:

    queued / processing ──► completed | failed

plus a client-side ``timeout`` when the poll budget runs out. Nothing is
retried: a failed start, a failed job, or a lost connection ends the call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from .client import ClipSenseClient
from .config import DEFAULT_RESULTS_URL, ServerConfig
from .errors import NETWORK_CATEGORIES, ErrorCategory, Failure
from .models.analysis import AnalysisJob, JobStatus
from .progress import ProgressCallback, log_progress

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 5.0
MAX_POLL_ATTEMPTS = 120  # 10 minutes at the default interval
PROGRESS_EVERY = 6


class JobController:
    """Starts one analysis job and waits for it to reach a terminal state.

    ``sleep`` and ``clock`` are injectable so tests can run the full poll
    budget without real waiting.
    """

    def __init__(
        self,
        client: ClipSenseClient,
        *,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        progress_every: int = PROGRESS_EVERY,
        results_url: str = DEFAULT_RESULTS_URL,
        progress: ProgressCallback = log_progress,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._poll_interval = poll_interval
        self._max_attempts = max_attempts
        self._progress_every = progress_every
        self._results_url = results_url.rstrip("/")
        self._progress = progress
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(
        cls,
        client: ClipSenseClient,
        config: ServerConfig,
        **kwargs,
    ) -> JobController:
        return cls(
            client,
            poll_interval=config.poll_interval,
            max_attempts=config.poll_max_attempts,
            progress_every=config.progress_every,
            results_url=config.results_url,
            **kwargs,
        )

    def status_url(self, job_id: str) -> str:
        """Web page where the user can check on *job_id* manually."""
        return f"{self._results_url}/{job_id}"

    def _while_polling(self, job_id: str, failure: Failure) -> Failure:
        """Attach job context to a failure seen after the job started.

        Transport failures become ``CONNECTION_LOST``: the job may still
        finish server-side, so the user gets the status URL.
        """
        if failure.category in NETWORK_CATEGORIES:
            return Failure(
                category=ErrorCategory.CONNECTION_LOST,
                message=failure.message,
                job_id=job_id,
                status_url=self.status_url(job_id),
            )
        return failure.model_copy(update={"job_id": job_id, "status_url": self.status_url(job_id)})

    async def start(self, video_key: str, filename: str, question: str) -> str | Failure:
        """Start a job for an uploaded object; returns the job id."""
        job_id = await self._client.start_job(video_key, filename, question)
        if isinstance(job_id, Failure):
            return job_id
        logger.info("Started analysis job %s for %s", job_id, filename)
        return job_id

    async def wait(self, job_id: str) -> AnalysisJob | Failure:
        """Poll *job_id* until it completes, fails, or the budget runs out.

        Status checks run strictly one after another, ``poll_interval``
        seconds apart, at most ``max_attempts`` times. The loop also stops
        once the monotonic clock passes ``poll_interval * max_attempts``
        seconds, so scheduling delays cannot stretch the wait.

        Returns:
            The full job detail (fetched once, after ``completed``), or a
            ``JOB_FAILED``, ``JOB_TIMEOUT`` or ``CONNECTION_LOST`` failure.
        """
        budget = self._poll_interval * self._max_attempts
        deadline = self._clock() + budget
        attempt = 0
        while attempt < self._max_attempts:
            attempt += 1
            status = await self._client.job_status(job_id)
            if isinstance(status, Failure):
                return self._while_polling(job_id, status)

            if status.status == JobStatus.COMPLETED.value:
                self._progress("Analysis complete!")
                job = await self._client.job_detail(job_id)
                if isinstance(job, Failure):
                    return self._while_polling(job_id, job)
                if not job.id:
                    job = job.model_copy(update={"id": job_id})
                return job

            if status.status == JobStatus.FAILED.value:
                logger.warning("Job %s failed: %s", job_id, status.error_message)
                return Failure(
                    category=ErrorCategory.JOB_FAILED,
                    message=status.error_message or "Unknown error",
                    job_id=job_id,
                    status_url=self.status_url(job_id),
                )

            if attempt % self._progress_every == 0:
                elapsed = attempt * self._poll_interval / 60
                self._progress(f"Still processing... ({elapsed:.1f} min elapsed)")

            if attempt == self._max_attempts or self._clock() >= deadline:
                break
            await self._sleep(self._poll_interval)

        logger.warning("Job %s still running after %d status checks", job_id, attempt)
        return Failure(
            category=ErrorCategory.JOB_TIMEOUT,
            message=f">{budget / 60:g} minutes",
            job_id=job_id,
            status_url=self.status_url(job_id),
        )

    async def start_and_await(self, video_key: str, filename: str, question: str) -> AnalysisJob | Failure:
        job_id = await self.start(video_key, filename, question)
        if isinstance(job_id, Failure):
            return job_id
        self._progress(f"Analysis job started (ID: {job_id}). This may take 2-3 minutes...")
        return await self.wait(job_id)

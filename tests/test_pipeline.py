"""End-to-end tests for analyze_video against the fake API."""

from __future__ import annotations

import json

import httpx
import pytest

from clipsense_mcp.config import DEFAULT_QUESTION, ServerConfig
from clipsense_mcp.errors import ErrorCategory, Failure, render_failure
from clipsense_mcp.jobs import JobController
from clipsense_mcp.pipeline import analyze_video

pytestmark = pytest.mark.unit


@pytest.fixture()
def run(client, fake_sleep, progress_lines):
    """Call analyze_video with the fake client and no real waiting."""
    async def _run(video_path: str, question: str | None = "Why does checkout crash?"):
        controller = JobController(client, sleep=fake_sleep, progress=progress_lines.append)
        return await analyze_video(
            video_path,
            question,
            client=client,
            config=ServerConfig(),
            progress=progress_lines.append,
            controller=controller,
        )

    return _run


def _start_body(fake_api) -> dict:
    [request] = fake_api.calls("POST", "/analyze/start")
    return json.loads(request.content)


class TestAnalyzeVideo:
    async def test_happy_path(self, run, fake_api, video_file, progress_lines):
        """GIVEN a valid recording and a job completing on the third poll THEN one report."""
        path = video_file("demo.mp4")
        fake_api.statuses = [{"status": "queued"}, {"status": "processing"}, {"status": "completed"}]

        report = await run(str(path))

        assert isinstance(report, str)
        assert report.startswith("## Mobile Bug Analysis")
        assert "The crash is a null dereference in CartScreen." in report
        assert len(fake_api.calls("POST", "/upload/presign")) == 1
        assert len(fake_api.upload_calls) == 1
        assert len(fake_api.calls("POST", "/analyze/start")) == 1
        assert len(fake_api.status_calls) == 3
        assert len(fake_api.detail_calls) == 1
        assert fake_api.upload_calls[0].content == path.read_bytes()
        assert progress_lines[0].startswith("Uploading demo.mp4 (")
        assert progress_lines[-1] == "Analysis complete!"

    async def test_request_order(self, run, fake_api, video_file):
        await run(str(video_file()))
        order = [(r.method, r.url.path.rsplit("/", 1)[-1]) for r in fake_api.requests]
        assert order == [
            ("POST", "presign"),
            ("PUT", "demo.mp4"),
            ("POST", "start"),
            ("GET", "status"),
            ("GET", "job_1"),
        ]

    async def test_question_forwarded(self, run, fake_api, video_file):
        await run(str(video_file()), "Why is the button dead?")
        body = _start_body(fake_api)
        assert body["question"] == "Why is the button dead?"
        assert body["filename"] == "demo.mp4"
        assert body["analysis_type"] == "mobile_bug"

    @pytest.mark.parametrize("question", [None, "", "   "])
    async def test_default_question(self, run, fake_api, video_file, question):
        await run(str(video_file()), question)
        assert _start_body(fake_api)["question"] == DEFAULT_QUESTION

    async def test_missing_file_makes_no_requests(self, run, fake_api, tmp_path):
        missing = str(tmp_path / "missing.mp4")

        result = await run(missing)

        assert isinstance(result, Failure)
        assert result.category == ErrorCategory.FILE_NOT_FOUND
        assert fake_api.requests == []
        assert f"Video file not found: {missing}" in render_failure(result)

    async def test_unsupported_file_makes_no_requests(self, run, fake_api, video_file):
        result = await run(str(video_file("notes.txt")))
        assert result.category == ErrorCategory.FILE_UNSUPPORTED
        assert fake_api.requests == []

    async def test_quota_on_start(self, run, fake_api, video_file):
        fake_api.overrides[("POST", "/analyze/start")] = httpx.Response(
            429, json={"detail": "Monthly analysis limit reached"},
        )

        result = await run(str(video_file()))

        assert result.category == ErrorCategory.API_QUOTA_EXCEEDED
        assert "Rate limit exceeded" in render_failure(result)
        assert len(fake_api.calls("POST", "/analyze/start")) == 1
        assert fake_api.status_calls == []

    async def test_presign_failure_skips_upload(self, run, fake_api, video_file):
        fake_api.overrides[("POST", "/upload/presign")] = httpx.Response(500, json={"detail": "db down"})
        result = await run(str(video_file()))
        assert result.category == ErrorCategory.API_SERVER_ERROR
        assert fake_api.upload_calls == []
        assert fake_api.calls("POST", "/analyze/start") == []

    async def test_upload_failure_skips_start(self, run, fake_api, video_file):
        fake_api.overrides[("PUT", "/videos/demo.mp4")] = httpx.Response(413, text="EntityTooLarge")
        result = await run(str(video_file()))
        assert result.category == ErrorCategory.API_PAYLOAD_TOO_LARGE
        assert fake_api.calls("POST", "/analyze/start") == []

    async def test_job_failure(self, run, fake_api, video_file):
        fake_api.statuses = [{"status": "failed", "error_message": "corrupt container"}]
        result = await run(str(video_file()))
        assert result.category == ErrorCategory.JOB_FAILED
        assert "corrupt container" in render_failure(result)

    async def test_completed_without_result(self, run, fake_api, video_file):
        fake_api.detail = {"id": "job_1", "status": "completed"}
        result = await run(str(video_file()))
        assert result.category == ErrorCategory.RESULT_MISSING

    async def test_builds_controller_from_config(self, client, fake_api, video_file):
        """Without an injected controller the configured budget applies."""
        fake_api.statuses = [{"status": "processing"}]

        result = await analyze_video(
            str(video_file()),
            None,
            client=client,
            config=ServerConfig(poll_interval=0.01, poll_max_attempts=2),
            progress=lambda _: None,
        )

        assert result.category == ErrorCategory.JOB_TIMEOUT
        assert len(fake_api.status_calls) == 2
        assert result.status_url.endswith("/job_1")

"""Shared test fixtures for clipsense-mcp."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest

import clipsense_mcp.config as cfg_mod
from clipsense_mcp.client import ClipSenseClient

API_URL = "https://api.clipsense.test/api/v1"
UPLOAD_URL = "https://uploads.clipsense.test/videos/demo.mp4?X-Amz-Signature=abc"
VIDEO_KEY = "videos/2026/demo.mp4"
TEST_API_KEY = "test-key-not-real"


def unwrap_tool(tool: Any) -> Any:
    """Return the coroutine behind a FastMCP tool, wrapped or not."""
    return getattr(tool, "fn", tool)


class FakeClipSense:
    """In-process stand-in for the ClipSense API and its object store.

    Every request is recorded. ``statuses`` is consumed one entry per status
    poll; the last entry repeats. ``overrides`` maps ``(method, path suffix)``
    to a canned response or an exception to raise.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.job_id = "job_1"
        self.statuses: list[dict[str, Any]] = [{"status": "completed"}]
        self.detail: dict[str, Any] = {
            "id": self.job_id,
            "status": "completed",
            "frames_extracted": 7,
            "tokens_used": 100,
            "cost_total": 0.0123,
            "result": {"response": "The crash is a null dereference in CartScreen."},
        }
        self.overrides: dict[tuple[str, str], httpx.Response | Exception] = {}
        self.transport = httpx.MockTransport(self._handle)

    def calls(self, method: str, suffix: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.endswith(suffix)
        ]

    @property
    def status_calls(self) -> list[httpx.Request]:
        return self.calls("GET", f"/analyze/jobs/{self.job_id}/status")

    @property
    def detail_calls(self) -> list[httpx.Request]:
        return self.calls("GET", f"/analyze/jobs/{self.job_id}")

    @property
    def upload_calls(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]

    def _override(self, request: httpx.Request) -> httpx.Response | None:
        for (method, suffix), outcome in self.overrides.items():
            if request.method == method and request.url.path.endswith(suffix):
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return None

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        overridden = self._override(request)
        if overridden is not None:
            return overridden

        path = request.url.path
        if request.method == "PUT" and request.url.host == "uploads.clipsense.test":
            return httpx.Response(200)
        if request.method == "POST" and path.endswith("/upload/presign"):
            return httpx.Response(200, json={"upload_url": UPLOAD_URL, "video_key": VIDEO_KEY})
        if request.method == "POST" and path.endswith("/analyze/start"):
            return httpx.Response(200, json={"id": self.job_id})
        if request.method == "GET" and path.endswith(f"/analyze/jobs/{self.job_id}/status"):
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            return httpx.Response(200, json=status)
        if request.method == "GET" and path.endswith(f"/analyze/jobs/{self.job_id}"):
            return httpx.Response(200, json=self.detail)
        return httpx.Response(404, json={"detail": "Not Found"})


@pytest.fixture(autouse=True)
def _clean_config():
    """Reset the config singleton between tests."""
    cfg_mod._config = None
    yield
    cfg_mod._config = None


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.clipsense/.env."""
    monkeypatch.setattr(
        "clipsense_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def _isolate_credentials(tmp_path, monkeypatch):
    """Never read or write the user's real API key."""
    monkeypatch.delenv("CLIPSENSE_API_KEY", raising=False)
    monkeypatch.setattr("clipsense_mcp.auth.CONFIG_FILE", tmp_path / ".clipsense" / "config.json")


@pytest.fixture()
def fake_api() -> FakeClipSense:
    return FakeClipSense()


@pytest.fixture()
async def client(fake_api):
    """ClipSenseClient wired to the fake service."""
    c = ClipSenseClient(TEST_API_KEY, base_url=API_URL, transport=fake_api.transport)
    yield c
    await c.aclose()


@pytest.fixture()
def fake_sleep():
    """Replacement for asyncio.sleep that returns immediately."""
    return AsyncMock(return_value=None)


@pytest.fixture()
def progress_lines() -> list[str]:
    """Collects progress messages; pass ``progress_lines.append`` as the callback."""
    return []


@pytest.fixture()
def video_file(tmp_path):
    """Factory for small on-disk video files."""
    def _factory(name: str = "demo.mp4", content: bytes = b"\x00\x00\x00\x18ftypmp42" * 64):
        path = tmp_path / name
        path.write_bytes(content)
        return path

    return _factory

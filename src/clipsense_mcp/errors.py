"""Failure categories, HTTP error classification and diagnosis rendering.

Every pipeline operation returns either its value or a :class:`Failure`.
Failures are only turned into text at the tool boundary, by
:func:`render_failure`.
"""

from __future__ import annotations

from enum import Enum

import httpx
from pydantic import BaseModel, Field

SUPPORT_EMAIL = "support@clipsense.app"
PRICING_URL = "https://clipsense.app/pricing"
STATUS_PAGE_URL = "https://clipsense.app/status"
KEY_REQUEST_URL = "https://api.clipsense.app/api/v1/keys/request"


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    CREDENTIAL_MISSING = "CREDENTIAL_MISSING"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    FILE_PERMISSION_DENIED = "FILE_PERMISSION_DENIED"
    FILE_ACCESS_FAILED = "FILE_ACCESS_FAILED"
    NOT_A_FILE = "NOT_A_FILE"
    FILE_EMPTY = "FILE_EMPTY"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    FILE_UNSUPPORTED = "FILE_UNSUPPORTED"
    API_AUTH_FAILED = "API_AUTH_FAILED"
    API_QUOTA_EXCEEDED = "API_QUOTA_EXCEEDED"
    API_PAYLOAD_TOO_LARGE = "API_PAYLOAD_TOO_LARGE"
    API_SERVER_ERROR = "API_SERVER_ERROR"
    API_ERROR = "API_ERROR"
    API_MALFORMED_RESPONSE = "API_MALFORMED_RESPONSE"
    NETWORK_UNREACHABLE = "NETWORK_UNREACHABLE"
    NETWORK_TIMEOUT = "NETWORK_TIMEOUT"
    CONNECTION_LOST = "CONNECTION_LOST"
    JOB_FAILED = "JOB_FAILED"
    JOB_TIMEOUT = "JOB_TIMEOUT"
    RESULT_MISSING = "RESULT_MISSING"
    UNKNOWN = "UNKNOWN"


NETWORK_CATEGORIES = frozenset({
    ErrorCategory.NETWORK_UNREACHABLE,
    ErrorCategory.NETWORK_TIMEOUT,
})

_RETRYABLE = frozenset({
    ErrorCategory.API_QUOTA_EXCEEDED,
    ErrorCategory.API_SERVER_ERROR,
    ErrorCategory.NETWORK_UNREACHABLE,
    ErrorCategory.NETWORK_TIMEOUT,
})


class Failure(BaseModel):
    """Typed failure returned in place of a value by any pipeline stage.

    Only the context fields relevant to ``category`` are populated.
    """

    category: ErrorCategory
    message: str = ""
    path: str = ""
    job_id: str = ""
    status_code: int | None = None
    size_bytes: int | None = None
    max_bytes: int | None = None
    extension: str = ""
    supported_formats: list[str] = Field(default_factory=list)
    status_url: str = ""

    @property
    def retryable(self) -> bool:
        """Whether the *caller* may reasonably try again unchanged."""
        return self.category in _RETRYABLE


def _response_detail(response: httpx.Response) -> str:
    """Pull the server's error text out of a JSON ``detail``/``error`` field."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for field in ("detail", "error"):
            value = body.get(field)
            if value:
                return value if isinstance(value, str) else str(value)
    text = response.text.strip()
    return text[:500] if text else f"HTTP {response.status_code} {response.reason_phrase}"


def classify_http_error(exc: httpx.HTTPError, *, path: str = "") -> Failure:
    """Map an httpx exception to a :class:`Failure`.

    Status errors are classified by code; connect/DNS failures become
    ``NETWORK_UNREACHABLE`` and timeouts ``NETWORK_TIMEOUT``.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        detail = _response_detail(exc.response)
        if status in (401, 403):
            category = ErrorCategory.API_AUTH_FAILED
        elif status == 429:
            category = ErrorCategory.API_QUOTA_EXCEEDED
        elif status == 413:
            category = ErrorCategory.API_PAYLOAD_TOO_LARGE
        elif status >= 500:
            category = ErrorCategory.API_SERVER_ERROR
        else:
            category = ErrorCategory.API_ERROR
        return Failure(category=category, message=detail, status_code=status, path=path)

    if isinstance(exc, httpx.TimeoutException):
        return Failure(category=ErrorCategory.NETWORK_TIMEOUT, message=str(exc) or "timed out", path=path)
    return Failure(
        category=ErrorCategory.NETWORK_UNREACHABLE,
        message=str(exc) or type(exc).__name__,
        path=path,
    )


def _mb(size: int) -> str:
    return f"{size / (1024 * 1024):.2f}"


def _render_file_failure(f: Failure) -> str:
    cat = f.category
    if cat == ErrorCategory.FILE_NOT_FOUND:
        return (
            f"Video file not found: {f.path}\n\n"
            "Please check:\n"
            "  • The file path is correct\n"
            "  • The file exists at the specified location"
        )
    if cat == ErrorCategory.FILE_PERMISSION_DENIED:
        return (
            f"Permission denied reading video file: {f.path}\n\n"
            "Please check:\n"
            "  • You have permission to read the file\n"
            "  • The containing folder is accessible to your IDE"
        )
    if cat == ErrorCategory.FILE_ACCESS_FAILED:
        return f"Failed to access video file: {f.message}\n\nPath: {f.path}"
    if cat == ErrorCategory.NOT_A_FILE:
        return (
            f"Path is not a file: {f.path}\n\n"
            "Please provide a path to a video file, not a directory."
        )
    if cat == ErrorCategory.FILE_EMPTY:
        return (
            f"Video file is empty (0 bytes): {f.path}\n\n"
            "Please ensure the video file is valid and not corrupted."
        )
    if cat == ErrorCategory.FILE_TOO_LARGE:
        max_mb = f"{(f.max_bytes or 0) / (1024 * 1024):.0f}"
        return (
            f"Video file too large: {_mb(f.size_bytes or 0)}MB (max: {max_mb}MB)\n\n"
            "To fix this:\n"
            "  • Trim the video to show only the bug (crash moment + 10 seconds before)\n"
            "  • Compress with: ffmpeg -i input.mp4 -vcodec h264 -acodec aac output.mp4\n"
            "  • Use a shorter screen recording\n\n"
            f"File: {f.path}"
        )
    return (
        f"Unsupported video format: .{f.extension}\n\n"
        f"Supported formats: {', '.join(f.supported_formats)}\n\n"
        "To convert your video:\n"
        f"  ffmpeg -i {f.path} output.mp4\n\n"
        f"File: {f.path}"
    )


def _render_api_failure(f: Failure) -> str:
    cat = f.category
    if cat == ErrorCategory.API_AUTH_FAILED:
        return (
            "Authentication failed\n\n"
            "Your API key is invalid or expired.\n\n"
            "To fix this:\n"
            f"  1. Request a new API key: curl -X POST \"{KEY_REQUEST_URL}\" "
            "-H \"Content-Type: application/json\" -d '{\"email\":\"your-email@example.com\"}'\n"
            "  2. Update CLIPSENSE_API_KEY in your MCP settings "
            "(or run: clipsense-mcp configure --api-key <key>)\n"
            "  3. Restart your IDE\n\n"
            f"Error: {f.message}"
        )
    if cat == ErrorCategory.API_QUOTA_EXCEEDED:
        return (
            "Rate limit exceeded\n\n"
            "You've used all your monthly analyses (quota exhausted).\n\n"
            "To fix this:\n"
            "  • Wait until next month (free tier resets monthly)\n"
            f"  • Upgrade to PRO: {PRICING_URL}\n\n"
            f"Error: {f.message}"
        )
    if cat == ErrorCategory.API_PAYLOAD_TOO_LARGE:
        return (
            "Video file too large for server\n\n"
            "The server rejected your video file.\n\n"
            "To fix this:\n"
            "  • Trim the video to only show the bug\n"
            f"  • Compress with: ffmpeg -i {f.path or 'input.mp4'} -vcodec h264 -acodec aac output.mp4\n\n"
            f"Error: {f.message}"
        )
    if cat == ErrorCategory.API_SERVER_ERROR:
        return (
            f"ClipSense server error ({f.status_code})\n\n"
            "The ClipSense API is experiencing issues.\n\n"
            "To fix this:\n"
            "  • Try again in a few minutes\n"
            f"  • Check status: {STATUS_PAGE_URL}\n"
            f"  • Contact support: {SUPPORT_EMAIL}\n\n"
            f"Error: {f.message}"
        )
    if cat == ErrorCategory.API_MALFORMED_RESPONSE:
        return (
            "Unexpected response from ClipSense API\n\n"
            "The server reply did not have the expected shape.\n\n"
            f"Please contact {SUPPORT_EMAIL} if this persists.\n\n"
            f"Error: {f.message}"
        )
    return (
        f"API error ({f.status_code}): {f.message}\n\n"
        f"Please contact {SUPPORT_EMAIL} if this persists."
    )


def _render_job_failure(f: Failure) -> str:
    cat = f.category
    if cat == ErrorCategory.CONNECTION_LOST:
        return (
            "Lost connection to ClipSense API\n\n"
            f"Your video may still be processing (Job ID: {f.job_id})\n\n"
            "To check status:\n"
            f"  • Visit: {f.status_url}\n"
            "  • Or try again in a few minutes\n\n"
            f"Error: {f.message}"
        )
    if cat == ErrorCategory.JOB_FAILED:
        return (
            "Analysis failed\n\n"
            "The video analysis encountered an error.\n\n"
            f"Error details: {f.message or 'Unknown error'}\n\n"
            "To fix this:\n"
            "  • Ensure the video file is valid and not corrupted\n"
            "  • Try a different video format\n"
            f"  • Contact {SUPPORT_EMAIL} with job ID: {f.job_id}"
        )
    if cat == ErrorCategory.JOB_TIMEOUT:
        return (
            "Analysis timeout\n\n"
            f"The analysis is taking longer than expected ({f.message}).\n\n"
            "Your job may still be processing. To check status:\n"
            f"  • Visit: {f.status_url}\n"
            f"  • Contact {SUPPORT_EMAIL} with job ID: {f.job_id}\n\n"
            "This usually happens with very long videos (>5 minutes)."
        )
    return f"No analysis result found for job {f.job_id or 'unknown'}: {f.message}"


_FILE_CATEGORIES = frozenset({
    ErrorCategory.FILE_NOT_FOUND,
    ErrorCategory.FILE_PERMISSION_DENIED,
    ErrorCategory.FILE_ACCESS_FAILED,
    ErrorCategory.NOT_A_FILE,
    ErrorCategory.FILE_EMPTY,
    ErrorCategory.FILE_TOO_LARGE,
    ErrorCategory.FILE_UNSUPPORTED,
})

_API_CATEGORIES = frozenset({
    ErrorCategory.API_AUTH_FAILED,
    ErrorCategory.API_QUOTA_EXCEEDED,
    ErrorCategory.API_PAYLOAD_TOO_LARGE,
    ErrorCategory.API_SERVER_ERROR,
    ErrorCategory.API_ERROR,
    ErrorCategory.API_MALFORMED_RESPONSE,
})

_JOB_CATEGORIES = frozenset({
    ErrorCategory.CONNECTION_LOST,
    ErrorCategory.JOB_FAILED,
    ErrorCategory.JOB_TIMEOUT,
    ErrorCategory.RESULT_MISSING,
})


def render_failure(failure: Failure) -> str:
    """Render a multi-line, actionable diagnosis for *failure*."""
    cat = failure.category
    if cat in _FILE_CATEGORIES:
        return _render_file_failure(failure)
    if cat in _API_CATEGORIES:
        return _render_api_failure(failure)
    if cat in _JOB_CATEGORIES:
        return _render_job_failure(failure)
    if cat == ErrorCategory.NETWORK_UNREACHABLE:
        return (
            "Cannot connect to ClipSense API\n\n"
            "Please check:\n"
            "  • Your internet connection\n"
            "  • Firewall settings (allow https://api.clipsense.app)\n"
            "  • VPN/proxy settings\n\n"
            f"Error: {failure.message}"
        )
    if cat == ErrorCategory.NETWORK_TIMEOUT:
        return (
            "Request timeout\n\n"
            "The upload or API request took too long.\n\n"
            "To fix this:\n"
            "  • Check your internet connection\n"
            "  • Try a smaller video file\n"
            "  • Try again in a few minutes\n\n"
            f"Error: {failure.message}"
        )
    if cat == ErrorCategory.CREDENTIAL_MISSING:
        return (
            "No API key found\n\n"
            "Set the CLIPSENSE_API_KEY environment variable in your MCP settings, "
            "or run: clipsense-mcp configure --api-key <key>"
        )
    return f"Unexpected error: {failure.message}"

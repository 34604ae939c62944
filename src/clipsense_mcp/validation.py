"""Local video checks run before any network call."""

from __future__ import annotations

import logging
import stat
from pathlib import Path

from .errors import ErrorCategory, Failure
from .models.analysis import VideoFile

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 500 * 1024 * 1024  # 524,288,000 bytes

CONTENT_TYPES: dict[str, str] = {
    "mp4": "video/mp4",
    "mov": "video/quicktime",
    "webm": "video/webm",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "flv": "video/x-flv",
    "mpeg": "video/mpeg",
    "mpg": "video/mpeg",
    "3gp": "video/3gpp",
    "wmv": "video/x-ms-wmv",
}

SUPPORTED_FORMATS: tuple[str, ...] = tuple(CONTENT_TYPES)

DEFAULT_CONTENT_TYPE = "video/mp4"


def content_type_for(extension: str) -> str:
    """MIME type for *extension* (no dot, any case), defaulting to mp4."""
    return CONTENT_TYPES.get(extension.lower().lstrip("."), DEFAULT_CONTENT_TYPE)


def _extension(path: Path) -> str:
    # Text after the last dot: ".mp4" alone yields "mp4".
    _, dot, ext = path.name.rpartition(".")
    return ext.lower() if dot else ""


def validate_video(video_path: str) -> VideoFile | Failure:
    """Check that *video_path* is an uploadable video.

    Checks run in order and stop at the first problem: exists, regular
    file, non-empty, at most :data:`MAX_FILE_SIZE` bytes, supported
    extension.

    Returns:
        The validated :class:`VideoFile`, or a :class:`Failure` carrying the
        path and whichever sizes/extensions explain the rejection.
    """
    path = Path(video_path).expanduser()
    try:
        st = path.stat()
    except (FileNotFoundError, NotADirectoryError):
        return Failure(category=ErrorCategory.FILE_NOT_FOUND, path=video_path)
    except PermissionError as exc:
        return Failure(
            category=ErrorCategory.FILE_PERMISSION_DENIED,
            message=str(exc),
            path=video_path,
        )
    except OSError as exc:
        return Failure(
            category=ErrorCategory.FILE_ACCESS_FAILED,
            message=exc.strerror or str(exc),
            path=video_path,
        )
    except ValueError as exc:
        # e.g. an embedded NUL byte in the path
        return Failure(
            category=ErrorCategory.FILE_ACCESS_FAILED,
            message=str(exc),
            path=video_path,
        )

    if not stat.S_ISREG(st.st_mode):
        return Failure(category=ErrorCategory.NOT_A_FILE, path=video_path)

    if st.st_size == 0:
        return Failure(category=ErrorCategory.FILE_EMPTY, path=video_path, size_bytes=0)

    if st.st_size > MAX_FILE_SIZE:
        return Failure(
            category=ErrorCategory.FILE_TOO_LARGE,
            path=video_path,
            size_bytes=st.st_size,
            max_bytes=MAX_FILE_SIZE,
        )

    ext = _extension(path)
    if ext not in CONTENT_TYPES:
        return Failure(
            category=ErrorCategory.FILE_UNSUPPORTED,
            path=video_path,
            extension=ext,
            supported_formats=list(SUPPORTED_FORMATS),
        )

    logger.debug("Validated %s (%d bytes, %s)", path, st.st_size, ext)
    return VideoFile(
        path=path,
        filename=path.name,
        size_bytes=st.st_size,
        extension=ext,
        content_type=content_type_for(ext),
    )

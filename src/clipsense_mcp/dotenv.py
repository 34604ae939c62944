"""Optional ``~/.clipsense/.env`` overrides for server tuning variables.

Lets users keep ``CLIPSENSE_*`` settings next to ``config.json`` instead of
in every MCP host's launch configuration. Process environment always wins.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_ENV_PATH = Path.home() / ".clipsense" / ".env"

_QUOTES = ('"', "'")


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        return value[1:-1]
    return value


def is_unset(key: str, value: str | None) -> bool:
    """Return True when an env value should be treated as missing.

    MCP hosts sometimes forward unresolved entries verbatim, e.g.
    ``CLIPSENSE_API_KEY="${CLIPSENSE_API_KEY}"`` or ``""``.
    """
    if value is None:
        return True
    normalized = _unquote(value.strip()).strip()
    if not normalized:
        return True
    if normalized in (f"${key}", f"${{{key}}}"):
        return True
    return normalized.startswith(f"${{{key}:-") and normalized.endswith("}")


def _parse_line(line: str) -> tuple[str, str] | None:
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    line = line.removeprefix("export ")
    key, sep, value = line.partition("=")
    key = key.strip()
    if not sep or not key:
        return None
    return key, _unquote(value.strip())


def parse_dotenv(path: Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines from *path*; a missing file yields ``{}``."""
    if not path.is_file():
        return {}
    pairs = (_parse_line(raw) for raw in path.read_text().splitlines())
    return dict(pair for pair in pairs if pair is not None)


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Inject vars from *path* into ``os.environ`` where currently unset.

    Returns:
        The variables that were actually injected.
    """
    injected: dict[str, str] = {}
    for key, value in parse_dotenv(path or DEFAULT_ENV_PATH).items():
        if is_unset(key, os.environ.get(key)):
            os.environ[key] = value
            injected[key] = value
    return injected

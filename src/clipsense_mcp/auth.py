"""API key lookup from the environment or ``~/.clipsense/config.json``."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from .dotenv import is_unset

logger = logging.getLogger(__name__)

API_KEY_ENV = "CLIPSENSE_API_KEY"
CONFIG_DIR = Path.home() / ".clipsense"
CONFIG_FILE = CONFIG_DIR / "config.json"


def _read_config_key(config_file: Path) -> str | None:
    """Return ``apiKey`` from *config_file*, or None if it can't be used."""
    try:
        data = json.loads(config_file.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.debug("Ignoring unreadable config %s: %s", config_file, exc)
        return None

    if not isinstance(data, dict):
        logger.debug("Ignoring config %s: top-level value is not an object", config_file)
        return None
    key = data.get("apiKey")
    if isinstance(key, str) and key.strip():
        return key.strip()
    return None


def resolve_api_key(config_file: Path | None = None) -> str | None:
    """Resolve the API key: ``CLIPSENSE_API_KEY`` first, then the config file.

    A malformed or unreadable config file is treated as absent.

    Args:
        config_file: Override for :data:`CONFIG_FILE` (used by tests).

    Returns:
        The key, or None when neither source provides one.
    """
    env_value = os.environ.get(API_KEY_ENV)
    if not is_unset(API_KEY_ENV, env_value):
        logger.debug("Using API key from %s", API_KEY_ENV)
        return env_value.strip()

    key = _read_config_key(config_file or CONFIG_FILE)
    if key:
        logger.debug("Using API key from %s", config_file or CONFIG_FILE)
    return key


def save_api_key(api_key: str, config_file: Path | None = None) -> Path:
    """Write ``{"apiKey": ...}`` to the config file, creating its directory.

    Returns:
        The path written.
    """
    target = config_file or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps({"apiKey": api_key}, indent=2), encoding="utf-8")
    logger.info("Saved API key (…%s) to %s", api_key[-4:], target)
    return target

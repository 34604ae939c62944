"""Server configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator

DEFAULT_API_URL = "https://api.clipsense.app/api/v1"
DEFAULT_RESULTS_URL = "https://clipsense.app/results"
DEFAULT_QUESTION = "Analyze this bug video and identify the issue."


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment.

    The API credential is not part of this model: it is resolved
    once by :mod:`clipsense_mcp.auth` and handed to the client explicitly.
    """

    api_base_url: str = Field(default=DEFAULT_API_URL)
    results_url: str = Field(default=DEFAULT_RESULTS_URL)
    request_timeout: float = Field(default=300.0)
    upload_timeout: float = Field(default=120.0)
    poll_interval: float = Field(default=5.0)
    poll_max_attempts: int = Field(default=120)
    progress_every: int = Field(default=6)
    default_question: str = Field(default=DEFAULT_QUESTION)

    @field_validator("api_base_url", "results_url")
    @classmethod
    def validate_url(cls, value: str) -> str:
        url = value.strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL '{value}': must start with http:// or https://")
        return url

    @field_validator("request_timeout", "upload_timeout", "poll_interval")
    @classmethod
    def validate_positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Timeouts and intervals must be > 0")
        return value

    @field_validator("poll_max_attempts", "progress_every")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("default_question")
    @classmethod
    def validate_question(cls, value: str) -> str:
        return value.strip() or DEFAULT_QUESTION

    @property
    def poll_budget_seconds(self) -> float:
        """Wall-clock ceiling implied by the poll interval and attempt budget."""
        return self.poll_interval * self.poll_max_attempts

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            api_base_url=os.getenv("CLIPSENSE_API_URL", DEFAULT_API_URL),
            results_url=os.getenv("CLIPSENSE_RESULTS_URL", DEFAULT_RESULTS_URL),
            request_timeout=float(os.getenv("CLIPSENSE_REQUEST_TIMEOUT", "300")),
            upload_timeout=float(os.getenv("CLIPSENSE_UPLOAD_TIMEOUT", "120")),
            poll_interval=float(os.getenv("CLIPSENSE_POLL_INTERVAL", "5")),
            poll_max_attempts=int(os.getenv("CLIPSENSE_POLL_MAX_ATTEMPTS", "120")),
            progress_every=int(os.getenv("CLIPSENSE_PROGRESS_EVERY", "6")),
            default_question=os.getenv("CLIPSENSE_DEFAULT_QUESTION", DEFAULT_QUESTION),
        )


# Singleton, initialised on first access.
_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.clipsense/.env`` before reading env vars.
    Process environment always takes precedence over the file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logger = logging.getLogger(__name__)
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


"""Tests for config module."""

from __future__ import annotations

import pytest

from clipsense_mcp.config import (
    DEFAULT_API_URL,
    DEFAULT_QUESTION,
    ServerConfig,
    get_config,
)

pytestmark = pytest.mark.unit


class TestServerConfig:
    """Tests for ServerConfig model."""

    def test_defaults(self):
        cfg = ServerConfig()
        assert cfg.api_base_url == DEFAULT_API_URL
        assert cfg.poll_interval == 5.0
        assert cfg.poll_max_attempts == 120
        assert cfg.poll_budget_seconds == 600
        assert cfg.request_timeout == 300
        assert cfg.upload_timeout == 120
        assert cfg.default_question == DEFAULT_QUESTION

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("CLIPSENSE_API_URL", "http://localhost:8000/api/v1/")
        monkeypatch.setenv("CLIPSENSE_POLL_INTERVAL", "2.5")
        monkeypatch.setenv("CLIPSENSE_POLL_MAX_ATTEMPTS", "10")
        monkeypatch.setenv("CLIPSENSE_PROGRESS_EVERY", "3")
        cfg = ServerConfig.from_env()
        assert cfg.api_base_url == "http://localhost:8000/api/v1"
        assert cfg.poll_interval == 2.5
        assert cfg.poll_max_attempts == 10
        assert cfg.poll_budget_seconds == 25
        assert cfg.progress_every == 3

    def test_invalid_url(self):
        with pytest.raises(ValueError, match="must start with http"):
            ServerConfig(api_base_url="api.clipsense.app")

    @pytest.mark.parametrize("field", ["poll_interval", "request_timeout", "upload_timeout"])
    def test_non_positive_seconds(self, field):
        with pytest.raises(ValueError, match="must be > 0"):
            ServerConfig(**{field: 0})

    def test_invalid_attempts(self):
        with pytest.raises(ValueError, match="must be >= 1"):
            ServerConfig(poll_max_attempts=0)

    def test_blank_question_falls_back(self):
        assert ServerConfig(default_question="  ").default_question == DEFAULT_QUESTION


class TestGetConfig:
    """Tests for the config singleton."""

    def test_get_config_creates_singleton(self):
        cfg = get_config()
        assert isinstance(cfg, ServerConfig)
        assert get_config() is cfg

    def test_loads_dotenv_file(self, tmp_path, monkeypatch):
        env = tmp_path / "clipsense.env"
        env.write_text("CLIPSENSE_POLL_MAX_ATTEMPTS=7\n")
        # Blank counts as unset; monkeypatch restores the real value afterwards.
        monkeypatch.setenv("CLIPSENSE_POLL_MAX_ATTEMPTS", "")
        monkeypatch.setattr("clipsense_mcp.dotenv.DEFAULT_ENV_PATH", env)
        assert get_config().poll_max_attempts == 7


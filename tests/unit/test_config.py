"""Unit tests for configuration."""

import pytest

from src.core.config import Constants, Settings


@pytest.mark.unit
class TestSettings:
    """Tests for Settings defaults, environment overrides and credentials."""

    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_PATH", "LOCAL_CACHE_BACKEND", "LOCAL_CACHE_KEY", "API_BASE_URL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.database_path == "data/tasktracker.db"
        assert settings.local_cache_backend == "file"
        assert settings.local_cache_key == "tasktracker_tasks"
        assert settings.api_base_url == "http://localhost:5000"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("LOCAL_CACHE_BACKEND", "memory")
        monkeypatch.setenv("REMOTE_MAX_RETRIES", "5")

        settings = Settings(_env_file=None)

        assert settings.local_cache_backend == "memory"
        assert settings.remote_max_retries == 5

    def test_unknown_cache_backend_is_rejected(self, monkeypatch):
        monkeypatch.setenv("LOCAL_CACHE_BACKEND", "cookies")

        with pytest.raises(ValueError, match="local_cache_backend"):
            Settings(_env_file=None)

    def test_require_credential_raises_when_missing(self):
        settings = Settings(_env_file=None, redis_url=None)

        with pytest.raises(ValueError, match="REDIS_URL"):
            settings.require_credential("redis_url", "Redis")

    def test_require_credential_returns_value(self):
        settings = Settings(_env_file=None, redis_url="redis://localhost:6379")

        assert settings.require_credential("redis_url", "Redis") == "redis://localhost:6379"


@pytest.mark.unit
class TestConstants:
    """Tests for fixed limits."""

    def test_title_bounds(self):
        assert Constants.TITLE_MIN_LENGTH == 3
        assert Constants.TITLE_MAX_LENGTH == 200

    def test_error_log_size(self):
        assert Constants.ERROR_LOG_MAXLEN == 50

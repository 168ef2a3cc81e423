"""Configuration management for tasktracker."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Document store
    database_path: str = Field(default="data/tasktracker.db", description="SQLite database file for the task store")

    # REST API
    cors_origins: list[str] = Field(default=["*"], description="Origins allowed to call the task API")

    # Remote client
    api_base_url: str = Field(default="http://localhost:5000", description="Base URL of the task API")
    remote_max_retries: int = Field(default=2, description="Attempts for idempotent list requests before giving up")
    remote_retry_delay_seconds: float = Field(default=0.5, description="Base delay for list retry backoff")

    # Local cache mirror
    local_cache_backend: Literal["file", "memory", "redis"] = Field(
        default="file", description="Where the client mirrors the task list for offline use"
    )
    local_cache_path: str = Field(default="data/local_storage.json", description="File used by the file cache backend")
    local_cache_key: str = Field(default="tasktracker_tasks", description="Key holding the serialized task list")
    local_cache_quota_bytes: int = Field(
        default=5 * 1024 * 1024, description="Maximum size of the file cache backend (0 disables the check)"
    )

    # Redis Configuration (optional)
    redis_url: str | None = Field(default=None, description="Redis connection URL (e.g., redis://localhost:6379)")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")
    environment: str = Field(default="development", description="Deployment environment name reported to Logfire")

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30
    API_PREFIX: str = "/api/tasks"

    # HTTP Status Codes
    HTTP_BAD_REQUEST: int = 400
    HTTP_NOT_FOUND: int = 404
    HTTP_CONFLICT: int = 409
    HTTP_SERVER_ERROR: int = 500

    # Task title rules
    TITLE_MIN_LENGTH: int = 3
    TITLE_MAX_LENGTH: int = 200

    # Task identifiers (24 hex characters, issued by the document store)
    TASK_ID_BYTES: int = 12
    TASK_ID_PATTERN: str = r"^[0-9a-fA-F]{24}$"

    # Client
    ERROR_LOG_MAXLEN: int = 50  # Recent classified errors kept per session
    SEARCH_SUGGESTION_LIMIT: int = 5

    # Redis
    REDIS_MAX_CONNECTIONS: int = 10
    REDIS_MAX_RETRIES: int = 3
    REDIS_RETRY_BASE_DELAY: float = 0.1

    # Statistics
    TREND_WINDOW_DAYS: int = 7
    TREND_INCREASING_PERCENT: int = 70
    TREND_DECREASING_PERCENT: int = 30
    PRODUCTIVITY_BONUS_PER_TASK: int = 5


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()

"""Configuration management for kanbanmd."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """kanbanmd configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="KANBAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Document location
    file_path: Path = Field(
        default=Path("KANBAN.md"),
        description="Path of the KANBAN.md board file",
    )
    server_url: str | None = Field(
        default=None,
        description="File server URL (e.g. http://localhost:18790); "
        "when unset the file is accessed directly",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="File server request timeout in seconds",
    )

    # Sync timing
    debounce_ms: int = Field(
        default=500,
        ge=0,
        description="Quiet interval after the last change before saving",
    )
    saved_reset_ms: int = Field(
        default=2000,
        ge=0,
        description="How long the 'saved' status is shown before going idle",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("server_url", mode="before")
    @classmethod
    def empty_url_is_none(cls, v: str | None) -> str | None:
        """Treat an empty KANBAN_SERVER_URL as unset."""
        if v is None or not str(v).strip():
            return None
        return str(v).strip().rstrip("/")

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        """Accept log levels in any case."""
        return str(v).upper()

    @property
    def debounce_seconds(self) -> float:
        """Debounce interval in seconds."""
        return self.debounce_ms / 1000

    @property
    def saved_reset_seconds(self) -> float:
        """Saved-status display time in seconds."""
        return self.saved_reset_ms / 1000

    @property
    def use_server(self) -> bool:
        """Check if the file server should be used."""
        return bool(self.server_url)


def load_settings(root: Path | None = None, **overrides) -> Settings:
    """Load settings from environment and .env file.

    Args:
        root: Optional directory to look for a .env file in; a relative
            ``file_path`` is resolved against it.
        **overrides: Explicit values (e.g. from command line flags).

    Returns:
        Validated Settings instance.
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}

    env_file = None
    if root:
        env_file = root / ".env"
        if not env_file.exists():
            env_file = None

    if env_file:
        # _env_file is a valid pydantic-settings parameter
        settings = Settings(_env_file=env_file, **overrides)  # type: ignore[call-arg]
    else:
        settings = Settings(**overrides)

    if root and not settings.file_path.is_absolute():
        settings.file_path = root / settings.file_path
    return settings

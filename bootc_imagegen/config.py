"""Configuration settings for bootc_imagegen.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BUILDER_IMAGE = "quay.io/centos-bootc/bootc-image-builder:latest"
DEFAULT_BUILDER_CONTAINER_SUFFIX = "-bootc-image-builder"
DEFAULT_CONTAINER_STORAGE = "/var/lib/containers/storage"


def _default_db_url() -> str:
    """Return the default database URL (SQLite)."""
    db_path = Path.home() / ".local" / "share" / "bootc-imagegen" / "history.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the BOOTC_IMG_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="BOOTC_IMG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_url: str = Field(
        default_factory=_default_db_url,
        description="Database connection URL for build history",
    )

    # Builder container
    builder_image: str = Field(
        default=DEFAULT_BUILDER_IMAGE,
        description="Image reference of the bootc-image-builder",
    )
    builder_container_suffix: str = Field(
        default=DEFAULT_BUILDER_CONTAINER_SUFFIX,
        description="Suffix appended to the image name for the builder container",
    )
    container_storage_path: str = Field(
        default=DEFAULT_CONTAINER_STORAGE,
        description="Host container storage mounted into the builder",
    )
    default_arch: str | None = Field(
        default=None,
        description="Target architecture when none is given (host arch if unset)",
    )

    # Engines
    engine_hosts: dict[str, str] = Field(
        default_factory=dict,
        description="Map of engine ID to container engine API URL",
    )

    # Operational
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    wait_timeout: int | None = Field(
        default=None,
        ge=1,
        description="Timeout in seconds for the builder container to exit",
    )


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = [
    "DEFAULT_BUILDER_CONTAINER_SUFFIX",
    "DEFAULT_BUILDER_IMAGE",
    "DEFAULT_CONTAINER_STORAGE",
    "Settings",
    "get_settings",
    "print_settings_json",
]

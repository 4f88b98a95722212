"""
Configuration for podunit.

Provides the defaults used by the CLI and the descriptor builder:
- Naming of the generated services
- Restart policy
- Container engine executable
- Logging
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PodunitSettings(BaseSettings):
    """Settings read from PODUNIT_* environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="PODUNIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Container engine
    executable: Optional[str] = Field(None, description="Path to the podman executable")

    # Naming
    container_prefix: str = "container"
    separator: str = "-"

    # Unit behaviour
    restart_policy: str = "on-failure"

    # Logging
    log_level: str = "WARNING"
    log_json: bool = False


def get_settings() -> PodunitSettings:
    """Get the configuration instance."""
    return PodunitSettings()
